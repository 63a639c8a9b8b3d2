from .cli import main

if __name__ == "__main__":  # pragma: no cover - script entry
    raise SystemExit(main())
