"""Module entry point: python -m stwtrack ..."""

from stwtrack.cli import main


if __name__ == "__main__":
    raise SystemExit(main())
