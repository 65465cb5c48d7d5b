"""Run the single-file loader with ``python -m cli SOURCE DATABASE TABLE``."""

from __future__ import annotations

from cli.main import main


if __name__ == "__main__":
    raise SystemExit(main())
