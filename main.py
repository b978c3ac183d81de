"""Application entry point for the check-in fixup tool."""
from __future__ import annotations

from checkin.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
