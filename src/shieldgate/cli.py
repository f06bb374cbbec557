"""Console-script shim; the CLI lives in `shieldgate.gateway.main`."""

from __future__ import annotations

from shieldgate.gateway.main import main

__all__ = ["main"]


if __name__ == "__main__":
    raise SystemExit(main())
