#!/usr/bin/env python3
"""Console entrypoint: delegates to the package main."""

from __future__ import annotations

from sentence_server.utils.logger import configure, get_logger

logger = get_logger(__name__)


def main() -> int:
    configure()
    try:
        import sentence_server.main as pkg_main

        return pkg_main.main()
    except Exception as exc:
        logger.error("Failed to start sentence-server", error=str(exc))
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
