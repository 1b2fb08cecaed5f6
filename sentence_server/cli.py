#!/usr/bin/env python3
"""
Package CLI entrypoint used by the 'sentence-server' console script.
"""

from sentence_server.utils.logger import configure, get_logger

logger = get_logger(__name__)


def main(argv: list[str] | None = None) -> int:
    configure()
    try:
        from . import main as pkg_main

        return pkg_main.main(argv)
    except Exception:
        logger.error("Could not start sentence-server", exc_info=True)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
