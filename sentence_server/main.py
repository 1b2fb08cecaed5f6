import argparse
import signal
import socket
import sys
import threading
from typing import Any

from sentence_server.config import SentenceConfig, setup_logging
from sentence_server.exceptions import (
    ConfigValidationError,
    HostnameLookupError,
    SentenceServerError,
)
from sentence_server.http.server import SentenceServer
from sentence_server.utils.logger import get_logger
from sentence_server.utils.metrics import start_metrics_server

logger = get_logger(__name__)

VERSION = "1.0.0"


def resolve_hostname() -> str:
    """Look up the machine hostname once; failure is fatal"""
    try:
        hostname = socket.gethostname()
    except OSError as e:
        raise HostnameLookupError(f"gethostname failed: {e}") from e
    if not hostname:
        raise HostnameLookupError("gethostname returned an empty name")
    return hostname


class SentenceServerManager:
    """Owns configuration, the server instance and process-level concerns"""

    def __init__(self, config: SentenceConfig):
        self.config = config
        self.server: SentenceServer | None = None
        self.hostname: str | None = None
        self._metrics_server: Any | None = None
        self._shutdown_lock = threading.Lock()

    def start(self) -> bool:
        """Resolve hostname, bind and serve until stopped"""
        self.hostname = resolve_hostname()
        srv = self.config.get_server_config()
        self.server = SentenceServer(
            self.hostname,
            host=srv["host"],
            port=srv["port"],
            config=self.config,
        )
        self._start_monitoring()
        self._install_signal_handlers()

        logger.info(
            "Starting sentence server",
            event="service.starting",
            hostname=self.hostname,
            host=srv["host"],
            port=srv["port"],
        )
        self.server.start()
        return True

    def _start_monitoring(self):
        mon = self.config.get_monitoring_config()
        if not mon["enabled"] or self.server is None:
            return
        try:
            self._metrics_server, _ = start_metrics_server(
                self.server.metrics, mon["host"], mon["port"]
            )
        except OSError as e:
            logger.error(
                "Failed to start metrics endpoint",
                event="monitoring.start_failed",
                error=str(e),
            )

    def _install_signal_handlers(self):
        if threading.current_thread() is not threading.main_thread():
            return

        def _handler(signum, _frame):
            logger.info("Received signal %s, shutting down", signum)
            # Must not block the accept loop running on this same thread.
            threading.Thread(target=self.stop, daemon=True).start()

        signal.signal(signal.SIGTERM, _handler)
        signal.signal(signal.SIGINT, _handler)

    def stop(self, timeout_seconds: float = 10):
        with self._shutdown_lock:
            if self.server is not None:
                self.server.graceful_shutdown(timeout_seconds=timeout_seconds)
            if self._metrics_server is not None:
                self._metrics_server.shutdown()
                self._metrics_server = None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Sentence echo HTTP server")
    parser.add_argument(
        "-c", "--config", default=None, help="Configuration file path (INI)"
    )
    parser.add_argument("--host", default=None, help="Override [server] host")
    parser.add_argument("--port", type=int, default=None, help="Override [server] port")
    parser.add_argument(
        "--validate-config", action="store_true", help="Validate configuration and exit"
    )
    parser.add_argument(
        "--version", action="version", version=f"Sentence Server {VERSION}"
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point"""
    args = build_parser().parse_args(argv)

    try:
        config = SentenceConfig(args.config)
    except ConfigValidationError as e:
        print(f"Configuration validation failed: {e.message}", file=sys.stderr)
        return 1

    if args.validate_config:
        issues = config.validate_config()
        if issues:
            print("Configuration validation failed:")
            for issue in issues:
                print(f"  - {issue}")
            return 1
        print("Configuration is valid")
        return 0

    try:
        if args.host is not None:
            config.set_override("server", "host", args.host)
        if args.port is not None:
            config.set_override("server", "port", args.port)
    except ConfigValidationError as e:
        print(f"Invalid command line override: {e.message}", file=sys.stderr)
        return 1

    setup_logging(config)

    manager = SentenceServerManager(config)
    try:
        success = manager.start()
        return 0 if success else 1
    except SentenceServerError as e:
        logger.error("Failed to start server", error=e.message, error_code=e.error_code)
        return 1
    except OSError as e:
        logger.error("Failed to start server", error=str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
