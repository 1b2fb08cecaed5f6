"""
Sentence HTTP server: listening socket, accept loop and dispatch
"""

import socket
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any

from sentence_server.utils.logger import get_logger
from sentence_server.utils.metrics import ServerMetrics

from .client_handler import ConnectionHandler
from .constants import BUFFER_SIZE, DEFAULT_LISTEN_BACKLOG, DEFAULT_PORT, MAX_VALUE_LENGTH
from .limiter import ConnectionLimiter
from .network import NetworkHandler
from .stats import StatsManager

logger = get_logger(__name__)


class SentenceServer:
    """Accepts connections and hands each one to its own handler"""

    def __init__(
        self,
        hostname: str,
        host: str = "0.0.0.0",
        port: int = DEFAULT_PORT,
        config: Any | None = None,
        metrics: ServerMetrics | None = None,
    ):
        # Resolved once by the caller; handlers only ever read it.
        self.hostname = hostname
        self.host = host
        self.port = port
        self.config = config

        self.stats = StatsManager(metrics)
        self.metrics = self.stats.metrics

        self._load_server_config()
        self.conn_limiter = ConnectionLimiter(
            max_connections=self.max_connections,
            max_per_ip=self._get_max_connections_per_ip(),
        )

        self.running = False
        self.server_socket: socket.socket | None = None
        self._ready = threading.Event()

        self._executor: ThreadPoolExecutor | None = None
        self._client_threads: set[threading.Thread] = set()
        self._client_threads_lock = threading.RLock()

    def _server_settings(self) -> dict[str, Any]:
        if self.config is None:
            return {}
        if hasattr(self.config, "get_server_config"):
            return self.config.get_server_config() or {}
        if isinstance(self.config, dict):
            return dict(self.config.get("server", {}))
        return {}

    def _load_server_config(self):
        """Load listener, handler and threading settings"""
        srv = self._server_settings()
        self.listen_backlog = int(srv.get("listen_backlog", DEFAULT_LISTEN_BACKLOG))
        self.buffer_size = int(srv.get("buffer_size", BUFFER_SIZE))
        self.max_value_length = int(srv.get("max_value_length", MAX_VALUE_LENGTH))
        self.max_connections = int(srv.get("max_connections", 100))
        self.use_thread_pool = bool(srv.get("use_thread_pool", True))
        self.thread_pool_max_workers = int(srv.get("thread_pool_max", 100))
        self.client_timeout = float(srv.get("client_timeout", 0))
        self.read_full_body = bool(srv.get("read_full_body", False))
        self.max_body_size = int(srv.get("max_body_size", 65536))
        self.escape_json_values = bool(srv.get("escape_json_values", False))

    def _get_max_connections_per_ip(self) -> int:
        """Per-IP cap from config object, config dict or default"""
        if self.config is not None:
            if hasattr(self.config, "get_security_config"):
                security = self.config.get_security_config() or {}
            elif isinstance(self.config, dict):
                security = self.config.get("security", {})
            else:
                security = {}
            max_conn = security.get("max_connections_per_ip")
            if max_conn is not None:
                return int(max_conn)
        return 20

    def start(self):
        """Bind, listen and run the accept loop until stopped"""
        if self.running:
            logger.warning("Server is already running")
            return

        self.running = True
        try:
            self._setup_server_socket()
        except OSError:
            self.running = False
            raise

        logger.info(
            "Sentence server listening",
            event="service.start",
            host=self.host,
            port=self.port,
            hostname=self.hostname,
        )

        if self.use_thread_pool:
            self._executor = ThreadPoolExecutor(
                max_workers=self.thread_pool_max_workers,
                thread_name_prefix="sentence-handler",
            )

        self._ready.set()
        self._accept_loop()

    def wait_until_ready(self, timeout: float | None = None) -> bool:
        return self._ready.wait(timeout)

    def _setup_server_socket(self):
        """Setup and bind server socket"""
        self.server_socket = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            self.server_socket.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        except OSError as e:
            logger.debug("Failed to set socket options: %s", e)

        try:
            self.server_socket.bind((self.host, self.port))
            self.server_socket.listen(self.listen_backlog)
        except OSError as e:
            logger.error(
                "Failed to bind HTTP socket",
                event="service.bind_failed",
                host=self.host,
                port=self.port,
                errno=getattr(e, "errno", None),
                error=str(e),
            )
            self.server_socket.close()
            self.server_socket = None
            raise

        # Port 0 binds an ephemeral port; report the real one.
        self.port = self.server_socket.getsockname()[1]
        logger.info(
            "HTTP socket bound and listening",
            bind_host=self.host,
            bind_port=self.port,
            backlog=self.listen_backlog,
        )

    def _accept_loop(self):
        """Accept connections until stopped; failures never end the loop"""
        try:
            while self.running:
                # Admission: wait for a free handler slot before accepting more.
                if not self.conn_limiter.acquire_slot(timeout=0.5):
                    continue
                slot_handed_off = False
                try:
                    if self.server_socket is None:
                        break
                    client_socket, address = self.server_socket.accept()
                    self.stats.record_accept()

                    if not self.conn_limiter.acquire(address[0]):
                        self.stats.record_rejected("per_ip_cap")
                        logger.info(
                            "Connection rejected",
                            event="http.connection.rejected",
                            client_ip=address[0],
                        )
                        NetworkHandler.safe_close_socket(client_socket)
                        continue

                    logger.debug(
                        "Connection accepted",
                        event="http.connection.accepted",
                        client_ip=address[0],
                        client_port=address[1],
                    )
                    self.stats.update_active_connections(+1)
                    slot_handed_off = self._dispatch(client_socket, address)

                except OSError as e:
                    if self.running:
                        logger.error("Accept failed", error=str(e))
                    continue
                except Exception as e:
                    logger.error("Accept error", error=str(e), exc_info=True)
                    continue
                finally:
                    if not slot_handed_off:
                        self.conn_limiter.release_slot()
        finally:
            if self.server_socket:
                self.server_socket.close()
            logger.info("Sentence server stopped", event="service.stop")

    def _dispatch(self, client_socket: socket.socket, address: tuple[str, int]) -> bool:
        """Run the handler detached; returns False if it could not be started"""
        thread: threading.Thread | None = None
        try:
            if self._executor is not None:
                self._executor.submit(self._handle_client_wrapper, client_socket, address)
            else:
                thread = threading.Thread(
                    target=self._handle_client_wrapper,
                    args=(client_socket, address),
                    daemon=True,
                )
                with self._client_threads_lock:
                    self._client_threads.add(thread)
                thread.start()
            return True
        except RuntimeError as e:
            # Thread or pool could not start this connection.
            self.stats.increment("dispatch_failures")
            logger.error(
                "Could not dispatch connection",
                event="http.dispatch_failed",
                client_ip=address[0],
                error=str(e),
            )
            if thread is not None:
                with self._client_threads_lock:
                    self._client_threads.discard(thread)
            self.conn_limiter.release(address[0])
            self.stats.update_active_connections(-1)
            NetworkHandler.safe_close_socket(client_socket)
            return False

    def create_handler(self) -> ConnectionHandler:
        return ConnectionHandler(
            hostname=self.hostname,
            stats_manager=self.stats,
            buffer_size=self.buffer_size,
            max_value_length=self.max_value_length,
            client_timeout=self.client_timeout,
            read_full_body=self.read_full_body,
            max_body_size=self.max_body_size,
            escape_json_values=self.escape_json_values,
        )

    def _handle_client_wrapper(
        self, client_socket: socket.socket, address: tuple[str, int]
    ):
        """Wrapper for client handler - ensures slots are released"""
        try:
            self.create_handler().handle(client_socket, address)
        finally:
            self.conn_limiter.release(address[0])
            self.conn_limiter.release_slot()
            self.stats.update_active_connections(-1)
            with self._client_threads_lock:
                self._client_threads.discard(threading.current_thread())

    def stop(self):
        """Stop accepting connections"""
        if not self.running:
            return

        logger.info("Stopping sentence server")
        self.running = False

        if self.server_socket:
            try:
                self.server_socket.shutdown(socket.SHUT_RDWR)
            except (OSError, AttributeError) as e:
                logger.debug("Server socket shutdown failed: %s", e)
            try:
                self.server_socket.close()
            except (OSError, AttributeError) as e:
                logger.debug("Server socket close failed: %s", e)

    def graceful_shutdown(self, timeout_seconds: float = 30):
        """Stop, then wait for active handlers up to ``timeout_seconds``"""
        logger.info("Initiating graceful shutdown...")
        self.stop()
        self.running = False

        start_time = time.time()
        while (
            self.stats.get_active_connections() > 0
            and time.time() - start_time < timeout_seconds
        ):
            time.sleep(0.1)

        if self.stats.get_active_connections() > 0:
            logger.warning(
                "Abandoning %s remaining connections",
                self.stats.get_active_connections(),
            )

        with self._client_threads_lock:
            threads = list(self._client_threads)
            self._client_threads.clear()
        for t in threads:
            t.join(timeout=1.0)

        if self._executor:
            self._executor.shutdown(wait=False, cancel_futures=True)
            self._executor = None

        logger.info(
            "Server shutdown complete", event="service.shutdown", **self.get_stats()
        )

    def get_stats(self) -> dict[str, Any]:
        """Get server statistics"""
        stats = self.stats.get_all()
        stats.update({"server_running": self.running, "hostname": self.hostname})
        return stats
