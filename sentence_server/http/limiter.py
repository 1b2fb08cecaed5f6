"""Connection admission control"""

import threading

from sentence_server.utils.logger import get_logger

logger = get_logger(__name__)


class ConnectionLimiter:
    """Caps concurrently handled connections, overall and per client IP.

    The global cap is a bounded semaphore the dispatcher blocks on; the
    per-IP cap is checked without blocking and the caller drops the
    connection when it is exceeded.
    """

    def __init__(self, max_connections: int = 100, max_per_ip: int = 20):
        self.max_connections = max_connections
        self.max_per_ip = max_per_ip
        self._slots = threading.BoundedSemaphore(max_connections)
        self._ip_conn_lock = threading.RLock()
        self._ip_connections: dict[str, int] = {}

    def acquire_slot(self, timeout: float | None = None) -> bool:
        """Wait for a free handler slot"""
        if timeout is None:
            return self._slots.acquire()
        return self._slots.acquire(timeout=timeout)

    def release_slot(self) -> None:
        try:
            self._slots.release()
        except ValueError:
            logger.warning("Handler slot released more often than acquired")

    def acquire(self, ip: str) -> bool:
        """Try to acquire a connection slot for IP"""
        with self._ip_conn_lock:
            current = self._ip_connections.get(ip, 0)
            if current >= self.max_per_ip:
                logger.warning(
                    "Per-IP connection cap exceeded for %s (count=%s)", ip, current + 1
                )
                return False
            self._ip_connections[ip] = current + 1
            return True

    def release(self, ip: str) -> None:
        """Release connection slot for IP"""
        with self._ip_conn_lock:
            current = max(0, self._ip_connections.get(ip, 1) - 1)
            if current == 0:
                self._ip_connections.pop(ip, None)
            else:
                self._ip_connections[ip] = current

    def active_for(self, ip: str) -> int:
        with self._ip_conn_lock:
            return self._ip_connections.get(ip, 0)
