"""Network handling utilities for the sentence server"""

import socket

from sentence_server.utils.logger import get_logger

from .framer import find_body_offset, frame_request

logger = get_logger(__name__)


class NetworkHandler:
    """Handles low-level network operations"""

    @staticmethod
    def recv_once(sock: socket.socket, buffer_size: int) -> bytes | None:
        """Single blocking read of up to ``buffer_size - 1`` bytes.

        Returns None when the peer sent nothing or the read failed.
        """
        try:
            data = sock.recv(buffer_size - 1)
        except OSError as e:
            logger.warning("recv failed", event="http.read.failed", error=str(e))
            return None
        if not data:
            return None
        return data

    @staticmethod
    def recv_declared_body(
        sock: socket.socket, initial: bytes, max_body_size: int, chunk_size: int
    ) -> bytes:
        """Keep reading until the declared Content-Length of body has arrived.

        Stops early on peer close, read error or once ``max_body_size`` body
        bytes are buffered. Requests that do not qualify for extraction are
        returned unchanged.
        """
        data = initial
        while True:
            header_end = find_body_offset(data)
            if header_end is None:
                # header block still incomplete
                if len(data) >= max_body_size:
                    return data
                wanted = chunk_size
            else:
                framed = frame_request(data)
                if not framed.has_body:
                    return data
                target = min(framed.content_length, max_body_size)
                received = len(data) - header_end
                if received >= target:
                    return data
                wanted = min(chunk_size, target - received)
            try:
                chunk = sock.recv(wanted)
            except OSError as e:
                logger.debug("Body read stopped: %s", e)
                return data
            if not chunk:
                return data
            data += chunk

    @staticmethod
    def safe_close_socket(sock: socket.socket) -> None:
        """Safely close socket with proper error handling"""
        try:
            sock.shutdown(socket.SHUT_RDWR)
        except (OSError, AttributeError) as shut_exc:
            logger.debug("Failed to shutdown socket: %s", shut_exc)
        try:
            sock.close()
        except (OSError, AttributeError) as close_exc:
            logger.debug("Failed to close socket: %s", close_exc)
