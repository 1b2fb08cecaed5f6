"""Client connection handler"""

import socket

from sentence_server.utils.logger import get_logger, logging_context

from .constants import BUFFER_SIZE, MAX_VALUE_LENGTH, SENTENCE_KEY
from .extractor import extract_string_field
from .framer import frame_request
from .network import NetworkHandler
from .response import build_response
from .stats import StatsManager

logger = get_logger(__name__)


class ConnectionHandler:
    """Handles exactly one client connection: read, parse, respond, close"""

    def __init__(
        self,
        hostname: str,
        stats_manager: StatsManager,
        buffer_size: int = BUFFER_SIZE,
        max_value_length: int = MAX_VALUE_LENGTH,
        client_timeout: float = 0.0,
        read_full_body: bool = False,
        max_body_size: int = 65536,
        escape_json_values: bool = False,
    ):
        self.hostname = hostname
        self.stats = stats_manager
        self.buffer_size = buffer_size
        self.max_value_length = max_value_length
        self.client_timeout = client_timeout
        self.read_full_body = read_full_body
        self.max_body_size = max_body_size
        self.escape_json_values = escape_json_values

    def handle(self, client_socket: socket.socket, address: tuple[str, int]):
        """Handle client connection"""
        conn_logger = self._create_logger(address)
        with logging_context(client_ip=address[0], client_port=address[1]):
            self._serve(client_socket, address, conn_logger)

    def _serve(self, client_socket: socket.socket, address, conn_logger):
        try:
            if self.client_timeout > 0:
                client_socket.settimeout(self.client_timeout)

            raw = self._read_request(client_socket)
            if raw is None:
                self.stats.increment("connections_dropped")
                conn_logger.debug("No request data from %s, dropping", address)
                return

            sentence = self.parse_sentence(raw, conn_logger)
            response = build_response(
                self.hostname,
                sentence,
                escape=self.escape_json_values,
                max_size=self.buffer_size,
            )
            self.stats.record_request(bool(sentence))
            self._send_response(client_socket, response, conn_logger)
        except Exception as e:
            conn_logger.error("Client handling error %s: %s", address, e, exc_info=True)
        finally:
            NetworkHandler.safe_close_socket(client_socket)
            conn_logger.debug("Connection closed: %s", address)

    def _create_logger(self, address: tuple[str, int]):
        """Create contextual logger for connection"""
        return get_logger(__name__, client_ip=address[0], client_port=address[1])

    def _read_request(self, client_socket: socket.socket) -> bytes | None:
        data = NetworkHandler.recv_once(client_socket, self.buffer_size)
        if data is None or not self.read_full_body:
            return data
        return NetworkHandler.recv_declared_body(
            client_socket,
            data,
            max_body_size=self.max_body_size,
            chunk_size=self.buffer_size - 1,
        )

    def parse_sentence(self, raw: bytes, conn_logger=logger) -> str | None:
        """Frame the request and pull out the sentence, None if there is none"""
        framed = frame_request(raw)
        if not framed.has_body:
            conn_logger.info(
                "Not a POST request with Content-Length and body",
                event="http.request.no_body",
                is_post=framed.is_post,
                content_length=framed.content_length,
            )
            return None

        if framed.body_received < framed.content_length:
            conn_logger.debug(
                "Body shorter than declared Content-Length",
                declared=framed.content_length,
                received=framed.body_received,
            )

        sentence = extract_string_field(
            framed.body, SENTENCE_KEY, capacity=self.max_value_length
        )
        if sentence is None:
            conn_logger.info(
                "Could not extract sentence from body",
                event="http.request.no_sentence",
            )
        else:
            conn_logger.info(
                "Extracted sentence",
                event="http.request.parsed",
                sentence_length=len(sentence),
            )
        return sentence

    def _send_response(self, client_socket: socket.socket, response: bytes, conn_logger):
        try:
            client_socket.sendall(response)
        except OSError as e:
            self.stats.record_send_failure()
            conn_logger.warning(
                "send failed",
                event="http.response.send_failed",
                error=str(e),
            )
            return
        conn_logger.debug(
            "Response sent",
            event="http.response.sent",
            bytes=len(response),
        )
