"""Wire constants for the sentence HTTP service"""

DEFAULT_PORT = 8080
DEFAULT_LISTEN_BACKLOG = 10

# One receive buffer; a single read fills at most BUFFER_SIZE - 1 bytes.
BUFFER_SIZE = 4096
# Capacity of an extracted value including its terminator.
MAX_VALUE_LENGTH = 256

HTTP_VERSION = "HTTP/1.1"
POST_MARKER = b"POST "
CONTENT_LENGTH_MARKER = b"Content-Length: "
HEADER_TERMINATOR = b"\r\n\r\n"

SENTENCE_KEY = "sentence"
PLACEHOLDER_SENTENCE = "No sentence received."

# Byte-preserving decode for echoed values.
VALUE_ENCODING = "utf-8"
VALUE_ERRORS = "surrogateescape"
