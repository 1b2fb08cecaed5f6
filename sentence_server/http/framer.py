"""HTTP request framing over a raw receive buffer.

The framer only answers three questions about the bytes it is given: is
there a ``POST `` marker, what does ``Content-Length: `` say, and where does
the body start. Nothing here validates the request line or the header block.
"""

import sys
from dataclasses import dataclass

from .constants import CONTENT_LENGTH_MARKER, HEADER_TERMINATOR, POST_MARKER

_DIGITS = b"0123456789"
_WHITESPACE = b" \t\r\n\v\f"
# Longer digit runs saturate instead of going through int().
_MAX_LENGTH_DIGITS = len(str(sys.maxsize)) - 1


@dataclass(frozen=True)
class FramedRequest:
    """Non-owning view of the structural markers found in a raw request"""

    raw: bytes
    is_post: bool
    has_content_length: bool
    content_length: int = 0
    body_offset: int | None = None

    @property
    def body(self) -> bytes:
        if self.body_offset is None:
            return b""
        return self.raw[self.body_offset :]

    @property
    def has_body(self) -> bool:
        """True when the request qualifies for field extraction"""
        return (
            self.is_post
            and self.has_content_length
            and self.body_offset is not None
            and self.content_length > 0
        )

    @property
    def body_received(self) -> int:
        return len(self.body)


def terminate(raw: bytes) -> bytes:
    """Cut the buffer at the first NUL byte, as the scanners see it"""
    nul = raw.find(b"\x00")
    return raw if nul < 0 else raw[:nul]


def find_method_marker(raw: bytes) -> bool:
    """Whether ``POST `` appears anywhere in the buffer"""
    return POST_MARKER in raw


def parse_content_length(raw: bytes) -> tuple[bool, int]:
    """Return (header present, declared length).

    The length is the run of digits after the first ``Content-Length: ``,
    leading whitespace skipped. Missing or non-numeric values read as 0,
    values too long to represent saturate at ``sys.maxsize``.
    """
    marker = raw.find(CONTENT_LENGTH_MARKER)
    if marker < 0:
        return False, 0

    pos = marker + len(CONTENT_LENGTH_MARKER)
    while pos < len(raw) and raw[pos] in _WHITESPACE:
        pos += 1
    if pos < len(raw) and raw[pos] == ord("+"):
        pos += 1

    start = pos
    while pos < len(raw) and raw[pos] in _DIGITS:
        pos += 1
    if pos == start:
        return True, 0
    digits = raw[start:pos].lstrip(b"0")
    if len(digits) > _MAX_LENGTH_DIGITS:
        return True, sys.maxsize
    return True, int(digits or b"0")


def find_body_offset(raw: bytes) -> int | None:
    """Offset immediately after the first blank line, or None"""
    idx = raw.find(HEADER_TERMINATOR)
    if idx < 0:
        return None
    return idx + len(HEADER_TERMINATOR)


def frame_request(raw: bytes) -> FramedRequest:
    """Locate method marker, declared length and body start in ``raw``"""
    raw = terminate(raw)
    is_post = find_method_marker(raw)
    has_length, length = parse_content_length(raw)

    body_offset = None
    if is_post and has_length:
        body_offset = find_body_offset(raw)

    return FramedRequest(
        raw=raw,
        is_post=is_post,
        has_content_length=has_length,
        content_length=length,
        body_offset=body_offset,
    )
