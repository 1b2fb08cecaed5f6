"""Response construction"""

import json

from sentence_server.utils.logger import get_logger

from .constants import (
    BUFFER_SIZE,
    HTTP_VERSION,
    PLACEHOLDER_SENTENCE,
    VALUE_ENCODING,
    VALUE_ERRORS,
)

logger = get_logger(__name__)


def resolve_sentence(sentence: str | None) -> str:
    """Fall back to the placeholder for a missing or empty sentence"""
    if not sentence:
        return PLACEHOLDER_SENTENCE
    return sentence


def _quote(value: str, escape: bool) -> str:
    if escape:
        return json.dumps(value, ensure_ascii=False)
    return f'"{value}"'


def build_json_body(hostname: str, sentence: str | None, escape: bool = False) -> bytes:
    """Render ``{"hostname": ..., "sentence": ...}``.

    Values are inserted verbatim unless ``escape`` is set.
    """
    text = "{{\"hostname\": {}, \"sentence\": {}}}".format(
        _quote(hostname, escape), _quote(resolve_sentence(sentence), escape)
    )
    return text.encode(VALUE_ENCODING, VALUE_ERRORS)


def build_response(
    hostname: str,
    sentence: str | None,
    escape: bool = False,
    max_size: int = BUFFER_SIZE,
) -> bytes:
    """Wrap the JSON body in an HTTP/1.1 200 response"""
    body = build_json_body(hostname, sentence, escape)
    head = (
        f"{HTTP_VERSION} 200 OK\r\n"
        "Content-Type: application/json\r\n"
        f"Content-Length: {len(body)}\r\n"
        "Connection: close\r\n"
        "\r\n"
    )
    response = head.encode("ascii") + body
    if len(response) > max_size:
        logger.warning(
            "Response exceeds buffer size",
            event="http.response.oversize",
            size=len(response),
            max_size=max_size,
        )
    return response
