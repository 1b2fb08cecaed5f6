"""
End-to-end tests against a real server process.

Each test starts ``python -m sentence_server.main`` with its own config file
and talks to it over loopback sockets.
"""

import json

import pytest
import requests

pytestmark = pytest.mark.integration


def _post(body: bytes, path: str = "/") -> bytes:
    return (
        f"POST {path} HTTP/1.1\r\n"
        "Host: localhost\r\n"
        "Content-Type: application/json\r\n"
        f"Content-Length: {len(body)}\r\n"
        "\r\n"
    ).encode("ascii") + body


def test_echoes_sentence_with_hostname(server_factory, http_client, server_hostname):
    server = server_factory()
    with server:
        reply = http_client.post_sentence(server.port, b'{"sentence": "Hello world"}')

    assert reply.status_code == 200
    assert reply.headers["Content-Type"] == "application/json"
    assert reply.headers["Connection"] == "close"
    assert int(reply.headers["Content-Length"]) == len(reply.body)
    assert reply.json() == {"hostname": server_hostname, "sentence": "Hello world"}


def test_wrong_key_gets_placeholder(server_factory, http_client):
    server = server_factory()
    with server:
        reply = http_client.post_sentence(server.port, b'{"text": "hi"}')

    assert reply.status_code == 200
    assert reply.json()["sentence"] == "No sentence received."


def test_get_request_gets_placeholder(server_factory, http_client, server_hostname):
    server = server_factory()
    with server:
        reply = http_client.request(
            server.port, b"GET / HTTP/1.1\r\nHost: localhost\r\n\r\n"
        )

    assert reply.status_code == 200
    assert reply.json() == {
        "hostname": server_hostname,
        "sentence": "No sentence received.",
    }


def test_value_length_boundary(server_factory, http_client):
    fits = "a" * 255
    too_long = "a" * 256
    server = server_factory()
    with server:
        ok = http_client.post_sentence(
            server.port, json.dumps({"sentence": fits}).encode()
        )
        overflow = http_client.post_sentence(
            server.port, json.dumps({"sentence": too_long}).encode()
        )

    assert ok.json()["sentence"] == fits
    assert overflow.json()["sentence"] == "No sentence received."


def test_empty_sentence_gets_placeholder(server_factory, http_client):
    server = server_factory()
    with server:
        reply = http_client.post_sentence(server.port, b'{"sentence": ""}')

    assert reply.json()["sentence"] == "No sentence received."


def test_identical_requests_get_identical_responses(server_factory, http_client):
    request = _post(b'{"sentence": "same every time"}')
    server = server_factory()
    with server:
        replies = [http_client.request(server.port, request) for _ in range(5)]

    assert len({r.raw for r in replies}) == 1
    assert replies[0].json()["sentence"] == "same every time"


def test_hostname_is_stable_across_requests(server_factory, http_client):
    server = server_factory()
    with server:
        names = {
            http_client.post_sentence(server.port, b'{"sentence": "x"}').json()[
                "hostname"
            ]
            for _ in range(3)
        }
        placeholder = http_client.request(
            server.port, b"GET / HTTP/1.1\r\n\r\n"
        ).json()["hostname"]

    assert len(names) == 1
    assert placeholder in names


def test_startup_is_logged(server_factory, http_client):
    server = server_factory(config={"logging": {"log_level": "INFO"}})
    with server:
        http_client.post_sentence(server.port, b'{"sentence": "log me"}')
        logs = server.get_logs()

    events = []
    for line in logs.splitlines():
        try:
            events.append(json.loads(line))
        except ValueError:
            continue
    started = [e for e in events if e.get("event") == "service.start"]
    assert started
    assert started[0]["port"] == server.port


def test_split_body_with_full_body_reads(server_factory, http_client):
    body = b'{"sentence": "arrived late"}'
    head = _post(body)[: -len(body)]
    server = server_factory(config={"server": {"read_full_body": "true"}})
    with server:
        reply = http_client.request(server.port, head, body, pause=0.2)

    assert reply.json()["sentence"] == "arrived late"


def test_requests_client_with_full_body_reads(server_factory, server_hostname):
    server = server_factory(config={"server": {"read_full_body": "true"}})
    with server:
        resp = requests.post(
            server.get_base_url() + "/anything",
            json={"sentence": "via requests"},
            timeout=5,
        )

    assert resp.status_code == 200
    assert resp.headers["Content-Type"] == "application/json"
    assert resp.json() == {"hostname": server_hostname, "sentence": "via requests"}
