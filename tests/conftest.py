"""
Test configuration and fixtures - real sockets and real server instances
"""

from __future__ import annotations

import configparser
import json
import os
import signal
import socket
import subprocess
import sys
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, cast

import pytest

from sentence_server.http.server import SentenceServer

REPO_ROOT = Path(__file__).resolve().parent.parent


def _find_free_port() -> int:
    """Find an available port on localhost"""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        addr = cast(tuple[str, int], s.getsockname())
        return addr[1]


def _wait_for_port(host: str, port: int, timeout: float = 30.0) -> bool:
    """Wait for a port to become available"""
    start = time.time()
    while time.time() - start < timeout:
        try:
            with socket.create_connection((host, port), timeout=1):
                return True
        except OSError:
            pass
        time.sleep(0.2)
    return False


@dataclass
class HttpReply:
    """A raw HTTP response split into its parts"""

    raw: bytes
    status_line: str
    headers: dict[str, str]
    body: bytes

    @property
    def status_code(self) -> int:
        return int(self.status_line.split(" ")[1])

    def json(self) -> dict[str, Any]:
        return json.loads(self.body)


def parse_reply(raw: bytes) -> HttpReply:
    head, _, body = raw.partition(b"\r\n\r\n")
    lines = head.decode("ascii").split("\r\n")
    headers = {}
    for line in lines[1:]:
        key, _, value = line.partition(": ")
        headers[key] = value
    return HttpReply(raw=raw, status_line=lines[0], headers=headers, body=body)


class RawHttpClient:
    """Sends pre-built request bytes and reads until the server closes"""

    def __init__(self, host: str = "127.0.0.1", timeout: float = 5.0):
        self.host = host
        self.timeout = timeout

    def exchange(self, port: int, *chunks: bytes, pause: float = 0.0) -> bytes:
        with socket.create_connection((self.host, port), timeout=self.timeout) as sock:
            for i, chunk in enumerate(chunks):
                if i and pause:
                    time.sleep(pause)
                try:
                    sock.sendall(chunk)
                except (BrokenPipeError, ConnectionResetError):
                    # server already closed the connection
                    break
            received = b""
            while True:
                try:
                    data = sock.recv(4096)
                except ConnectionResetError:
                    break
                if not data:
                    break
                received += data
            return received

    def request(self, port: int, *chunks: bytes, pause: float = 0.0) -> HttpReply:
        return parse_reply(self.exchange(port, *chunks, pause=pause))

    def post_sentence(self, port: int, body: bytes, path: str = "/") -> HttpReply:
        request = (
            f"POST {path} HTTP/1.1\r\n"
            "Host: localhost\r\n"
            "Content-Type: application/json\r\n"
            f"Content-Length: {len(body)}\r\n"
            "\r\n"
        ).encode("ascii") + body
        return parse_reply(self.exchange(port, request))


@pytest.fixture
def http_client() -> RawHttpClient:
    return RawHttpClient()


@pytest.fixture
def server_hostname() -> str:
    return socket.gethostname()


class InProcessServer:
    """Runs a SentenceServer on an ephemeral port in a background thread"""

    def __init__(self, hostname: str, config: dict[str, Any] | None = None):
        self.server = SentenceServer(
            hostname, host="127.0.0.1", port=0, config=config or {}
        )
        self.thread = threading.Thread(target=self.server.start, daemon=True)

    @property
    def port(self) -> int:
        return self.server.port

    def start(self) -> InProcessServer:
        self.thread.start()
        if not self.server.wait_until_ready(timeout=10):
            raise RuntimeError("In-process server did not start")
        return self

    def stop(self) -> None:
        self.server.graceful_shutdown(timeout_seconds=2)
        self.thread.join(timeout=5)


@pytest.fixture
def inprocess_server_factory(server_hostname):
    """Factory for in-process servers; all are shut down after the test"""
    created: list[InProcessServer] = []

    def _create(config: dict[str, Any] | None = None) -> InProcessServer:
        instance = InProcessServer(server_hostname, config).start()
        created.append(instance)
        return instance

    yield _create

    for instance in created:
        instance.stop()


@pytest.fixture
def running_server(inprocess_server_factory) -> InProcessServer:
    return inprocess_server_factory()


class ServerInstance:
    """Manages a real server process with an isolated config file"""

    def __init__(self, work_dir: Path, config: dict[str, dict[str, Any]]):
        self.work_dir = work_dir
        self.config_dict = config
        self.port = _find_free_port()
        self.config_path = work_dir / "sentence.conf"
        self.log_path = work_dir / "logs" / "server.log"
        self.process: subprocess.Popen | None = None
        self.log_file: Any = None

    def _create_config_file(self):
        cfg = configparser.ConfigParser(interpolation=None)
        cfg.add_section("server")
        cfg["server"]["host"] = "127.0.0.1"
        cfg["server"]["port"] = str(self.port)
        for section, values in self.config_dict.items():
            if not cfg.has_section(section):
                cfg.add_section(section)
            for key, value in values.items():
                cfg[section][str(key)] = str(value)
        with open(self.config_path, "w", encoding="utf-8") as fh:
            cfg.write(fh)

    def start(self):
        """Start the server process and wait for its port"""
        (self.work_dir / "logs").mkdir(parents=True, exist_ok=True)
        self._create_config_file()
        self.log_file = open(self.log_path, "w+")

        env = os.environ.copy()
        env["PYTHONPATH"] = os.pathsep.join(
            p for p in (str(REPO_ROOT), env.get("PYTHONPATH", "")) if p
        )
        cmd = [
            sys.executable,
            "-m",
            "sentence_server.main",
            "--config",
            str(self.config_path),
        ]
        self.process = subprocess.Popen(
            cmd,
            stdout=self.log_file,
            stderr=subprocess.STDOUT,
            preexec_fn=os.setsid if hasattr(os, "setsid") else None,
            env=env,
            cwd=str(self.work_dir),
        )

        if not _wait_for_port("127.0.0.1", self.port, timeout=30):
            self.stop()
            raise RuntimeError(
                f"Sentence server failed to start on port {self.port}\n"
                f"Log:\n{self.get_logs()[-2000:]}"
            )

    def stop(self):
        """Stop the server process"""
        if self.process:
            try:
                if hasattr(os, "killpg"):
                    os.killpg(os.getpgid(self.process.pid), signal.SIGTERM)
                else:
                    self.process.terminate()
                self.process.wait(timeout=10)
            except (OSError, subprocess.TimeoutExpired):
                self.process.kill()
                self.process.wait(timeout=5)
            finally:
                self.process = None

        if self.log_file:
            self.log_file.close()
            self.log_file = None

    def get_logs(self) -> str:
        if self.log_path.exists():
            return self.log_path.read_text()
        return ""

    def get_base_url(self) -> str:
        return f"http://127.0.0.1:{self.port}"

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
        return False


@pytest.fixture
def temp_work_dir(tmp_path):
    """Create a temporary work directory for a test"""
    work_dir = tmp_path / "server_instance"
    work_dir.mkdir(parents=True, exist_ok=True)
    yield work_dir


@pytest.fixture
def server_factory(temp_work_dir):
    """
    Factory fixture to create server processes with custom configuration.

    Usage:
        def test_something(server_factory):
            server = server_factory(config={"logging": {"log_level": "DEBUG"}})
            with server:
                logs = server.get_logs()
    """
    created_servers: list[ServerInstance] = []

    def _create_server(config: dict[str, dict[str, Any]] | None = None) -> ServerInstance:
        server = ServerInstance(work_dir=temp_work_dir, config=config or {})
        created_servers.append(server)
        return server

    yield _create_server

    for server in created_servers:
        server.stop()
