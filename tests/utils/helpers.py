"""Test helper functions."""

import json
from io import BytesIO
from pathlib import Path
from typing import Any, Dict, NamedTuple, Optional

from taskboard.models.task import Task
from taskboard.services.session_verifier import sign_session

TEST_SESSION_SECRET = "test-session-secret"


def auth_headers(user_id: str, secret: str = TEST_SESSION_SECRET) -> Dict[str, str]:
    """Signed session headers identifying the caller as ``user_id``."""
    return sign_session(user_id, secret)


def seed_tasks(data_dir: Path, tasks: list[Task], projects: Optional[Dict[str, str]] = None) -> None:
    """Write tasks.json directly, optionally tagging records with a project name."""
    records = []
    for task in tasks:
        record = task.to_api()
        if projects and task.id in projects:
            record["project"] = projects[task.id]
        records.append(record)
    (Path(data_dir) / "tasks.json").write_text(json.dumps(records), encoding="utf-8")


def read_task_records(data_dir: Path) -> list[dict]:
    """Raw tasks.json contents."""
    path = Path(data_dir) / "tasks.json"
    if not path.exists():
        return []
    return json.loads(path.read_text(encoding="utf-8"))


class MockSocket:
    """Socket stand-in: serves a raw request, collects everything sent back."""

    def __init__(self, request: bytes):
        self._request = BytesIO(request)
        self.sent = bytearray()

    def makefile(self, *args, **kwargs):
        return self._request

    def sendall(self, data):
        self.sent.extend(data)

    def close(self):
        pass


class HandlerResponse(NamedTuple):
    status: int
    headers: Dict[str, str]
    body: Any


def parse_raw_response(raw: bytes) -> HandlerResponse:
    """Split an HTTP/1.0 response into status, lower-cased headers and JSON body."""
    head, _, body = raw.partition(b"\r\n\r\n")
    lines = head.decode("iso-8859-1").split("\r\n")
    status = int(lines[0].split()[1])
    headers = {}
    for line in lines[1:]:
        name, _, value = line.partition(":")
        headers[name.strip().lower()] = value.strip()
    return HandlerResponse(status, headers, json.loads(body) if body else None)


def call_handler(
    handler_class,
    method: str,
    path: str,
    body: Any = None,
    headers: Optional[Dict[str, str]] = None,
) -> HandlerResponse:
    """Run one request through a serverless handler class and parse the response.

    ``body`` may be a dict (sent as JSON) or raw bytes.
    """
    if body is None:
        payload = b""
    elif isinstance(body, bytes):
        payload = body
    else:
        payload = json.dumps(body).encode("utf-8")

    lines = [f"{method} {path} HTTP/1.1", "Host: localhost"]
    for name, value in (headers or {}).items():
        lines.append(f"{name}: {value}")
    if payload:
        lines.append("Content-Type: application/json")
        lines.append(f"Content-Length: {len(payload)}")

    request = ("\r\n".join(lines) + "\r\n\r\n").encode("utf-8") + payload
    sock = MockSocket(request)
    handler_class(sock, ("127.0.0.1", 8000), None)
    return parse_raw_response(bytes(sock.sent))
