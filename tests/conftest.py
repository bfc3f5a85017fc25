"""Pytest fixtures for the entire pckgs-publisher test suite."""

import email
from email.message import Message
import json
from pathlib import Path
from typing import Any, Callable

import httpx
import pytest

UPLOAD_URL = "https://storage.example.test/uploads/demo?signature=abc123"
SESSION_ID = "session-0001"


def parse_multipart(request: httpx.Request) -> dict[str, Message]:
    """Parses a multipart/form-data request into its parts, keyed by field name."""
    content_type = request.headers["Content-Type"]
    raw = b"Content-Type: " + content_type.encode("ascii") + b"\r\n\r\n" + request.content
    message = email.message_from_bytes(raw)
    assert message.is_multipart(), "Request body is not multipart/form-data"
    parts: dict[str, Message] = {}
    for part in message.get_payload():
        name = part.get_param("name", header="content-disposition")
        parts[name] = part
    return parts


def part_text(part: Message) -> str:
    return part.get_payload(decode=True).decode("utf-8")


class MockRegistry:
    """
    A registry stand-in served through `httpx.MockTransport`.
    Every request is recorded, in order, in `requests`.
    """

    def __init__(
        self,
        start_status: int = 200,
        transfer_status: int = 200,
        complete_status: int = 200,
        start_payload: Any = None,
    ) -> None:
        self.start_status = start_status
        self.transfer_status = transfer_status
        self.complete_status = complete_status
        self.start_payload = (
            start_payload
            if start_payload is not None
            else {"sessionId": SESSION_ID, "url": UPLOAD_URL}
        )
        self.requests: list[httpx.Request] = []

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.method == "POST" and request.url.path == "/packages/start-publish":
            if self.start_status >= 300:
                return httpx.Response(self.start_status, text="start rejected")
            return httpx.Response(self.start_status, json=self.start_payload)
        if request.method == "PUT" and str(request.url) == UPLOAD_URL:
            if self.transfer_status >= 300:
                return httpx.Response(self.transfer_status, text="storage rejected")
            return httpx.Response(self.transfer_status)
        if request.method == "POST" and request.url.path == "/packages/complete-publish":
            if self.complete_status >= 300:
                return httpx.Response(self.complete_status, text="complete rejected")
            return httpx.Response(self.complete_status, json={"ok": True})
        return httpx.Response(404, text=f"unexpected {request.method} {request.url}")

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self._handle)

    def calls(self, method: str, path: str | None = None) -> list[httpx.Request]:
        return [
            r
            for r in self.requests
            if r.method == method and (path is None or r.url.path == path)
        ]

    @property
    def start_calls(self) -> list[httpx.Request]:
        return self.calls("POST", "/packages/start-publish")

    @property
    def transfer_calls(self) -> list[httpx.Request]:
        return self.calls("PUT")

    @property
    def complete_calls(self) -> list[httpx.Request]:
        return self.calls("POST", "/packages/complete-publish")


@pytest.fixture
def mock_registry() -> MockRegistry:
    return MockRegistry()


@pytest.fixture
def make_source_tree(tmp_path: Path) -> Callable[..., Path]:
    """A factory fixture that creates a package folder with a package.json."""

    def _make(
        name: str = "demo",
        version: str = "1.0.0",
        files: dict[str, bytes | str] | None = None,
        folder_name: str = "demo-package",
    ) -> Path:
        root = tmp_path / folder_name
        root.mkdir(parents=True)
        (root / "package.json").write_text(json.dumps({"name": name, "version": version}))
        for rel_path, content in (files or {}).items():
            target = root / rel_path
            target.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(content, str):
                content = content.encode("utf-8")
            target.write_bytes(content)
        return root

    return _make


@pytest.fixture
def work_dir(tmp_path: Path) -> Path:
    """An isolated directory for staging, so leftovers can be asserted on."""
    path = tmp_path / "work"
    path.mkdir()
    return path
