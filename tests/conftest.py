from __future__ import annotations

from pathlib import Path

import pytest
import requests

import java_tools
import mcdeob


JAR_URL = "https://example.test/client.jar"
MAPPINGS_URL = "https://example.test/client.txt"


class FakeResponse:
    def __init__(self, body: bytes = b"", status: int = 200, json_data=None):
        self.body = body
        self.status_code = status
        self.headers = {"content-length": str(len(body))}
        self._json = json_data

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error", response=self)

    def iter_content(self, chunk_size: int = 1):
        for i in range(0, len(self.body), chunk_size):
            yield self.body[i:i + chunk_size]

    def json(self):
        return self._json


class FakeHttp:
    """Routes requests.get calls to canned responses or exceptions."""

    def __init__(self):
        self.routes: dict[str, object] = {}
        self.calls: list[str] = []

    def __call__(self, url, **kwargs):
        self.calls.append(url)
        route = self.routes.get(url)
        if route is None:
            return FakeResponse(status=404)
        if isinstance(route, Exception):
            raise route
        return route


class RecordingRemapper(java_tools.Remapper):
    def __init__(self, jar_path):
        super().__init__(jar_path)
        self.commands: list[list[str]] = []

    def run(self, command):
        self.commands.append(command)
        output = command[command.index("-output") + 1]
        Path(output).write_bytes(b"remapped")


class RecordingDecompiler(java_tools.Decompiler):
    def __init__(self, jar_path):
        super().__init__(jar_path)
        self.commands: list[list[str]] = []

    def run(self, command):
        self.commands.append(command)


class RecordingSink(mcdeob.NullStatusSink):
    def __init__(self):
        self.events: list[tuple] = []

    def update_status_box(self, message):
        self.events.append(("status", message))

    def update_button(self, label, color=None):
        self.events.append(("button", label, color))


@pytest.fixture
def fake_http(monkeypatch) -> FakeHttp:
    http = FakeHttp()
    http.routes[JAR_URL] = FakeResponse(b"PK\x03\x04 obfuscated jar bytes" * 100)
    http.routes[MAPPINGS_URL] = FakeResponse(b"net.minecraft.Foo -> a:\n")
    monkeypatch.setattr(mcdeob.requests, "get", http)
    return http


@pytest.fixture
def java_on_path(monkeypatch) -> None:
    monkeypatch.setattr(java_tools.shutil, "which", lambda name: f"/usr/bin/{name}")


@pytest.fixture
def tool_jars(tmp_path: Path) -> tuple[Path, Path]:
    tools = tmp_path / "tools"
    tools.mkdir()
    reconstruct = tools / "reconstruct-cli.jar"
    fernflower = tools / "fernflower.jar"
    reconstruct.write_bytes(b"")
    fernflower.write_bytes(b"")
    return reconstruct, fernflower


@pytest.fixture
def remapper(tool_jars, java_on_path) -> RecordingRemapper:
    return RecordingRemapper(tool_jars[0])


@pytest.fixture
def decompiler(tool_jars, java_on_path) -> RecordingDecompiler:
    return RecordingDecompiler(tool_jars[1])


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def work_dir(tmp_path: Path) -> Path:
    return tmp_path / "deobf-work"


@pytest.fixture
def client_version() -> mcdeob.Version:
    return mcdeob.Version(mcdeob.ReleaseType.CLIENT, "1.20.1", JAR_URL, MAPPINGS_URL)


@pytest.fixture
def server_version() -> mcdeob.Version:
    return mcdeob.Version(mcdeob.ReleaseType.SERVER, "1.20.1", JAR_URL, MAPPINGS_URL)
