"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from urllib.parse import urlparse

import docker
import pytest
import requests
import sh

from coder_kind import bootstrap, cluster, components, dns, template, utils
from coder_kind.config import AdminConfig, ClusterConfig, CoderConfig, ComponentConfig


def sh_error(cmd: str = "cmd", stderr: bytes = b"failed") -> sh.ErrorReturnCode:
    """Build the exception sh raises for a command exiting with status 1."""
    return sh.ErrorReturnCode_1(cmd, b"", stderr)


@dataclass
class ShCall:
    tool: str
    args: tuple
    kwargs: dict

    @property
    def argv(self) -> tuple:
        return (self.tool, *self.args)


class FakeSh:
    """Stand-in for the ``sh`` module that records every command."""

    ErrorReturnCode = sh.ErrorReturnCode
    ErrorReturnCode_1 = sh.ErrorReturnCode_1
    CommandNotFound = sh.CommandNotFound

    def __init__(self) -> None:
        self.calls: list[ShCall] = []
        self.handlers: dict = {}

    def __getattr__(self, tool: str):
        if tool.startswith("_"):
            raise AttributeError(tool)

        def _run(*args, **kwargs):
            self.calls.append(ShCall(tool, args, kwargs))
            handler = self.handlers.get(tool)
            return handler(*args, **kwargs) if handler else ""

        return _run

    def on(self, tool: str, handler) -> None:
        self.handlers[tool] = handler

    def argv(self, tool: str | None = None) -> list[tuple]:
        return [call.argv for call in self.calls if tool is None or call.tool == tool]


@pytest.fixture
def fake_sh(monkeypatch) -> FakeSh:
    fake = FakeSh()
    fake.on("which", lambda cmd: f"/usr/bin/{cmd}")
    for module in (utils, cluster, components, dns, bootstrap, template):
        monkeypatch.setattr(module, "sh", fake)
    return fake


# ============================================================================
# Docker
# ============================================================================

class FakeContainer:
    def __init__(self, registry: dict, name: str, attrs: dict | None = None, status: str = "running") -> None:
        self._registry = registry
        self.name = name
        self.attrs = attrs or {}
        self.status = status

    def remove(self, force: bool = False) -> None:
        self._registry.pop(self.name, None)


class FakeContainers:
    def __init__(self) -> None:
        self.by_name: dict[str, FakeContainer] = {}
        self.runs: list[tuple] = []

    def add(self, name: str, attrs: dict | None = None, status: str = "running") -> FakeContainer:
        container = FakeContainer(self.by_name, name, attrs, status)
        self.by_name[name] = container
        return container

    def get(self, name: str) -> FakeContainer:
        if name not in self.by_name:
            raise docker.errors.NotFound(f"No such container: {name}")
        return self.by_name[name]

    def list(self, filters: dict | None = None) -> list[FakeContainer]:
        wanted = (filters or {}).get("name", "")
        return [c for name, c in self.by_name.items() if wanted in name]

    def run(self, image: str, command=None, **kwargs) -> FakeContainer:
        self.runs.append((image, command, kwargs))
        return self.add(kwargs["name"])


class FakeDockerClient:
    def __init__(self) -> None:
        self.containers = FakeContainers()
        self.closed = False

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_docker(monkeypatch) -> FakeDockerClient:
    client = FakeDockerClient()
    monkeypatch.setattr(docker, "from_env", lambda: client)
    return client


def kind_node_attrs(ip: str) -> dict:
    return {"NetworkSettings": {"Networks": {"kind": {"IPAddress": ip}}}}


# ============================================================================
# HTTP
# ============================================================================

class FakeResponse:
    def __init__(self, status_code: int = 200, json_data=None, text: str | None = None) -> None:
        self.status_code = status_code
        self._json = json_data
        self.text = text if text is not None else ("" if json_data is None else str(json_data))

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    def json(self):
        if self._json is None:
            raise ValueError("No JSON object could be decoded")
        return self._json

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error", response=self)


@dataclass
class FakeSession:
    """Routes ``(method, path)`` to a response, a list of responses, or a callable."""

    routes: dict = field(default_factory=dict)
    headers: dict = field(default_factory=dict)
    requests: list = field(default_factory=list)

    def get(self, url: str, **kwargs):
        return self._dispatch("GET", url, kwargs)

    def post(self, url: str, **kwargs):
        return self._dispatch("POST", url, kwargs)

    def _dispatch(self, method: str, url: str, kwargs: dict):
        path = urlparse(url).path
        self.requests.append((method, path, kwargs))
        handler = self.routes[(method, path)]
        if isinstance(handler, list):
            handler = handler.pop(0) if len(handler) > 1 else handler[0]
        if isinstance(handler, BaseException):
            raise handler
        if callable(handler):
            return handler(**kwargs)
        return handler

    def count(self, method: str, path: str) -> int:
        return sum(1 for m, p, _ in self.requests if (m, p) == (method, path))


# ============================================================================
# Config
# ============================================================================

@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Keep developer environment overrides out of the tests."""
    for var in list(os.environ):
        if var.startswith(("CODER_KIND_", "CODER_ADMIN_")):
            monkeypatch.delenv(var)


@pytest.fixture
def cluster_cfg() -> ClusterConfig:
    return ClusterConfig()


@pytest.fixture
def coder_cfg() -> CoderConfig:
    return CoderConfig()


@pytest.fixture
def comp_cfg() -> ComponentConfig:
    return ComponentConfig()


@pytest.fixture
def admin_cfg() -> AdminConfig:
    return AdminConfig()
