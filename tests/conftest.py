"""Shared test fixtures for cfn-package."""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import httpx
import pytest

from cfn_package.bridge.transport import SignRequest, TransportResponse
from cfn_package.config import Settings
from cfn_package.core.dependency_cache import CachedDependencyPacker
from cfn_package.core.hasher import md5_hex
from cfn_package.models.resources import StackResource


# ---------------------------------------------------------------------------
# In-memory transports
# ---------------------------------------------------------------------------


class FakeObjectStorage:
    """ObjectStorage that keeps objects in a dict and honours If-None-Match."""

    def __init__(self, head_status: int | None = None, put_status: int = 200) -> None:
        self.objects: dict[tuple[str, str], bytes] = {}
        self.heads: list[tuple[str, str, str | None]] = []
        self.puts: list[tuple[str, str, bytes]] = []
        self._head_status = head_status
        self._put_status = put_status

    async def head_object(
        self, bucket: str, key: str, *, if_none_match: str | None = None
    ) -> TransportResponse:
        self.heads.append((bucket, key, if_none_match))
        if self._head_status is not None:
            return TransportResponse(status_code=self._head_status, reason="Forced")
        body = self.objects.get((bucket, key))
        if body is None:
            return TransportResponse(status_code=404, reason="Not Found")
        if if_none_match is not None and md5_hex(body) == if_none_match:
            return TransportResponse(status_code=304, reason="Not Modified")
        return TransportResponse(status_code=200, reason="OK")

    async def put_object(self, bucket: str, key: str, body: bytes) -> TransportResponse:
        self.puts.append((bucket, key, body))
        if self._put_status >= 300:
            return TransportResponse(status_code=self._put_status, reason="Forced")
        self.objects[(bucket, key)] = body
        return TransportResponse(status_code=self._put_status, reason="OK")


class FakeStackDescriber:
    """StackDescriber returning a fixed resource list."""

    def __init__(self, resources: list[StackResource] | None = None, error: Exception | None = None) -> None:
        self.resources = resources or []
        self.error = error
        self.calls: list[str] = []

    async def describe_stack_resources(self, stack_name: str) -> list[StackResource]:
        self.calls.append(stack_name)
        if self.error is not None:
            raise self.error
        return list(self.resources)


class FakeCodeUpdater:
    """FunctionCodeUpdater recording calls, optionally failing."""

    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.calls: list[tuple[str, str, str]] = []

    async def update_function_code(self, function_name: str, bucket: str, key: str) -> None:
        self.calls.append((function_name, bucket, key))
        if self.error is not None:
            raise self.error


class FakeSigner:
    """RequestSigner that builds the request without signing it."""

    region = "us-east-1"

    def __init__(self) -> None:
        self.requests: list[SignRequest] = []

    def sign(self, request: SignRequest) -> httpx.Request:
        self.requests.append(request)
        endpoint = request.endpoint or f"https://{request.service}.{self.region}.amazonaws.com"
        return httpx.Request(
            request.method,
            f"{endpoint}{request.path}",
            params=request.query or None,
            headers=request.headers,
            content=request.body,
        )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def storage() -> FakeObjectStorage:
    return FakeObjectStorage()


@pytest.fixture
def cache_dir(tmp_path: Path) -> Path:
    return tmp_path / "pack-cache"


@pytest.fixture
def settings(cache_dir: Path) -> Settings:
    """Settings with the pack cache in a temp directory."""
    return Settings(cache_dir=cache_dir)


@pytest.fixture
def dependency_packer(cache_dir: Path) -> CachedDependencyPacker:
    return CachedDependencyPacker(cache_dir)


@pytest.fixture
def make_function_dir(tmp_path: Path) -> Callable[..., Path]:
    """Factory fixture: a function directory with a manifest and one source file."""

    def _factory(
        name: str = "fn",
        source: str = "exports.handler = async () => 'ok';\n",
        manifest: dict[str, Any] | None = None,
    ) -> Path:
        directory = tmp_path / name
        directory.mkdir(parents=True, exist_ok=True)
        (directory / "package.json").write_text(
            json.dumps(manifest or {"name": name, "version": "1.0.0", "main": "index.js"})
        )
        (directory / "index.js").write_text(source)
        return directory

    return _factory


@pytest.fixture
def write_template(tmp_path: Path) -> Callable[..., Path]:
    """Factory fixture: write a JSON template with the given Resources."""

    def _factory(resources: Any, name: str = "template.json") -> Path:
        path = tmp_path / name
        path.write_text(json.dumps({"AWSTemplateFormatVersion": "2010-09-09", "Resources": resources}))
        return path

    return _factory


@pytest.fixture
def make_storage() -> Callable[..., FakeObjectStorage]:
    """Factory fixture: FakeObjectStorage with forced statuses."""
    return FakeObjectStorage


@pytest.fixture
def make_describer() -> Callable[..., FakeStackDescriber]:
    """Factory fixture: FakeStackDescriber."""
    return FakeStackDescriber


@pytest.fixture
def make_updater() -> Callable[..., FakeCodeUpdater]:
    """Factory fixture: FakeCodeUpdater."""
    return FakeCodeUpdater


@pytest.fixture
def signer() -> FakeSigner:
    return FakeSigner()
