"""Transport protocols consumed by the packaging core.

The core never talks to AWS directly. Each remote capability sits behind a
narrow Protocol returning a typed result, so tests and alternative
backends can supply their own implementations. Default AWS
implementations live in ``cfn_package.bridge.aws``.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

from cfn_package.models.resources import StackResource

if TYPE_CHECKING:
    import httpx

    from cfn_package.models.artifacts import PackedArtifact


class SignRequest(BaseModel):
    """Description of a request to be authenticated by a ``RequestSigner``."""

    model_config = ConfigDict(frozen=True)

    method: str
    service: str
    path: str = "/"
    endpoint: str | None = None  # "https://host[:port]"; derived from service + region when None
    query: dict[str, str] = Field(default_factory=dict)
    headers: dict[str, str] = Field(default_factory=dict)
    body: bytes = b""
    sign_query: bool = False


class TransportResponse(BaseModel):
    """Status and body of a remote call."""

    model_config = ConfigDict(frozen=True)

    status_code: int
    reason: str = ""
    body: bytes = b""
    headers: dict[str, str] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


@runtime_checkable
class RequestSigner(Protocol):
    """Turns a request description into an authenticated, ready-to-send request."""

    def sign(self, request: SignRequest) -> httpx.Request:
        ...


@runtime_checkable
class ObjectStorage(Protocol):
    """Conditional existence check and upload against a bucket/key."""

    async def head_object(
        self, bucket: str, key: str, *, if_none_match: str | None = None
    ) -> TransportResponse:
        """Return 304 when the object's ETag equals ``if_none_match``,
        200 when it exists with another ETag, 404 when absent."""
        ...

    async def put_object(self, bucket: str, key: str, body: bytes) -> TransportResponse:
        ...


@runtime_checkable
class StackDescriber(Protocol):
    """Lists the live resources of a provisioned stack."""

    async def describe_stack_resources(self, stack_name: str) -> list[StackResource]:
        ...


@runtime_checkable
class FunctionCodeUpdater(Protocol):
    """Points a deployed function at a new code object."""

    async def update_function_code(self, function_name: str, bucket: str, key: str) -> None:
        ...


@runtime_checkable
class DependencyPacker(Protocol):
    """Packs a function directory into an archive plus a stable thumbprint."""

    async def pack(self, directory: Path) -> PackedArtifact:
        ...
