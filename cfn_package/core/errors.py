"""Error taxonomy for packaging runs.

Every failure surfaced by a run is a ``PackageError`` subclass, except
plain ``OSError``s raised while reading an artifact, which propagate as-is.
"""

from __future__ import annotations


class PackageError(RuntimeError):
    """Base class for all cfn-package errors."""


class TemplateLoadError(PackageError):
    """Raised when the template file cannot be read or parsed."""


class StructuralError(PackageError):
    """Raised when the template shape is invalid (e.g. ``Properties`` is a string)."""


class ArtifactNotFoundError(PackageError, FileNotFoundError):
    """Raised when an artifact path referenced by the template does not exist."""


class PackagingError(PackageError):
    """Raised when an artifact directory cannot be archived."""


class ManifestError(PackagingError):
    """Raised when a function directory's manifest is missing or malformed."""


class TransportError(PackageError):
    """Raised when a remote call fails."""


class UnexpectedStatusError(TransportError):
    """Raised when a remote service answers with a status we do not handle."""

    def __init__(self, service: str, status_code: int, reason: str = "") -> None:
        self.service = service
        self.status_code = status_code
        self.reason = reason
        status = f"{status_code} {reason}" if reason else str(status_code)
        super().__init__(f"Response {status} from {service}")


class MalformedResponseError(TransportError):
    """Raised when a remote response body cannot be interpreted."""


class ConsistencyError(PackageError):
    """Raised when the template and the live stack disagree."""


class ResourceNotFoundError(ConsistencyError):
    """Raised when a logical resource is absent from the live stack index."""

    def __init__(self, logical_id: str) -> None:
        self.logical_id = logical_id
        super().__init__(f"The resource '{logical_id}' in the stack is not found")


class FunctionUpdateError(PackageError):
    """Raised when pointing a deployed function at new code fails."""

    def __init__(self, function_name: str) -> None:
        self.function_name = function_name
        super().__init__(f"Updating the function '{function_name}' failed")
