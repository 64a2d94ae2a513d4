"""Exception types raised across crd-purge."""

from __future__ import annotations

from typing import Optional, Sequence


class PurgeError(Exception):
    """Base class for every error crd-purge raises."""


class KubectlError(PurgeError):
    """A kubectl invocation exited non-zero or produced unusable output."""

    def __init__(self, args: Sequence[str], returncode: Optional[int], stderr: str) -> None:
        self.command = list(args)
        self.returncode = returncode
        self.stderr = (stderr or "").strip()
        super().__init__(f"{' '.join(self.command)} failed ({returncode}): {self.stderr}")

    @property
    def not_found(self) -> bool:
        # kubectl prints the API status reason, e.g. 'Error from server (NotFound): ...'.
        return "(NotFound)" in self.stderr

    @property
    def conflict(self) -> bool:
        # Optimistic-concurrency rejection on replace (HTTP 409).
        return "Conflict" in self.stderr or "the object has been modified" in self.stderr


class KubectlTimeout(KubectlError):
    """A kubectl invocation exceeded the per-call timeout and was killed."""

    def __init__(self, args: Sequence[str], timeout: float) -> None:
        super().__init__(args, None, f"timed out after {timeout:g}s")
        self.timeout = timeout


class ClientSetupError(PurgeError):
    """The cluster could not be reached with the given credentials."""


class DiscoveryError(PurgeError):
    """Listing CRDs by ownership label failed. Fatal for the run."""

    def __init__(self, label: str, cause: Exception) -> None:
        self.label = label
        super().__init__(f"failed to list CRDs labelled {label}: {cause}")


class SchemaResolutionError(PurgeError):
    """A CRD does not have exactly one storage version."""

    def __init__(self, crd_name: str, storage_versions: Sequence[str]) -> None:
        self.crd_name = crd_name
        self.storage_versions = list(storage_versions)
        if storage_versions:
            detail = f"several storage versions: {', '.join(storage_versions)}"
        else:
            detail = "no storage version"
        super().__init__(f"crd {crd_name} has {detail}")


class EnumerationError(PurgeError):
    """Listing the instances of one custom resource type failed."""

    def __init__(self, resource: str, cause: Exception) -> None:
        self.resource = resource
        super().__init__(f"failed to list {resource}: {cause}")


class PurgeTimeout(PurgeError):
    """The overall run deadline expired."""
