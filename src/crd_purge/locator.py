"""
Resolve a CRD document into the coordinates needed to address its instances.

Pure functions over an already-fetched CustomResourceDefinition; nothing
here talks to the cluster.
"""

from __future__ import annotations

from dataclasses import dataclass

from .errors import SchemaResolutionError
from .kubectl import name_of


@dataclass(frozen=True)
class ResourceRef:
    group: str
    version: str
    kind: str
    plural: str

    @property
    def api_version(self) -> str:
        return f"{self.group}/{self.version}" if self.group else self.version

    @property
    def resource(self) -> str:
        """Kubectl type argument that pins the version, e.g. widgets.v1alpha1.example.com."""
        if not self.group:
            return f"{self.plural}.{self.version}"
        return f"{self.plural}.{self.version}.{self.group}"


def _versions(crd: dict) -> list[dict]:
    return list((crd.get("spec") or {}).get("versions") or [])


def served_versions(crd: dict) -> list[str]:
    """Names of the versions the API server serves. Informational only."""
    return [v.get("name", "") for v in _versions(crd) if v.get("served")]


def storage_version(crd: dict) -> str:
    """
    Name of the version whose schema matches what etcd holds.

    Instances must be read and written through this version: a served but
    non-storage version may round-trip through a conversion that drops
    fields on replace.

    Raises:
        SchemaResolutionError: no version, or more than one, has storage: true.
    """
    stored = [v.get("name", "") for v in _versions(crd) if v.get("storage") is True]
    if len(stored) != 1:
        raise SchemaResolutionError(name_of(crd), stored)
    return stored[0]


def resolve(crd: dict) -> ResourceRef:
    """Build the ResourceRef for a CRD from its group, names and storage version."""
    spec = crd.get("spec") or {}
    names = spec.get("names") or {}
    return ResourceRef(
        group=spec.get("group", ""),
        version=storage_version(crd),
        kind=names.get("kind", ""),
        plural=names.get("plural", ""),
    )
