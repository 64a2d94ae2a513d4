"""Find the CRDs an operator suite owns, by OLM ownership label."""

from __future__ import annotations

from typing import Iterable

import structlog

from .config import CRD_RESOURCE
from .errors import DiscoveryError, KubectlError
from .kubectl import Kubectl, name_of

logger = structlog.get_logger(__name__)


async def fetch_crds(kubectl: Kubectl, label: str) -> list[dict]:
    """
    List every CRD carrying the label key (value ignored).

    Raises:
        DiscoveryError: the list call failed; nothing else can run without it.
    """
    try:
        crds = await kubectl.list_items(CRD_RESOURCE, label=label)
    except KubectlError as exc:
        logger.error("discovery.list_failed", label=label, error=str(exc))
        raise DiscoveryError(label, exc) from exc
    logger.info("discovery.found", label=label, count=len(crds))
    return crds


def unique_by_name(*crd_sets: Iterable[dict]) -> list[dict]:
    """Merge CRD lists in order, keeping the first CRD seen for each name."""
    seen: set[str] = set()
    merged: list[dict] = []
    for crds in crd_sets:
        for crd in crds:
            name = name_of(crd)
            if not name or name in seen:
                continue
            seen.add(name)
            merged.append(crd)
    return merged


async def discover(kubectl: Kubectl, labels: Iterable[str]) -> list[dict]:
    """Fetch the CRDs for each label and return them deduplicated by name."""
    found = [await fetch_crds(kubectl, label) for label in labels]
    return unique_by_name(*found)
