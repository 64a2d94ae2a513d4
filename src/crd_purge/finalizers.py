"""
Strip one finalizer from every instance of a custom resource type.

Each instance is re-read right before it is written so the replace
carries the newest resourceVersion. Failures are contained to the
instance they happen on: they are logged, recorded as a FAILED outcome,
and the loop moves on.
"""

from __future__ import annotations

from typing import Iterable, Optional

import structlog

from .errors import EnumerationError, KubectlError
from .kubectl import Kubectl, finalizers_of, metadata, name_of, namespace_of, resource_version_of
from .locator import ResourceRef
from .results import FAILED, PATCHED, SKIPPED, InstanceOutcome

logger = structlog.get_logger(__name__)

# Fresh fetch-then-replace attempts per instance; the second one only runs after a Conflict.
MAX_ATTEMPTS = 2


def strip_finalizer(finalizers: Iterable[str], token: str) -> list[str]:
    """Every finalizer except those equal to token, in their original order."""
    return [f for f in finalizers if f != token]


async def list_instances(kubectl: Kubectl, ref: ResourceRef) -> list[tuple[Optional[str], str]]:
    """
    (namespace, name) of every instance of ref across all namespaces.

    Raises:
        EnumerationError: the list call failed.
    """
    try:
        items = await kubectl.list_items(ref.resource, all_namespaces=True)
    except KubectlError as exc:
        logger.error("instances.list_failed", resource=ref.resource, error=str(exc))
        raise EnumerationError(ref.resource, exc) from exc
    return [(namespace_of(item), name_of(item)) for item in items if name_of(item)]


async def patch_instance(
    kubectl: Kubectl,
    ref: ResourceRef,
    namespace: Optional[str],
    name: str,
    token: str,
) -> InstanceOutcome:
    """Remove token from one instance; never raises for cluster errors."""
    log = logger.bind(resource=ref.resource, namespace=namespace, name=name)
    attempt = 1
    while True:
        try:
            obj = await kubectl.get(ref.resource, name, namespace)
        except KubectlError as exc:
            if exc.not_found:
                log.info("instance.gone")
                return InstanceOutcome(namespace, name, SKIPPED)
            log.error("instance.fetch_failed", error=str(exc))
            return InstanceOutcome(namespace, name, FAILED, str(exc))

        finalizers = finalizers_of(obj)
        if not finalizers:
            log.debug("instance.no_finalizers")
            return InstanceOutcome(namespace, name, SKIPPED)
        remaining = strip_finalizer(finalizers, token)
        if len(remaining) == len(finalizers):
            log.debug("instance.finalizer_absent", finalizers=finalizers)
            return InstanceOutcome(namespace, name, SKIPPED)

        metadata(obj)["finalizers"] = remaining
        log.info(
            "instance.patching",
            attempt=attempt,
            resource_version=resource_version_of(obj),
            finalizers=remaining,
        )
        try:
            await kubectl.replace(obj)
        except KubectlError as exc:
            if exc.conflict and attempt < MAX_ATTEMPTS:
                log.warning("instance.conflict_retry", error=str(exc))
                attempt += 1
                continue
            log.error("instance.patch_failed", error=str(exc))
            return InstanceOutcome(namespace, name, FAILED, str(exc))
        return InstanceOutcome(namespace, name, PATCHED)


async def patch_instances(kubectl: Kubectl, ref: ResourceRef, token: str) -> list[InstanceOutcome]:
    """
    Strip token from every instance of ref, one instance at a time.

    Raises:
        EnumerationError: the instances could not be listed.
    """
    instances = await list_instances(kubectl, ref)
    logger.info("instances.found", resource=ref.resource, count=len(instances))
    outcomes = []
    for namespace, name in instances:
        outcomes.append(await patch_instance(kubectl, ref, namespace, name, token))
    return outcomes
