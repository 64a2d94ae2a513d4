"""
Teardown sequencing: webhooks, then discovery, then each CRD.

For every CRD the order is fixed: resolve the storage version, strip the
finalizer from all instances, delete the CRD. Webhook removal happens
before any CRD is touched because stripping a finalizer can trigger a
delete admission check. Everything after discovery is best effort.
"""

from __future__ import annotations

import asyncio
from typing import Iterable, Optional, Sequence

import structlog

from .config import BLOCKING_WEBHOOKS, FINALIZER, SCOPE_LABELS, Settings, Webhook
from .deleter import delete_crd, delete_webhook
from .discovery import discover
from .errors import EnumerationError, KubectlError, PurgeTimeout, SchemaResolutionError
from .finalizers import patch_instances
from .kubectl import Kubectl, name_of
from .locator import resolve, served_versions
from .results import FAILED, SKIPPED, CrdOutcome, RunSummary, WebhookOutcome

logger = structlog.get_logger(__name__)


async def remove_webhooks(kubectl: Kubectl, webhooks: Iterable[Webhook]) -> list[WebhookOutcome]:
    outcomes = []
    for webhook in webhooks:
        try:
            status = await delete_webhook(kubectl, webhook)
        except KubectlError as exc:
            logger.error(
                "webhook.delete_failed",
                resource=webhook.resource,
                name=webhook.name,
                blocks=webhook.blocks,
                error=str(exc),
            )
            outcomes.append(WebhookOutcome(webhook.resource, webhook.name, FAILED, str(exc)))
            continue
        outcomes.append(WebhookOutcome(webhook.resource, webhook.name, status))
    return outcomes


async def process_crd(kubectl: Kubectl, crd: dict, finalizer: str = FINALIZER) -> CrdOutcome:
    """Strip finalizer from every instance of crd, then delete crd. Never raises for cluster errors."""
    name = name_of(crd)
    log = logger.bind(crd=name)
    outcome = CrdOutcome(name)

    try:
        ref = resolve(crd)
    except SchemaResolutionError as exc:
        log.error("crd.unresolvable", served=served_versions(crd), error=str(exc))
        outcome.error = str(exc)
        return outcome
    outcome.resource = ref.resource
    log.debug(
        "crd.resolved",
        group=ref.group,
        version=ref.version,
        kind=ref.kind,
        plural=ref.plural,
        api_version=ref.api_version,
    )

    log.info("crd.patch_instances", resource=ref.resource)
    try:
        outcome.instances = await patch_instances(kubectl, ref, finalizer)
    except EnumerationError as exc:
        # The CRD is still deleted; the API server finishes once finalizers clear.
        log.error("crd.patch_failed", error=str(exc))
        outcome.error = str(exc)

    try:
        outcome.status = await delete_crd(kubectl, name)
    except KubectlError as exc:
        log.error("crd.delete_failed", error=str(exc))
        outcome.status = FAILED
        outcome.error = str(exc)
    return outcome


async def run_cleanup(
    kubectl: Kubectl,
    labels: Sequence[str],
    finalizer: str = FINALIZER,
    webhooks: Iterable[Webhook] = (),
    parallel: int = 1,
) -> RunSummary:
    """
    Remove webhooks, discover CRDs for labels, and tear each one down.

    With parallel > 1 distinct CRDs are processed concurrently; each CRD
    still patches its instances before it is deleted, and the summary
    keeps discovery order.

    Raises:
        DiscoveryError: listing CRDs failed.
    """
    summary = RunSummary()
    summary.webhooks = await remove_webhooks(kubectl, webhooks)

    crds = await discover(kubectl, labels)
    logger.info("run.discovered", count=len(crds), crds=[name_of(c) for c in crds])

    if parallel <= 1:
        for crd in crds:
            summary.crds.append(await process_crd(kubectl, crd, finalizer))
        return summary

    gate = asyncio.Semaphore(parallel)

    async def bounded(crd: dict) -> CrdOutcome:
        async with gate:
            return await process_crd(kubectl, crd, finalizer)

    summary.crds = list(await asyncio.gather(*(bounded(crd) for crd in crds)))
    return summary


async def purge(
    settings: Settings,
    mode: str = "both",
    remove_blocking_webhooks: bool = False,
    parallel: int = 1,
    kubectl: Optional[Kubectl] = None,
) -> RunSummary:
    """
    Run a complete teardown against the cluster described by settings.

    Raises:
        ClientSetupError: the cluster is unreachable.
        DiscoveryError: listing CRDs failed.
        PurgeTimeout: settings.deadline expired.
    """
    kubectl = kubectl or Kubectl(settings)
    labels = SCOPE_LABELS[mode]
    webhooks = BLOCKING_WEBHOOKS if remove_blocking_webhooks else ()

    async def _run() -> RunSummary:
        await kubectl.verify()
        return await run_cleanup(kubectl, labels, FINALIZER, webhooks, parallel)

    logger.info("run.start", mode=mode, labels=list(labels), webhooks=[w.name for w in webhooks])
    try:
        summary = await asyncio.wait_for(_run(), timeout=settings.deadline)
    except asyncio.TimeoutError:
        raise PurgeTimeout(f"run did not finish within {settings.deadline:g}s") from None
    counts = summary.counts()
    logger.info(
        "run.done",
        crds=dict(counts["crds"]),
        instances=dict(counts["instances"]),
        skipped_crds=counts["crds"][SKIPPED],
    )
    return summary
