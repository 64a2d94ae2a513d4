"""Idempotent deletion of CRDs and admission webhook configurations."""

from __future__ import annotations

import structlog

from .config import CRD_RESOURCE, Webhook
from .kubectl import Kubectl
from .results import ABSENT, DELETED

logger = structlog.get_logger(__name__)


async def delete_resource(kubectl: Kubectl, resource: str, name: str) -> str:
    """
    Delete a cluster-scoped resource and return DELETED or ABSENT.

    Does not wait for the object to go away: a CRD stays in Terminating
    until the API server has removed its instances.

    Raises:
        KubectlError: the delete failed for any reason other than NotFound.
    """
    if await kubectl.delete(resource, name):
        logger.info("delete.accepted", resource=resource, name=name)
        return DELETED
    logger.info("delete.already_absent", resource=resource, name=name)
    return ABSENT


async def delete_crd(kubectl: Kubectl, name: str) -> str:
    return await delete_resource(kubectl, CRD_RESOURCE, name)


async def delete_webhook(kubectl: Kubectl, webhook: Webhook) -> str:
    return await delete_resource(kubectl, webhook.resource, webhook.name)
