"""
Constants and run settings for crd-purge.

Defines the finalizer token, the OLM ownership labels that identify the
host and member operator CRDs, the admission webhooks known to block
teardown, and the Settings value threaded into the kubectl client.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import NamedTuple, Optional

# Finalizer stripped from every custom resource instance before its CRD is deleted.
FINALIZER = "finalizer.toolchain.dev.openshift.com"

# OLM adds these labels to every CRD an operator installs; only key existence matters.
HOST_LABEL = "operators.coreos.com/toolchain-host-operator.toolchain-host-operator"
MEMBER_LABEL = "operators.coreos.com/toolchain-member-operator.toolchain-member-operator"

# CLI mode -> ownership labels to discover, in processing order.
SCOPE_LABELS = {
    "host": (HOST_LABEL,),
    "member": (MEMBER_LABEL,),
    "both": (HOST_LABEL, MEMBER_LABEL),
}

# Fully-qualified kubectl resource names (plural.group).
CRD_RESOURCE = "customresourcedefinitions.apiextensions.k8s.io"
VALIDATING_WEBHOOKS = "validatingwebhookconfigurations.admissionregistration.k8s.io"
MUTATING_WEBHOOKS = "mutatingwebhookconfigurations.admissionregistration.k8s.io"


class Webhook(NamedTuple):
    """An admission webhook configuration that blocks teardown of one CRD."""

    resource: str
    name: str
    blocks: str


# Removed before any CRD is processed when --remove-webhooks is given.
BLOCKING_WEBHOOKS = (
    Webhook(
        VALIDATING_WEBHOOKS,
        "member-operator-validating-webhook-toolchain-member-operator",
        "spacebindingrequests.toolchain.dev.openshift.com",
    ),
)

# Seconds a single kubectl call may take before it is killed.
DEFAULT_CALL_TIMEOUT = 60.0
# Seconds the whole run may take.
DEFAULT_DEADLINE = 900.0


@dataclass(frozen=True)
class Settings:
    """How to reach the cluster. Passed to Kubectl; never exported to the environment."""

    kubeconfig: Optional[str] = None
    context: Optional[str] = None
    kubectl: str = "kubectl"
    call_timeout: float = DEFAULT_CALL_TIMEOUT
    deadline: Optional[float] = DEFAULT_DEADLINE
