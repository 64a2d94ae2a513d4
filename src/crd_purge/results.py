"""
Outcome records for each unit of teardown work.

Per-instance and per-CRD failures are recorded here instead of being
raised, then aggregated into a RunSummary that the CLI prints.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Optional

# Instance statuses
PATCHED = "patched"
SKIPPED = "skipped"
FAILED = "failed"

# Deletion statuses (CRDs and webhooks)
DELETED = "deleted"
ABSENT = "absent"


@dataclass
class InstanceOutcome:
    namespace: Optional[str]
    name: str
    status: str
    error: Optional[str] = None

    @property
    def ref(self) -> str:
        return f"{self.namespace}/{self.name}" if self.namespace else self.name


@dataclass
class CrdOutcome:
    """
    What happened to one CRD.

    status is DELETED or ABSENT when the CRD delete succeeded, SKIPPED when
    its storage version could not be resolved, FAILED when the delete call
    failed. Instance failures do not change the CRD status.
    """

    name: str
    status: str = SKIPPED
    resource: Optional[str] = None
    instances: list[InstanceOutcome] = field(default_factory=list)
    error: Optional[str] = None

    def count(self, status: str) -> int:
        return sum(1 for i in self.instances if i.status == status)

    @property
    def ok(self) -> bool:
        return self.status in (DELETED, ABSENT) and self.error is None and self.count(FAILED) == 0


@dataclass
class WebhookOutcome:
    resource: str
    name: str
    status: str
    error: Optional[str] = None


@dataclass
class RunSummary:
    webhooks: list[WebhookOutcome] = field(default_factory=list)
    crds: list[CrdOutcome] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(w.status != FAILED for w in self.webhooks) and all(c.ok for c in self.crds)

    def counts(self) -> dict[str, Counter]:
        """Tallies by status for webhooks, CRDs and instances."""
        return {
            "webhooks": Counter(w.status for w in self.webhooks),
            "crds": Counter(c.status for c in self.crds),
            "instances": Counter(i.status for c in self.crds for i in c.instances),
        }

    def render(self) -> str:
        """Human-readable summary, one line per webhook and CRD."""
        lines = []
        for w in self.webhooks:
            suffix = f" ({w.error})" if w.error else ""
            lines.append(f"  webhook {w.name}: {w.status}{suffix}")
        for c in self.crds:
            detail = f"{c.count(PATCHED)} patched, {c.count(SKIPPED)} clean, {c.count(FAILED)} failed"
            suffix = f" ({c.error})" if c.error else ""
            lines.append(f"  crd {c.name}: {c.status}; instances {detail}{suffix}")
        if not lines:
            lines.append("  (nothing to do)")
        counts = self.counts()
        lines.append(
            "Total: {} crds, {} instances patched, {} failures".format(
                len(self.crds),
                counts["instances"][PATCHED],
                counts["instances"][FAILED]
                + counts["crds"][FAILED]
                + counts["crds"][SKIPPED]
                + counts["webhooks"][FAILED],
            )
        )
        return "\n".join(lines)
