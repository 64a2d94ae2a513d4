"""
Kubectl invocation and Kubernetes resource JSON helpers.

All cluster access goes through kubectl, run as an asyncio subprocess that
exchanges JSON. Resource types are addressed by their fully-qualified
kubectl name (plural.version.group), so custom resources whose schema is
only known at runtime need no generated client. Every call is bounded by
Settings.call_timeout.
"""

from __future__ import annotations

import asyncio
import json
from typing import Optional

import structlog

from .config import Settings
from .errors import ClientSetupError, KubectlError, KubectlTimeout

logger = structlog.get_logger(__name__)


class Kubectl:
    """Async wrapper around the kubectl binary, bound to one cluster."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.settings = settings or Settings()

    def command(self, args: list[str]) -> list[str]:
        """Full argv for a kubectl call, with the credential overrides applied."""
        cmd = [self.settings.kubectl]
        if self.settings.kubeconfig:
            cmd += ["--kubeconfig", self.settings.kubeconfig]
        if self.settings.context:
            cmd += ["--context", self.settings.context]
        return cmd + args

    async def run(self, args: list[str], stdin: Optional[str] = None) -> str:
        """
        Run kubectl with the given args and return its stdout.

        Args:
            args: Arguments after the binary (e.g. ["get", "pods", "-A", "-o", "json"]).
            stdin: Optional text fed to the process (used by replace -f -).

        Raises:
            KubectlError: Non-zero exit, or the binary cannot be executed.
            KubectlTimeout: The call took longer than Settings.call_timeout.
        """
        cmd = self.command(args)
        logger.debug("kubectl.run", argv=cmd)
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.PIPE if stdin is not None else None,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise KubectlError(cmd, None, str(exc)) from exc
        try:
            stdout, stderr = await asyncio.wait_for(
                proc.communicate(stdin.encode() if stdin is not None else None),
                timeout=self.settings.call_timeout,
            )
        except asyncio.TimeoutError:
            raise KubectlTimeout(cmd, self.settings.call_timeout) from None
        finally:
            # Also reached on cancellation (run deadline): no kubectl outlives its caller.
            if proc.returncode is None:
                proc.kill()
                await proc.wait()
        if proc.returncode != 0:
            raise KubectlError(cmd, proc.returncode, stderr.decode(errors="replace"))
        return stdout.decode(errors="replace")

    async def run_json(self, args: list[str], stdin: Optional[str] = None) -> dict:
        """Run kubectl and parse its stdout as a JSON object."""
        out = await self.run(args, stdin=stdin)
        try:
            return json.loads(out)
        except json.JSONDecodeError as exc:
            raise KubectlError(self.command(args), 0, f"invalid JSON output: {exc}") from exc

    async def verify(self) -> dict:
        """Check that the API server answers with the configured credentials."""
        try:
            return await self.run_json(["version", "-o", "json"])
        except KubectlError as exc:
            raise ClientSetupError(f"cannot reach the cluster: {exc}") from exc

    async def list_items(
        self,
        resource: str,
        label: Optional[str] = None,
        all_namespaces: bool = False,
    ) -> list[dict]:
        """
        List resources of one type.

        Args:
            resource: Kubectl resource name, e.g. "widgets.v1alpha1.example.com".
            label: Optional label selector; a bare key selects on existence.
            all_namespaces: Pass -A (namespaced kinds only).

        Returns:
            The "items" of the List response.
        """
        args = ["get", resource, "-o", "json"]
        if all_namespaces:
            args.append("-A")
        if label:
            args += ["-l", label]
        return items_of(await self.run_json(args))

    async def get(self, resource: str, name: str, namespace: Optional[str] = None) -> dict:
        """Get a single resource as a JSON document."""
        args = ["get", resource, name, "-o", "json"]
        if namespace:
            args += ["-n", namespace]
        return await self.run_json(args)

    async def replace(self, obj: dict) -> dict:
        """
        Replace a resource with the given document.

        The document's metadata.resourceVersion is sent along, so the API
        server rejects the write with a Conflict when the object changed
        since it was read.
        """
        return await self.run_json(["replace", "-f", "-", "-o", "json"], stdin=json.dumps(obj))

    async def delete(self, resource: str, name: str, namespace: Optional[str] = None) -> bool:
        """
        Delete a resource without waiting for it to disappear.

        Returns:
            True when the delete was accepted, False when the resource was already absent.
        """
        args = ["delete", resource, name, "--wait=false"]
        if namespace:
            args += ["-n", namespace]
        try:
            await self.run(args)
        except KubectlError as exc:
            if exc.not_found:
                return False
            raise
        return True


def items_of(obj: dict) -> list[dict]:
    """
    Return the items of a kubectl JSON response.

    Handles both a List response (obj["items"]) and a single-object
    response (the object itself).
    """
    if "items" in obj:
        return list(obj["items"] or [])
    if obj.get("metadata"):
        return [obj]
    return []


def metadata(obj: dict) -> dict:
    return obj.get("metadata") or {}


def name_of(obj: dict) -> str:
    return metadata(obj).get("name") or ""


def namespace_of(obj: dict) -> Optional[str]:
    return metadata(obj).get("namespace") or None


def finalizers_of(obj: dict) -> list[str]:
    return list(metadata(obj).get("finalizers") or [])


def resource_version_of(obj: dict) -> Optional[str]:
    return metadata(obj).get("resourceVersion")
