"""Shared fixtures: an in-memory stand-in for the kubectl client."""

from __future__ import annotations

import copy
from typing import Optional

import pytest

from crd_purge.config import CRD_RESOURCE, HOST_LABEL, MEMBER_LABEL
from crd_purge.errors import KubectlError

TOKEN = "finalizer.toolchain.dev.openshift.com"


def make_crd(name: str, versions, labels=(HOST_LABEL,)) -> dict:
    plural, group = name.split(".", 1)
    return {
        "apiVersion": "apiextensions.k8s.io/v1",
        "kind": "CustomResourceDefinition",
        "metadata": {"name": name, "labels": {label: "" for label in labels}},
        "spec": {
            "group": group,
            "names": {"plural": plural, "kind": plural[:-1].capitalize()},
            "versions": [
                {"name": v, "served": served, "storage": storage}
                for v, served, storage in versions
            ],
        },
    }


def make_cr(namespace: Optional[str], name: str, finalizers=None, rv: str = "1") -> dict:
    meta = {"name": name, "resourceVersion": rv}
    if namespace:
        meta["namespace"] = namespace
    if finalizers is not None:
        meta["finalizers"] = list(finalizers)
    return {"metadata": meta}


def error(stderr: str) -> KubectlError:
    return KubectlError(["kubectl"], 1, stderr)


class FakeKubectl:
    """
    Implements the Kubectl coroutine methods against dicts.

    objects maps a kubectl resource name to {(namespace, name): document}.
    The fail_* mappings inject errors keyed by resource, (resource, ns, name)
    or label; conflicts[(resource, ns, name)] is how many replaces to reject.
    """

    def __init__(self) -> None:
        self.objects: dict[str, dict] = {CRD_RESOURCE: {}}
        self.calls: list[tuple] = []
        self.fail_list: dict[str, KubectlError] = {}
        self.fail_get: dict[tuple, KubectlError] = {}
        self.fail_replace: dict[tuple, KubectlError] = {}
        self.fail_delete: dict[tuple, KubectlError] = {}
        self.conflicts: dict[tuple, int] = {}
        self.verify_error: Optional[Exception] = None

    def add(self, resource: str, obj: dict) -> dict:
        meta = obj["metadata"]
        self.objects.setdefault(resource, {})[(meta.get("namespace"), meta["name"])] = obj
        return obj

    def add_crd(self, crd: dict) -> dict:
        return self.add(CRD_RESOURCE, crd)

    def find(self, resource: str, namespace: Optional[str], name: str) -> Optional[dict]:
        return self.objects.get(resource, {}).get((namespace, name))

    def mutations(self) -> list[tuple]:
        return [c for c in self.calls if c[0] in ("replace", "delete")]

    async def verify(self) -> dict:
        self.calls.append(("verify",))
        if self.verify_error:
            raise self.verify_error
        return {"serverVersion": {"gitVersion": "v1.30.0"}}

    async def list_items(self, resource, label=None, all_namespaces=False):
        self.calls.append(("list", resource, label))
        key = label if resource == CRD_RESOURCE and label else resource
        if key in self.fail_list:
            raise self.fail_list[key]
        items = list(self.objects.get(resource, {}).values())
        if label:
            items = [i for i in items if label in (i["metadata"].get("labels") or {})]
        return copy.deepcopy(items)

    async def get(self, resource, name, namespace=None):
        self.calls.append(("get", resource, namespace, name))
        key = (resource, namespace, name)
        if key in self.fail_get:
            raise self.fail_get[key]
        obj = self.find(resource, namespace, name)
        if obj is None:
            raise error(f'Error from server (NotFound): {resource} "{name}" not found')
        return copy.deepcopy(obj)

    async def replace(self, obj):
        meta = obj["metadata"]
        ident = (meta.get("namespace"), meta["name"])
        # Test data keeps (namespace, name) unique across custom resource types.
        resource = next(r for r, objs in self.objects.items() if r != CRD_RESOURCE and ident in objs)
        key = (resource,) + ident
        self.calls.append(("replace",) + key + (list(meta.get("finalizers") or []),))
        if key in self.fail_replace:
            raise self.fail_replace[key]
        current = self.find(*key)
        if self.conflicts.get(key):
            self.conflicts[key] -= 1
            current["metadata"]["resourceVersion"] = str(int(current["metadata"]["resourceVersion"]) + 1)
        if current["metadata"]["resourceVersion"] != meta.get("resourceVersion"):
            raise error(
                "Error from server (Conflict): Operation cannot be fulfilled: "
                "the object has been modified; please apply your changes to the latest version and try again"
            )
        stored = copy.deepcopy(obj)
        stored["metadata"]["resourceVersion"] = str(int(meta["resourceVersion"]) + 1)
        self.objects[resource][(meta.get("namespace"), meta["name"])] = stored
        return copy.deepcopy(stored)

    async def delete(self, resource, name, namespace=None):
        self.calls.append(("delete", resource, name))
        key = (resource, name)
        if key in self.fail_delete:
            raise self.fail_delete[key]
        return self.objects.get(resource, {}).pop((namespace, name), None) is not None


@pytest.fixture
def kube() -> FakeKubectl:
    return FakeKubectl()


@pytest.fixture
def widgets(kube: FakeKubectl) -> dict:
    """widgets.example.com stored as v1alpha1, with two namespaced instances."""
    crd = kube.add_crd(
        make_crd(
            "widgets.example.com",
            [("v1alpha1", True, True), ("v1", True, False)],
            labels=(HOST_LABEL, MEMBER_LABEL),
        )
    )
    kube.add("widgets.v1alpha1.example.com", make_cr("default", "my-widget", [TOKEN, "other.io/keep"]))
    kube.add("widgets.v1alpha1.example.com", make_cr("team-a", "clean-widget", []))
    return crd
