"""Tests for storage version resolution."""

import pytest

from crd_purge.errors import SchemaResolutionError
from crd_purge.locator import ResourceRef, resolve, served_versions, storage_version

from conftest import make_crd


def test_resolve_picks_storage_not_first_served():
    """widgets stored as v1alpha1 resolves to v1alpha1 even though v1 is served."""
    crd = make_crd("widgets.example.com", [("v1alpha1", True, True), ("v1", True, False)])
    ref = resolve(crd)
    assert ref == ResourceRef("example.com", "v1alpha1", "Widget", "widgets")
    assert ref.api_version == "example.com/v1alpha1"
    assert ref.resource == "widgets.v1alpha1.example.com"


def test_storage_version_when_served_first_differs():
    """The served flag never decides addressing."""
    crd = make_crd("things.example.com", [("v1", True, False), ("v2", False, True)])
    assert storage_version(crd) == "v2"
    assert served_versions(crd) == ["v1"]


def test_no_storage_version_fails():
    crd = make_crd("gadgets.example.com", [("v1", True, False)])
    with pytest.raises(SchemaResolutionError) as info:
        resolve(crd)
    assert info.value.crd_name == "gadgets.example.com"
    assert "no storage version" in str(info.value)


def test_several_storage_versions_fail():
    crd = make_crd("gadgets.example.com", [("v1", True, True), ("v2", True, True)])
    with pytest.raises(SchemaResolutionError) as info:
        storage_version(crd)
    assert info.value.storage_versions == ["v1", "v2"]


def test_missing_versions_fail():
    crd = {"metadata": {"name": "empty.example.com"}, "spec": {"group": "example.com"}}
    with pytest.raises(SchemaResolutionError):
        resolve(crd)


def test_core_group_resource_name():
    ref = ResourceRef("", "v1", "Thing", "things")
    assert ref.api_version == "v1"
    assert ref.resource == "things.v1"
