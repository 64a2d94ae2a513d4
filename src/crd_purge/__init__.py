"""
crd_purge: Tear down the CRDs of the toolchain host and member operators.

Finds CRDs by OLM ownership label, strips the toolchain finalizer from
every instance (read fresh, written back with its resourceVersion), then
deletes each CRD. Failures on one instance or CRD are logged and the run
carries on.
"""

__version__ = "0.1.0"
