"""core/ -- Canonical model, normalization helpers, configuration and HTTP access.

Layer rule: core/ is the kernel. It does NOT import from vulnsrc/ or vulndb/,
with the single exception of core/pipeline.py, which wires them together for
callers.
"""
