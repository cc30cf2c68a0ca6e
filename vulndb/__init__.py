"""vulndb/ -- Vulnerability database: key/value watermarks and the canonical batch store.

Layer rule: vulndb/ imports from core/ only. It does NOT import from vulnsrc/.
"""
