"""
Top‑level package for the Composition Catalog API.

Marks ``composition_catalog_api`` as a package so that modules under
``app`` can be imported with fully qualified names such as
``composition_catalog_api.app.main``.  All functionality lives in
submodules under ``app``.
"""

__all__ = []
