"""
Top‑level package for the UConnect API.

The package provides no public exports; all functionality lives in
submodules under ``app`` and is imported with fully qualified names
like ``uconnect_api.app.main``.
"""

__all__ = []
