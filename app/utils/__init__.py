"""Utility helpers for the CMS backend.

Submodules:
- aws: S3 client wrapper
- text: slugs and free-text validation rules
"""

__all__: list[str] = []
