"""Utility modules for zkqsig.

This package contains helpers shared across components, such as atomic file
writes for manifests, trust lists and encryption metadata.
"""

__all__: list[str] = []
