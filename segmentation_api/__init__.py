"""
Top-level package for the User Segmentation API.

All functionality lives in submodules under ``app``.
"""

__all__ = []
