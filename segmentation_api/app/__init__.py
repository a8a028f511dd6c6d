"""
Application package initializer.

``engine`` holds the segment membership engine, ``services`` its
building blocks, ``core`` the ambient configuration, logging, storage
handle and exceptions, and ``api`` the versioned HTTP routes.
"""

from .main import app  # noqa: F401
