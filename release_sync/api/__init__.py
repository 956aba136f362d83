"""
Release API Layer.

This package handles all communication with the release-hosting endpoint.
"""

from .client import ReleaseClient

__all__ = ["ReleaseClient"]
