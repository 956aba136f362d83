"""
release-sync: keeps a local installation in step with a published release.
"""

__version__ = "1.0.0"
