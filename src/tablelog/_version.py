"""
Version module read by hatchling at build time.

Bump alongside the changelog when cutting a release.
"""

__version__ = "0.1.0"
