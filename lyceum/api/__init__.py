"""
API module for the REST API implementation.
"""

from .rest_api import LyceumRestAPI

__all__ = [
    "LyceumRestAPI",
]
