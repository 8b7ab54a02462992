"""Common - Shared functionality across quizsync components."""

# Import key subpackages for easy access
from . import base
from . import config

__all__ = ["base", "config"]
