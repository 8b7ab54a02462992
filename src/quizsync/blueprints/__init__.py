"""Quizsync blueprint package."""

# Local application imports
from quizsync.blueprints import shared  # Shared objects imported first

# Imported for side effects (registering routes on sync_bp)
from quizsync.blueprints import sync

__all__ = [
    'sync_bp',
    'sync',
]

# Export the blueprint
sync_bp = shared.sync_bp

# Reference side-effect imports to satisfy static analysis
_side_effect_modules = (sync,)
