from .models import (
    Base,
    SyncDocument,
    FIELD_COLUMNS,
    document_to_snapshot,
    apply_snapshot,
)

# Import database module
from .database import (
    Database,
    DatabaseError,
    db
)

__all__ = [
    'Base', 'SyncDocument', 'FIELD_COLUMNS', 'document_to_snapshot', 'apply_snapshot',
    'Database', 'DatabaseError', 'db',
]
