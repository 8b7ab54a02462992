from datetime import datetime, timezone
import json
from typing import Any, Dict, List, Optional
from sqlalchemy import String, Text, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from sqlalchemy.orm import DeclarativeBase

class Base(DeclarativeBase):
    pass

def _utc_now() -> datetime:
    return datetime.now(timezone.utc)

class SyncDocument(Base):
    """The shared sync snapshot; one row per document id (normally just 'main').

    Each snapshot field is stored as a JSON text column so a save updates the
    fields of the existing row instead of replacing it.
    """
    __tablename__ = 'sync_documents'

    id: Mapped[str] = mapped_column(String, primary_key=True)
    question_sets: Mapped[str] = mapped_column(Text, default='{}')
    player_profiles: Mapped[str] = mapped_column(Text, default='{}')
    daily_revision_scores: Mapped[str] = mapped_column(Text, default='{}')
    practice_history: Mapped[str] = mapped_column(Text, default='{}')
    revision_progress: Mapped[str] = mapped_column(Text, default='{}')
    reported_questions: Mapped[str] = mapped_column(Text, default='[]')
    last_updated: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utc_now, onupdate=_utc_now)

# Snapshot field name -> SyncDocument column
FIELD_COLUMNS = {
    'questionSets': 'question_sets',
    'playerProfiles': 'player_profiles',
    'dailyRevisionScores': 'daily_revision_scores',
    'practiceHistory': 'practice_history',
    'revisionProgress': 'revision_progress',
    'reportedQuestions': 'reported_questions',
}

def document_to_snapshot(document: SyncDocument) -> Dict[str, Any]:
    """Decode a SyncDocument row into a snapshot dict."""
    snapshot: Dict[str, Any] = {}
    for field_name, column in FIELD_COLUMNS.items():
        snapshot[field_name] = json.loads(getattr(document, column))
    snapshot['lastUpdated'] = document.last_updated
    return snapshot

def apply_snapshot(document: SyncDocument, snapshot: Dict[str, Any]) -> List[str]:
    """
    Set every snapshot field present in ``snapshot`` on ``document``.

    :return: Names of the fields written
    """
    written = []
    for field_name, column in FIELD_COLUMNS.items():
        if field_name in snapshot:
            setattr(document, column, json.dumps(snapshot[field_name], ensure_ascii=False))
            written.append(field_name)
    if 'lastUpdated' in snapshot:
        document.last_updated = snapshot['lastUpdated']
        written.append('lastUpdated')
    return written
