"""Snapshot document schema: field constants, defaults, and incoming validation."""

# Standard library imports
import math
from datetime import datetime, timezone
from typing import Any, Dict, Optional

##############################################################################
# Snapshot Schema Constants
##############################################################################

# Top-level fields holding an object keyed by id/date/player
MAPPING_FIELDS = (
    "questionSets",
    "playerProfiles",
    "dailyRevisionScores",
    "practiceHistory",
    "revisionProgress",
)

# Top-level fields holding an ordered list
SEQUENCE_FIELDS = ("reportedQuestions",)

SNAPSHOT_FIELDS = MAPPING_FIELDS + SEQUENCE_FIELDS + ("lastUpdated",)


class SnapshotValidationError(ValueError):
    """Raised when an incoming payload does not have the snapshot shape."""
    pass


##############################################################################
# Defaults and Formatting
##############################################################################


def utc_now() -> datetime:
    """Current wall-clock time in UTC."""
    return datetime.now(timezone.utc)


def format_timestamp(moment: datetime) -> str:
    """Format as ISO-8601 UTC with millisecond precision, e.g. 2024-01-01T12:00:00.000Z."""
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def create_empty_snapshot(now: Optional[datetime] = None) -> Dict[str, Any]:
    """Create the document served when nothing has been stored yet."""
    snapshot: Dict[str, Any] = {field: {} for field in MAPPING_FIELDS}
    for field in SEQUENCE_FIELDS:
        snapshot[field] = []
    snapshot["lastUpdated"] = format_timestamp(now or utc_now())
    return snapshot


def snapshot_stats(snapshot: Dict[str, Any]) -> Dict[str, int]:
    """Summary counts returned to clients after a sync."""
    return {
        "players": len(snapshot.get("playerProfiles") or {}),
        "sets": len(snapshot.get("questionSets") or {}),
    }


##############################################################################
# Incoming Payload Validation
##############################################################################


def is_finite_number(value: Any) -> bool:
    """True for real, finite numbers. NaN and Infinity parse from JSON but are rejected."""
    # bool is an int subclass but never a valid score or XP value
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        return False
    return math.isfinite(value)


def _require_object(value: Any, where: str) -> None:
    if not isinstance(value, dict):
        raise SnapshotValidationError(f"'{where}' must be an object")


def _validate_player_profiles(profiles: Dict[str, Any]) -> None:
    for player, profile in profiles.items():
        _require_object(profile, f"playerProfiles.{player}")
        total_xp = profile.get("totalXP")
        if total_xp is not None and not is_finite_number(total_xp):
            raise SnapshotValidationError(f"'playerProfiles.{player}.totalXP' must be a number")


def _validate_daily_scores(scores: Dict[str, Any]) -> None:
    for date, per_player in scores.items():
        _require_object(per_player, f"dailyRevisionScores.{date}")
        for player, score in per_player.items():
            if not is_finite_number(score):
                raise SnapshotValidationError(
                    f"'dailyRevisionScores.{date}.{player}' must be a number"
                )
            if score < 0:
                raise SnapshotValidationError(
                    f"'dailyRevisionScores.{date}.{player}' must not be negative"
                )


def _validate_revision_progress(progress: Dict[str, Any]) -> None:
    for player, items in progress.items():
        _require_object(items, f"revisionProgress.{player}")


def _validate_reported_questions(reports: Any) -> None:
    if not isinstance(reports, list):
        raise SnapshotValidationError("'reportedQuestions' must be a list")
    for index, report in enumerate(reports):
        _require_object(report, f"reportedQuestions[{index}]")
        report_id = report.get("reportId")
        if not (isinstance(report_id, str) or is_finite_number(report_id)):
            raise SnapshotValidationError(
                f"'reportedQuestions[{index}].reportId' must be a string or number"
            )


def validate_incoming_snapshot(payload: Any) -> Dict[str, Any]:
    """Check a client payload against the snapshot shape before merging.

    Only snapshot fields are kept; unknown keys, ``_id`` and ``lastUpdated``
    are dropped. Fields that are absent or null are left out, which the merge
    treats as empty.

    Returns:
        A new dict holding the accepted fields

    Raises:
        SnapshotValidationError: Describing the first shape violation found
    """
    if not isinstance(payload, dict):
        raise SnapshotValidationError("Sync payload must be a JSON object")

    accepted: Dict[str, Any] = {}

    for field in MAPPING_FIELDS:
        value = payload.get(field)
        if value is None:
            continue
        _require_object(value, field)
        accepted[field] = value

    _validate_player_profiles(accepted.get("playerProfiles", {}))
    _validate_daily_scores(accepted.get("dailyRevisionScores", {}))
    _validate_revision_progress(accepted.get("revisionProgress", {}))

    reports = payload.get("reportedQuestions")
    if reports is not None:
        _validate_reported_questions(reports)
        accepted["reportedQuestions"] = reports

    return accepted
