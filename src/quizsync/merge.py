"""Field-by-field merge of a client sync payload into the stored snapshot.

Each snapshot field has its own rule, chosen so that clients syncing
concurrently or out of order do not erase each other's data:

- questionSets: union, incoming replaces stored on the same set id
- playerProfiles: per player, the profile with the higher totalXP is kept
- dailyRevisionScores: per (date, player), incoming score is added to stored
- practiceHistory: union, an existing attempt key is never replaced
- revisionProgress: per (player, item), an existing entry is never replaced
- reportedQuestions: incoming reports appended unless their reportId is known
- lastUpdated: the time of the merge

The merge is a pure function of its inputs and the clock; neither input is
mutated. It does not validate shapes (see snapshot_schema for that), but it
never raises on them either: a value of the wrong type is treated as absent,
so an unvalidated payload can taint the result without crashing the merge.

Note that dailyRevisionScores is an accumulator: merging the same payload
twice counts its scores twice. Clients must not resend a payload that was
already applied.
"""

# Standard library imports
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

# Local application imports
from quizsync.snapshot_schema import format_timestamp, is_finite_number, snapshot_stats, utc_now


def _mapping(document: Optional[Dict[str, Any]], field: str) -> Dict[str, Any]:
    """Return ``document[field]``, or an empty dict when missing or null."""
    if not document:
        return {}
    value = document.get(field)
    return value if isinstance(value, dict) else {}


def _sequence(document: Dict[str, Any], field: str) -> List[Any]:
    value = document.get(field)
    return value if isinstance(value, list) else []


def _xp(profile: Any) -> Any:
    """totalXP of a profile, or None when missing or not a finite number."""
    if isinstance(profile, dict) and is_finite_number(profile.get("totalXP")):
        return profile["totalXP"]
    return None


def merge_question_sets(stored: Dict[str, Any], incoming: Dict[str, Any]) -> Dict[str, Any]:
    """Union of both maps; incoming wins on collision."""
    return {**stored, **incoming}


def merge_player_profiles(stored: Dict[str, Any], incoming: Dict[str, Any]) -> Dict[str, Any]:
    """Keep the higher-XP profile for each player.

    A player missing from ``stored`` is always taken from ``incoming``.
    Otherwise the incoming profile replaces the stored one only when its
    totalXP is strictly greater; a stored profile without a numeric totalXP
    counts as 0, and an incoming profile without one never replaces anything.
    """
    merged = dict(stored)
    for player, incoming_profile in incoming.items():
        existing_profile = stored.get(player)
        if existing_profile is None:
            merged[player] = incoming_profile
            continue

        incoming_xp = _xp(incoming_profile)
        existing_xp = _xp(existing_profile) or 0
        if incoming_xp is not None and incoming_xp > existing_xp:
            merged[player] = incoming_profile
    return merged


def merge_daily_revision_scores(
    stored: Dict[str, Any], incoming: Dict[str, Any]
) -> Dict[str, Dict[str, Any]]:
    """Add incoming per-(date, player) scores onto the stored totals.

    Negative or non-numeric incoming scores are skipped, so totals never
    decrease; a non-numeric stored score counts as 0.
    """
    merged = dict(stored)
    for date, incoming_scores in incoming.items():
        if not isinstance(incoming_scores, dict):
            continue
        stored_day = merged.get(date)
        day = dict(stored_day) if isinstance(stored_day, dict) else {}
        for player, score in incoming_scores.items():
            if not is_finite_number(score) or score < 0:
                continue
            current = day.get(player)
            day[player] = (current if is_finite_number(current) else 0) + score
        merged[date] = day
    return merged


def merge_practice_history(stored: Dict[str, Any], incoming: Dict[str, Any]) -> Dict[str, Any]:
    """Union of attempts; the first record written under a key is permanent."""
    merged = dict(stored)
    for attempt_key, record in incoming.items():
        if attempt_key not in merged:
            merged[attempt_key] = record
    return merged


def merge_revision_progress(
    stored: Dict[str, Any], incoming: Dict[str, Any]
) -> Dict[str, Dict[str, Any]]:
    """Per player, add new items; an existing (player, item) entry is never replaced."""
    merged = dict(stored)
    for player, incoming_items in incoming.items():
        if not isinstance(incoming_items, dict):
            continue
        stored_items = merged.get(player)
        items = dict(stored_items) if isinstance(stored_items, dict) else {}
        for item_key, progress in incoming_items.items():
            if item_key not in items:
                items[item_key] = progress
        merged[player] = items
    return merged


def _report_id(report: Any) -> Any:
    if isinstance(report, dict):
        return report.get("reportId")
    return None


def merge_reported_questions(stored: List[Any], incoming: List[Any]) -> List[Any]:
    """Append incoming reports whose reportId is not already present.

    Stored order is preserved and new reports keep their incoming order. A
    reportId repeated within ``incoming`` is only appended once.
    """
    merged = list(stored)
    for report in incoming:
        report_id = _report_id(report)
        if not any(_report_id(existing) == report_id for existing in merged):
            merged.append(report)
    return merged


def merge_snapshots(
    stored: Optional[Dict[str, Any]],
    incoming: Dict[str, Any],
    now: Optional[datetime] = None,
) -> Tuple[Dict[str, Any], Dict[str, int]]:
    """Merge a client payload into the stored snapshot.

    Args:
        stored: Current snapshot, or None when nothing has been saved yet
        incoming: Client payload; any field may be omitted
        now: Merge time (defaults to the current UTC time)

    Returns:
        (merged snapshot, {"players": count, "sets": count})
    """
    stored = stored or {}
    incoming = incoming or {}

    merged = {
        "questionSets": merge_question_sets(
            _mapping(stored, "questionSets"), _mapping(incoming, "questionSets")
        ),
        "playerProfiles": merge_player_profiles(
            _mapping(stored, "playerProfiles"), _mapping(incoming, "playerProfiles")
        ),
        "dailyRevisionScores": merge_daily_revision_scores(
            _mapping(stored, "dailyRevisionScores"), _mapping(incoming, "dailyRevisionScores")
        ),
        "practiceHistory": merge_practice_history(
            _mapping(stored, "practiceHistory"), _mapping(incoming, "practiceHistory")
        ),
        "revisionProgress": merge_revision_progress(
            _mapping(stored, "revisionProgress"), _mapping(incoming, "revisionProgress")
        ),
        "reportedQuestions": merge_reported_questions(
            _sequence(stored, "reportedQuestions"), _sequence(incoming, "reportedQuestions")
        ),
        "lastUpdated": format_timestamp(now or utc_now()),
    }

    return merged, snapshot_stats(merged)
