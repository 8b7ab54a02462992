"""Snapshot sync API: read the shared document, or merge a client payload into it."""

# Standard library imports
import threading
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

# Third-party imports
from flask import current_app, jsonify, request
from flask.typing import ResponseReturnValue

# Local application imports
from quizsync.blueprints.shared import (
    STORE_CONFIG_KEY,
    STRICT_VALIDATION_CONFIG_KEY,
    logger,
    sync_bp,
)
from quizsync.merge import merge_snapshots
from quizsync.snapshot_schema import (
    SnapshotValidationError,
    create_empty_snapshot,
    validate_incoming_snapshot,
)
from quizsync.storage import SnapshotStore, StorageError

##############################################################################

SYNC_API_DOCS = {
    "GET /api/sync": "Get the shared snapshot (empty structure if nothing is stored yet)",
    "POST /api/sync": "Merge a full or partial client snapshot into the shared snapshot",
}

# Legacy path used by clients deployed against the serverless function
LEGACY_SYNC_PATH = "/.netlify/functions/sync"

# Serializes read-merge-write within this process
_sync_lock = threading.Lock()


##############################################################################
# Sync Service
##############################################################################


def _strip_internal_fields(document: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in document.items() if key != "_id"}


def load_current_snapshot(store: SnapshotStore) -> Dict[str, Any]:
    """Return the stored snapshot, or the empty structure when there is none.

    Raises:
        StorageError: If the store cannot be read
    """
    stored = store.load_snapshot()
    if stored is None:
        return create_empty_snapshot()
    snapshot = create_empty_snapshot()
    snapshot.update(_strip_internal_fields(stored))
    return snapshot


def sync_snapshot(
    store: SnapshotStore,
    incoming: Dict[str, Any],
    now: Optional[datetime] = None,
) -> Tuple[Dict[str, Any], Dict[str, int]]:
    """Read the stored snapshot, merge ``incoming`` into it, and save the result.

    Nothing is written if loading or merging fails.

    Raises:
        StorageError: If the store cannot be read or written
    """
    with _sync_lock:
        stored = store.load_snapshot()
        merged, stats = merge_snapshots(stored, incoming, now=now)
        store.save_snapshot(merged)
    return merged, stats


def _get_store() -> SnapshotStore:
    return current_app.config[STORE_CONFIG_KEY]


##############################################################################
# Sync API Routes
##############################################################################


@sync_bp.route("/api/sync", methods=["GET"])
@sync_bp.route(LEGACY_SYNC_PATH, methods=["GET"])
def get_snapshot() -> ResponseReturnValue:
    """Send the latest shared snapshot to the client."""
    try:
        return jsonify(load_current_snapshot(_get_store()))
    except Exception as e:
        logger.error(f"Error loading sync snapshot: {str(e)}")
        return jsonify({"error": "Internal server error", "message": str(e)}), 500


@sync_bp.route("/api/sync", methods=["POST"])
@sync_bp.route(LEGACY_SYNC_PATH, methods=["POST"])
def post_snapshot() -> ResponseReturnValue:
    """Merge a client snapshot into the shared snapshot.

    Request body: any subset of the snapshot fields
    {
        "questionSets": {...},
        "playerProfiles": {...},
        "dailyRevisionScores": {...},
        "practiceHistory": {...},
        "revisionProgress": {...},
        "reportedQuestions": [...]
    }

    Returns:
    {
        "success": true,
        "message": "Data synced successfully",
        "stats": {"players": 3, "sets": 12}
    }
    """
    # Clients may send text/plain to skip the CORS preflight
    incoming = request.get_json(force=True, silent=True)
    if incoming is None:
        return jsonify({"error": "Invalid JSON body"}), 400

    try:
        if current_app.config.get(STRICT_VALIDATION_CONFIG_KEY, True):
            incoming = validate_incoming_snapshot(incoming)
        elif not isinstance(incoming, dict):
            raise SnapshotValidationError("Sync payload must be a JSON object")
    except SnapshotValidationError as e:
        logger.warning(f"Rejected sync payload: {str(e)}")
        return jsonify({"error": "Invalid sync payload", "message": str(e)}), 400

    logger.info(
        f"Received sync data: players={len(incoming.get('playerProfiles') or {})}, "
        f"sets={len(incoming.get('questionSets') or {})}"
    )

    try:
        _, stats = sync_snapshot(_get_store(), incoming)
    except StorageError as e:
        logger.error(f"Storage error during sync: {str(e)}")
        return jsonify({"error": "Internal server error", "message": str(e)}), 500
    except Exception as e:
        logger.error(f"Sync error: {str(e)}")
        return jsonify({"error": "Internal server error", "message": str(e)}), 500

    logger.info(f"Saved sync data: players={stats['players']}, sets={stats['sets']}")

    return jsonify(
        {
            "success": True,
            "message": "Data synced successfully",
            "stats": stats,
        }
    )
