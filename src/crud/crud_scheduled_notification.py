from firebase_admin import firestore
from pydantic import ValidationError
from google.cloud.firestore_v1 import FieldFilter, SERVER_TIMESTAMP
from typing import List
import logging

from src.models.scheduled_notification import (
    ScheduledNotification,
    STATUS_FAILED,
    STATUS_PENDING,
    STATUS_SENT,
    STATUS_SKIPPED,
)

logger = logging.getLogger(__name__)

SCHEDULED_NOTIFICATIONS_COLLECTION = "scheduled_push_notifications"

# Page size of a single poll
PENDING_QUERY_LIMIT = 100


async def get_pending_scheduled_notifications(
    db: firestore.AsyncClient, limit: int = PENDING_QUERY_LIMIT
) -> List[ScheduledNotification]:
    """
    Returns pending entries in query order.
    Only status is filtered here; the due window is checked by the caller so
    that no composite (status, scheduledFor) index is needed.
    """
    query = (
        db.collection(SCHEDULED_NOTIFICATIONS_COLLECTION)
        .where(filter=FieldFilter("status", "==", STATUS_PENDING))
        .limit(limit)
    )
    entries = []
    async for doc_snapshot in query.stream():
        entry_data = doc_snapshot.to_dict() or {}
        entry_data["id"] = doc_snapshot.id
        try:
            entries.append(ScheduledNotification(**entry_data))
        except ValidationError as e:
            # Left pending; it can never become due
            logger.warning(
                f"Skipping malformed scheduled notification {doc_snapshot.id}: {e}"
            )
    return entries


def _entry_ref(db: firestore.AsyncClient, entry_id: str):
    return db.collection(SCHEDULED_NOTIFICATIONS_COLLECTION).document(entry_id)


# The helpers below only stage writes on a batch; the caller commits it.


def stage_entry_sent(
    batch, db: firestore.AsyncClient, entry_id: str, success_count: int, failure_count: int
) -> None:
    batch.update(
        _entry_ref(db, entry_id),
        {
            "status": STATUS_SENT,
            "sentAt": SERVER_TIMESTAMP,
            "successCount": success_count,
            "failureCount": failure_count,
        },
    )


def stage_entry_skipped(
    batch, db: firestore.AsyncClient, entry_id: str, reason: str
) -> None:
    batch.update(
        _entry_ref(db, entry_id),
        {
            "status": STATUS_SKIPPED,
            "reason": reason,
            "processedAt": SERVER_TIMESTAMP,
        },
    )


def stage_entry_failed(
    batch, db: firestore.AsyncClient, entry_id: str, error: str
) -> None:
    batch.update(
        _entry_ref(db, entry_id),
        {
            "status": STATUS_FAILED,
            "error": error,
            "failedAt": SERVER_TIMESTAMP,
        },
    )
