from firebase_admin import firestore
from google.cloud.firestore_v1 import SERVER_TIMESTAMP
from typing import Any, Dict, Optional

from src.models.notification_request import (
    STATUS_FAILED,
    STATUS_SENT,
)

NOTIFICATION_REQUESTS_COLLECTION = "notification_requests"


async def get_notification_request_fields(
    db: firestore.AsyncClient, request_id: str
) -> Optional[Dict[str, Any]]:
    """
    Returns the stored fields of a request, unvalidated, or None if missing.
    Parsing is left to the dispatcher so a malformed request can still be
    marked failed.
    """
    doc_snapshot = (
        await db.collection(NOTIFICATION_REQUESTS_COLLECTION).document(request_id).get()
    )
    if not doc_snapshot.exists:
        return None
    return doc_snapshot.to_dict() or {}


async def mark_request_sent(
    db: firestore.AsyncClient, request_id: str, message_id: str
) -> None:
    doc_ref = db.collection(NOTIFICATION_REQUESTS_COLLECTION).document(request_id)
    await doc_ref.update(
        {
            "status": STATUS_SENT,
            "sentAt": SERVER_TIMESTAMP,
            "messageId": message_id,
        }
    )


async def mark_request_failed(
    db: firestore.AsyncClient,
    request_id: str,
    error: str,
    error_code: Optional[str] = None,
) -> None:
    update_data: Dict[str, Any] = {
        "status": STATUS_FAILED,
        "error": error,
        "failedAt": SERVER_TIMESTAMP,
    }
    # Validation failures carry no transport error code
    if error_code is not None:
        update_data["errorCode"] = error_code

    doc_ref = db.collection(NOTIFICATION_REQUESTS_COLLECTION).document(request_id)
    await doc_ref.update(update_data)
