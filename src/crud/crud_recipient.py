from firebase_admin import firestore
from pydantic import ValidationError
from google.cloud.firestore_v1 import DELETE_FIELD
from typing import List
import logging

from src.models.recipient import Recipient

logger = logging.getLogger(__name__)

RECIPIENTS_COLLECTION = "employees"


async def list_recipients(db: firestore.AsyncClient) -> List[Recipient]:
    """
    Reads the whole recipient directory.
    Recipients without a token are included; callers partition on has_token.
    Documents that do not parse are logged and left out.
    """
    recipients = []
    async for doc_snapshot in db.collection(RECIPIENTS_COLLECTION).stream():
        recipient_data = doc_snapshot.to_dict() or {}
        recipient_data["id"] = doc_snapshot.id
        try:
            recipients.append(Recipient(**recipient_data))
        except ValidationError as e:
            logger.warning(f"Skipping malformed employee {doc_snapshot.id}: {e}")
    return recipients


async def list_recipients_with_tokens(db: firestore.AsyncClient) -> List[Recipient]:
    return [r for r in await list_recipients(db) if r.has_token]


async def clear_recipient_token(db: firestore.AsyncClient, recipient_id: str) -> None:
    """
    Deletes the fcmToken field, keeping the rest of the recipient document.
    Deleting a field that is already absent is a no-op in Firestore.
    """
    doc_ref = db.collection(RECIPIENTS_COLLECTION).document(recipient_id)
    await doc_ref.update({"fcmToken": DELETE_FIELD})
