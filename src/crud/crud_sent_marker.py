from firebase_admin import firestore
from google.api_core.exceptions import AlreadyExists
from google.cloud.firestore_v1 import SERVER_TIMESTAMP
from datetime import datetime

from src.models.sent_marker import SentMarker

SENT_MARKERS_COLLECTION = "prayer_notifications_sent"


def sent_marker_id(prayer_name: str, day_key: str) -> str:
    return f"{prayer_name}_{day_key}"


async def sent_marker_exists(
    db: firestore.AsyncClient, prayer_name: str, day_key: str
) -> bool:
    doc_ref = db.collection(SENT_MARKERS_COLLECTION).document(
        sent_marker_id(prayer_name, day_key)
    )
    doc_snapshot = await doc_ref.get()
    return doc_snapshot.exists


async def create_sent_marker(
    db: firestore.AsyncClient, prayer_name: str, day_key: str, day_start: datetime
) -> bool:
    """
    Creates the marker for (prayer_name, day_key) if it does not exist yet.
    Returns False when another run created it first.
    """
    doc_ref = db.collection(SENT_MARKERS_COLLECTION).document(
        sent_marker_id(prayer_name, day_key)
    )
    marker_data = SentMarker(prayer_name=prayer_name, date=day_start).model_dump(
        by_alias=True
    )
    marker_data["sentAt"] = SERVER_TIMESTAMP
    try:
        await doc_ref.create(marker_data)
    except AlreadyExists:
        return False
    return True
