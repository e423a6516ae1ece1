from pydantic import BaseModel, Field
from typing import Any, Dict, Optional

# Request statuses
STATUS_PENDING = "pending"
STATUS_SENT = "sent"
STATUS_FAILED = "failed"


class NotificationRequest(BaseModel):
    # Pydantic field name | Firestore field name (via alias)
    id: str = Field(..., description="Firestore document ID of the request")
    status: Optional[str] = Field(None, description="pending, sent or failed")
    fcm_token: Optional[str] = Field(
        None, alias="fcmToken", description="Device token to deliver to"
    )
    title: Optional[str] = None
    body: Optional[str] = None
    data: Optional[Dict[str, Any]] = Field(
        None, description="Data payload; values are sent as strings"
    )
    user_id: Optional[str] = Field(
        None, alias="userId", description="Recipient owning the token, if known"
    )

    class Config:
        populate_by_name = True
        extra = "ignore"

    @property
    def notification_type(self) -> str:
        return str((self.data or {}).get("type") or "general")

    def missing_required_fields(self) -> bool:
        return not (self.fcm_token and self.title and self.body)


class NotificationRequestDispatchResult(BaseModel):
    request_id: str = Field(..., alias="requestId")
    # None when the request was not pending and nothing was done
    status: Optional[str] = None

    class Config:
        populate_by_name = True
