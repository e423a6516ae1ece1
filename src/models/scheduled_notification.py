from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

STATUS_PENDING = "pending"
STATUS_SENT = "sent"
STATUS_SKIPPED = "skipped"
STATUS_FAILED = "failed"


class ScheduledNotification(BaseModel):
    id: str = Field(..., description="Firestore document ID of the schedule entry")
    status: Optional[str] = None
    prayer_name: Optional[str] = Field(None, alias="prayerName")
    message: Optional[str] = Field(
        None, description="Notification body; a default is derived from the name"
    )
    # Firestore timestamps arrive as timezone-aware datetimes
    scheduled_for: Optional[datetime] = Field(None, alias="scheduledFor")

    class Config:
        populate_by_name = True
        extra = "ignore"

    @property
    def body(self) -> str:
        return self.message or f"{self.prayer_name} time — remember Allah."


class ScheduledRunSummary(BaseModel):
    pending_count: int = Field(0, alias="pendingCount")
    due_count: int = Field(0, alias="dueCount")
    processed_count: int = Field(0, alias="processedCount")
    success_count: int = Field(0, alias="successCount")
    failure_count: int = Field(0, alias="failureCount")

    class Config:
        populate_by_name = True
