from pydantic import BaseModel, Field
from typing import List, Optional

# Outcome error kinds
ERROR_INVALID_TOKEN = "invalid_token"
ERROR_OTHER = "other"


class SendOutcome(BaseModel):
    recipient_id: Optional[str] = None
    delivered: bool
    message_id: Optional[str] = None
    error_kind: Optional[str] = None
    error: Optional[str] = None


class FanOutResult(BaseModel):
    success_count: int = 0
    failure_count: int = 0
    outcomes: List[SendOutcome] = Field(default_factory=list)


class BroadcastSummary(BaseModel):
    success: bool = True
    message: str
    recipients: int = Field(..., description="Number of sends attempted")
    success_count: int = Field(..., alias="successCount")
    failure_count: int = Field(..., alias="failureCount")
    total_employees: int = Field(..., alias="totalEmployees")
    users_with_tokens: int = Field(..., alias="usersWithTokens")
    users_without_tokens: int = Field(..., alias="usersWithoutTokens")

    class Config:
        populate_by_name = True


class PrayerBroadcastRequest(BaseModel):
    prayer_name: Optional[str] = Field(None, alias="prayerName")
    message: Optional[str] = None

    class Config:
        populate_by_name = True
        extra = "ignore"
