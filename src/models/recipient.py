from pydantic import BaseModel, Field, field_validator
from typing import Any, Optional


class Recipient(BaseModel):
    # The document ID in the employees collection
    id: str
    fcm_token: Optional[str] = Field(None, alias="fcmToken")
    email: Optional[str] = None

    class Config:
        populate_by_name = True
        extra = "ignore"

    @field_validator("fcm_token", mode="before")
    @classmethod
    def _token_must_be_text(cls, value: Any) -> Optional[str]:
        # Anything but a string cannot be sent to; treat it as no token
        return value if isinstance(value, str) else None

    @field_validator("email", mode="before")
    @classmethod
    def _email_as_text(cls, value: Any) -> Optional[str]:
        if value is None or isinstance(value, str):
            return value
        return str(value)

    @property
    def has_token(self) -> bool:
        return isinstance(self.fcm_token, str) and len(self.fcm_token.strip()) > 0

    @property
    def display_email(self) -> str:
        return self.email or "unknown"
