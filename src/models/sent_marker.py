from pydantic import BaseModel, Field
from datetime import datetime

# Every marker written by this service comes from the scheduled poller
SENT_BY_SCHEDULER = "cloud_scheduler"


class SentMarker(BaseModel):
    # Document ID is f'{prayer_name}_{YYYY-MM-DD}'
    prayer_name: str = Field(..., alias="prayerName")
    date: datetime = Field(..., description="Midnight of the day the marker covers")
    sent_by_device: str = Field(SENT_BY_SCHEDULER, alias="sentByDevice")

    class Config:
        populate_by_name = True
