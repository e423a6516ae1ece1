from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from typing import Optional
import os


class Settings(BaseSettings):
    GOOGLE_APPLICATION_CREDENTIALS: Optional[str] = Field(
        None,
        description="Path to the Firebase service account key JSON file. "
        "Application Default Credentials are used when unset.",
    )

    # Scheduled push notifications
    SCHEDULER_ENABLED: bool = Field(
        True, description="Run the scheduled notification poller in-process"
    )
    SCHEDULER_INTERVAL_SECONDS: int = Field(
        60, description="Seconds between two scheduled notification runs"
    )
    SCHEDULE_TIMEZONE: str = Field(
        "UTC", description="Timezone used to compute the 'already sent today' day key"
    )

    LOG_LEVEL: str = Field("INFO", description="Root logging level")

    # The .env file is expected in the project root.
    model_config = SettingsConfigDict(
        env_file=os.path.join(
            os.path.dirname(
                os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
            ),
            ".env",
        ),
        extra="ignore",
    )


settings = Settings()
