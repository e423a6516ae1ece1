from fastapi import FastAPI
from contextlib import asynccontextmanager
import firebase_admin
from firebase_admin import credentials, firestore
import logging
import os
from zoneinfo import ZoneInfo

from src.api.v1.endpoints import notification_requests
from src.api.v1.endpoints import prayer_notifications
from src.api.v1.endpoints import scheduled_notifications
from src.core.config import settings
from src.core.context import DispatchContext
from src.services.push_transport import FCMPushTransport
from src.services.scheduler import ScheduledNotificationPoller

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def initialize_firebase() -> bool:
    cred_path = settings.GOOGLE_APPLICATION_CREDENTIALS
    try:
        if cred_path:
            # Explicitly set the environment variable for other Google Cloud libraries
            os.environ["GOOGLE_APPLICATION_CREDENTIALS"] = cred_path
            firebase_admin.initialize_app(credentials.Certificate(cred_path))
            logger.info(
                f"Firebase Admin SDK initialized using credentials from {cred_path}."
            )
        else:
            firebase_admin.initialize_app()
            logger.info(
                "Firebase Admin SDK initialized with Application Default Credentials."
            )
        return True
    except FileNotFoundError:
        logger.error(
            f"Firebase credentials file not found at path: {cred_path}. Check your .env file and path."
        )
    except Exception as e:
        logger.error(f"Failed to initialize Firebase Admin SDK: {e}", exc_info=True)
    return False


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.schedule_timezone = ZoneInfo(settings.SCHEDULE_TIMEZONE)
    poller = None

    if firebase_admin._apps or initialize_firebase():
        app.state.dispatch_context = DispatchContext(
            db=firestore.AsyncClient(), transport=FCMPushTransport()
        )
        if settings.SCHEDULER_ENABLED:
            poller = ScheduledNotificationPoller(
                app.state.dispatch_context,
                interval_seconds=settings.SCHEDULER_INTERVAL_SECONDS,
                tz=app.state.schedule_timezone,
            )
            poller.start()
    else:
        logger.warning(
            "Firebase Admin SDK not initialized. Notification endpoints will return 503."
        )

    yield

    if poller is not None:
        await poller.stop()


app = FastAPI(
    title="Prayer Notifications API",
    description="Push notification dispatch for queued, broadcast and scheduled prayer time notifications.",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(
    notification_requests.router,
    prefix="/api/v1/notification-requests",
    tags=["notification-requests"],
)
app.include_router(
    prayer_notifications.router,
    prefix="/api/v1/prayer-notifications",
    tags=["prayer-notifications"],
)
app.include_router(
    scheduled_notifications.router,
    prefix="/api/v1/scheduled-notifications",
    tags=["scheduled-notifications"],
)


@app.get("/")
async def read_root():
    return {"message": "Welcome to Prayer Notifications API"}


# To run this application (from the project root directory):
# uvicorn src.main:app --reload
