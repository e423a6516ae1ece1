from fastapi import APIRouter, Depends, Request
from datetime import timezone
import logging

from src.core.context import DispatchContext, get_dispatch_context
from src.models.scheduled_notification import ScheduledRunSummary
from src.services.scheduled_dispatcher import process_scheduled_notifications

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/run", response_model=ScheduledRunSummary, response_model_by_alias=True)
async def run_scheduled_notifications(
    request: Request, ctx: DispatchContext = Depends(get_dispatch_context)
):
    """Runs one scheduled notification poll now, e.g. from an external cron."""
    tz = getattr(request.app.state, "schedule_timezone", timezone.utc)
    logger.info("Scheduled notification run requested over HTTP")
    return await process_scheduled_notifications(ctx, tz=tz)
