from fastapi import APIRouter, Depends, HTTPException, status
import logging

from src.core.context import DispatchContext, get_dispatch_context
from src.crud import crud_notification_request
from src.models.notification_request import NotificationRequestDispatchResult
from src.services.request_dispatcher import handle_request_created

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post(
    "/{request_id}/dispatch",
    response_model=NotificationRequestDispatchResult,
    response_model_by_alias=True,
)
async def dispatch_created_request(
    request_id: str, ctx: DispatchContext = Depends(get_dispatch_context)
):
    """
    Called when a notification_requests document is created.
    Requests that are no longer pending are acknowledged without any effect,
    so redelivered events are harmless.
    """
    try:
        fields = await crud_notification_request.get_notification_request_fields(
            ctx.db, request_id
        )
    except Exception as e:
        logger.error(f"Error loading notification request {request_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not load notification request",
        )
    if fields is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Notification request not found"
        )

    result_status = await handle_request_created(ctx, request_id, fields)
    return NotificationRequestDispatchResult(request_id=request_id, status=result_status)
