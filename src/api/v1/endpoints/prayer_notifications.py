from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
import json
import logging

from src.core.context import DispatchContext, get_dispatch_context
from src.models.push import PrayerBroadcastRequest
from src.services.broadcast_service import broadcast_prayer_notification

router = APIRouter()
logger = logging.getLogger(__name__)


async def _read_json_body(request: Request) -> dict:
    raw_body = await request.body()
    if not raw_body:
        return {}
    try:
        body = json.loads(raw_body)
    except ValueError:
        logger.warning("Ignoring request body that is not valid JSON")
        return {}
    return body if isinstance(body, dict) else {}


@router.api_route("/send", methods=["GET", "POST"])
async def send_prayer_time_notification(
    request: Request, ctx: DispatchContext = Depends(get_dispatch_context)
):
    """
    Sends a prayer time notification to all employees.
    prayerName and message come from the query string or a JSON body;
    query parameters take precedence.
    """
    try:
        body = PrayerBroadcastRequest(**await _read_json_body(request))
        prayer_name = request.query_params.get("prayerName") or body.prayer_name
        prayer_message = request.query_params.get("message") or body.message

        if not prayer_name or not prayer_message:
            return JSONResponse(
                status_code=status.HTTP_400_BAD_REQUEST,
                content={"error": "Missing required parameters: prayerName and message"},
            )

        summary = await broadcast_prayer_notification(ctx, prayer_name, prayer_message)
        return JSONResponse(
            status_code=status.HTTP_200_OK, content=summary.model_dump(by_alias=True)
        )
    except Exception as e:
        logger.error(f"Error sending prayer time notification: {e}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": "Failed to send prayer time notification",
                "details": str(e),
            },
        )
