from dataclasses import dataclass

from fastapi import HTTPException, Request, status
from firebase_admin import firestore

from src.services.push_transport import PushTransport


@dataclass
class DispatchContext:
    """
    Handles shared by every dispatch flow: the Firestore client backing the
    request, schedule, recipient and sent-ledger collections, and the push
    transport. Built once in the application lifespan and passed explicitly.
    """

    db: firestore.AsyncClient
    transport: PushTransport


def get_dispatch_context(request: Request) -> DispatchContext:
    ctx = getattr(request.app.state, "dispatch_context", None)
    if ctx is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Firebase service not initialized.",
        )
    return ctx
