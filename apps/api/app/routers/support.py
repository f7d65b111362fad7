"""Portal support ticket endpoints (HelpScout)."""

from fastapi import APIRouter, Depends

from app.core.deps import get_current_identity, get_request_context
from app.core.request_context import RequestContext
from app.schemas.common import ActionResult
from app.schemas.integrations import TicketDetail, TicketSummary
from app.services import client_context_service, portal_service
from app.services.helpscout_service import HelpScoutClient, get_helpscout_client

router = APIRouter(
    prefix="/portal/support",
    tags=["support"],
    dependencies=[Depends(get_current_identity)],
)


@router.get("/tickets", response_model=ActionResult[list[TicketSummary]])
async def list_tickets(
    ctx: RequestContext = Depends(get_request_context),
    helpscout: HelpScoutClient | None = Depends(get_helpscout_client),
):
    context = client_context_service.resolve_client_context(ctx)
    return await portal_service.get_tickets(context, helpscout)


@router.get("/tickets/{conversation_id}", response_model=ActionResult[TicketDetail])
async def get_ticket(
    conversation_id: int,
    ctx: RequestContext = Depends(get_request_context),
    helpscout: HelpScoutClient | None = Depends(get_helpscout_client),
):
    context = client_context_service.resolve_client_context(ctx)
    return await portal_service.get_ticket(context, helpscout, conversation_id)
