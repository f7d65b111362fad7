"""Portal billing endpoints (Stripe)."""

from fastapi import APIRouter, Depends

from app.core.config import settings
from app.core.deps import get_current_identity, get_request_context, require_csrf_header
from app.core.request_context import RequestContext
from app.schemas.common import ActionResult
from app.schemas.integrations import BillingOverview, PortalSessionRequest
from app.services import client_context_service, portal_service

router = APIRouter(
    prefix="/portal/billing",
    tags=["billing"],
    dependencies=[Depends(get_current_identity)],
)


@router.get("", response_model=ActionResult[BillingOverview])
def get_billing(ctx: RequestContext = Depends(get_request_context)):
    context = client_context_service.resolve_client_context(ctx)
    return portal_service.get_billing(context)


@router.post(
    "/portal-session",
    response_model=ActionResult[str],
    dependencies=[Depends(require_csrf_header)],
)
def create_portal_session(
    body: PortalSessionRequest | None = None,
    ctx: RequestContext = Depends(get_request_context),
):
    """Stripe Customer Portal link for updating payment methods."""
    path = (body or PortalSessionRequest()).return_path
    if not path.startswith("/"):
        path = f"/{path}"
    context = client_context_service.resolve_client_context(ctx)
    return portal_service.create_billing_portal_session(
        context, return_url=f"{settings.FRONTEND_URL.rstrip('/')}{path}"
    )
