"""Public form rendering and submission endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Request

from app.core.deps import get_request_context, require_csrf_header
from app.core.rate_limit import PUBLIC_SUBMIT_LIMIT, limiter
from app.core.request_context import RequestContext
from app.schemas.common import ActionResult
from app.schemas.forms import FormPublicRead, FormSubmitRequest, FormSubmitResponse
from app.services import client_context_service, form_service, form_submission_service, impersonation_service
from app.services.helpscout_service import HelpScoutClient, get_helpscout_client

router = APIRouter(prefix="/forms/public", tags=["forms-public"])


@router.get("/{slug}", response_model=FormPublicRead)
def get_public_form(slug: str, ctx: RequestContext = Depends(get_request_context)):
    """Active form by slug, with prefill values when the visitor is signed in."""
    form = form_service.get_active_form_by_slug(ctx.db, slug)
    if form is None:
        raise HTTPException(status_code=404, detail="Form not found")

    prefill: dict[str, str] = {}
    resolved = impersonation_service.get_effective_identity(ctx)
    if resolved is not None:
        context = client_context_service.resolve_client_context(ctx)
        prefill = form_service.build_prefill(form_service.parse_fields(form), resolved.effective, context)
    return form_service.to_public(form, prefill)


@router.post(
    "/{slug}/submit",
    response_model=ActionResult[FormSubmitResponse],
    dependencies=[Depends(require_csrf_header)],
)
@limiter.limit(PUBLIC_SUBMIT_LIMIT)
async def submit_public_form(
    request: Request,
    slug: str,
    body: FormSubmitRequest,
    ctx: RequestContext = Depends(get_request_context),
    helpscout: HelpScoutClient | None = Depends(get_helpscout_client),
):
    form = form_service.get_active_form_by_slug(ctx.db, slug)
    if form is None:
        raise HTTPException(status_code=404, detail="Form not found")

    resolved = impersonation_service.get_effective_identity(ctx)
    return await form_submission_service.submit_form(
        ctx.db,
        form.id,
        body.data,
        identity=resolved.effective if resolved else None,
        helpscout=helpscout,
    )
