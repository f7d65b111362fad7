"""Authentication router: who am I, and who is really behind the session."""

from fastapi import APIRouter, Depends

from app.core.deps import get_request_context
from app.core.request_context import RequestContext
from app.schemas.auth import MeResponse
from app.services import auth_service, impersonation_service

router = APIRouter()


def build_me_response(ctx: RequestContext) -> MeResponse:
    resolved = impersonation_service.get_effective_identity(ctx)
    if resolved is None:
        raise auth_service.AuthenticationError()
    impersonator = (
        resolved.impersonator
        if isinstance(resolved, impersonation_service.Impersonating)
        else None
    )
    return MeResponse(user=resolved.effective, impersonating=impersonator)


@router.get("/me", response_model=MeResponse)
def get_me(ctx: RequestContext = Depends(get_request_context)):
    """
    Effective identity for the session.

    While an admin impersonates, `user` is the target and `impersonating`
    carries the admin for the banner.
    """
    return build_me_response(ctx)
