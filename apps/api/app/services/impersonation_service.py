"""Impersonation overlay.

An admin can view the portal as another user. The overlay produces a tagged
result so callers handle both states explicitly:

    Direct(identity)                  effective == real
    Impersonating(target, real)       effective == target, admin retained

Any problem with the impersonation token or the target user falls back to
Direct(real). It never fails the request.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from app.core.request_context import RequestContext
from app.core.security import create_impersonation_token, read_impersonation_target
from app.core.structured_logging import build_log_context
from app.schemas.auth import Identity, ImpersonatorInfo
from app.services import auth_service
from app.services.identity_provider import IdentityProviderError, ProviderUserNotFoundError

logger = logging.getLogger(__name__)

EFFECTIVE_IDENTITY_CACHE_KEY = "effective_identity"


@dataclass(frozen=True)
class Direct:
    identity: Identity

    @property
    def effective(self) -> Identity:
        return self.identity

    @property
    def real(self) -> Identity:
        return self.identity


@dataclass(frozen=True)
class Impersonating:
    target: Identity
    real_identity: Identity

    @property
    def effective(self) -> Identity:
        return self.target

    @property
    def real(self) -> Identity:
        return self.real_identity

    @property
    def impersonator(self) -> ImpersonatorInfo:
        admin = self.real_identity
        return ImpersonatorInfo(id=admin.id, email=admin.email, name=admin.name, role=admin.role)


EffectiveIdentity = Direct | Impersonating


def _resolve_effective(ctx: RequestContext) -> EffectiveIdentity | None:
    real = auth_service.get_auth_user(ctx)
    if real is None:
        return None
    if not real.is_admin:
        return Direct(real)

    target_id = read_impersonation_target(ctx.impersonation_token, real.id)
    if not target_id or target_id == real.id:
        return Direct(real)

    try:
        target_user = ctx.identity_provider.get_user(target_id)
    except ProviderUserNotFoundError:
        logger.warning(
            "Impersonation target no longer exists, using real identity",
            extra=build_log_context(
                user_id=target_id, impersonator_id=real.id, request_id=ctx.request_id
            ),
        )
        return Direct(real)
    except IdentityProviderError:
        logger.warning(
            "Impersonation target lookup failed, using real identity",
            extra=build_log_context(
                user_id=target_id, impersonator_id=real.id, request_id=ctx.request_id
            ),
            exc_info=True,
        )
        return Direct(real)

    return Impersonating(target=auth_service.build_identity(target_user), real_identity=real)


def get_effective_identity(ctx: RequestContext) -> EffectiveIdentity | None:
    """Resolve the impersonation overlay once per request."""
    return ctx.memo(EFFECTIVE_IDENTITY_CACHE_KEY, lambda: _resolve_effective(ctx))


def require_auth(ctx: RequestContext) -> Identity:
    """
    Signed-in check returning the EFFECTIVE identity.

    Data-access routes use this so impersonation changes what is visible.
    """
    resolved = get_effective_identity(ctx)
    if resolved is None:
        raise auth_service.AuthenticationError()
    return resolved.effective


def start_impersonation(ctx: RequestContext, target_id: str) -> str:
    """
    Begin viewing the portal as target_id.

    Returns the signed token the caller stores in the impersonation cookie.

    Raises:
        PermissionDeniedError: Real identity is not an admin
        ValueError: Target is the admin themself or does not exist
    """
    admin = auth_service.require_admin(ctx)
    if target_id == admin.id:
        raise ValueError("Cannot impersonate yourself")
    try:
        ctx.identity_provider.get_user(target_id)
    except ProviderUserNotFoundError:
        raise ValueError("User not found")

    logger.info(
        "Impersonation started",
        extra=build_log_context(
            user_id=target_id, impersonator_id=admin.id, request_id=ctx.request_id
        ),
    )
    token = create_impersonation_token(admin.id, target_id)
    ctx.impersonation_token = token
    ctx.invalidate(EFFECTIVE_IDENTITY_CACHE_KEY, "client_context")
    return token


def stop_impersonation(ctx: RequestContext) -> None:
    """End impersonation. The caller deletes the cookie."""
    admin = auth_service.require_admin(ctx)
    logger.info(
        "Impersonation stopped",
        extra=build_log_context(impersonator_id=admin.id, request_id=ctx.request_id),
    )
    ctx.impersonation_token = None
    ctx.invalidate(EFFECTIVE_IDENTITY_CACHE_KEY, "client_context")
