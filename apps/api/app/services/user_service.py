"""User service: provider-backed user listing and role assignment."""

import logging

from app.db.enums import Role
from app.schemas.auth import Identity, ProviderUserRead
from app.services import auth_service
from app.services.identity_provider import IdentityProvider, ProviderUserNotFoundError

logger = logging.getLogger(__name__)


def list_users(provider: IdentityProvider, limit: int = 100, offset: int = 0) -> list[ProviderUserRead]:
    """Provider users with normalized roles, most recent sign-in first."""
    users = provider.list_users(limit=limit, offset=offset)
    result = []
    for user in users:
        identity = auth_service.build_identity(user)
        result.append(
            ProviderUserRead(
                id=identity.id,
                email=identity.email,
                name=identity.name,
                role=identity.role,
                image_url=identity.image_url,
                last_sign_in_at=user.last_sign_in_at,
            )
        )
    return result


def set_role(provider: IdentityProvider, actor: Identity, user_id: str, role: Role) -> None:
    """
    Store a role on the provider. Clients carry no role key at all.

    Raises:
        ValueError: Changing your own role, or unknown user
    """
    if user_id == actor.id:
        raise ValueError("You cannot change your own role")
    try:
        provider.update_role(user_id, None if role == Role.CLIENT else role.value)
    except ProviderUserNotFoundError:
        raise ValueError("User not found")
    logger.info(
        "Role changed",
        extra={"user_id": actor.id, "target_id": user_id, "role": role.value},
    )
