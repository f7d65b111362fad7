"""Authentication-related Pydantic schemas."""

from pydantic import BaseModel, ConfigDict, computed_field

from app.db.enums import Role


class Identity(BaseModel):
    """
    Normalized, provider-authenticated user.

    The derived flags are computed from role so they can never disagree
    with it.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    email: str
    name: str
    role: Role
    image_url: str | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_team_member(self) -> bool:
        return self.role == Role.TEAM_MEMBER

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_staff(self) -> bool:
        return self.is_admin or self.is_team_member


class ImpersonatorInfo(BaseModel):
    """The real admin behind an impersonated session (for banners)."""

    id: str
    email: str
    name: str
    role: Role


class MeResponse(BaseModel):
    """Response schema for GET /auth/me endpoint."""

    user: Identity
    impersonating: ImpersonatorInfo | None = None


class ProviderUserRead(BaseModel):
    """User row for the admin user list."""

    id: str
    email: str
    name: str
    role: Role
    image_url: str | None = None
    last_sign_in_at: int | None = None


class RoleUpdate(BaseModel):
    role: Role


class ImpersonationStart(BaseModel):
    user_id: str
