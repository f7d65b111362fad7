"""Rate limiting configuration for the portal API."""

import os

from slowapi import Limiter
from slowapi.util import get_remote_address

from app.core.config import settings

IS_TESTING = os.getenv("TESTING", "").lower() in ("1", "true", "yes")
DEFAULT_LIMITS = (
    []
    if IS_TESTING or settings.RATE_LIMIT_API <= 0
    else [f"{settings.RATE_LIMIT_API}/minute"]
)

# Memory storage is per-process; point RATE_LIMIT_STORAGE_URI at a shared
# backend when running several workers.
limiter = Limiter(
    key_func=get_remote_address,
    storage_uri="memory://" if IS_TESTING else settings.RATE_LIMIT_STORAGE_URI,
    default_limits=DEFAULT_LIMITS,
    enabled=not IS_TESTING,
)

PUBLIC_SUBMIT_LIMIT = f"{settings.RATE_LIMIT_PUBLIC_SUBMIT}/minute"
IMPERSONATE_LIMIT = f"{settings.RATE_LIMIT_IMPERSONATE}/minute"
