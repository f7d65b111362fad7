"""Client-related enums."""

from enum import Enum


class ServiceType(str, Enum):
    """Services an agency can provide to a client."""

    HOSTING = "HOSTING"
    MAINTENANCE = "MAINTENANCE"
    SEO = "SEO"
    GOOGLE_ADS = "GOOGLE_ADS"
    SOCIAL_MEDIA = "SOCIAL_MEDIA"
    WEB_DESIGN = "WEB_DESIGN"
    EMAIL_MARKETING = "EMAIL_MARKETING"
    CONTENT_WRITING = "CONTENT_WRITING"
    BRANDING = "BRANDING"
    OTHER = "OTHER"
