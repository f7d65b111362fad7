"""SQLAlchemy ORM models."""

from app.db.models.clients import Client, ClientContact, ClientService, SiteCheck
from app.db.models.forms import Form, FormSubmission

__all__ = [
    "Client",
    "ClientContact",
    "ClientService",
    "Form",
    "FormSubmission",
    "SiteCheck",
]
