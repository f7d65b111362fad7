"""Permission registry tests."""

import pytest

from app.core.permissions import (
    PERMISSION_REGISTRY,
    PermissionKey,
    get_all_permissions,
    is_valid_permission,
    normalize_hidden_features,
)
from app.db.models import ClientContact
from app.schemas.portal import PermissionSet


def test_registry_covers_every_key_and_contact_flag():
    assert set(PERMISSION_REGISTRY) == set(PermissionKey)
    for definition in get_all_permissions():
        assert hasattr(ClientContact, definition.contact_attr)
        assert definition.key.value in PermissionSet.model_fields


def test_is_valid_permission():
    assert is_valid_permission("billing")
    assert is_valid_permission("site_health")
    assert not is_valid_permission("invoices")


def test_normalize_hidden_features_dedupes_in_order():
    assert normalize_hidden_features(["support", "billing", "support"]) == ["support", "billing"]
    assert normalize_hidden_features(None) == []


def test_normalize_hidden_features_rejects_unknown():
    with pytest.raises(ValueError):
        normalize_hidden_features(["billing", "crm"])


def test_permission_set_defaults_to_deny():
    permissions = PermissionSet()
    assert not any(permissions.allows(key.value) for key in PermissionKey)
    assert permissions.allows("unknown") is False
