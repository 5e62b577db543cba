"""Tenant defaults, overrides and the administrator document."""

import pytest

from auditdna.domain.exceptions import DomainValidationError
from auditdna.domain.models.tenant import (
    TENANT_ADMIN_PERMISSIONS,
    OidcConfig,
    Tenant,
    TenantPlan,
    build_tenant,
    build_tenant_admin,
)


def _tenant(**overrides) -> Tenant:
    kwargs = dict(tenant_id="acme_1a2b3c4d", company_name="Acme Corp", base_domain="auditdna.com")
    kwargs.update(overrides)
    return build_tenant(**kwargs)


def test_defaults():
    tenant = _tenant()
    assert tenant.domain == "acme_1a2b3c4d.auditdna.com"
    assert tenant.plan == TenantPlan.ENTERPRISE
    assert tenant.branding.company_name == "Acme Corp"
    assert tenant.branding.primary_color == "#3B82F6"
    assert tenant.features.sso is False
    assert tenant.limits.max_users == 100
    assert tenant.settings.notifications.push_notifications is True
    assert tenant.billing.price_per_user == 99
    assert tenant.active is True
    assert tenant.suspended is False
    assert tenant.is_usable


def test_overrides_accept_camel_case_keys():
    tenant = _tenant(plan="starter", branding={"primaryColor": "#000000"}, limits={"maxUsers": 5})
    assert tenant.plan == TenantPlan.STARTER
    assert tenant.billing.plan == "starter"
    assert tenant.branding.primary_color == "#000000"
    assert tenant.limits.max_users == 5


def test_nested_notification_override_keeps_other_prefs():
    tenant = _tenant(settings={"timezone": "Europe/Paris", "notifications": {"sms": True}})
    assert tenant.settings.timezone == "Europe/Paris"
    assert tenant.settings.notifications.sms is True
    assert tenant.settings.notifications.email is True


def test_unknown_override_key_rejected():
    with pytest.raises(DomainValidationError, match="Unknown FeatureFlags field 'teleport'"):
        _tenant(features={"teleport": True})


def test_unknown_plan_rejected():
    with pytest.raises(DomainValidationError):
        _tenant(plan="platinum")


def test_suspended_tenant_is_not_usable():
    assert not _tenant().touched(suspended=True).is_usable
    assert not _tenant().touched(active=False).is_usable


def test_public_dict_masks_oidc_secret():
    tenant = _tenant().touched(oidc=OidcConfig(enabled=True, client_id="cid", client_secret="gAAAA-cipher"))
    public = tenant.to_dict()
    assert public["integrations"]["sso"]["oidc"]["clientSecret"] == "***"
    stored = tenant.to_dict(include_secrets=True)
    assert stored["integrations"]["sso"]["oidc"]["clientSecret"] == "gAAAA-cipher"
    assert Tenant.from_dict(stored) == tenant


def test_admin_document():
    admin = build_tenant_admin(
        tenant_id="acme_1a2b3c4d",
        email="  Admin@Acme.COM ",
        password_hash="$2b$12$hash",
        first_name="Ada",
    )
    doc = admin.to_document()
    assert doc["email"] == "admin@acme.com"
    assert doc["role"] == "tenant_admin"
    assert doc["permissions"] == sorted(TENANT_ADMIN_PERMISSIONS)
    assert doc["user_id"].startswith("admin_")
    assert doc["password_hash"] == "$2b$12$hash"
    assert doc["created_at"] == doc["updated_at"]
