"""Tenant domain model. All provisioning defaults live in the tables below and in build_tenant()."""

import uuid
from dataclasses import dataclass, field, fields, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple, Type, TypeVar

from auditdna.domain.exceptions import DomainValidationError

SCHEMA_VERSION = 1

T = TypeVar("T", bound="_WireModel")


class TenantPlan(str, Enum):
    STARTER = "starter"
    PROFESSIONAL = "professional"
    ENTERPRISE = "enterprise"
    CUSTOM = "custom"


class SSOProvider(str, Enum):
    SAML = "saml"
    OIDC = "oidc"


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


class _WireModel:
    """camelCase to_dict/from_dict for the flat settings groups."""

    def to_dict(self) -> Dict[str, Any]:
        return {_camel(f.name): getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls: Type[T], data: Optional[Mapping[str, Any]]) -> T:
        return cls().merged(data)

    def merged(self: T, overrides: Optional[Mapping[str, Any]]) -> T:
        """Return a copy with overrides applied. Accepts snake_case or camelCase keys; unknown keys rejected."""
        if not overrides:
            return self
        known = {f.name: f.name for f in fields(self)}
        known.update({_camel(f.name): f.name for f in fields(self)})
        changes: Dict[str, Any] = {}
        for key, value in overrides.items():
            if value is None:
                continue
            if key not in known:
                raise DomainValidationError(f"Unknown {type(self).__name__} field '{key}'")
            changes[known[key]] = value
        return replace(self, **changes)


@dataclass(frozen=True)
class Branding(_WireModel):
    logo_url: Optional[str] = None
    favicon_url: Optional[str] = None
    primary_color: str = "#3B82F6"
    secondary_color: str = "#10B981"
    accent_color: str = "#F59E0B"
    custom_css: str = ""
    login_background_url: Optional[str] = None
    company_name: Optional[str] = None
    tagline: Optional[str] = None


@dataclass(frozen=True)
class FeatureFlags(_WireModel):
    white_label: bool = True
    custom_domain: bool = False
    sso: bool = False
    advanced_reporting: bool = True
    api_access: bool = True
    custom_integrations: bool = False
    audit_trail: bool = True
    multi_currency: bool = False
    advanced_security: bool = True


@dataclass(frozen=True)
class UsageLimits(_WireModel):
    max_users: int = 100
    max_applications: int = 1000
    max_audits: int = 500
    storage_limit_gb: int = 10
    api_calls_per_month: int = 10000


@dataclass(frozen=True)
class NotificationPrefs(_WireModel):
    email: bool = True
    sms: bool = False
    webhook: bool = False
    push_notifications: bool = True


@dataclass(frozen=True)
class TenantSettings(_WireModel):
    timezone: str = "UTC"
    currency: str = "USD"
    language: str = "en"
    date_format: str = "MM/DD/YYYY"
    notifications: NotificationPrefs = field(default_factory=NotificationPrefs)

    def to_dict(self) -> Dict[str, Any]:
        out = super().to_dict()
        out["notifications"] = self.notifications.to_dict()
        return out

    def merged(self, overrides: Optional[Mapping[str, Any]]) -> "TenantSettings":
        if not overrides:
            return self
        overrides = dict(overrides)
        notifications = overrides.pop("notifications", None)
        updated = super().merged(overrides)
        if notifications is not None:
            if isinstance(notifications, NotificationPrefs):
                prefs = notifications
            else:
                prefs = self.notifications.merged(notifications)
            updated = replace(updated, notifications=prefs)
        return updated


@dataclass(frozen=True)
class Billing(_WireModel):
    plan: str = TenantPlan.ENTERPRISE.value
    billing_cycle: str = "monthly"
    price_per_user: float = 99
    custom_pricing: bool = False


@dataclass(frozen=True)
class SamlConfig(_WireModel):
    enabled: bool = False
    entry_point: Optional[str] = None
    issuer: Optional[str] = None
    certificate: Optional[str] = None
    identifier_format: str = "urn:oasis:names:tc:SAML:2.0:nameid-format:emailAddress"


@dataclass(frozen=True)
class OidcConfig(_WireModel):
    enabled: bool = False
    issuer: Optional[str] = None
    client_id: Optional[str] = None
    # Fernet ciphertext; never the clear secret.
    client_secret: Optional[str] = None
    authorization_url: Optional[str] = None
    token_url: Optional[str] = None
    user_info_url: Optional[str] = None
    scope: str = "openid profile email"

    def to_dict(self, include_secrets: bool = False) -> Dict[str, Any]:
        out = super().to_dict()
        if not include_secrets:
            out["clientSecret"] = "***" if self.client_secret else None
        return out


@dataclass(frozen=True)
class Tenant:
    """
    Tenant configuration. Created once by provisioning, mutated only by admin
    operations (which return a new instance), never physically deleted.
    """

    tenant_id: str
    company_name: str
    domain: str
    plan: TenantPlan
    branding: Branding
    features: FeatureFlags
    limits: UsageLimits
    settings: TenantSettings
    billing: Billing
    saml: SamlConfig = field(default_factory=SamlConfig)
    oidc: OidcConfig = field(default_factory=OidcConfig)
    active: bool = True
    suspended: bool = False
    suspension_reason: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    schema_version: int = SCHEMA_VERSION

    @property
    def is_usable(self) -> bool:
        return self.active and not self.suspended

    def touched(self, **changes: Any) -> "Tenant":
        return replace(self, updated_at=datetime.now(timezone.utc), **changes)

    def to_dict(self, include_secrets: bool = False) -> Dict[str, Any]:
        return {
            "tenantId": self.tenant_id,
            "companyName": self.company_name,
            "domain": self.domain,
            "plan": self.plan.value,
            "branding": self.branding.to_dict(),
            "features": self.features.to_dict(),
            "limits": self.limits.to_dict(),
            "settings": self.settings.to_dict(),
            "billing": self.billing.to_dict(),
            "integrations": {
                "sso": {
                    "saml": self.saml.to_dict(),
                    "oidc": self.oidc.to_dict(include_secrets=include_secrets),
                }
            },
            "active": self.active,
            "suspended": self.suspended,
            "suspensionReason": self.suspension_reason,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
            "schemaVersion": self.schema_version,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Tenant":
        """Rebuild from to_dict(include_secrets=True) output."""
        sso = (data.get("integrations") or {}).get("sso") or {}
        return cls(
            tenant_id=data["tenantId"],
            company_name=data["companyName"],
            domain=data["domain"],
            plan=TenantPlan(data.get("plan", TenantPlan.ENTERPRISE.value)),
            branding=Branding.from_dict(data.get("branding")),
            features=FeatureFlags.from_dict(data.get("features")),
            limits=UsageLimits.from_dict(data.get("limits")),
            settings=TenantSettings.from_dict(data.get("settings")),
            billing=Billing.from_dict(data.get("billing")),
            saml=SamlConfig.from_dict(sso.get("saml")),
            oidc=OidcConfig.from_dict(sso.get("oidc")),
            active=bool(data.get("active", True)),
            suspended=bool(data.get("suspended", False)),
            suspension_reason=data.get("suspensionReason"),
            created_at=datetime.fromisoformat(data["createdAt"]),
            updated_at=datetime.fromisoformat(data["updatedAt"]),
            schema_version=int(data.get("schemaVersion", SCHEMA_VERSION)),
        )


def build_tenant(
    *,
    tenant_id: str,
    company_name: str,
    base_domain: str,
    domain: Optional[str] = None,
    plan: Optional[str] = None,
    branding: Optional[Mapping[str, Any]] = None,
    features: Optional[Mapping[str, Any]] = None,
    limits: Optional[Mapping[str, Any]] = None,
    settings: Optional[Mapping[str, Any]] = None,
    billing: Optional[Mapping[str, Any]] = None,
) -> Tenant:
    """Build a new tenant from the default tables plus caller overrides."""
    try:
        tenant_plan = TenantPlan(plan) if plan else TenantPlan.ENTERPRISE
    except ValueError:
        raise DomainValidationError(
            f"Unsupported plan '{plan}'; expected one of {', '.join(p.value for p in TenantPlan)}"
        ) from None
    now = datetime.now(timezone.utc)
    return Tenant(
        tenant_id=tenant_id,
        company_name=company_name,
        domain=domain or f"{tenant_id}.{base_domain}",
        plan=tenant_plan,
        branding=Branding(company_name=company_name).merged(branding),
        features=FeatureFlags().merged(features),
        limits=UsageLimits().merged(limits),
        settings=TenantSettings().merged(settings),
        billing=Billing(plan=tenant_plan.value).merged(billing),
        active=True,
        suspended=False,
        created_at=now,
        updated_at=now,
    )


# ---------------------------------------------------------------------------
# Tenant administrator identity
# ---------------------------------------------------------------------------

TENANT_ADMIN_ROLE = "tenant_admin"

TENANT_ADMIN_PERMISSIONS: Tuple[str, ...] = (
    "manage_users",
    "manage_settings",
    "view_analytics",
    "manage_billing",
    "manage_integrations",
)


@dataclass(frozen=True)
class TenantAdmin:
    user_id: str
    tenant_id: str
    email: str
    password_hash: str
    first_name: Optional[str]
    last_name: Optional[str]
    role: str = TENANT_ADMIN_ROLE
    permissions: FrozenSet[str] = frozenset(TENANT_ADMIN_PERMISSIONS)
    active: bool = True
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_document(self) -> Dict[str, Any]:
        """Storage document for the tenant's users collection. Field names match the standard indexes."""
        now = self.created_at.isoformat()
        return {
            "user_id": self.user_id,
            "tenant_id": self.tenant_id,
            "email": self.email,
            "password_hash": self.password_hash,
            "role": self.role,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "permissions": sorted(self.permissions),
            "active": self.active,
            "created_at": now,
            "updated_at": now,
        }


def build_tenant_admin(
    *,
    tenant_id: str,
    email: str,
    password_hash: str,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
) -> TenantAdmin:
    return TenantAdmin(
        user_id=f"admin_{uuid.uuid4()}",
        tenant_id=tenant_id,
        email=email.strip().lower(),
        password_hash=password_hash,
        first_name=first_name,
        last_name=last_name,
    )
