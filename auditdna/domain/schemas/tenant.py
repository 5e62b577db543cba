"""Pydantic schemas for enterprise tenant API request bodies."""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class AdminUserRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: str = Field(..., min_length=3, max_length=254)
    password: str = Field(..., min_length=8, max_length=72)
    first_name: Optional[str] = Field(None, alias="firstName")
    last_name: Optional[str] = Field(None, alias="lastName")

    @field_validator("email")
    @classmethod
    def email_must_look_like_address(cls, v: str) -> str:
        local, _, domain = v.strip().partition("@")
        if not local or "." not in domain:
            raise ValueError("email must be an address like name@example.com")
        return v.strip()


class TenantCreateRequest(BaseModel):
    """POST /api/enterprise/tenants body. Nested groups override the provisioning defaults."""

    model_config = ConfigDict(populate_by_name=True)

    company_name: str = Field(..., alias="companyName", min_length=1, max_length=200)
    domain: Optional[str] = Field(None, min_length=3, max_length=253)
    plan: Optional[str] = None
    branding: Optional[Dict[str, Any]] = None
    features: Optional[Dict[str, bool]] = None
    limits: Optional[Dict[str, int]] = None
    settings: Optional[Dict[str, Any]] = None
    billing: Optional[Dict[str, Any]] = None
    admin_user: AdminUserRequest = Field(..., alias="adminUser")


class TenantUpdateRequest(BaseModel):
    """PATCH /api/enterprise/tenant body."""

    branding: Optional[Dict[str, Any]] = None
    settings: Optional[Dict[str, Any]] = None
    features: Optional[Dict[str, bool]] = None


class TenantSuspendRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class SSOConfigRequest(BaseModel):
    """POST /api/enterprise/sso/{provider} body. Field names follow the identity-provider metadata."""

    model_config = ConfigDict(populate_by_name=True)

    # SAML
    entry_point: Optional[str] = Field(None, alias="entryPoint")
    certificate: Optional[str] = None
    identifier_format: Optional[str] = Field(None, alias="identifierFormat")
    # OIDC
    client_id: Optional[str] = Field(None, alias="clientId")
    client_secret: Optional[str] = Field(None, alias="clientSecret")
    authorization_url: Optional[str] = Field(None, alias="authorizationURL")
    token_url: Optional[str] = Field(None, alias="tokenURL")
    user_info_url: Optional[str] = Field(None, alias="userInfoURL")
    scope: Optional[str] = None
    # Both
    issuer: Optional[str] = None
    return_url: str = Field("/", alias="returnUrl")
