"""
Authentication Models

The credential bundle is the only state the client persists. Tokens are
opaque bearer strings: the client stores and forwards them, it never
inspects them.
"""

from datetime import datetime
from enum import Enum
from typing import Optional, Union

from pydantic import AliasChoices, Field, field_validator

from finance_client.models.base import ApiModel, RequestModel


class AuthState(str, Enum):
    """
    Authentication state derived from the credential store.

    LOGGED_OUT -> LOGGED_IN     login / register
    LOGGED_IN  -> EXPIRED       server rejected the access token
    EXPIRED    -> LOGGED_IN     refresh succeeded
    EXPIRED    -> LOGGED_OUT    refresh token absent or rejected
    *          -> LOGGED_OUT    explicit logout
    """
    LOGGED_OUT = "logged_out"
    LOGGED_IN = "logged_in"
    EXPIRED = "expired"


class UserProfile(ApiModel):
    """Server-authoritative user profile, cached locally for fast reads."""

    id: Union[int, str]
    name: str
    email: str
    # The backend sends this one field in snake_case
    created_at: Optional[datetime] = Field(
        default=None,
        validation_alias=AliasChoices("created_at", "createdAt"),
    )


class CredentialBundle(ApiModel):
    """
    Everything persisted for one session.

    Created on login/registration, overwritten on refresh,
    deleted as a whole on logout.
    """

    access_token: str
    refresh_token: Optional[str] = None
    user: Optional[UserProfile] = None


class AuthResponse(ApiModel):
    """Response of login, registration and Google sign-in."""

    message: Optional[str] = None
    user: UserProfile
    token: str
    refresh_token: Optional[str] = None

    def to_bundle(self) -> CredentialBundle:
        return CredentialBundle(
            access_token=self.token,
            refresh_token=self.refresh_token,
            user=self.user,
        )


class RefreshResponse(ApiModel):
    """Response of the token refresh endpoint."""

    token: str
    refresh_token: Optional[str] = None


class ProfileResponse(ApiModel):
    user: UserProfile
    referral_code: Optional[str] = None


# =============================================================================
# REQUEST BODIES
# =============================================================================

class RegisterRequest(RequestModel):
    name: str
    email: str
    password: str
    referral_code: Optional[str] = None
    device_id: Optional[str] = None

    @field_validator("referral_code", "device_id")
    @classmethod
    def strip_optional(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v is not None else None


class LoginRequest(RequestModel):
    email: str
    password: str


class GoogleLoginRequest(RequestModel):
    id_token: str


class ProfileUpdate(RequestModel):
    name: Optional[str] = None


class RefreshRequest(RequestModel):
    refresh_token: str
