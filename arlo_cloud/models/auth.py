"""Authentication models."""
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from arlo_cloud.core.config import Settings
from arlo_cloud.core.exceptions import ConfigurationError
from arlo_cloud.core.helpers import b64decode_str, b64encode_str


class VendorModel(BaseModel):
    """Base for records exchanged with the vendor API (camelCase on the wire)."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")


class Credentials(BaseModel):
    """Arlo account and MFA mailbox credentials. Immutable once built."""

    model_config = ConfigDict(frozen=True)

    arlo_user: str = Field(..., description="Arlo account email")
    arlo_password: str = Field(..., description="Arlo account password (plain)")
    email_user: str = Field(..., description="Mailbox registered as MFA factor")
    email_password: str = Field(..., description="Mailbox password")
    email_server: str = Field(..., description="IMAP server host")
    email_imap_port: int = Field(default=993, description="IMAP over TLS port")

    @property
    def encoded_password(self) -> str:
        """Password in the reversible encoding the auth endpoint expects."""
        return b64encode_str(self.arlo_password)

    @staticmethod
    def decode_password(encoded: str) -> str:
        return b64decode_str(encoded)

    @classmethod
    def from_settings(cls, settings: Settings) -> "Credentials":
        """Build credentials from settings.

        Raises:
            ConfigurationError: If any required setting is missing
        """
        required = {
            "arlo_user": settings.ARLO_USER,
            "arlo_password": settings.ARLO_PASSWORD,
            "email_user": settings.EMAIL_USER,
            "email_password": settings.EMAIL_PASSWORD,
            "email_server": settings.EMAIL_SERVER,
        }
        for name, value in required.items():
            if not value:
                raise ConfigurationError(
                    f"{name} is not defined",
                    {"setting": name.upper()}
                )

        return cls(email_imap_port=settings.EMAIL_IMAP_PORT, **required)


class AuthTokenResponse(VendorModel):
    """Payload of the primary credential exchange."""

    token: str
    user_id: str = Field(..., alias="userId")
    authenticated: int = Field(..., description="Issuance unix timestamp")
    expires_in: Optional[int] = Field(None, alias="expiresIn")
    mfa: Optional[bool] = None


class MfaAuthResponse(VendorModel):
    """Payload of the one-time code submission."""

    token: str
    expires_in: Optional[int] = Field(None, alias="expiresIn")
    browser_auth_code: Optional[str] = Field(None, alias="browserAuthCode")


class AuthToken(BaseModel):
    """Primary credential exchange result; only bootstraps the MFA exchange."""

    token: str = Field(..., description="Base64 of the raw auth token")
    authenticated: int = Field(..., description="Issuance unix timestamp")
    user_id: str = Field(..., description="Owning user id")


class SecondFactorOption(VendorModel):
    """A registered out-of-band MFA channel."""

    factor_id: str = Field(..., alias="factorId")
    factor_type: str = Field(..., alias="factorType", description="EMAIL or SMS")
    display_name: str = Field(..., alias="displayName")
    factor_role: Optional[str] = Field(None, alias="factorRole", description="PRIMARY or SECONDARY")
    factor_nickname: Optional[str] = Field(None, alias="factorNickname")
    application_id: Optional[str] = Field(None, alias="applicationId")
    application_name: Optional[str] = Field(None, alias="applicationName")


class SecondFactorChallenge(VendorModel):
    """Authorization code returned when a code is requested for a factor."""

    factor_auth_code: str = Field(..., alias="factorAuthCode")


class MfaSubmitResult(BaseModel):
    """Result of submitting the one-time code."""

    token: str
    authorization: str = Field(..., description="Base64 of token, used to verify it")
    token_expires: Optional[int] = None


class SessionToken(VendorModel):
    """Durable session minted after MFA; attached to every authenticated call."""

    token: str
    user_id: str = Field(..., alias="userId")
    serial_number: Optional[str] = Field(None, alias="serialNumber")
    session_expires: Optional[int] = Field(None, alias="sessionExpires")
