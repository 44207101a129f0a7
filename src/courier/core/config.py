"""Delivery configuration, read from the environment or set explicitly."""

import os
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from courier.core.email.smtp.constants import AuthType, SecureMode, SMTPPorts
from courier.utils.errors import InvalidConfigError, MissingOAuthTokenError
from courier.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_SES_ENDPOINT = "email-smtp.us-east-1.amazonaws.com"

# Environment variable for each config field
ENV_VARS = {
    "host": "EMAIL_HOST",
    "port": "EMAIL_PORT",
    "username": "EMAIL_USERNAME",
    "password": "EMAIL_PASSWORD",
    "auth": "EMAIL_AUTH",
    "secure": "EMAIL_SECURE",
    "from_address": "EMAIL_FROM",
    "from_name": "EMAIL_FROM_NAME",
    "auth_type": "EMAIL_AUTH_TYPE",
    "oauth_token": "EMAIL_OAUTH_TOKEN",
}
PROVIDER_ENV_VAR = "EMAIL_CONFIG"


@dataclass(frozen=True)
class ProviderPreset:
    """Known-good connection settings for a hosted provider."""

    host: str
    port: int = SMTPPorts.SUBMISSION
    auth: bool = True
    secure: str = "tls"
    auth_type: Optional[str] = None

    def as_overrides(self) -> Dict[str, Any]:
        overrides = {
            "host": self.host,
            "port": self.port,
            "auth": self.auth,
            "secure": self.secure,
        }
        if self.auth_type is not None:
            overrides["auth_type"] = self.auth_type
        return overrides


_OFFICE365 = ProviderPreset("smtp.office365.com", auth_type=AuthType.XOAUTH2)

PROVIDER_PRESETS: Dict[str, ProviderPreset] = {
    "GMAIL": ProviderPreset("smtp.gmail.com"),
    "OUTLOOK": _OFFICE365,
    "HOTMAIL": _OFFICE365,
    "OFFICE365": _OFFICE365,
    "YAHOO": ProviderPreset("smtp.mail.yahoo.com"),
    "ZOHO": ProviderPreset("smtp.zoho.com"),
    "SENDGRID": ProviderPreset("smtp.sendgrid.net"),
    "MAILGUN": ProviderPreset("smtp.mailgun.org"),
    "MAILTRAP": ProviderPreset("sandbox.smtp.mailtrap.io", port=2525, secure=""),
    "AMAZON_SES": ProviderPreset(DEFAULT_SES_ENDPOINT),
}


def get_preset(name: str, environ: Optional[Mapping[str, str]] = None) -> Optional[ProviderPreset]:
    """Look up a provider preset by case-insensitive name."""
    key = name.strip().upper()
    preset = PROVIDER_PRESETS.get(key)

    if key == "AMAZON_SES" and preset is not None:
        endpoint = (environ if environ is not None else os.environ).get("SES_ENDPOINT")
        if endpoint:
            preset = ProviderPreset(endpoint)

    return preset


class EmailConfig(BaseModel):
    """Pydantic model for SMTP delivery configuration."""

    model_config = ConfigDict(validate_assignment=True)

    host: str = "localhost"
    port: int = Field(default=SMTPPorts.SMTP, gt=0, lt=65536)
    username: str = ""
    password: str = ""
    auth: bool = False
    secure: SecureMode = SecureMode.NONE
    from_address: str = ""
    from_name: str = ""
    auth_type: Optional[str] = None
    oauth_token: Optional[str] = None

    @field_validator("secure", mode="before")
    @classmethod
    def _normalise_secure(cls, value):
        return SecureMode.from_value(value) if not isinstance(value, SecureMode) else value

    @field_validator("auth_type", mode="before")
    @classmethod
    def _normalise_auth_type(cls, value):
        if value is None:
            return None
        value = str(value).strip().upper()
        return value or None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "EmailConfig":
        """Build a config from ``EMAIL_*`` variables, applying ``EMAIL_CONFIG``.

        Empty variables count as unset so the field default applies.

        Raises:
            InvalidConfigError: If a variable holds an invalid value
        """
        environ = os.environ if environ is None else environ

        values = {
            field_name: environ[var]
            for field_name, var in ENV_VARS.items()
            if environ.get(var)
        }

        provider = environ.get(PROVIDER_ENV_VAR)
        if provider:
            preset = get_preset(provider, environ)
            if preset is None:
                logger.warning(f"Unknown email provider '{provider}', ignoring preset")
            else:
                values.update(preset.as_overrides())

        return cls.create(**values)

    @classmethod
    def create(cls, **values) -> "EmailConfig":
        """Construct a config, reporting bad values as InvalidConfigError."""
        try:
            return cls(**values)
        except PydanticValidationError as e:
            raise InvalidConfigError(
                f"Configuration data does not match expected schema: {str(e)}"
            ) from e

    def set_config(self, **values) -> "EmailConfig":
        """Merge explicit settings into this config."""
        for key, value in values.items():
            if key not in type(self).model_fields:
                raise InvalidConfigError(f"Unknown configuration key '{key}'")
            try:
                setattr(self, key, value)
            except PydanticValidationError as e:
                raise InvalidConfigError(
                    f"Invalid value for configuration key '{key}': {str(e)}"
                ) from e
        return self

    def apply_preset(self, name: str) -> "EmailConfig":
        """Override host, port, auth, secure and auth type from a preset."""
        preset = get_preset(name)
        if preset is None:
            raise InvalidConfigError(
                f"Unknown email provider '{name}'",
                details={"known": sorted(PROVIDER_PRESETS)},
            )
        return self.set_config(**preset.as_overrides())

    def set_oauth_token(self, token: str) -> "EmailConfig":
        self.oauth_token = token
        return self

    @property
    def uses_xoauth2(self) -> bool:
        return self.auth_type == AuthType.XOAUTH2

    def validate_oauth(self) -> None:
        """Require a token when XOAUTH2 authentication is configured.

        Raises:
            MissingOAuthTokenError: If XOAUTH2 is selected without a token
        """
        if self.auth and self.uses_xoauth2 and not self.oauth_token:
            raise MissingOAuthTokenError(details={"host": self.host})
