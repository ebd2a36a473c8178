"""Pydantic models for the token handshake."""

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator

BEARER = "bearer"


class Token(BaseModel):
    """Bearer token returned by the token endpoint.

    Required fields:
        access_token: The opaque credential, held as a secret.

    Optional fields:
        token_type: Always "bearer" for tokens this SDK accepts.
        scope: Granted scope, when the server reports one.
        expires_in: Lifetime in seconds, when the server reports one.

    Any other metadata returned by the endpoint is kept as extra fields.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    access_token: SecretStr
    token_type: str = BEARER
    scope: str | None = None
    expires_in: int | None = None

    @field_validator("access_token")
    @classmethod
    def access_token_not_empty(cls, v: SecretStr) -> SecretStr:
        if not v.get_secret_value():
            raise ValueError("access_token must not be empty")
        return v

    @property
    def authorization(self) -> str:
        """Value for the Authorization header."""
        return f"Bearer {self.access_token.get_secret_value()}"


class Credentials(BaseModel):
    """User credentials for a password-grant token."""

    model_config = ConfigDict(frozen=True)

    username: str = Field(min_length=1)
    password: SecretStr
