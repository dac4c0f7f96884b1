"""Configuration for the HTTP evidence client."""

from pydantic import BaseModel, PositiveFloat, SecretStr


class ClientConfig(BaseModel):
    """Configuration for the HTTP evidence client."""

    base_url: str
    timeout: PositiveFloat = 30
    token: SecretStr | None = None
    accept: str = "application/json+fhir"
    verify_tls: bool = True
