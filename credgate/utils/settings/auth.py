from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class AuthSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    JWT_SECRET: SecretStr = SecretStr("test-jwt-secret-key-for-testing-only")
    JWT_AUDIENCE: str = "authenticated"
    JWT_ISSUER: str | None = None

    def validate_prod(self) -> None:
        if self.JWT_SECRET.get_secret_value() == "test-jwt-secret-key-for-testing-only":
            raise ValueError("JWT_SECRET must be set in production")
