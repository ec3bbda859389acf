from functools import lru_cache
from typing import Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = Field(default="FluidPay Connect")
    environment: str = Field(default="development")

    # FluidPay credentials: either an API key or a username/password pair
    fluidpay_api_key: Optional[str] = Field(default=None, description="FluidPay API key sent as-is in the Authorization header")
    fluidpay_username: Optional[str] = Field(default=None, description="FluidPay username for session token requests")
    fluidpay_password: Optional[str] = Field(default=None, description="FluidPay password for session token requests")
    fluidpay_test_mode: bool = Field(default=True, description="Use the FluidPay sandbox host instead of production")
    fluidpay_timeout_seconds: int = Field(default=30, description="HTTP client timeout in seconds")

    @model_validator(mode="after")
    def check_credential_pair(self) -> "Settings":
        """
        Ensure username and password are configured together.

        An API key on its own is a complete credential; a username without a
        password (or the reverse) can never mint a session token.
        """
        if bool(self.fluidpay_username) != bool(self.fluidpay_password):
            raise ValueError(
                "fluidpay_username and fluidpay_password must be configured together"
            )
        return self


@lru_cache(maxsize=None)
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings: The cached settings instance
    """
    return Settings()


def clear_settings_cache() -> None:
    """
    Clear the cached settings instance.

    Useful for testing or when configuration needs to be reloaded.
    """
    get_settings.cache_clear()
