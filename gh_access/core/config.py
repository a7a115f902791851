from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    The GitHub App private key may be supplied in either of two forms:

    • GITHUB_APP_PRIVATE_KEY          full PEM text (escaped ``\\n`` allowed)
    • GITHUB_APP_PRIVATE_KEY_BASE64   bare base64 PKCS#8 payload, no armor

    When both are set the base64 form wins. Neither is validated here; the
    key is only parsed when an operation needs to sign an App JWT.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # GitHub App identity
    github_app_id: str = ""
    github_app_private_key: str = ""
    github_app_private_key_base64: str = ""

    # Webhooks: leave blank to accept unsigned deliveries (logged as a warning).
    github_webhook_secret: str = ""

    # Upstream API
    github_api_base: str = "https://api.github.com"
    github_api_version: str = "2022-11-28"

    # CORS: value of Access-Control-Allow-Origin on every response.
    cors_allow_origin: str = "*"

    # Sentry: leave blank to disable error capture.
    sentry_dsn: str = ""

    # App
    debug: bool = True

    @field_validator("github_api_base", mode="before")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


def get_settings() -> Settings:
    return Settings()
