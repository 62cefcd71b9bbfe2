from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_COMMERCE_API_TOKEN = "backoffice-dev-commerce-token"
DEFAULT_OPERATOR_API_KEY = "bo-operator-dev-key"
DEFAULT_SUPPORT_API_KEY = "bo-support-dev-key"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_prefix="BO_", extra="ignore")

    app_name: str = "Back Office Order Operations"
    env: str = "dev"
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    log_level: str = "INFO"
    # plain | json
    log_format: str = "plain"

    commerce_api_base_url: str = "http://localhost:9000"
    commerce_api_token: str = Field(
        default=DEFAULT_COMMERCE_API_TOKEN,
        description="Bearer token for the commerce admin API",
    )
    commerce_timeout_seconds: int = 15

    auth_enabled: bool = True
    operator_api_key: str = DEFAULT_OPERATOR_API_KEY
    support_api_key: str = DEFAULT_SUPPORT_API_KEY
    operator_actor_id: str = "operator-001"
    support_actor_id: str = "support-001"

    def model_post_init(self, __context) -> None:
        if self.env.lower() == "dev":
            return

        insecure_items: list[str] = []
        if self.commerce_api_token == DEFAULT_COMMERCE_API_TOKEN:
            insecure_items.append("BO_COMMERCE_API_TOKEN")
        if self.operator_api_key == DEFAULT_OPERATOR_API_KEY:
            insecure_items.append("BO_OPERATOR_API_KEY")
        if self.support_api_key == DEFAULT_SUPPORT_API_KEY:
            insecure_items.append("BO_SUPPORT_API_KEY")

        if insecure_items:
            raise ValueError(
                "insecure default secrets are not allowed outside dev mode; set env vars: "
                + ", ".join(sorted(insecure_items))
            )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
