# gatehouse/config.py
from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ---- App ----
    app_env: str = "local"  # local|dev|prod
    app_version: str = "2026-10-18.v1"
    database_url: str = "sqlite:///./gatehouse.db"
    log_level: str = "INFO"

    # ---- CORS (used by main.py) ----
    cors_allow_origins: list[str] | str = ["*"]

    # ---- Auth ----
    auth_mode: str = "jwt"  # dev|jwt

    # Dev header names (auth_mode=dev only)
    dev_header_actor_id: str = "X-Actor-Id"
    dev_header_actor_type: str = "X-Actor-Type"
    dev_header_community_id: str = "X-Community-Id"

    # ---- JWT (issued by the auth service, verified here) ----
    jwt_secret: str = "dev-change-me"
    jwt_algorithm: str = "HS256"
    jwt_exp_minutes: int = 60 * 24 * 7  # 7 days

    # ---- Workflow defaults ----
    default_rejection_reason: str = "Not specified"
    placeholder_mobile_prefix: str = "temp_"

    def model_post_init(self, __context) -> None:
        env = (self.app_env or "local").strip().lower()
        is_prod = env in ("prod", "production")

        if is_prod:
            if (self.auth_mode or "").strip().lower() == "dev":
                raise ValueError("SECURITY: auth_mode=dev is not allowed in prod")
            if self.jwt_secret == "dev-change-me":
                raise ValueError("SECURITY: jwt_secret must be set in prod")

            origins = self.cors_allow_origins
            if origins == "*" or origins == ["*"] or (isinstance(origins, str) and "*" in origins):
                raise ValueError("SECURITY: cors_allow_origins wildcard is not allowed in prod")


settings = Settings()
