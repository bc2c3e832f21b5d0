from functools import lru_cache
from typing import Literal, final

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from yarl import URL

FormId = Literal["iva-claim-form", "bec-claim-form", "claimForm"]


class APIConfig(BaseModel):
    title: str = "Lead Capture API"
    version: str = "1.0.0"
    port: int = 8000
    host: str = "0.0.0.0"
    allowed_hosts: list[str] = Field(default_factory=lambda: ["*"])


class WebhooksConfig(BaseModel):
    iva_url: str | None = None
    query_url: str | None = None
    bec_url: str | None = None
    timeout_seconds: float = 10.0

    def url_for(self, form_id: str) -> str | None:
        if form_id == "iva-claim-form":
            return self.iva_url or None
        if form_id == "bec-claim-form":
            return self.bec_url or self.query_url or None
        if form_id == "claimForm":
            return self.query_url or None
        return None


class MetaConfig(BaseModel):
    pixel_id: str | None = None
    access_token: str | None = None
    test_event_code: str | None = None
    graph_api_version: str = "v24.0"
    graph_host: str = "graph.facebook.com"
    timeout_seconds: float = 5.0

    @property
    def is_configured(self) -> bool:
        return bool(self.pixel_id and self.access_token)

    @property
    def events_url(self) -> str:
        return str(
            URL.build(
                scheme="https",
                host=self.graph_host,
                path=f"/{self.graph_api_version}/{self.pixel_id}/events",
            )
        )


class TurnstileConfig(BaseModel):
    site_key: str | None = None
    secret_key: str | None = None
    verify_url: str = "https://challenges.cloudflare.com/turnstile/v0/siteverify"
    timeout_seconds: float = 5.0


class AntispamConfig(BaseModel):
    honeypot_field: str = "company_website"
    min_fill_seconds: float = 5.0
    rate_limit_window_seconds: int = 3600
    rate_limit_max_submissions: int = 5
    trust_forwarded_ip: bool = True
    spam_terms: list[str] = Field(
        default_factory=lambda: ["viagra", "cialis", "porn", "seo", "crypto"],
    )


class DebugConfig(BaseModel):
    bypass_key: str | None = None


@final
class Config(BaseSettings):
    model_config: SettingsConfigDict = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="APP__",
        env_nested_delimiter="__",
        extra="ignore",
    )

    env: Literal["local", "dev", "prod"] = "local"

    api: APIConfig = APIConfig()
    webhooks: WebhooksConfig = WebhooksConfig()
    meta: MetaConfig = MetaConfig()
    turnstile: TurnstileConfig = TurnstileConfig()
    antispam: AntispamConfig = AntispamConfig()
    debug: DebugConfig = DebugConfig()


@lru_cache
def get_config() -> Config:
    return Config()
