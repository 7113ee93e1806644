"""Application settings via Pydantic Settings."""

from functools import lru_cache
import json

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # App
    app_name: str = "Catalog Publish Gate"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"

    # Server (admin preview API)
    host: str = "0.0.0.0"
    port: int = 8080

    # Shopify Admin GraphQL
    shopify_store_domain: str = ""
    shopify_admin_access_token: str = Field(
        default="",
        validation_alias=AliasChoices("SHOPIFY_ADMIN_ACCESS_TOKEN", "SHOPIFY_ACCESS_TOKEN"),
    )
    shopify_api_version: str = "2025-07"
    shopify_log_graphql_costs: bool = Field(
        default=False,
        description="If True, log requested/actual cost and throttle headroom for every call",
    )
    shopify_timeout_seconds: float = 60.0

    @property
    def shopify_graphql_url(self) -> str:
        """Admin GraphQL endpoint for the configured store."""
        return f"https://{self.shopify_store_domain}/admin/api/{self.shopify_api_version}/graphql.json"

    # Throttle handling
    throttle_backoff_seconds: float = Field(default=1.5, ge=0.0)
    http_429_backoff_seconds: float = Field(default=2.0, ge=0.0)
    throttle_max_attempts: int = Field(default=8, ge=1, le=100)

    # Slack
    slack_bot_token: str = ""
    slack_channel_id: str = ""
    slack_success_channel_id: str = Field(
        default="",
        description="Optional channel for pure successes; failures always go to slack_channel_id",
    )

    # Run mode
    dry_run: bool = True

    @field_validator("dry_run", mode="before")
    @classmethod
    def _parse_dry_run(cls, v: object) -> bool:
        """Unset or empty keeps dry run on; otherwise only 'true' (any case) turns it on."""
        if isinstance(v, bool):
            return v
        if v is None or str(v).strip() == "":
            return True
        return str(v).strip().lower() == "true"

    # Outbound automation webhooks
    field_change_webhook_url: str = Field(
        default="",
        validation_alias=AliasChoices("FIELD_CHANGE_WEBHOOK_URL", "MAKE_WEBHOOK_URL"),
    )
    unit_price_webhook_url: str = ""
    sku_confirm_webhook_url: str = Field(
        default="",
        validation_alias=AliasChoices("SKU_CONFIRM_WEBHOOK_URL", "SKU_MAKE_URL"),
    )
    webhook_timeout_seconds: float = 30.0

    # Tenant
    store_code: str = "FI"
    store_name: str = "FI"
    market_catalog_title: str = "India"
    cosmetics_check: bool = True
    main_item_confirmation: bool = False
    zero_stock_on_check: bool = True
    sync_origin_to_inventory: bool = False
    tax_codes_raw: str = Field(
        default="",
        validation_alias=AliasChoices("TAX_CODES"),
        description="Tax percentage -> external tax code, used when the metafield has no code suffix",
    )

    @property
    def tax_codes(self) -> dict[str, str]:
        """
        Parse TAX_CODES. Accept either:
        - JSON object string: '{"5": "TX-5", "18": "TX-18"}'
        - Comma-separated pairs: "5=TX-5,18=TX-18"
        """
        s = self.tax_codes_raw.strip()
        if not s:
            return {}
        if s.startswith("{"):
            try:
                parsed = json.loads(s)
            except json.JSONDecodeError:
                # Fall back to pair parsing if env var isn't valid JSON.
                parsed = None
            if isinstance(parsed, dict):
                return {str(k).strip(): str(v).strip() for k, v in parsed.items()}
            s = s.strip("{}")
        out: dict[str, str] = {}
        for pair in s.split(","):
            if "=" in pair:
                k, v = pair.split("=", 1)
                out[k.strip()] = v.strip()
        return out

    # Redis (optional run lock)
    redis_url: str = ""
    run_lock_ttl_seconds: int = Field(default=3600, ge=60)

    def missing_required(self) -> list[str]:
        """Names of required settings that are empty."""
        required = {
            "SHOPIFY_STORE_DOMAIN": self.shopify_store_domain,
            "SHOPIFY_ADMIN_ACCESS_TOKEN": self.shopify_admin_access_token,
            "SLACK_BOT_TOKEN": self.slack_bot_token,
            "SLACK_CHANNEL_ID": self.slack_channel_id,
        }
        return [name for name, value in required.items() if not value]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
