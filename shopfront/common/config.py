"""Central environment-driven settings for the storefront process.

Loaded once at startup. Behavior is controlled by environment variables (see
`.env.example`).
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class CommonSettings(BaseSettings):
    """Typed view of runtime configuration from environment variables."""

    service_name: str = "storefront"
    log_level: str = "INFO"
    postgres_dsn: str
    public_base_url: str = "http://localhost:8080"

    adyen_api_key: str
    adyen_client_key: str
    adyen_merchant_account: str
    adyen_environment: str = "TEST"
    adyen_api_version: str = "v71"
    adyen_timeout_seconds: float = 10.0
    country_code: str = "US"
    shopper_locale: str = "en-US"

    product_id: str = "widget-001"
    product_name: str = "Premium Widget"
    product_description: str = (
        "A high-quality widget perfect for all your widget needs. Durable, reliable, and designed to last."
    )
    product_price_cents: int = 100
    product_currency: str = "USD"
    product_image_url: str = "/static/images/widget-placeholder.svg"
    tax_rate_bps: int = 1000

    otel_exporter_otlp_endpoint: str = "http://otel-collector:4318/v1/traces"
    tracing_enabled: bool = True
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def adyen_base_url(self) -> str:
        if self.adyen_environment.upper() == "LIVE":
            return "https://checkout-live.adyen.com"
        return "https://checkout-test.adyen.com"

    @property
    def confirmation_url(self) -> str:
        return f"{self.public_base_url.rstrip('/')}/order/confirmation"


settings = CommonSettings()
