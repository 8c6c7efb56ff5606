"""Startup-time helpers for safe config logging."""

from pydantic_settings import BaseSettings

from shopfront.common.logging import logger

SECRET_MARKERS = ("key", "secret", "password", "token", "dsn")


def _safe_value(name: str, values: dict) -> object:
    """Return a loaded setting with simple redaction for secret-like field names."""

    if name not in values or values[name] is None:
        return "<unset>"
    if any(marker in name.lower() for marker in SECRET_MARKERS):
        return "<redacted>"
    return values[name]


def log_startup_config(settings: BaseSettings, fields: list[str]) -> dict:
    """Log selected settings, as loaded from env and `.env`, for quick troubleshooting."""

    values = settings.model_dump()
    config = {"service": values.get("service_name")}
    for name in fields:
        config[name] = _safe_value(name, values)
    logger.info("startup_config=%s", config)
    return config
