"""Configuration for the hub services and sweeps.

Loads from YAML config file with environment variable overrides.
Pattern: CONFIG__{SECTION}__{KEY} overrides nested YAML keys.
Example: CONFIG__SCHEDULE__PDI_WARNING_DAYS=5
"""

import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field


# --- Sections ---


class DatabaseConfig(BaseModel):
    url: str = "sqlite:///data/borahub.db"
    echo: bool = False


class AuthConfig(BaseModel):
    jwt_secret: str = ""  # from env: JWT_SECRET_KEY
    algorithm: str = "HS256"
    audience: str = "authenticated"
    admin_url: str = ""  # hosted auth provider, from env: AUTH_ADMIN_URL
    service_role_key: str = ""  # from env: SERVICE_ROLE_KEY


class AIGatewayConfig(BaseModel):
    url: str = "https://ai.gateway.lovable.dev/v1/chat/completions"
    api_key: str = ""  # from env: AI_GATEWAY_API_KEY
    model: str = "google/gemini-3-flash-preview"
    max_copy_chars: int = Field(default=10000, ge=1)


class CalComConfig(BaseModel):
    api_key: str = ""  # from env: CAL_COM_API_KEY
    base_url: str = "https://api.cal.com/v2"
    api_version: str = "2024-08-13"


class GoogleConfig(BaseModel):
    service_account_key: str = ""  # JSON, from env: GOOGLE_SERVICE_ACCOUNT_KEY
    calendar_utc_offset: str = "-03:00"
    drive_max_bytes: int = 50 * 1024 * 1024


class SpeechConfig(BaseModel):
    api_key: str = ""  # from env: ELEVENLABS_API_KEY
    base_url: str = "https://api.elevenlabs.io/v1"
    model_id: str = "scribe_v2"


class WebhookConfig(BaseModel):
    funnel_report_url: str = ""  # from env: FUNNEL_REPORT_WEBHOOK_URL


class ScheduleConfig(BaseModel):
    timezone: str = "America/Sao_Paulo"
    pdi_warning_days: int = Field(default=3, ge=0)
    notification_dedupe_hours: int = Field(default=24, ge=0)


class OfflineConfig(BaseModel):
    cache_name: str = "boranahobra-v1"
    precache: list[str] = [
        "/",
        "/index.html",
        "/manifest.json",
        "/favicon.png",
        "/logo.png",
        "/apple-touch-icon.png",
    ]


class HubConfig(BaseModel):
    database: DatabaseConfig = DatabaseConfig()
    auth: AuthConfig = AuthConfig()
    ai: AIGatewayConfig = AIGatewayConfig()
    calcom: CalComConfig = CalComConfig()
    google: GoogleConfig = GoogleConfig()
    speech: SpeechConfig = SpeechConfig()
    webhooks: WebhookConfig = WebhookConfig()
    schedule: ScheduleConfig = ScheduleConfig()
    offline: OfflineConfig = OfflineConfig()


# Dedicated env vars for secrets: (section, key) -> ENV_NAME
SECRET_ENV_VARS = {
    ("database", "url"): "DATABASE_URL",
    ("auth", "jwt_secret"): "JWT_SECRET_KEY",
    ("auth", "admin_url"): "AUTH_ADMIN_URL",
    ("auth", "service_role_key"): "SERVICE_ROLE_KEY",
    ("ai", "api_key"): "AI_GATEWAY_API_KEY",
    ("calcom", "api_key"): "CAL_COM_API_KEY",
    ("google", "service_account_key"): "GOOGLE_SERVICE_ACCOUNT_KEY",
    ("speech", "api_key"): "ELEVENLABS_API_KEY",
    ("webhooks", "funnel_report_url"): "FUNNEL_REPORT_WEBHOOK_URL",
}


def _apply_env_overrides(config_dict: dict, prefix: str = "CONFIG") -> dict:
    """Apply environment variable overrides to config dict.

    Pattern: CONFIG__SECTION__KEY=value maps to config[section][key] = value
    """
    for key, value in os.environ.items():
        if not key.startswith(f"{prefix}__"):
            continue
        parts = key[len(prefix) + 2 :].lower().split("__")
        target = config_dict
        for part in parts[:-1]:
            target = target.setdefault(part, {})
        # Type coercion for common cases
        if value.lower() in ("true", "false"):
            value = value.lower() == "true"
        elif value.isdigit():
            value = int(value)
        target[parts[-1]] = value
    return config_dict


def _apply_secret_env(config_dict: dict) -> dict:
    """Fill secrets from their dedicated env vars unless already set."""
    for (section, key), env_name in SECRET_ENV_VARS.items():
        value = os.getenv(env_name)
        if not value:
            continue
        target = config_dict.setdefault(section, {})
        if not target.get(key):
            target[key] = value
    return config_dict


def load_config(config_path: Optional[str] = None) -> HubConfig:
    """Load configuration from YAML file with env overrides.

    Priority: env vars > YAML file > defaults
    """
    config_dict = {}

    # 1. Load YAML if exists
    if config_path is None:
        config_path = os.getenv("CONFIG_PATH", "config/hub.yml")
    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            config_dict = yaml.safe_load(f) or {}

    # 2. Apply env overrides
    config_dict = _apply_env_overrides(config_dict)

    # 3. Secrets from dedicated env vars
    config_dict = _apply_secret_env(config_dict)

    return HubConfig(**config_dict)


_config: Optional[HubConfig] = None


def get_config() -> HubConfig:
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config(config_path: Optional[str] = None) -> HubConfig:
    global _config
    _config = load_config(config_path)
    return _config
