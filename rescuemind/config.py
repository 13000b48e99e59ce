import os
from dataclasses import dataclass


@dataclass
class Settings:
    provider: str
    base_url: str
    api_key: str
    light_model: str
    heavy_model: str
    timeout_s: float
    incidents_store_url: str
    plans_store_url: str
    rate_store_url: str
    auth_token: str
    rate_limit: int
    rate_window_s: int
    log_level: str


def load_settings() -> Settings:
    api_key = os.getenv("GROQ_API_KEY", "").strip() or os.getenv("LLM_API_KEY", "").strip()
    return Settings(
        provider=os.getenv("LLM_PROVIDER", "openai_compat").strip().lower(),
        base_url=os.getenv("LLM_BASE_URL", "https://api.groq.com/openai/v1").rstrip("/"),
        api_key=api_key,
        light_model=os.getenv("LLM_LIGHT_MODEL", "openai/gpt-oss-20b").strip(),
        heavy_model=os.getenv("LLM_HEAVY_MODEL", "openai/gpt-oss-120b").strip(),
        timeout_s=float(os.getenv("LLM_TIMEOUT_S", "30")),
        incidents_store_url=os.getenv("INCIDENTS_STORE_URL", "").strip(),
        plans_store_url=os.getenv("PLANS_STORE_URL", "").strip(),
        rate_store_url=os.getenv("RATE_STORE_URL", "").strip(),
        auth_token=os.getenv("AUTH_TOKEN", ""),
        rate_limit=int(os.getenv("RATE_LIMIT", "30")),
        rate_window_s=int(os.getenv("RATE_WINDOW_S", "60")),
        log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper(),
    )


SETTINGS = load_settings()
