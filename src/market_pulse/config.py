import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional


def _env_float_opt(name: str) -> Optional[float]:
    """
    Read an optional float from env. Returns None if unset, blank, or non-numeric.
    """
    raw = os.getenv(name)
    if raw is None:
        return None
    raw = raw.strip()
    if raw == "" or raw.lower() in {"none", "null"} or raw.startswith("#"):
        return None
    try:
        return float(raw)
    except Exception:
        return None


def _env_float(name: str, default: float) -> float:
    val = _env_float_opt(name)
    return default if val is None else val


def _env_int(name: str, default: int) -> int:
    val = _env_float_opt(name)
    return default if val is None else int(val)


def _b(name: str, default: bool) -> bool:
    return os.getenv(name, str(default)).strip().lower() in {
        "1",
        "true",
        "yes",
        "y",
        "on",
    }


def _s(name: str, default: str = "") -> str:
    return (os.getenv(name) or default).strip()


def _csv(name: str, default: str = "") -> List[str]:
    raw = os.getenv(name, default) or ""
    return [p.strip() for p in raw.split(",") if p.strip()]


def _overrides(name: str) -> Dict[str, str]:
    """Parse ``Name=url;Other Name=url`` pairs into a dict keyed by lowercase name."""
    out: Dict[str, str] = {}
    for pair in (os.getenv(name) or "").split(";"):
        if "=" not in pair:
            continue
        key, _, url = pair.partition("=")
        if key.strip() and url.strip():
            out[key.strip().lower()] = url.strip()
    return out


@dataclass
class Settings:
    # --- Email (SendGrid) ---
    sendgrid_api_key: str = field(default_factory=lambda: _s("SENDGRID_API_KEY"))
    sendgrid_from_email: str = field(
        default_factory=lambda: _s("SENDGRID_FROM_EMAIL")
    )
    alert_email_address: str = field(
        default_factory=lambda: _s("ALERT_EMAIL_ADDRESS")
    )

    # --- WhatsApp (Twilio) ---
    twilio_account_sid: str = field(default_factory=lambda: _s("TWILIO_ACCOUNT_SID"))
    twilio_auth_token: str = field(default_factory=lambda: _s("TWILIO_AUTH_TOKEN"))
    # Twilio's shared WhatsApp sandbox sender; override for a registered number.
    twilio_whatsapp_from: str = field(
        default_factory=lambda: _s("TWILIO_WHATSAPP_FROM", "whatsapp:+14155238886")
    )
    alert_phone_number: str = field(default_factory=lambda: _s("ALERT_PHONE_NUMBER"))

    # --- Telegram ---
    telegram_bot_token: str = field(default_factory=lambda: _s("TELEGRAM_BOT_TOKEN"))
    telegram_chat_id: str = field(default_factory=lambda: _s("TELEGRAM_CHAT_ID"))

    # --- Webhooks / push ---
    discord_webhook_url: str = field(
        default_factory=lambda: _s("DISCORD_WEBHOOK_URL")
    )
    slack_webhook_url: str = field(default_factory=lambda: _s("SLACK_WEBHOOK_URL"))
    push_notification_key: str = field(
        default_factory=lambda: _s("PUSH_NOTIFICATION_KEY")
    )

    # Per-channel cooldowns in minutes. A channel sends at most one batch per
    # window; the window restarts only after a successful send.
    email_cooldown_min: float = field(
        default_factory=lambda: _env_float("EMAIL_COOLDOWN_MIN", 30)
    )
    whatsapp_cooldown_min: float = field(
        default_factory=lambda: _env_float("WHATSAPP_COOLDOWN_MIN", 30)
    )
    telegram_cooldown_min: float = field(
        default_factory=lambda: _env_float("TELEGRAM_COOLDOWN_MIN", 15)
    )
    discord_cooldown_min: float = field(
        default_factory=lambda: _env_float("DISCORD_COOLDOWN_MIN", 10)
    )
    slack_cooldown_min: float = field(
        default_factory=lambda: _env_float("SLACK_COOLDOWN_MIN", 10)
    )
    push_cooldown_min: float = field(
        default_factory=lambda: _env_float("PUSH_COOLDOWN_MIN", 5)
    )

    # --- Analysis oracle (Anthropic) ---
    anthropic_api_key: str = field(default_factory=lambda: _s("ANTHROPIC_API_KEY"))
    oracle_model: str = field(
        default_factory=lambda: _s("ORACLE_MODEL", "claude-3-5-haiku-latest")
    )
    oracle_timeout_secs: float = field(
        default_factory=lambda: _env_float("ORACLE_TIMEOUT_SECS", 30)
    )
    oracle_max_tokens: int = field(
        default_factory=lambda: _env_int("ORACLE_MAX_TOKENS", 1000)
    )

    # --- Reddit monitor (praw) ---
    reddit_client_id: str = field(default_factory=lambda: _s("REDDIT_CLIENT_ID"))
    reddit_client_secret: str = field(
        default_factory=lambda: _s("REDDIT_CLIENT_SECRET")
    )
    reddit_username: str = field(default_factory=lambda: _s("REDDIT_USERNAME"))
    reddit_password: str = field(default_factory=lambda: _s("REDDIT_PASSWORD"))
    reddit_user_agent: str = field(
        default_factory=lambda: _s("REDDIT_USER_AGENT", "market-pulse/0.1")
    )
    reddit_subreddits: List[str] = field(
        default_factory=lambda: _csv(
            "REDDIT_SUBREDDITS", "wallstreetbets,stocks,investing"
        )
    )
    reddit_post_limit: int = field(
        default_factory=lambda: _env_int("REDDIT_POST_LIMIT", 20)
    )

    # --- Pipeline ---
    min_impact_score: int = field(
        default_factory=lambda: _env_int("MIN_IMPACT_SCORE", 5)
    )
    seen_cache_size: int = field(
        default_factory=lambda: _env_int("SEEN_CACHE_SIZE", 1000)
    )
    max_article_age_days: float = field(
        default_factory=lambda: _env_float("MAX_ARTICLE_AGE_DAYS", 7)
    )
    feed_timeout_secs: int = field(
        default_factory=lambda: _env_int("FEED_TIMEOUT_SECS", 12)
    )
    skip_sources: List[str] = field(default_factory=lambda: _csv("SKIP_SOURCES"))
    feed_url_overrides: Dict[str, str] = field(
        default_factory=lambda: _overrides("FEED_URL_OVERRIDES")
    )

    # --- Scheduler / runtime ---
    loop_seconds: int = field(default_factory=lambda: _env_int("LOOP_SECONDS", 900))
    daily_report_hour: int = field(
        default_factory=lambda: _env_int("DAILY_REPORT_HOUR", 18)
    )
    feature_daily_report: bool = field(
        default_factory=lambda: _b("FEATURE_DAILY_REPORT", True)
    )
    feature_health_endpoint: bool = field(
        default_factory=lambda: _b("FEATURE_HEALTH_ENDPOINT", True)
    )
    # PORT is what most PaaS hosts inject; HEALTH_CHECK_PORT wins when both exist.
    health_port: int = field(
        default_factory=lambda: _env_int(
            "HEALTH_CHECK_PORT", _env_int("PORT", 3000)
        )
    )

    # --- Logging ---
    log_level: str = field(default_factory=lambda: _s("LOG_LEVEL", "INFO"))
    log_plain: bool = field(default_factory=lambda: _b("LOG_PLAIN", False))
    log_dir: str = field(default_factory=lambda: _s("LOG_DIR"))

    @property
    def reddit_configured(self) -> bool:
        return all(
            (
                self.reddit_client_id,
                self.reddit_client_secret,
                self.reddit_username,
                self.reddit_password,
            )
        )

    @property
    def ai_configured(self) -> bool:
        return bool(self.anthropic_api_key)


SETTINGS = Settings()


def get_settings() -> Settings:
    return SETTINGS


def reload_settings() -> Settings:
    """Re-read the environment, e.g. after ``load_dotenv`` ran in the runner."""
    global SETTINGS
    SETTINGS = Settings()
    return SETTINGS
