"""Outbound alert channels.

Each channel turns a batch into one transport call (one email, one WhatsApp
message, one webhook post...). ``try_send`` is the only entry point the
dispatcher uses: it checks configuration and cooldown, performs the call,
and records the send on the throttle only when the call succeeded.
"""

from __future__ import annotations

import time
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

import requests

from . import formatting as fmt
from .config import Settings, get_settings
from .logging_utils import get_logger
from .models import ScoredItem
from .throttle import ChannelThrottle

log = get_logger("channels")

HTTP_TIMEOUT = 10
SENDGRID_URL = "https://api.sendgrid.com/v3/mail/send"
TWILIO_MESSAGES_URL = "https://api.twilio.com/2010-04-01/Accounts/{sid}/Messages.json"
TELEGRAM_URL = "https://api.telegram.org/bot{token}/sendMessage"
EXPO_PUSH_URL = "https://exp.host/--/api/v2/push/send"


class TransportError(Exception):
    """A channel's remote endpoint rejected or never received the batch."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


def _post(
    http: Any,
    url: str,
    *,
    json_body: Optional[dict] = None,
    data: Optional[dict] = None,
    headers: Optional[Dict[str, str]] = None,
    auth: Optional[Tuple[str, str]] = None,
) -> Any:
    """POST once, retrying a single time on 429 after the advertised delay."""

    def _do_post():
        return http.post(
            url,
            json=json_body,
            data=data,
            headers=headers,
            auth=auth,
            timeout=HTTP_TIMEOUT,
        )

    resp = _do_post()
    if resp.status_code == 429:
        wait = float(
            resp.headers.get("X-RateLimit-Reset-After")
            or resp.headers.get("Retry-After")
            or 1.0
        )
        # If a proxy gave milliseconds, scale to seconds
        if wait > 1000:
            wait = wait / 1000.0
        time.sleep(min(max(wait, 0.5), 5.0))
        resp = _do_post()
    if not 200 <= resp.status_code < 300:
        raise TransportError(
            f"http {resp.status_code}: {(resp.text or '')[:200]}", resp.status_code
        )
    return resp


class Channel:
    channel_id = "base"

    def __init__(self, cooldown: timedelta, http: Any = None):
        self.throttle = ChannelThrottle(self.channel_id, cooldown)
        self.http = http or requests

    def is_configured(self) -> bool:
        raise NotImplementedError

    def send(self, batch: Sequence[ScoredItem]) -> None:
        """Deliver ``batch``; raise on failure."""
        raise NotImplementedError

    def try_send(
        self, batch: Sequence[ScoredItem], now: Optional[datetime] = None
    ) -> bool:
        now = now or datetime.now(timezone.utc)
        if not self.is_configured():
            log.debug("channel_skipped channel=%s reason=unconfigured", self.channel_id)
            return False
        if not self.throttle.can_send(now):
            log.info(
                "channel_throttled channel=%s remaining_s=%d",
                self.channel_id,
                self.throttle.remaining(now).total_seconds(),
            )
            return False
        try:
            self.send(batch)
        except Exception as e:
            status = getattr(e, "status", None)
            log.warning(
                "channel_send_failed channel=%s status=%s err=%s",
                self.channel_id,
                status,
                e.__class__.__name__,
            )
            return False
        self.throttle.mark_sent(now)
        log.info("channel_sent channel=%s items=%d", self.channel_id, len(batch))
        return True

    def status(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or datetime.now(timezone.utc)
        last = self.throttle.last_sent_at
        return {
            "configured": self.is_configured(),
            "lastSent": last.isoformat() if last else None,
            "canSend": self.throttle.can_send(now),
            "cooldownMinutes": self.throttle.cooldown.total_seconds() / 60,
        }


class EmailChannel(Channel):
    """SendGrid v3 mail send."""

    channel_id = "email"

    def __init__(self, api_key: str, to_addr: str, from_addr: str, cooldown: timedelta, http: Any = None):
        super().__init__(cooldown, http)
        self.api_key = api_key
        self.to_addr = to_addr
        self.from_addr = from_addr

    def is_configured(self) -> bool:
        return bool(self.api_key and self.to_addr and self.from_addr)

    def send(self, batch: Sequence[ScoredItem]) -> None:
        body = {
            "personalizations": [{"to": [{"email": self.to_addr}]}],
            "from": {"email": self.from_addr},
            "subject": fmt.email_subject(batch),
            "content": [{"type": "text/html", "value": fmt.email_html(batch)}],
        }
        _post(
            self.http,
            SENDGRID_URL,
            json_body=body,
            headers={"Authorization": f"Bearer {self.api_key}"},
        )


class WhatsAppChannel(Channel):
    """Twilio Messages API with a ``whatsapp:`` addressed sender and recipient."""

    channel_id = "whatsapp"

    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        from_number: str,
        to_number: str,
        cooldown: timedelta,
        http: Any = None,
    ):
        super().__init__(cooldown, http)
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = self._wa(from_number)
        self.to_number = self._wa(to_number)

    @staticmethod
    def _wa(number: str) -> str:
        number = (number or "").strip()
        if not number or number.startswith("whatsapp:"):
            return number
        return f"whatsapp:{number}"

    def is_configured(self) -> bool:
        return bool(self.account_sid and self.auth_token and self.to_number and self.from_number)

    def send(self, batch: Sequence[ScoredItem]) -> None:
        _post(
            self.http,
            TWILIO_MESSAGES_URL.format(sid=self.account_sid),
            data={
                "From": self.from_number,
                "To": self.to_number,
                "Body": fmt.whatsapp_message(batch),
            },
            auth=(self.account_sid, self.auth_token),
        )


class TelegramChannel(Channel):
    channel_id = "telegram"

    def __init__(self, bot_token: str, chat_id: str, cooldown: timedelta, http: Any = None):
        super().__init__(cooldown, http)
        self.bot_token = bot_token
        self.chat_id = chat_id

    def is_configured(self) -> bool:
        return bool(self.bot_token and self.chat_id)

    def send(self, batch: Sequence[ScoredItem]) -> None:
        _post(
            self.http,
            TELEGRAM_URL.format(token=self.bot_token),
            json_body={
                "chat_id": self.chat_id,
                "text": fmt.telegram_message(batch),
                "parse_mode": "HTML",
                "disable_web_page_preview": True,
            },
        )


class DiscordChannel(Channel):
    channel_id = "discord"

    def __init__(self, webhook_url: str, cooldown: timedelta, http: Any = None):
        super().__init__(cooldown, http)
        self.webhook_url = webhook_url

    def is_configured(self) -> bool:
        return bool(self.webhook_url)

    def send(self, batch: Sequence[ScoredItem]) -> None:
        _post(self.http, self.webhook_url, json_body=fmt.discord_payload(batch))


class SlackChannel(Channel):
    channel_id = "slack"

    def __init__(self, webhook_url: str, cooldown: timedelta, http: Any = None):
        super().__init__(cooldown, http)
        self.webhook_url = webhook_url

    def is_configured(self) -> bool:
        return bool(self.webhook_url)

    def send(self, batch: Sequence[ScoredItem]) -> None:
        _post(self.http, self.webhook_url, json_body=fmt.slack_payload(batch))


class PushChannel(Channel):
    """Expo push service; the key is the device's Expo push token."""

    channel_id = "push"

    def __init__(self, push_token: str, cooldown: timedelta, http: Any = None):
        super().__init__(cooldown, http)
        self.push_token = push_token

    def is_configured(self) -> bool:
        return bool(self.push_token)

    def send(self, batch: Sequence[ScoredItem]) -> None:
        resp = _post(
            self.http,
            EXPO_PUSH_URL,
            json_body=fmt.push_payload(batch, self.push_token),
            headers={"Accept": "application/json"},
        )
        # Expo answers 200 with per-ticket errors in the body.
        try:
            ticket = (resp.json() or {}).get("data") or {}
        except ValueError:
            return
        if isinstance(ticket, dict) and ticket.get("status") == "error":
            raise TransportError(f"expo ticket error: {ticket.get('message', '')}")


def build_channels(settings: Optional[Settings] = None, http: Any = None) -> List[Channel]:
    s = settings or get_settings()

    def mins(v: float) -> timedelta:
        return timedelta(minutes=v)

    channels: List[Channel] = [
        EmailChannel(
            s.sendgrid_api_key,
            s.alert_email_address,
            s.sendgrid_from_email,
            mins(s.email_cooldown_min),
            http,
        ),
        WhatsAppChannel(
            s.twilio_account_sid,
            s.twilio_auth_token,
            s.twilio_whatsapp_from,
            s.alert_phone_number,
            mins(s.whatsapp_cooldown_min),
            http,
        ),
        TelegramChannel(
            s.telegram_bot_token, s.telegram_chat_id, mins(s.telegram_cooldown_min), http
        ),
        DiscordChannel(s.discord_webhook_url, mins(s.discord_cooldown_min), http),
        SlackChannel(s.slack_webhook_url, mins(s.slack_cooldown_min), http),
        PushChannel(s.push_notification_key, mins(s.push_cooldown_min), http),
    ]
    for ch in channels:
        if not ch.is_configured():
            log.info("channel_disabled channel=%s reason=missing_config", ch.channel_id)
    return channels
