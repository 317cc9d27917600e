from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import httpx

from presence.core.settings import settings


@dataclass
class DirectMessageResult:
    ok: bool
    error: Optional[str] = None
    channel: Optional[str] = None
    message_ts: Optional[str] = None


class NotifierError(RuntimeError):
    pass


def send_direct_message(*, user_id: str, blocks: list[dict], text: str) -> DirectMessageResult:
    """Deliver a direct message; failures come back as ``ok=False``, never raised."""
    provider = (settings.notifier_provider or "disabled").lower()
    try:
        if provider in {"disabled", "none"}:
            raise NotifierError("NOTIFIER_PROVIDER disabled")
        if provider == "slack":
            return _send_slack(user_id=user_id, blocks=blocks, text=text)
        raise NotifierError(f"Unsupported NOTIFIER_PROVIDER: {settings.notifier_provider}")
    except (NotifierError, httpx.HTTPError) as exc:
        return DirectMessageResult(ok=False, error=str(exc))


def _slack_call(client: httpx.Client, method: str, payload: dict) -> dict:
    resp = client.post(f"{settings.slack_api_base_url.rstrip('/')}/{method}", json=payload)
    if resp.status_code >= 400:
        raise NotifierError(f"Slack {method} error: {resp.status_code} {resp.text}")
    try:
        data = resp.json()
    except ValueError as exc:
        raise NotifierError(f"Slack {method} returned a non-JSON body") from exc
    if not isinstance(data, dict):
        raise NotifierError(f"Slack {method} returned an unexpected payload")
    if not data.get("ok"):
        raise NotifierError(f"Slack {method} error: {data.get('error', 'unknown_error')}")
    return data


def _send_slack(*, user_id: str, blocks: list[dict], text: str) -> DirectMessageResult:
    if not settings.slack_bot_token:
        raise NotifierError("SLACK_BOT_TOKEN not configured")
    headers = {
        "Authorization": f"Bearer {settings.slack_bot_token}",
        "Content-Type": "application/json; charset=utf-8",
    }
    with httpx.Client(timeout=settings.notifier_http_timeout_seconds, headers=headers) as client:
        opened = _slack_call(client, "conversations.open", {"users": user_id})
        channel = (opened.get("channel") or {}).get("id")
        if not channel:
            raise NotifierError("Slack conversations.open returned no channel")
        posted = _slack_call(client, "chat.postMessage", {"channel": channel, "blocks": blocks, "text": text})
    return DirectMessageResult(ok=True, channel=channel, message_ts=posted.get("ts"))
