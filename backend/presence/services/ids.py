"""Sortable identifiers for sessions, breaks and status updates.

Ids lead with the epoch milliseconds of their creation instant so that
lexical order within one prefix follows creation order; a short random
suffix keeps ids minted in the same millisecond apart.
"""

from __future__ import annotations

import secrets
from datetime import datetime, timezone
from typing import Optional


def _utc(now: Optional[datetime]) -> datetime:
    return (now or datetime.now(timezone.utc)).astimezone(timezone.utc)


def _epoch_ms(instant: datetime) -> int:
    return int(instant.timestamp() * 1000)


def _suffix() -> str:
    return secrets.token_hex(3)


def generate_session_id(user_id: str, *, now: Optional[datetime] = None) -> str:
    instant = _utc(now)
    return f"{user_id}_{instant.strftime('%Y%m%d')}_{_epoch_ms(instant):013d}{_suffix()}"


def generate_break_id(*, now: Optional[datetime] = None) -> str:
    return f"break_{_epoch_ms(_utc(now)):013d}{_suffix()}"


def generate_status_update_id(*, now: Optional[datetime] = None) -> str:
    return f"status_{_epoch_ms(_utc(now)):013d}{_suffix()}"
