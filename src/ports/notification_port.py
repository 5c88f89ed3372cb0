"""Notification port — where reminder messages are delivered.

The reminder scheduler only decides *when* a message fires; this protocol is
the sink that delivers it to the user.
"""

from __future__ import annotations

from typing import Protocol


class NotificationPort(Protocol):
    """Delivers a user-visible message."""

    async def send_message(self, user_id: int, text: str) -> None: ...
