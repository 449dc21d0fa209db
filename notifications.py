from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)


class NotificationType(str, Enum):
    INFO = "info"
    ERROR = "error"


@dataclass(frozen=True)
class Notification:
    message: str
    type: NotificationType = NotificationType.INFO


@dataclass
class PendingConfirmation:
    """
    A mutation waiting on the operator.

    The presentation layer shows `message` and calls exactly one of `confirm()` or
    `cancel()`; later calls are ignored.
    """

    message: str
    on_confirm: Callable[[], None]
    on_cancel: Optional[Callable[[], None]] = None
    confirm_label: str = "Confirm"
    cancel_label: str = "Cancel"
    resolved: bool = False

    def confirm(self) -> None:
        if self.resolved:
            return
        self.resolved = True
        self.on_confirm()

    def cancel(self) -> None:
        if self.resolved:
            return
        self.resolved = True
        if self.on_cancel is not None:
            self.on_cancel()


class NotificationChannel:
    """Fire-and-forget messages plus queued confirmations for whichever UI is attached."""

    def __init__(self) -> None:
        self._messages: List[Notification] = []
        self._confirmations: List[PendingConfirmation] = []

    def show_message(self, message: str, type: NotificationType = NotificationType.INFO) -> None:
        logger.info("notify[%s]: %s", type.value, message)
        self._messages.append(Notification(message=message, type=type))

    def request_confirmation(
        self,
        message: str,
        on_confirm: Callable[[], None],
        *,
        on_cancel: Optional[Callable[[], None]] = None,
        confirm_label: str = "Confirm",
        cancel_label: str = "Cancel",
    ) -> PendingConfirmation:
        pending = PendingConfirmation(
            message=message,
            on_confirm=on_confirm,
            on_cancel=on_cancel,
            confirm_label=confirm_label,
            cancel_label=cancel_label,
        )
        self._confirmations.append(pending)
        return pending

    def drain_messages(self) -> List[Notification]:
        out, self._messages = self._messages, []
        return out

    @property
    def messages(self) -> List[Notification]:
        return list(self._messages)

    def pending_confirmation(self) -> Optional[PendingConfirmation]:
        self._confirmations = [c for c in self._confirmations if not c.resolved]
        return self._confirmations[0] if self._confirmations else None
