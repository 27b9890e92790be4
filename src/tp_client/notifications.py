"""User-visible notification sink for the balance update client."""

import logging
from typing import Protocol

from src.tp_common.enums import NotificationKind

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def notify(self, kind: NotificationKind, message: str) -> None: ...


class LoggingNotifier:
    """Default notifier: success at INFO, errors at WARNING."""

    def notify(self, kind: NotificationKind, message: str) -> None:
        if kind == NotificationKind.SUCCESS:
            logger.info("%s", message)
        else:
            logger.warning("%s", message)
