"""Desktop notifications through the system tray."""

from __future__ import annotations

import logging

from PyQt6.QtWidgets import QSystemTrayIcon


logger = logging.getLogger(__name__)

MESSAGE_TIMEOUT_MS = 5000


class TrayNotifier:
    """Notification sink that shows tray balloon messages.

    A no-op when disabled, when no tray icon was given, or when the
    platform has no system tray.
    """

    def __init__(
        self,
        tray_icon: QSystemTrayIcon | None = None,
        *,
        enabled: bool = True,
    ) -> None:
        self._tray_icon = tray_icon
        self.enabled = enabled

    @property
    def available(self) -> bool:
        return (
            self._tray_icon is not None
            and QSystemTrayIcon.isSystemTrayAvailable()
            and self._tray_icon.supportsMessages()
        )

    def notify(self, title: str, body: str) -> None:
        if not self.enabled or not self.available:
            logger.debug("Notification skipped: %s", title)
            return
        self._tray_icon.showMessage(
            title, body, QSystemTrayIcon.MessageIcon.Information, MESSAGE_TIMEOUT_MS,
        )
