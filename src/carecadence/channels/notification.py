"""本地通知通道

通知以 E.NOTIFICATION_SHOWN 事件发到总线上，由订阅方负责展示(默认写日志)。
权限未授予时静默丢弃，只记录 DEBUG 日志。
"""

from __future__ import annotations

from carecadence.channels.base import NotificationPermission, NotificationSink
from carecadence.events import Bus, E, bus as default_bus
from carecadence.logger import logger

__all__ = ["BusNotificationSink"]


class BusNotificationSink(NotificationSink):
    def __init__(self, permission: NotificationPermission | str = NotificationPermission.GRANTED, bus: Bus | None = None) -> None:
        self.permission = NotificationPermission(permission)
        self.bus = bus or default_bus

    def notify(self, title: str, body: str, play_sound: bool) -> None:
        if self.permission is not NotificationPermission.GRANTED:
            logger.debug(f"通知权限为 {self.permission.value}, 丢弃通知: {title}")
            return
        try:
            self.bus.emit(E.NOTIFICATION_SHOWN, title=title, body=body, play_sound=play_sound)
        except Exception as e:
            logger.warning(f"通知发送失败: {title}: {e}")


@default_bus.on(E.NOTIFICATION_SHOWN)
def _show_notification(title: str, body: str, play_sound: bool) -> None:
    logger.info(f"[{title}] {body}" + (" (with sound)" if play_sound else ""))
