from abc import ABC, abstractmethod
from enum import Enum


class NotificationPermission(str, Enum):
    GRANTED = "granted"
    DENIED = "denied"
    DEFAULT = "default"  # 尚未询问用户
    UNSUPPORTED = "unsupported"


class NotificationSink(ABC):
    """通知出口，尽力而为: 实现不得抛出异常"""

    @abstractmethod
    def notify(self, title: str, body: str, play_sound: bool) -> None:
        pass


__all__ = ["NotificationPermission", "NotificationSink"]
