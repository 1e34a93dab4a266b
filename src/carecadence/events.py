"""事件总线模块，定义了事件总线类 Bus 及事件名集合 E

调度器只负责发出事件，展示通知、统计等由订阅方完成。
处理器可以是同步函数，也可以是协程函数(需要运行中的事件循环)。
"""

from __future__ import annotations
from pyee.asyncio import AsyncIOEventEmitter
from typing import Any, Callable

from carecadence.logger import logger

Handler = Callable[..., Any]

# 事件名集中定义
class E:
    OCCURRENCE_ADVANCED = "schedule.occurrence_advanced"
    REMINDER_FIRED = "schedule.reminder_fired"
    TICK_FAILED = "schedule.tick_failed"
    NOTIFICATION_SHOWN = "notification.shown"


class Bus(AsyncIOEventEmitter):
    def on(self, event: str) -> Callable[[Handler], Handler]:
        """注册事件处理器装饰器"""
        def decorator(handler: Handler) -> Handler:
            logger.debug(f"注册事件处理器: {event} -> {handler.__name__}")
            super(Bus, self).on(event, handler)
            return handler

        return decorator


bus = Bus()

__all__ = ["Bus", "bus", "E"]
