"""
调度器运行时指标，每个调度器实例各持有一份，用于状态查询和排查漏发/重复提醒。
"""

from __future__ import annotations

import time
from dataclasses import dataclass


@dataclass
class SchedulerMetrics:
    tick_count: int = 0
    tick_error_count: int = 0
    tick_total_latency_ms: float = 0.0
    rollover_count: int = 0
    notification_count: int = 0
    duplicate_suppressed_count: int = 0
    last_tick_at: float | None = None

    def record_tick(self, latency_ms: float, error: bool = False) -> None:
        self.tick_count += 1
        self.tick_total_latency_ms += max(0.0, latency_ms)
        self.last_tick_at = time.time()
        if error:
            self.tick_error_count += 1

    def record_rollover(self, count: int = 1) -> None:
        self.rollover_count += count

    def record_notification(self) -> None:
        self.notification_count += 1

    def record_duplicate(self) -> None:
        self.duplicate_suppressed_count += 1

    def snapshot(self) -> dict:
        avg_latency_ms = 0.0
        if self.tick_count > 0:
            avg_latency_ms = self.tick_total_latency_ms / self.tick_count

        return {
            "tick_count": self.tick_count,
            "tick_error_count": self.tick_error_count,
            "tick_avg_latency_ms": round(avg_latency_ms, 2),
            "rollover_count": self.rollover_count,
            "notification_count": self.notification_count,
            "duplicate_suppressed_count": self.duplicate_suppressed_count,
            "last_tick_at_epoch": self.last_tick_at,
            "last_tick_at_utc": (
                time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime(self.last_tick_at))
                if self.last_tick_at is not None
                else None
            ),
        }


__all__ = ["SchedulerMetrics"]
