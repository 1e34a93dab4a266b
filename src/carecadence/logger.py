"""日志模块

级别: TRACE/DEBUG/INFO/WARNING/ERROR/CRITICAL (FATAL 视为 CRITICAL)
调度器用 scheduler_logger(kind) 取得绑定了实体类型的 logger, 日志里多一列 kind，
非调度器代码这一列显示为 "-"。

调度器对单个实体的判断写 TRACE，推进/跳过/去重写 DEBUG，发出的通知写 INFO
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Literal, Union

from loguru import logger

LogLevel = Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL", "FATAL"]

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | "
    "<level>{level:<8}</level> | "
    "<magenta>{extra[kind]:<4}</magenta> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)

FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS ZZ} | {level:<8} | {extra[kind]:<4} | {name}:{function}:{line} - {message}"


def normalize_level(level: Union[str, LogLevel]) -> str:
    name = str(level).strip().upper()
    return "CRITICAL" if name == "FATAL" else name


def scheduler_logger(kind: str):
    return logger.bind(kind=kind)


def setup_logging(
    log_level: LogLevel,
    log_file: Union[str, Path],
    console_level: LogLevel = "INFO",
) -> None:
    """控制台 + 滚动日志文件，ERROR 以上另写一份 *_error 文件"""
    log_file = Path(log_file)
    log_file.parent.mkdir(parents=True, exist_ok=True)
    error_log_file = log_file.with_name(f"{log_file.stem}_error{log_file.suffix}")

    file_options = {"format": FILE_FORMAT, "rotation": "10 MB", "compression": "zip", "encoding": "utf-8"}
    logger.configure(
        handlers=[
            {"sink": sys.stderr, "level": normalize_level(console_level), "format": CONSOLE_FORMAT, "colorize": True},
            {"sink": log_file, "level": normalize_level(log_level), "retention": "30 days", **file_options},
            {"sink": error_log_file, "level": "ERROR", "retention": "90 days", "backtrace": True, **file_options},
        ],
        extra={"kind": "-"},
    )


__all__ = ["setup_logging", "normalize_level", "scheduler_logger", "logger"]
