from carecadence.logger import setup_logging, logger
from carecadence.config.settings import *

import asyncio
import signal

import carecadence.storage.db_config as db_config
from carecadence.channels.notification import BusNotificationSink
from carecadence.storage.kv import SqliteKVStore
from carecadence.utils import local_zone
from carecadence.world.scheduler import EntityScheduler, build_schedulers

shutdown_event = asyncio.Event()


def signal_handler(sig, frame):
    """处理 SIGINT (Ctrl+C) / SIGTERM 信号"""
    logger.info("收到中断信号,正在依次关闭调度器...")
    shutdown_event.set()


def get_status(schedulers: list[EntityScheduler]) -> dict[str, object]:
    return {s.name: s.get_status() for s in schedulers}


async def main():
    # 注册信号处理器
    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    await db_config.init_db(DB_PATH)

    tz = local_zone()
    schedulers = build_schedulers(
        SqliteKVStore(),
        BusNotificationSink(NOTIFICATION_PERMISSION),
        tz=tz,
        poll_interval=POLL_INTERVAL_SECONDS,
    )
    logger.info(f"时区: {tz}, 轮询间隔: {POLL_INTERVAL_SECONDS}s")

    try:
        await asyncio.gather(*(s.run_loop(shutdown_event) for s in schedulers))
    finally:
        logger.info(f"调度器状态: {get_status(schedulers)}")
        logger.info("关闭数据库连接...")
        await db_config.close_db()
        logger.info("CareCadence 已关闭")


def run() -> None:
    setup_logging(
        log_level=LOG_LEVEL,
        log_file=LOG_FILE,
        console_level=CONSOLE_LOG_LEVEL,
    )
    logger.info("启动 CareCadence...")
    asyncio.run(main())


if __name__ == "__main__":
    run()
