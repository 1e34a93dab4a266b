import os
from dotenv import load_dotenv
from carecadence.logger import logger
load_dotenv()

__all__ = [
    "USER_NAME", "USER_TIMEZONE",
    "DB_PATH", "LOG_FILE", "LOG_LEVEL", "CONSOLE_LOG_LEVEL",
    "POLL_INTERVAL_SECONDS",
    "NOTIFICATION_PERMISSION",
    "NOTIFY_SOUND_APPOINTMENTS", "NOTIFY_SOUND_MEDICATIONS", "NOTIFY_SOUND_TASKS",
    "LLM_PROVIDER", "OPENAI_PRIMARY_API_KEY", "OPENAI_PRIMARY_BASE_URL", "GEMINI_API_KEY", "GEMINI_BASE_URL",
    "LLM_INSIGHTS_MODEL", "INSIGHTS_ENABLED",
]


def _parse_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on", "y")


def _parse_int(name: str, default: int, minimum: int = 1) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning(f"{name} 非法: {raw}, 已回退到 {default}")
        return default
    if value < minimum:
        logger.warning(f"{name} 不能小于 {minimum}, 已回退到 {default}")
        return default
    return value


# 用户个人信息
USER_NAME = os.getenv("USER_NAME", "User")
# 为空时使用宿主机本地时区(固定偏移)
USER_TIMEZONE = os.getenv("USER_TIMEZONE", "").strip()


# 存储与日志
DB_PATH = os.getenv("DB_PATH", "data/carecadence.db")
LOG_FILE = os.getenv("LOG_FILE", "logs/carecadence.log")
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG").strip().upper()
CONSOLE_LOG_LEVEL = os.getenv("CONSOLE_LOG_LEVEL", "INFO").strip().upper()


# 调度器，轮询间隔即提醒窗口宽度
POLL_INTERVAL_SECONDS = _parse_int("POLL_INTERVAL_SECONDS", 60)
if POLL_INTERVAL_SECONDS != 60:
    logger.warning(f"POLL_INTERVAL_SECONDS={POLL_INTERVAL_SECONDS}, 与 60 秒提醒窗口不一致, 提醒可能漏发或需依赖去重")


# 通知
NOTIFICATION_PERMISSION = os.getenv("NOTIFICATION_PERMISSION", "granted").strip().lower()
if NOTIFICATION_PERMISSION not in ("granted", "denied", "default", "unsupported"):
    logger.warning(f"NOTIFICATION_PERMISSION 非法: {NOTIFICATION_PERMISSION}, 已回退到 default")
    NOTIFICATION_PERMISSION = "default"

NOTIFY_SOUND_APPOINTMENTS = _parse_bool("NOTIFY_SOUND_APPOINTMENTS", True)
NOTIFY_SOUND_MEDICATIONS = _parse_bool("NOTIFY_SOUND_MEDICATIONS", True)
NOTIFY_SOUND_TASKS = _parse_bool("NOTIFY_SOUND_TASKS", True)


# LLM 设置(仅用于健康洞察)
LLM_PROVIDER = os.getenv("LLM_PROVIDER", "openai").strip().lower()
if LLM_PROVIDER not in ("openai", "gemini"):
    logger.critical(f"LLM_PROVIDER 非法: {LLM_PROVIDER}, 仅支持 openai 或 gemini")
    raise SystemExit(1)

OPENAI_PRIMARY_API_KEY = os.getenv("OPENAI_PRIMARY_API_KEY")
OPENAI_PRIMARY_BASE_URL = os.getenv("OPENAI_PRIMARY_BASE_URL", "https://api.openai.com/v1")
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")
GEMINI_BASE_URL = os.getenv("GEMINI_BASE_URL")

LLM_INSIGHTS_MODEL = os.getenv("LLM_INSIGHTS_MODEL", "gpt-4o-mini")

INSIGHTS_ENABLED = True
if LLM_PROVIDER == "openai" and not OPENAI_PRIMARY_API_KEY:
    logger.warning("当前 LLM_PROVIDER=openai, 但 OPENAI_PRIMARY_API_KEY 未设置, 健康洞察不可用")
    INSIGHTS_ENABLED = False

if LLM_PROVIDER == "gemini" and not GEMINI_API_KEY:
    logger.warning("当前 LLM_PROVIDER=gemini, 但 GEMINI_API_KEY 未设置, 健康洞察不可用")
    INSIGHTS_ENABLED = False
