"""健康洞察

表单校验、组装请求、调用 LLM。LLM 调用本身对这里是黑盒，失败统一抛出 InsightsError。
空字段不校验，也不会出现在请求里。
未配置 LLM 密钥时 create_insights_client 返回 None, get_health_insights 直接报错。
"""

from __future__ import annotations

import re
from typing import Dict, List, Mapping

from carecadence.config.prompts import INSIGHTS_SYSTEM_PROMPT
from carecadence.config.settings import INSIGHTS_ENABLED, LLM_INSIGHTS_MODEL, LLM_PROVIDER
from carecadence.datamodel import HealthMetrics
from carecadence.llm.base import LLMClient, LLMMessage
from carecadence.logger import logger

__all__ = ["FORM_FIELDS", "InsightsError", "validate_field", "validate_form", "metrics_from_form",
           "build_insight_context", "create_insights_client", "get_health_insights"]

FORM_FIELDS = (
    "heart_rate", "blood_pressure", "activity_type",
    "activity_hours", "activity_minutes", "sleep_hrs", "sleep_mins", "notes",
)

_BLOOD_PRESSURE_RE = re.compile(r"^\d{2,3}/\d{2,3}$")


class InsightsError(Exception):
    pass


def _to_number(value: str) -> float | None:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _between(value: str, low: float, high: float) -> bool:
    number = _to_number(value)
    return number is not None and low <= number <= high


def validate_field(name: str, value: str) -> str | None:
    """返回错误文案，合法或为空时返回 None"""
    if not value:
        return None

    if name == "heart_rate":
        number = _to_number(value)
        if number is None or number <= 20 or number >= 250:
            return "Please enter a realistic heart rate (20-250 bpm)."
    elif name == "blood_pressure":
        if not _BLOOD_PRESSURE_RE.match(value):
            return 'Use format "Sys/Dia" (e.g., 120/80).'
    elif name == "activity_hours":
        number = _to_number(value)
        if number is None or number < 0:
            return "Must be a positive number."
    elif name in ("activity_minutes", "sleep_mins"):
        if not _between(value, 0, 59):
            return "Must be between 0-59."
    elif name == "sleep_hrs":
        if not _between(value, 0, 24):
            return "Must be between 0-24."
    return None


def validate_form(form: Mapping[str, str]) -> Dict[str, str]:
    errors: Dict[str, str] = {}
    for name in FORM_FIELDS:
        error = validate_field(name, form.get(name, ""))
        if error:
            errors[name] = error
    return errors


def _format_number(number: float) -> str:
    return str(int(number)) if float(number).is_integer() else str(number)


def metrics_from_form(form: Mapping[str, str]) -> HealthMetrics:
    """小时+分钟合并为活动总分钟数，睡眠合并为保留两位小数的小时数"""
    activity_minutes = (_to_number(form.get("activity_hours", "")) or 0) * 60 + (_to_number(form.get("activity_minutes", "")) or 0)
    sleep_hours = (_to_number(form.get("sleep_hrs", "")) or 0) + (_to_number(form.get("sleep_mins", "")) or 0) / 60

    return HealthMetrics(
        heart_rate=form.get("heart_rate", ""),
        blood_pressure=form.get("blood_pressure", ""),
        activity_type=form.get("activity_type", ""),
        activity_duration=_format_number(activity_minutes) if activity_minutes > 0 else "",
        sleep_hours=f"{sleep_hours:.2f}" if sleep_hours > 0 else "",
        notes=form.get("notes", ""),
    )


def build_insight_context(metrics: HealthMetrics) -> List[LLMMessage]:
    lines = []
    if metrics.heart_rate:
        lines.append(f"- Resting heart rate: {metrics.heart_rate} bpm")
    if metrics.blood_pressure:
        lines.append(f"- Blood pressure: {metrics.blood_pressure} mmHg")
    if metrics.activity_type or metrics.activity_duration:
        activity = metrics.activity_type or "Activity"
        if metrics.activity_duration:
            activity += f" for {metrics.activity_duration} minutes"
        lines.append(f"- Activity: {activity}")
    if metrics.sleep_hours:
        lines.append(f"- Sleep: {metrics.sleep_hours} hours")
    if metrics.notes:
        lines.append(f"- Notes: {metrics.notes}")

    if not lines:
        lines.append("- No metrics provided")

    content = "Here are my health metrics for today:\n" + "\n".join(lines)
    return [{"role": "user", "content": content}]


def create_insights_client(
    provider: str = LLM_PROVIDER,
    enabled: bool = INSIGHTS_ENABLED,
    model: str = LLM_INSIGHTS_MODEL,
) -> LLMClient | None:
    """按配置创建 LLM 客户端，缺少密钥时返回 None"""
    if not enabled:
        return None

    if provider == "openai":
        from carecadence.llm.openai_client import OpenAIClient

        return OpenAIClient(model=model)

    if provider == "gemini":
        from carecadence.llm.gemini_client import GeminiClient

        return GeminiClient(model=model)

    raise ValueError(f"不支持的 LLM_PROVIDER: {provider}")


async def get_health_insights(metrics: HealthMetrics, client: LLMClient | None = None) -> str:
    """client 为空时按配置创建"""
    if client is None:
        client = create_insights_client()
    if client is None:
        logger.warning("健康洞察已禁用: 未配置 LLM 密钥")
        raise InsightsError("AI insights are not configured.")

    context = build_insight_context(metrics)
    try:
        text = await client.generate_response(context, append_inst=INSIGHTS_SYSTEM_PROMPT)
    except Exception as e:
        logger.opt(exception=e).error(f"健康洞察生成失败: {e}")
        raise InsightsError("Failed to generate insights. Please try again.") from e

    if not text or not text.strip():
        logger.warning("健康洞察返回为空")
        raise InsightsError("Failed to generate insights. Please try again.")
    return text.strip()
