"""
CRON 表达式工具

- 5 段: 分 时 日 月 周
- 6 段: 秒 分 时 日 月 周（秒位于开头）

语法层面只做段数与基本语法校验，取值由 croniter 解析。
"""
import logging
from datetime import datetime, timezone
from typing import List, Optional
from zoneinfo import ZoneInfo

from croniter import croniter

from dashhub.core.config import settings

logger = logging.getLogger(__name__)

MIN_CRON_FIELDS = 5
MAX_CRON_FIELDS = 6


def split_cron_fields(expr: Optional[str]) -> List[str]:
    if not expr or not isinstance(expr, str):
        return []
    return expr.strip().split()


def _has_seconds(fields: List[str]) -> bool:
    return len(fields) == MAX_CRON_FIELDS


def is_valid_cron_expression(expr: Optional[str]) -> bool:
    """校验 CRON 表达式: 5 或 6 段，且每段语法合法"""
    fields = split_cron_fields(expr)
    if not MIN_CRON_FIELDS <= len(fields) <= MAX_CRON_FIELDS:
        return False
    try:
        return croniter.is_valid(" ".join(fields), second_at_beginning=_has_seconds(fields))
    except Exception:
        # croniter 对部分畸形输入直接抛异常而不是返回 False
        return False


def scheduler_now() -> datetime:
    """调度时区下的当前时间（带时区）"""
    return datetime.now(ZoneInfo(settings.SCHEDULER_TIMEZONE))


def next_fire_time(expr: str, base: Optional[datetime] = None) -> datetime:
    """
    计算 base 之后的下一次触发时间

    Args:
        expr: 已校验的 CRON 表达式
        base: 起始时间，默认为调度时区的当前时间

    Returns:
        带时区的触发时间
    """
    fields = split_cron_fields(expr)
    start = base or scheduler_now()
    itr = croniter(" ".join(fields), start, second_at_beginning=_has_seconds(fields))
    return itr.get_next(datetime)


def to_utc_naive(value: datetime) -> datetime:
    """转换为数据库存储使用的 naive UTC 时间"""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def describe_cron(expr: str) -> str:
    """生成可读的调度描述，无法归类时原样返回表达式"""
    fields = split_cron_fields(expr)
    if not MIN_CRON_FIELDS <= len(fields) <= MAX_CRON_FIELDS:
        return expr
    if _has_seconds(fields):
        fields = fields[1:]

    minute, hour, day_of_month, month, day_of_week = fields
    at = f"{hour}:{minute.rjust(2, '0')}"

    if day_of_month == "*" and month == "*" and day_of_week == "*":
        return f"Daily at {at}"
    if day_of_month == "*" and month == "*" and day_of_week != "*":
        return f"Weekly on day {day_of_week} at {at}"
    if day_of_month != "*" and month == "*":
        return f"Monthly on day {day_of_month} at {at}"

    return expr
