"""
시간 관련 유틸리티 함수
"""
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

Clock = Callable[[], datetime]

SECONDS_PER_DAY = 86400


def utc_now() -> datetime:
    """현재 UTC 시각 (timezone-aware)"""
    return datetime.now(timezone.utc)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """naive datetime은 UTC로 간주하여 tzinfo를 붙인다."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def remaining(until: datetime, now: datetime) -> timedelta:
    """until까지 남은 시간 (음수는 0으로 고정)"""
    delta = ensure_utc(until) - ensure_utc(now)
    if delta < timedelta(0):
        return timedelta(0)
    return delta


def to_milliseconds(delta: timedelta) -> int:
    return int(delta.total_seconds() * 1000)


def to_days(delta: timedelta) -> float:
    return delta.total_seconds() / SECONDS_PER_DAY


def format_time_remaining(delta: Optional[timedelta]) -> str:
    """
    남은 시간을 짧은 카운트다운 표기로 변환합니다.

    Args:
        delta: 남은 시간 (None인 경우 빈 문자열 반환)

    Returns:
        str: 카운트다운 표기
            - 1일 이상: "2d 4h" (0시간이면 "3d")
            - 1시간 이상: "23h 5m" (0분이면 "2h")
            - 1분 이상: "12m"
            - 1분 미만: "<1m"
            - 0: "now"

    Examples:
        >>> format_time_remaining(timedelta(days=2, hours=4, minutes=30))
        '2d 4h'
        >>> format_time_remaining(timedelta(hours=23, minutes=5))
        '23h 5m'
    """
    if delta is None:
        return ""

    total_seconds = int(delta.total_seconds())

    if total_seconds <= 0:
        return "now"

    if total_seconds < 60:
        return "<1m"

    days, rest = divmod(total_seconds, SECONDS_PER_DAY)
    hours, rest = divmod(rest, 3600)
    minutes = rest // 60

    if days:
        return f"{days}d {hours}h" if hours else f"{days}d"
    if hours:
        return f"{hours}h {minutes}m" if minutes else f"{hours}h"
    return f"{minutes}m"
