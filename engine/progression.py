"""
Level, reward and streak rules
"""
import math
from datetime import datetime, timezone

import pytz

XP_PER_LEVEL = 1000
TERRITORY_M2_PER_XP = 100
MIN_TERRITORY_REWARD = 10


def level_for_xp(xp) -> int:
    if xp <= 0:
        return 1
    return int(xp) // XP_PER_LEVEL + 1


def xp_for_level(level) -> int:
    """XP at which the given level starts."""
    if level <= 1:
        return 0
    return (level - 1) * XP_PER_LEVEL


def level_progress(xp) -> dict:
    level = level_for_xp(xp)
    start = xp_for_level(level)
    end = xp_for_level(level + 1)
    return {
        'level': level,
        'xp': xp,
        'current_level_xp': start,
        'next_level_xp': end,
        'xp_to_next_level': end - xp,
        'progress_percent': round((xp - start) / (end - start) * 100, 1),
    }


def territory_reward(area_m2) -> int:
    return max(MIN_TERRITORY_REWARD, math.floor(area_m2 / TERRITORY_M2_PER_XP))


def local_date(moment, timezone_name=None):
    """
    Calendar date of a moment in the user's timezone (UTC if unknown)
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    try:
        tz = pytz.timezone(timezone_name) if timezone_name else pytz.utc
    except pytz.UnknownTimeZoneError:
        tz = pytz.utc
    return moment.astimezone(tz).date()


def update_streak(current_streak, max_streak, last_active_at, now=None, timezone_name=None) -> dict:
    """
    Daily activity streak: same day keeps it, next day extends it, a gap
    starts over at 1
    """
    now = now or datetime.now(timezone.utc)
    today = local_date(now, timezone_name)

    if last_active_at is None:
        new_streak = 1
    else:
        days = (today - local_date(last_active_at, timezone_name)).days
        if days <= 0:
            new_streak = max(1, current_streak)
        elif days == 1:
            new_streak = current_streak + 1
        else:
            new_streak = 1

    return {
        'current_streak': new_streak,
        'max_streak': max(max_streak, new_streak),
        'last_active_at': now,
    }
