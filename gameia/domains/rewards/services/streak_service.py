"""Daily activity streaks."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Optional

from gameia.domains.rewards.models.reward_models import UserStreak
from gameia.extensions import db


def touch_streak(user_id: str, organization_id: Optional[str] = None, today: Optional[date] = None) -> UserStreak:
    """
    Register activity on ``today``. Same day keeps the streak, the next day
    extends it, any gap restarts it at 1. Caller commits.
    """
    today = today or datetime.utcnow().date()
    streak = UserStreak.query.filter_by(user_id=user_id).first()
    if streak is None:
        streak = UserStreak(
            user_id=user_id,
            organization_id=organization_id,
            current_streak=0,
            longest_streak=0,
            total_active_days=0,
        )
        db.session.add(streak)

    last = streak.last_active_date
    if last is not None and last >= today:
        # Same day, or a late event for a day already counted.
        return streak
    if last == today - timedelta(days=1):
        streak.current_streak += 1
    else:
        streak.current_streak = 1
    streak.longest_streak = max(streak.longest_streak, streak.current_streak)
    streak.total_active_days += 1
    streak.last_active_date = today
    db.session.flush()
    return streak


def current_streak(user_id: str) -> int:
    streak = UserStreak.query.filter_by(user_id=user_id).first()
    return streak.current_streak if streak else 0
