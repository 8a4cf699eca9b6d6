"""
Progression tracker.
XP, levels, weekly XP, daily-goal streaks and unit progress, expressed as
pure transitions from a prior profile plus one new observation.
"""

import logging
from datetime import date, datetime
from fractions import Fraction
from typing import Optional

from pydantic import BaseModel, ConfigDict

import assessment_engine
import badges
from learning_models import (
    Badge,
    Concept,
    ConceptMastery,
    DifficultyLevel,
    LearningProgress,
    PerformanceObservation,
    StreakData,
    UnitProgress,
    UserProfile,
    local_time,
    unit_id_for_lesson,
)

logger = logging.getLogger(__name__)

BASE_XP = 10
XP_PER_LEVEL = 100
SPEED_BONUS = Fraction(3, 2)

DIFFICULTY_MULTIPLIERS = {
    DifficultyLevel.BEGINNER: Fraction(1),
    DifficultyLevel.INTERMEDIATE: Fraction(6, 5),
    DifficultyLevel.ADVANCED: Fraction(3, 2),
    DifficultyLevel.EXPERT: Fraction(2),
}


class PerformanceOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    profile: UserProfile
    history: list[PerformanceObservation]
    masteries: dict[Concept, ConceptMastery]
    xp_awarded: int
    new_badges: list[Badge]
    recommended_topics: list[Concept]
    leveled_up: bool = False


# ---------------------------------------------------------------------------
# XP and level
# ---------------------------------------------------------------------------

def calculate_xp(observation: PerformanceObservation, base_xp: int = BASE_XP) -> int:
    """
    base, x2 when correct, x1.5 (truncated) when at or under the ideal time,
    minus 10% per hint, times the difficulty multiplier. Never below 1.
    """
    xp = base_xp
    if observation.is_correct:
        xp *= 2
    if observation.time_spent_ms <= observation.concept.ideal_time_ms:
        xp = int(xp * SPEED_BONUS)
    xp = xp * max(0, 10 - observation.hints_used) // 10
    xp = int(xp * DIFFICULTY_MULTIPLIERS[observation.difficulty])
    return max(1, xp)


def calculate_level(xp_total: int) -> int:
    return max(0, xp_total) // XP_PER_LEVEL + 1


# ---------------------------------------------------------------------------
# Weekly XP and streaks
# ---------------------------------------------------------------------------

def roll_weekly_xp(weekly_xp: list[int], anchor: Optional[date], today: date) -> list[int]:
    """Shift the 7-day window so its last slot is `today`."""
    window = ([0] * 7 + list(weekly_xp))[-7:]
    if anchor is None or today <= anchor:
        return window
    shift = min((today - anchor).days, 7)
    return window[shift:] + [0] * shift


def update_streak(streak: StreakData, xp_today: int, daily_goal: int, now: datetime) -> StreakData:
    """
    Goal met: +1 if the last activity was at most a day ago, else restart at 1.
    Goal unmet after a gap of more than a day: back to 0.
    Otherwise only the activity time moves.
    """
    now = local_time(now)
    today = now.date()
    gap = (today - streak.last_activity_at.date()).days

    if xp_today >= daily_goal:
        if streak.last_goal_date == today:
            return streak.model_copy(update={"last_activity_at": now})
        current = streak.current + 1 if gap <= 1 else 1
        return streak.model_copy(update={
            "current": current,
            "longest": max(streak.longest, current),
            "last_activity_at": now,
            "last_goal_date": today,
        })

    if gap > 1:
        return streak.model_copy(update={"current": 0, "last_activity_at": now})
    return streak.model_copy(update={"last_activity_at": now})


# ---------------------------------------------------------------------------
# Learning progress
# ---------------------------------------------------------------------------

def update_progress(
    progress: LearningProgress,
    observation: PerformanceObservation,
    xp_earned: int,
    masteries: dict[Concept, ConceptMastery],
    lesson_id: Optional[str] = None,
    lesson_completed: bool = False,
) -> LearningProgress:
    now = observation.timestamp
    unit_progress = dict(progress.unit_progress)

    if lesson_id is not None:
        unit_id = unit_id_for_lesson(lesson_id)
        current = unit_progress.get(unit_id) or UnitProgress(unit_id=unit_id)
        completed = set(current.completed_lessons)
        if lesson_completed:
            completed.add(lesson_id)
        unit_progress[unit_id] = current.model_copy(update={
            "completed_lessons": completed,
            "xp_earned": current.xp_earned + xp_earned,
            "mastery_level": assessment_engine.classify_mastery(masteries.get(observation.concept)),
            "last_accessed_at": now,
        })

    total = progress.total_problems_completed + 1
    correct = progress.total_correct + (1 if observation.is_correct else 0)

    weekly = roll_weekly_xp(progress.weekly_xp, progress.weekly_xp_date, now.date())
    weekly[-1] += xp_earned
    anchor = progress.weekly_xp_date
    if anchor is None or now.date() > anchor:
        anchor = now.date()

    return progress.model_copy(update={
        "unit_progress": unit_progress,
        "mastered_concepts": {
            c for c, m in masteries.items()
            if m.mastery_score >= assessment_engine.MASTERED_THRESHOLD
        },
        "weekly_xp": weekly,
        "weekly_xp_date": anchor,
        "total_problems_completed": total,
        "total_correct": correct,
        "accuracy_rate": correct / total,
    })


def record_performance(
    profile: UserProfile,
    history: list[PerformanceObservation],
    observation: PerformanceObservation,
    lesson_id: Optional[str] = None,
    lesson_completed: bool = False,
    base_xp: int = BASE_XP,
) -> PerformanceOutcome:
    """
    Append one observation and derive everything that follows from it.
    The observation timestamp is "now" for every time-based rule.
    """
    now = observation.timestamp
    new_history = list(history) + [observation]
    masteries = assessment_engine.analyze(new_history)
    xp = calculate_xp(observation, base_xp)

    progress = update_progress(
        profile.progress, observation, xp, masteries,
        lesson_id=lesson_id, lesson_completed=lesson_completed,
    )
    streak = update_streak(
        profile.streak, progress.weekly_xp[-1], profile.preferences.daily_goal, now
    )

    xp_total = profile.xp_total + xp
    leveled_up = calculate_level(xp_total) > calculate_level(profile.xp_total)
    if leveled_up:
        logger.info(f"Learner {profile.id} reached level {calculate_level(xp_total)}")

    updated = profile.model_copy(update={
        "xp_total": xp_total,
        "streak": streak,
        "progress": progress,
    })

    earned = badges.evaluate(updated, new_history, now=now)
    if earned:
        logger.info(f"Learner {profile.id} earned badges: {', '.join(b.id for b in earned)}")
        updated = updated.model_copy(update={"badges": list(updated.badges) + earned})

    return PerformanceOutcome(
        profile=updated,
        history=new_history,
        masteries=masteries,
        xp_awarded=xp,
        new_badges=earned,
        recommended_topics=assessment_engine.recommend_topics(masteries, now=now),
        leveled_up=leveled_up,
    )
