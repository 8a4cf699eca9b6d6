"""Unit tests for progression.py — XP, level, streaks, weekly XP, record_performance."""

from datetime import date, datetime, timedelta

import pytest

from learning_models import (
    Concept,
    DifficultyLevel,
    PerformanceObservation,
    StreakData,
    UserPreferences,
    UserProfile,
)
from progression import (
    calculate_level,
    calculate_xp,
    record_performance,
    roll_weekly_xp,
    update_streak,
)

NOW = datetime(2024, 3, 10, 18, 0)
ADD = Concept.SINGLE_DIGIT_ADDITION


def make_obs(
    is_correct: bool = True,
    time_spent_ms: int = 2000,
    hints_used: int = 0,
    difficulty: DifficultyLevel = DifficultyLevel.BEGINNER,
    timestamp: datetime = NOW,
) -> PerformanceObservation:
    return PerformanceObservation(
        problem_id="p",
        concept=ADD,
        difficulty=difficulty,
        is_correct=is_correct,
        time_spent_ms=time_spent_ms,
        hints_used=hints_used,
        timestamp=timestamp,
    )


def make_profile(**updates) -> UserProfile:
    streak = StreakData(last_activity_at=NOW - timedelta(hours=1))
    return UserProfile(id="ana", streak=streak).model_copy(update=updates)


# ---------------------------------------------------------------------------
# calculate_xp / calculate_level
# ---------------------------------------------------------------------------

class TestCalculateXp:
    def test_correct_and_fast(self):
        assert calculate_xp(make_obs()) == 30

    def test_wrong_and_slow(self):
        assert calculate_xp(make_obs(False, time_spent_ms=9000)) == 10

    def test_ideal_time_counts_as_fast(self):
        assert calculate_xp(make_obs(time_spent_ms=5000)) == 30

    def test_hint_penalty_then_multiplier(self):
        # 20 → 16 after two hints → 19.2 floored
        obs = make_obs(time_spent_ms=9000, hints_used=2, difficulty=DifficultyLevel.INTERMEDIATE)
        assert calculate_xp(obs) == 19

    def test_advanced(self):
        # 30 → 21 after three hints → 31.5 floored
        assert calculate_xp(make_obs(hints_used=3, difficulty=DifficultyLevel.ADVANCED)) == 31

    def test_expert_doubles(self):
        assert calculate_xp(make_obs(difficulty=DifficultyLevel.EXPERT)) == 60

    def test_minimum_one(self):
        assert calculate_xp(make_obs(False, time_spent_ms=9000, hints_used=12)) == 1
        assert calculate_xp(make_obs(False, time_spent_ms=9000, hints_used=1), base_xp=1) == 1


class TestCalculateLevel:
    def test_levels(self):
        assert calculate_level(0) == 1
        assert calculate_level(99) == 1
        assert calculate_level(100) == 2
        assert calculate_level(250) == 3

    def test_profile_level_follows_xp(self):
        assert UserProfile(xp_total=340).level == 4


# ---------------------------------------------------------------------------
# Streaks and weekly XP
# ---------------------------------------------------------------------------

class TestUpdateStreak:
    def test_two_day_gap_without_goal_resets(self):
        streak = StreakData(current=4, longest=4, last_activity_at=NOW - timedelta(days=2))
        updated = update_streak(streak, xp_today=10, daily_goal=50, now=NOW)
        assert updated.current == 0
        assert updated.longest == 4
        assert updated.last_activity_at == NOW

    def test_goal_met_next_day_increments(self):
        streak = StreakData(current=2, longest=2, last_activity_at=NOW - timedelta(days=1))
        updated = update_streak(streak, xp_today=50, daily_goal=50, now=NOW)
        assert updated.current == 3
        assert updated.longest == 3
        assert updated.last_goal_date == NOW.date()

    def test_goal_met_after_long_gap_restarts(self):
        streak = StreakData(current=5, longest=9, last_activity_at=NOW - timedelta(days=3))
        updated = update_streak(streak, xp_today=80, daily_goal=50, now=NOW)
        assert updated.current == 1
        assert updated.longest == 9

    def test_same_day_repeat_is_unchanged(self):
        streak = StreakData(
            current=3, longest=3,
            last_activity_at=NOW - timedelta(hours=2),
            last_goal_date=NOW.date(),
        )
        updated = update_streak(streak, xp_today=120, daily_goal=50, now=NOW)
        assert updated.current == 3
        assert updated.last_activity_at == NOW

    def test_goal_unmet_same_day(self):
        streak = StreakData(current=3, longest=3, last_activity_at=NOW - timedelta(hours=2))
        assert update_streak(streak, xp_today=10, daily_goal=50, now=NOW).current == 3


class TestRollWeeklyXp:
    def test_shift(self):
        anchor = date(2024, 3, 1)
        assert roll_weekly_xp([1, 2, 3, 4, 5, 6, 7], anchor, date(2024, 3, 3)) == [3, 4, 5, 6, 7, 0, 0]

    def test_week_gap_clears(self):
        assert roll_weekly_xp([5] * 7, date(2024, 3, 1), date(2024, 3, 20)) == [0] * 7

    def test_same_day(self):
        assert roll_weekly_xp([1] * 7, date(2024, 3, 1), date(2024, 3, 1)) == [1] * 7


# ---------------------------------------------------------------------------
# record_performance
# ---------------------------------------------------------------------------

class TestRecordPerformance:
    def test_appends_and_scores(self):
        profile = make_profile()
        history = [make_obs(timestamp=NOW - timedelta(minutes=5))]
        outcome = record_performance(profile, history, make_obs())

        assert len(outcome.history) == 2
        assert len(history) == 1
        assert outcome.xp_awarded == 30
        assert outcome.profile.xp_total == 30
        assert ADD in outcome.masteries
        assert profile.xp_total == 0

    def test_accuracy_is_running_ratio(self):
        profile, history = make_profile(), []
        for correct in (True, False, True):
            outcome = record_performance(profile, history, make_obs(correct))
            profile, history = outcome.profile, outcome.history
        assert profile.progress.total_problems_completed == 3
        assert profile.progress.accuracy_rate == pytest.approx(2 / 3)

    def test_unit_progress(self):
        profile = make_profile()
        first = record_performance(profile, [], make_obs(), lesson_id="unit_1_lesson_1")
        unit = first.profile.progress.unit_progress["unit_1"]
        assert unit.xp_earned == 30
        assert unit.completed_lessons == set()

        second = record_performance(
            first.profile, first.history, make_obs(),
            lesson_id="unit_1_lesson_1", lesson_completed=True,
        )
        unit = second.profile.progress.unit_progress["unit_1"]
        assert unit.completed_lessons == {"unit_1_lesson_1"}
        assert unit.xp_earned == 60

    def test_weekly_xp_and_streak(self):
        streak = StreakData(current=1, longest=1, last_activity_at=NOW - timedelta(days=1))
        profile = make_profile(streak=streak, preferences=UserPreferences(daily_goal=50))
        outcome = record_performance(profile, [], make_obs(difficulty=DifficultyLevel.EXPERT))
        assert outcome.profile.progress.weekly_xp[-1] == 60
        assert outcome.profile.streak.current == 2

    def test_level_up(self):
        outcome = record_performance(make_profile(xp_total=95), [], make_obs())
        assert outcome.leveled_up
        assert outcome.profile.level == 2

    def test_fiftieth_problem_awards_persistence_once(self):
        history = [
            make_obs(False, time_spent_ms=9000, timestamp=NOW - timedelta(minutes=60 - i))
            for i in range(49)
        ]
        outcome = record_performance(make_profile(), history, make_obs(False, time_spent_ms=9000))
        assert [b.id for b in outcome.new_badges] == ["problems_50"]
        assert outcome.new_badges[0].name == "¡Persistente!"

        again = record_performance(outcome.profile, outcome.history, make_obs(False, time_spent_ms=9000))
        assert again.new_badges == []
        assert [b.id for b in again.profile.badges].count("problems_50") == 1

    def test_mastered_concepts(self):
        profile, history = make_profile(), []
        for _ in range(10):
            outcome = record_performance(profile, history, make_obs())
            profile, history = outcome.profile, outcome.history
        assert profile.progress.mastered_concepts == {ADD}
