"""Unit tests for badges.py — milestone families and de-duplication."""

from datetime import datetime

from badges import CATALOG, PROBLEM_MILESTONES, SPEED_MILESTONES, STREAK_MILESTONES, evaluate
from learning_models import BadgeRarity, Concept, PerformanceObservation, StreakData, UserProfile

NOW = datetime(2024, 3, 1, 10, 0)


def make_obs(is_correct: bool = True, time_spent_ms: int = 5000) -> PerformanceObservation:
    return PerformanceObservation(
        problem_id="p",
        concept=Concept.SINGLE_DIGIT_ADDITION,
        is_correct=is_correct,
        time_spent_ms=time_spent_ms,
        timestamp=NOW,
    )


def make_profile(streak: int = 0) -> UserProfile:
    return UserProfile(streak=StreakData(current=streak, longest=streak, last_activity_at=NOW))


def badge_ids(profile, history):
    return [b.id for b in evaluate(profile, history, now=NOW)]


class TestCatalog:
    def test_every_milestone_has_an_entry(self):
        for table in (STREAK_MILESTONES, SPEED_MILESTONES, PROBLEM_MILESTONES):
            for badge_id in table.values():
                assert badge_id in CATALOG

    def test_names(self):
        assert CATALOG["problems_50"].name == "¡Persistente!"
        assert CATALOG["streak_30"].rarity == BadgeRarity.LEGENDARY


class TestStreakBadges:
    def test_exact_milestone(self):
        assert badge_ids(make_profile(3), []) == ["streak_3"]
        assert badge_ids(make_profile(7), []) == ["streak_7"]

    def test_between_milestones(self):
        assert badge_ids(make_profile(4), []) == []
        assert badge_ids(make_profile(2), []) == []


class TestAccuracyBadges:
    def test_needs_full_window(self):
        assert badge_ids(make_profile(), [make_obs()] * 9) == []

    def test_perfect_ten(self):
        badges = evaluate(make_profile(), [make_obs()] * 10, now=NOW)
        assert [b.id for b in badges] == ["perfect_10"]
        assert badges[0].rarity == BadgeRarity.EPIC
        assert badges[0].unlocked_at == NOW

    def test_nine_of_ten(self):
        history = [make_obs(False)] + [make_obs()] * 9
        assert badge_ids(make_profile(), history) == ["accuracy_90"]

    def test_eight_of_ten(self):
        history = [make_obs(False)] * 2 + [make_obs()] * 8
        assert badge_ids(make_profile(), history) == []

    def test_only_last_ten_count(self):
        history = [make_obs(False)] * 5 + [make_obs()] * 10
        assert badge_ids(make_profile(), history) == ["perfect_10"]


class TestSpeedBadges:
    def test_five_fast_answers(self):
        assert badge_ids(make_profile(), [make_obs(time_spent_ms=1000)] * 5) == ["speed_5"]

    def test_sixth_awards_nothing(self):
        assert badge_ids(make_profile(), [make_obs(time_spent_ms=1000)] * 6) == []

    def test_wrong_or_slow_answers_not_counted(self):
        history = [make_obs(time_spent_ms=1000)] * 4 + [make_obs(False, 1000), make_obs(time_spent_ms=3000)]
        assert badge_ids(make_profile(), history) == []


class TestPersistenceBadges:
    def test_exactly_fifty(self):
        assert badge_ids(make_profile(), [make_obs(False)] * 50) == ["problems_50"]

    def test_fifty_one(self):
        assert badge_ids(make_profile(), [make_obs(False)] * 51) == []


class TestEvaluate:
    def test_several_families_at_once(self):
        assert badge_ids(make_profile(3), [make_obs(time_spent_ms=1000)] * 5) == ["streak_3", "speed_5"]

    def test_idempotent(self):
        profile, history = make_profile(3), [make_obs(False)] * 50
        first = evaluate(profile, history, now=NOW)
        assert {b.id for b in first} == {"streak_3", "problems_50"}
        held = profile.model_copy(update={"badges": first})
        assert evaluate(held, history, now=NOW) == []
