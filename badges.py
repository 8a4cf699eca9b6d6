"""
Badge evaluator.
Four independent achievement families checked against exact milestone values.
"""

from datetime import datetime
from typing import NamedTuple, Optional

from learning_models import Badge, BadgeRarity, PerformanceObservation, UserProfile, local_time

FAST_ANSWER_MS = 3000
ACCURACY_WINDOW = 10


class BadgeSpec(NamedTuple):
    name: str
    description: str
    icon: str
    rarity: BadgeRarity


CATALOG = {
    "streak_3": BadgeSpec("¡Primera Racha!", "3 días seguidos", "🔥", BadgeRarity.COMMON),
    "streak_7": BadgeSpec("¡Una Semana!", "7 días seguidos", "📅", BadgeRarity.RARE),
    "streak_14": BadgeSpec("¡Dos Semanas!", "14 días seguidos", "⭐", BadgeRarity.EPIC),
    "streak_30": BadgeSpec("¡Campeón!", "30 días seguidos", "👑", BadgeRarity.LEGENDARY),
    "perfect_10": BadgeSpec("¡Perfecto!", "10 respuestas perfectas", "💯", BadgeRarity.EPIC),
    "accuracy_90": BadgeSpec("¡Casi Perfecto!", "90% de precisión", "🎯", BadgeRarity.RARE),
    "speed_5": BadgeSpec("¡Rápido!", "5 respuestas rápidas", "⚡", BadgeRarity.COMMON),
    "speed_20": BadgeSpec("¡Súper Rápido!", "20 respuestas rápidas", "🚀", BadgeRarity.RARE),
    "problems_50": BadgeSpec("¡Persistente!", "50 problemas resueltos", "💪", BadgeRarity.COMMON),
    "problems_100": BadgeSpec("¡Dedicado!", "100 problemas resueltos", "🏆", BadgeRarity.RARE),
    "problems_500": BadgeSpec("¡Maestro!", "500 problemas resueltos", "🎓", BadgeRarity.LEGENDARY),
}

# Milestones award only on the exact value; skipping over one awards nothing.
STREAK_MILESTONES = {3: "streak_3", 7: "streak_7", 14: "streak_14", 30: "streak_30"}
SPEED_MILESTONES = {5: "speed_5", 20: "speed_20"}
PROBLEM_MILESTONES = {50: "problems_50", 100: "problems_100", 500: "problems_500"}


def make_badge(badge_id: str, unlocked_at: datetime) -> Badge:
    entry = CATALOG[badge_id]
    return Badge(
        id=badge_id,
        name=entry.name,
        description=entry.description,
        icon=entry.icon,
        unlocked_at=unlocked_at,
        rarity=entry.rarity,
    )


def streak_badge(profile: UserProfile) -> Optional[str]:
    return STREAK_MILESTONES.get(profile.streak.current)


def accuracy_badge(history: list[PerformanceObservation]) -> Optional[str]:
    recent = history[-ACCURACY_WINDOW:]
    if len(recent) < ACCURACY_WINDOW:
        return None
    correct = sum(1 for o in recent if o.is_correct)
    if correct == ACCURACY_WINDOW:
        return "perfect_10"
    if correct * 10 >= ACCURACY_WINDOW * 9:
        return "accuracy_90"
    return None


def is_fast_answer(observation: PerformanceObservation) -> bool:
    return observation.is_correct and observation.time_spent_ms < FAST_ANSWER_MS


def speed_badge(history: list[PerformanceObservation]) -> Optional[str]:
    return SPEED_MILESTONES.get(sum(1 for o in history if is_fast_answer(o)))


def persistence_badge(history: list[PerformanceObservation]) -> Optional[str]:
    return PROBLEM_MILESTONES.get(len(history))


def evaluate(
    profile: UserProfile,
    history: list[PerformanceObservation],
    now: Optional[datetime] = None,
) -> list[Badge]:
    """Badges earned by this snapshot that the profile does not hold yet."""
    now = local_time(now)
    held = {b.id for b in profile.badges}
    candidates = [
        streak_badge(profile),
        accuracy_badge(history),
        speed_badge(history),
        persistence_badge(history),
    ]
    return [make_badge(badge_id, now) for badge_id in candidates if badge_id and badge_id not in held]
