"""
Assessment engine — pure logic, no I/O.
Mastery analysis, difficulty selection, topic and lesson recommendation, unit unlocking.
"""

from collections import defaultdict
from datetime import datetime, timedelta
from math import sqrt
from typing import Optional

from learning_models import (
    Concept,
    ConceptMastery,
    DifficultyLevel,
    LearningPath,
    LearningProgress,
    Lesson,
    LessonNotFoundError,
    MasteryLevel,
    PerformanceObservation,
    local_time,
)

# Composite mastery weights (sum to 1)
ACCURACY_WEIGHT = 0.4
SPEED_WEIGHT = 0.2
HINT_WEIGHT = 0.2
CONSISTENCY_WEIGHT = 0.2

MAX_HINTS = 4
CONSISTENCY_WINDOW = 5
CONSISTENCY_MIN_OBSERVATIONS = 3
CONSISTENCY_DEFAULT = 0.5

REVIEW_THRESHOLD = 0.8
STALE_AFTER = timedelta(days=7)
UNLOCK_RATIO = 0.7

MASTERED_THRESHOLD = 0.9
PRACTICING_THRESHOLD = 0.7


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


# ---------------------------------------------------------------------------
# Mastery analyzer
# ---------------------------------------------------------------------------

def speed_score(average_time_ms: int, concept: Concept) -> float:
    ideal = concept.ideal_time_ms
    return _clamp(ideal / max(average_time_ms, ideal))


def hint_score(average_hints: float) -> float:
    return _clamp(1.0 - average_hints / MAX_HINTS)


def consistency_score(observations: list[PerformanceObservation]) -> float:
    """
    1 - population stddev of the last five binary outcomes.
    Fewer than three observations gives a neutral 0.5.
    """
    if len(observations) < CONSISTENCY_MIN_OBSERVATIONS:
        return CONSISTENCY_DEFAULT

    outcomes = [1.0 if o.is_correct else 0.0 for o in observations[-CONSISTENCY_WINDOW:]]
    mean = sum(outcomes) / len(outcomes)
    variance = sum((x - mean) ** 2 for x in outcomes) / len(outcomes)
    return _clamp(1.0 - sqrt(variance))


def concept_mastery(concept: Concept, observations: list[PerformanceObservation]) -> ConceptMastery:
    """Mastery of one concept from its observations, in the order they happened."""
    if not observations:
        return ConceptMastery(concept=concept)

    total = len(observations)
    correct = sum(1 for o in observations if o.is_correct)
    average_time = sum(o.time_spent_ms for o in observations) // total
    average_hints = sum(o.hints_used for o in observations) / total

    score = (
        ACCURACY_WEIGHT * (correct / total)
        + SPEED_WEIGHT * speed_score(average_time, concept)
        + HINT_WEIGHT * hint_score(average_hints)
        + CONSISTENCY_WEIGHT * consistency_score(observations)
    )

    return ConceptMastery(
        concept=concept,
        total_attempts=total,
        correct_attempts=correct,
        average_time_ms=average_time,
        average_hints=average_hints,
        last_practiced_at=max(o.timestamp for o in observations),
        mastery_score=_clamp(score),
    )


def analyze(history: list[PerformanceObservation]) -> dict[Concept, ConceptMastery]:
    """
    Recompute every concept's mastery from the full history.
    Concepts never practiced are absent from the result.
    """
    grouped: dict[Concept, list[PerformanceObservation]] = defaultdict(list)
    for observation in history:
        grouped[observation.concept].append(observation)
    return {concept: concept_mastery(concept, obs) for concept, obs in grouped.items()}


def classify_mastery(mastery: Optional[ConceptMastery]) -> MasteryLevel:
    if mastery is None or mastery.total_attempts == 0:
        return MasteryLevel.NOT_STARTED
    if mastery.mastery_score >= MASTERED_THRESHOLD:
        return MasteryLevel.MASTERED
    if mastery.mastery_score >= PRACTICING_THRESHOLD:
        return MasteryLevel.PRACTICING
    return MasteryLevel.LEARNING


# ---------------------------------------------------------------------------
# Difficulty selector
# ---------------------------------------------------------------------------

def select_difficulty(concept: Concept, mastery: Optional[ConceptMastery]) -> DifficultyLevel:
    if mastery is None:
        return DifficultyLevel.BEGINNER
    score = mastery.mastery_score
    if score >= 0.9 and mastery.average_time_ms <= concept.ideal_time_ms:
        return DifficultyLevel.EXPERT
    if score >= 0.8:
        return DifficultyLevel.ADVANCED
    if score >= 0.6:
        return DifficultyLevel.INTERMEDIATE
    return DifficultyLevel.BEGINNER


def difficulty_for(concept: Concept, masteries: dict[Concept, ConceptMastery]) -> DifficultyLevel:
    return select_difficulty(concept, masteries.get(concept))


# ---------------------------------------------------------------------------
# Recommendation engine
# ---------------------------------------------------------------------------

def recommend_topics(
    masteries: dict[Concept, ConceptMastery],
    max_recommendations: int = 3,
    now: Optional[datetime] = None,
) -> list[Concept]:
    """
    Concepts below 0.8 mastery or not practiced for over a week,
    weakest first, most stale first on ties.
    """
    if max_recommendations <= 0:
        return []
    now = local_time(now)

    def staleness(m: ConceptMastery) -> timedelta:
        if m.last_practiced_at is None:
            return timedelta.max
        return now - m.last_practiced_at

    candidates = [
        m for m in masteries.values()
        if m.mastery_score < REVIEW_THRESHOLD or staleness(m) > STALE_AFTER
    ]
    # stable two-pass sort: staleness descending, then score ascending
    candidates.sort(key=staleness, reverse=True)
    candidates.sort(key=lambda m: m.mastery_score)
    return [m.concept for m in candidates[:max_recommendations]]


def recommend_next_lesson(path: LearningPath, progress: LearningProgress) -> Optional[Lesson]:
    """First unfinished lesson of the unlocked units, in path order."""
    for unit in path.units:
        if not unit.is_unlocked:
            continue
        unit_progress = progress.unit_progress.get(unit.id)
        done = unit_progress.completed_lessons if unit_progress else set()
        for lesson in unit.lessons:
            if not lesson.is_completed and lesson.id not in done:
                return lesson
    return None


def unit_completion_ratio(path: LearningPath, progress: LearningProgress, index: int) -> float:
    unit = path.units[index]
    if not unit.lessons:
        return 0.0
    unit_progress = progress.unit_progress.get(unit.id)
    completed = len(unit_progress.completed_lessons) if unit_progress else 0
    return _clamp(completed / len(unit.lessons))


def refresh_unit_xp(path: LearningPath, progress: LearningProgress) -> LearningPath:
    """Copy earned XP from the learner's unit progress onto the path."""
    units = []
    for unit in path.units:
        unit_progress = progress.unit_progress.get(unit.id)
        earned = unit_progress.xp_earned if unit_progress else 0
        units.append(unit.model_copy(update={"xp_earned": earned}))
    return path.model_copy(update={"units": units, "total_xp": sum(u.xp_earned for u in units)})


def unlock_units(path: LearningPath, progress: LearningProgress) -> LearningPath:
    """
    Unit 0 is always open; unit i opens once unit i-1 is 70% complete.
    A unit that was unlocked stays unlocked.
    """
    units = []
    for index, unit in enumerate(path.units):
        should_unlock = index == 0 or unit_completion_ratio(path, progress, index - 1) >= UNLOCK_RATIO
        units.append(unit.model_copy(update={"is_unlocked": unit.is_unlocked or should_unlock}))
    return path.model_copy(update={"units": units})


def apply_lesson_completion(
    path: LearningPath,
    progress: LearningProgress,
    lesson_id: str,
    mastery_level: MasteryLevel,
) -> LearningPath:
    """Mark a lesson completed, refresh unit completion and XP, then unlock what follows."""
    found = False
    units = []
    for unit in path.units:
        lessons = []
        for lesson in unit.lessons:
            if lesson.id == lesson_id:
                found = True
                lesson = lesson.model_copy(update={"is_completed": True, "mastery_level": mastery_level})
            lessons.append(lesson)
        completed = sum(1 for lesson in lessons if lesson.is_completed)
        units.append(unit.model_copy(update={
            "lessons": lessons,
            "completion_percentage": completed / len(lessons) if lessons else 0.0,
        }))

    if not found:
        raise LessonNotFoundError(lesson_id)

    completed_units = sum(1 for u in units if u.completion_percentage >= 1.0)
    updated = path.model_copy(update={"units": units, "completed_units": completed_units})
    return unlock_units(refresh_unit_xp(updated, progress), progress)
