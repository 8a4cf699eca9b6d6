"""
Practice session state machine.

Every UI action is a pure transition `(state, action) -> Transition(state, narration)`.
The caller holds the only mutable reference to the current TutorState and
hands the narration strings to whatever speaks them.
"""

import random
from datetime import datetime
from enum import Enum
from typing import NamedTuple, Optional

from pydantic import Field

import assessment_engine
import curriculum
import narration
from learning_models import (
    Concept,
    ConceptMastery,
    LearningPath,
    LocalDatetime,
    PerformanceObservation,
    Problem,
    Snapshot,
    UserProfile,
    local_time,
)
from problem_generator import ProblemGenerator
from progression import record_performance


class SessionMode(str, Enum):
    IDLE = "idle"
    LESSON = "lesson"
    PRACTICE = "practice"


class QuizState(Snapshot):
    selected_answer: Optional[int] = None
    show_result: bool = False
    started_at: Optional[LocalDatetime] = None
    hints_used: int = 0
    attempts: int = 0
    current_step: int = 0


class TutorState(Snapshot):
    profile: UserProfile = Field(default_factory=UserProfile)
    learning_path: LearningPath
    history: list[PerformanceObservation] = Field(default_factory=list)
    masteries: dict[Concept, ConceptMastery] = Field(default_factory=dict)
    recommended_practice: list[Concept] = Field(default_factory=list)
    mode: SessionMode = SessionMode.IDLE
    current_lesson_id: Optional[str] = None
    current_problem: Optional[Problem] = None
    problem_index: int = 0
    practice_concepts: list[Concept] = Field(default_factory=list)
    quiz: QuizState = Field(default_factory=QuizState)


class Transition(NamedTuple):
    state: TutorState
    narration: list[str]


def new_tutor_state(
    profile: Optional[UserProfile] = None,
    history: Optional[list[PerformanceObservation]] = None,
    learning_path: Optional[LearningPath] = None,
    generator: Optional[ProblemGenerator] = None,
    now: Optional[datetime] = None,
) -> TutorState:
    """Session start from whatever snapshot the persistence layer supplied."""
    profile = profile or UserProfile()
    history = list(history or [])
    path = learning_path or curriculum.build_learning_path(generator)
    masteries = assessment_engine.analyze(history)
    return TutorState(
        profile=profile,
        learning_path=assessment_engine.unlock_units(
            assessment_engine.refresh_unit_xp(path, profile.progress), profile.progress
        ),
        history=history,
        masteries=masteries,
        recommended_practice=assessment_engine.recommend_topics(masteries, now=now),
    )


def _present(state: TutorState, problem: Problem, now: datetime, **changes) -> TutorState:
    return state.model_copy(update={
        "current_problem": problem,
        "quiz": QuizState(started_at=now),
        **changes,
    })


# ---------------------------------------------------------------------------
# Lessons
# ---------------------------------------------------------------------------

def request_lesson(state: TutorState, lesson_id: str, now: Optional[datetime] = None) -> Transition:
    """Start a lesson by id. Unknown ids raise LessonNotFoundError."""
    now = local_time(now)
    lesson = curriculum.find_lesson(state.learning_path, lesson_id)
    if not lesson.problems:
        return Transition(state, [])

    first = lesson.problems[0]
    new_state = _present(
        state, first, now,
        mode=SessionMode.LESSON,
        current_lesson_id=lesson.id,
        problem_index=0,
    )
    return Transition(new_state, [narration.lesson_intro(lesson), narration.problem_prompt(first)])


def _finish_lesson(state: TutorState, now: datetime) -> Transition:
    lesson = curriculum.find_lesson(state.learning_path, state.current_lesson_id)
    level = assessment_engine.classify_mastery(state.masteries.get(lesson.concept))
    path = assessment_engine.apply_lesson_completion(
        state.learning_path, state.profile.progress, lesson.id, level
    )
    finished = state.model_copy(update={"learning_path": path})

    following = assessment_engine.recommend_next_lesson(path, state.profile.progress)
    if following is None:
        idle = finished.model_copy(update={
            "mode": SessionMode.IDLE,
            "current_lesson_id": None,
            "current_problem": None,
            "problem_index": 0,
            "quiz": QuizState(),
        })
        return Transition(idle, [narration.path_completed()])

    started = request_lesson(finished, following.id, now)
    return Transition(started.state, [narration.lesson_completed()] + started.narration)


# ---------------------------------------------------------------------------
# Practice
# ---------------------------------------------------------------------------

def start_practice(
    state: TutorState,
    generator: Optional[ProblemGenerator] = None,
    concepts: Optional[list[Concept]] = None,
    now: Optional[datetime] = None,
) -> Transition:
    """
    Practice the given concepts, or the current recommendations.
    With nothing to recommend yet, falls back to a free-play problem.
    """
    generator = generator or ProblemGenerator()
    now = local_time(now)
    topics = list(concepts or state.recommended_practice[:3])

    if not topics:
        problem = generator.generate(with_teaching_aids=True)
        new_state = _present(
            state, problem, now,
            mode=SessionMode.PRACTICE, current_lesson_id=None, practice_concepts=[],
        )
        return Transition(new_state, [narration.problem_prompt(problem)])

    concept = generator.rng.choice(topics)
    problem = generator.generate_for_concept(
        concept, assessment_engine.difficulty_for(concept, state.masteries)
    )
    new_state = _present(
        state, problem, now,
        mode=SessionMode.PRACTICE, current_lesson_id=None, practice_concepts=topics,
    )
    return Transition(new_state, [narration.practice_intro(concept), narration.problem_prompt(problem)])


def request_next_problem(
    state: TutorState,
    generator: Optional[ProblemGenerator] = None,
    now: Optional[datetime] = None,
) -> Transition:
    now = local_time(now)

    if state.mode is SessionMode.LESSON and state.current_lesson_id:
        lesson = curriculum.find_lesson(state.learning_path, state.current_lesson_id)
        index = state.problem_index + 1
        if index < len(lesson.problems):
            problem = lesson.problems[index]
            return Transition(_present(state, problem, now, problem_index=index),
                              [narration.problem_prompt(problem)])
        return _finish_lesson(state, now)

    if state.mode is SessionMode.PRACTICE:
        generator = generator or ProblemGenerator()
        if not state.practice_concepts:
            problem = generator.generate(with_teaching_aids=True)
        else:
            concept = generator.rng.choice(state.practice_concepts)
            problem = generator.generate_for_concept(
                concept, assessment_engine.difficulty_for(concept, state.masteries)
            )
        return Transition(_present(state, problem, now), [narration.problem_prompt(problem)])

    return start_practice(state, generator, now=now)


# ---------------------------------------------------------------------------
# Answering
# ---------------------------------------------------------------------------

def select_answer(
    state: TutorState,
    value: int,
    now: Optional[datetime] = None,
    rng: Optional[random.Random] = None,
) -> Transition:
    """
    Score the current problem once. With no problem on screen, or one
    already answered, nothing is scored and the state is returned as is.
    """
    problem = state.current_problem
    if problem is None or state.quiz.show_result:
        return Transition(state, [])

    now = local_time(now)
    quiz = state.quiz
    started = quiz.started_at or now
    elapsed_ms = max(0, int((now - started).total_seconds() * 1000))
    is_correct = value == problem.correct_answer

    observation = PerformanceObservation(
        problem_id=problem.id,
        concept=problem.concept,
        difficulty=problem.difficulty,
        is_correct=is_correct,
        time_spent_ms=elapsed_ms,
        hints_used=quiz.hints_used,
        attempts=quiz.attempts + 1,
        timestamp=now,
    )

    lesson_id = None
    lesson_completed = False
    if state.mode is SessionMode.LESSON and state.current_lesson_id:
        lesson_id = state.current_lesson_id
        lesson = curriculum.find_lesson(state.learning_path, lesson_id)
        lesson_completed = state.problem_index >= len(lesson.problems) - 1

    outcome = record_performance(
        state.profile, state.history, observation,
        lesson_id=lesson_id, lesson_completed=lesson_completed,
    )

    spoken = [narration.feedback(is_correct, problem, rng)]
    spoken += [narration.badge_announcement(b) for b in outcome.new_badges]
    if outcome.leveled_up:
        spoken.append(narration.level_up(outcome.profile.level))

    new_state = state.model_copy(update={
        "profile": outcome.profile,
        "learning_path": assessment_engine.refresh_unit_xp(state.learning_path, outcome.profile.progress),
        "history": outcome.history,
        "masteries": outcome.masteries,
        "recommended_practice": outcome.recommended_topics,
        "quiz": quiz.model_copy(update={
            "selected_answer": value,
            "show_result": True,
            "attempts": quiz.attempts + 1,
        }),
    })
    return Transition(new_state, spoken)


def request_hint(state: TutorState) -> Transition:
    problem = state.current_problem
    if problem is None or state.quiz.hints_used >= len(problem.hints):
        return Transition(state, [])
    h = problem.hints[state.quiz.hints_used]
    quiz = state.quiz.model_copy(update={"hints_used": state.quiz.hints_used + 1})
    return Transition(state.model_copy(update={"quiz": quiz}), [narration.hint(h)])


# ---------------------------------------------------------------------------
# Worked explanation
# ---------------------------------------------------------------------------

def _move_step(state: TutorState, offset: int) -> Transition:
    problem = state.current_problem
    if problem is None or problem.explanation is None:
        return Transition(state, [])
    target = state.quiz.current_step + offset
    if not 0 <= target < len(problem.explanation.steps):
        return Transition(state, [])
    quiz = state.quiz.model_copy(update={"current_step": target})
    step = problem.explanation.steps[target]
    return Transition(state.model_copy(update={"quiz": quiz}), [narration.explanation_step(step)])


def next_step(state: TutorState) -> Transition:
    return _move_step(state, 1)


def previous_step(state: TutorState) -> Transition:
    return _move_step(state, -1)


def repeat_question(state: TutorState) -> Transition:
    if state.current_problem is None:
        return Transition(state, [])
    return Transition(state, [narration.problem_prompt(state.current_problem)])
