"""
Adaptive Practice MCP Server.
Exposes the practice session actions (lessons, problems, answers, hints)
and the learner's progress to a UI or agent.
"""

import logging
import os
import sys

# Ensure sibling modules are importable
sys.path.insert(0, os.path.dirname(__file__))

from typing import Optional

from fastmcp import FastMCP

import assessment_engine
import practice_session
from learner_store import LearnerSnapshot, load_learner, save_learner
from learning_models import Concept, LessonNotFoundError, UnknownConceptError, parse_concept
from practice_session import Transition, TutorState
from problem_generator import ProblemGenerator

logger = logging.getLogger("practice_mcp_server")

mcp = FastMCP("AdaptivePractice")
generator = ProblemGenerator()

# One live session per learner; the JSON snapshot is the durable copy.
_sessions: dict[str, TutorState] = {}


def _state(learner_id: str) -> TutorState:
    if learner_id not in _sessions:
        snapshot = load_learner(learner_id)
        _sessions[learner_id] = practice_session.new_tutor_state(
            profile=snapshot.profile,
            history=snapshot.history,
            learning_path=snapshot.learning_path,
            generator=generator,
        )
    return _sessions[learner_id]


def _commit(learner_id: str, state: TutorState) -> None:
    _sessions[learner_id] = state
    save_learner(LearnerSnapshot(
        profile=state.profile,
        history=state.history,
        learning_path=state.learning_path,
    ))


def _view(transition: Transition) -> dict:
    state = transition.state
    problem = state.current_problem
    return {
        "mode": state.mode.value,
        "lesson_id": state.current_lesson_id,
        "problem": problem.model_dump(mode="json") if problem else None,
        "question": problem.question if problem else None,
        "quiz": state.quiz.model_dump(mode="json"),
        "narration": transition.narration,
    }


@mcp.tool()
def start_session(learner_id: str) -> dict:
    """
    Start or resume a practice session.
    Loads the learner snapshot and returns level, streak, recommendations
    and the next lesson on the path.
    """
    _sessions.pop(learner_id, None)
    state = _state(learner_id)
    _commit(learner_id, state)

    next_lesson = assessment_engine.recommend_next_lesson(
        state.learning_path, state.profile.progress
    )
    return {
        "status": "session_started",
        "learner_id": learner_id,
        "level": state.profile.level,
        "xp_total": state.profile.xp_total,
        "streak": state.profile.streak.current,
        "recommended_practice": [c.value for c in state.recommended_practice],
        "next_lesson": (
            {"id": next_lesson.id, "title": next_lesson.title} if next_lesson else None
        ),
    }


@mcp.tool()
def get_learning_path(learner_id: str) -> dict:
    """Units and lessons with unlock state and completion."""
    state = _state(learner_id)
    return {
        "total_xp": state.learning_path.total_xp,
        "completed_units": state.learning_path.completed_units,
        "units": [
            {
                "id": unit.id,
                "title": unit.title,
                "icon": unit.icon,
                "is_unlocked": unit.is_unlocked,
                "completion_percentage": unit.completion_percentage,
                "xp_earned": unit.xp_earned,
                "target_xp": unit.target_xp,
                "lessons": [
                    {
                        "id": lesson.id,
                        "title": lesson.title,
                        "concept": lesson.concept.value,
                        "is_completed": lesson.is_completed,
                        "mastery_level": lesson.mastery_level.value,
                        "xp_value": lesson.xp_value,
                    }
                    for lesson in unit.lessons
                ],
            }
            for unit in state.learning_path.units
        ],
    }


@mcp.tool()
def request_lesson(learner_id: str, lesson_id: str) -> dict:
    """Start a lesson and return its first problem."""
    try:
        transition = practice_session.request_lesson(_state(learner_id), lesson_id)
    except LessonNotFoundError as e:
        return {"error": str(e)}
    _commit(learner_id, transition.state)
    return _view(transition)


@mcp.tool()
def start_practice(learner_id: str, concepts: Optional[list[str]] = None) -> dict:
    """
    Practice specific concepts, or the learner's recommended ones when
    none are given.
    """
    try:
        parsed = [parse_concept(c) for c in concepts] if concepts else None
    except UnknownConceptError as e:
        return {"error": str(e), "available_concepts": [c.value for c in Concept]}
    transition = practice_session.start_practice(_state(learner_id), generator, parsed)
    _commit(learner_id, transition.state)
    return _view(transition)


@mcp.tool()
def request_next_problem(learner_id: str) -> dict:
    """Advance to the next problem; finishing a lesson moves to the next one."""
    transition = practice_session.request_next_problem(_state(learner_id), generator)
    _commit(learner_id, transition.state)
    return _view(transition)


@mcp.tool()
def select_answer(learner_id: str, value: int) -> dict:
    """
    Answer the current problem.
    Returns correctness, XP earned, any new badges and updated totals.
    """
    before = _state(learner_id)
    if before.current_problem is None:
        return {"error": "No problem to answer. Request a lesson or a problem first."}

    transition = practice_session.select_answer(before, value)
    after = transition.state
    _commit(learner_id, after)

    held = {b.id for b in before.profile.badges}
    return {
        **_view(transition),
        "is_correct": value == before.current_problem.correct_answer,
        "correct_answer": before.current_problem.correct_answer,
        "xp_earned": after.profile.xp_total - before.profile.xp_total,
        "xp_total": after.profile.xp_total,
        "level": after.profile.level,
        "streak": after.profile.streak.current,
        "new_badges": [b.model_dump(mode="json") for b in after.profile.badges if b.id not in held],
    }


@mcp.tool()
def request_hint(learner_id: str) -> dict:
    """Reveal the next hint for the current problem, if any remain."""
    transition = practice_session.request_hint(_state(learner_id))
    _commit(learner_id, transition.state)
    return _view(transition)


@mcp.tool()
def next_step(learner_id: str) -> dict:
    """Move forward through the worked explanation."""
    transition = practice_session.next_step(_state(learner_id))
    _commit(learner_id, transition.state)
    return _view(transition)


@mcp.tool()
def previous_step(learner_id: str) -> dict:
    """Move back through the worked explanation."""
    transition = practice_session.previous_step(_state(learner_id))
    _commit(learner_id, transition.state)
    return _view(transition)


@mcp.tool()
def get_assessment(learner_id: str) -> dict:
    """
    Per-concept mastery with the recommended difficulty, plus the topics
    to practice next.
    """
    state = _state(learner_id)
    return {
        "concepts": {
            concept.value: {
                "mastery_score": mastery.mastery_score,
                "accuracy_rate": mastery.accuracy_rate,
                "total_attempts": mastery.total_attempts,
                "mastery_level": assessment_engine.classify_mastery(mastery).value,
                "difficulty": assessment_engine.select_difficulty(concept, mastery).value,
                "needs_review": mastery.needs_review(),
            }
            for concept, mastery in state.masteries.items()
        },
        "recommended_practice": [c.value for c in state.recommended_practice],
    }


@mcp.tool()
def get_learner_profile(learner_id: str) -> dict:
    """Return the full learner profile as a dictionary."""
    return _state(learner_id).profile.model_dump(mode="json")


@mcp.tool()
def end_session(learner_id: str) -> dict:
    """Save the snapshot and close the live session."""
    state = _sessions.pop(learner_id, None)
    if state is None:
        return {"status": "no_active_session"}
    _commit(learner_id, state)
    _sessions.pop(learner_id, None)
    progress = state.profile.progress
    return {
        "status": "session_ended",
        "summary": {
            "xp_total": state.profile.xp_total,
            "level": state.profile.level,
            "problems_completed": progress.total_problems_completed,
            "accuracy": progress.accuracy_rate,
            "streak": state.profile.streak.current,
            "badges": [b.id for b in state.profile.badges],
        },
    }


if __name__ == "__main__":
    logging.basicConfig(level=os.getenv("MATEMATH_LOG_LEVEL", "INFO").upper())
    logger.info("Starting AdaptivePractice MCP server")
    mcp.run()
