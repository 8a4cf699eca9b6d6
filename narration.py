"""
Spoken text for the narration collaborator. The engine only produces
strings; playback belongs to the caller.
"""

import random
from typing import Optional

from learning_models import Badge, Concept, ExplanationStep, Hint, Lesson, Operation, Problem

SPOKEN_OPERATIONS = {
    Operation.ADDITION: "más",
    Operation.SUBTRACTION: "menos",
    Operation.MULTIPLICATION: "por",
    Operation.DIVISION: "dividido entre",
}

CORRECT_MESSAGES = [
    "¡Excelente! Muy bien hecho.",
    "¡Perfecto! Eres muy bueno en la {operation}.",
    "¡Correcto! Sigue así.",
    "¡Genial! Lo hiciste muy bien.",
]

INCORRECT_MESSAGES = [
    "No te preocupes. ¡Sigamos intentando!",
    "Está bien equivocarse. Así aprendemos.",
    "¡Casi! Vamos a intentar de nuevo.",
    "No pasa nada. ¿Quieres una pista?",
]


def problem_prompt(problem: Problem) -> str:
    word = SPOKEN_OPERATIONS[problem.operation]
    return f"¿Cuánto es {problem.operand_a} {word} {problem.operand_b}?"


def feedback(is_correct: bool, problem: Problem, rng: Optional[random.Random] = None) -> str:
    rng = rng or random.Random()
    messages = CORRECT_MESSAGES if is_correct else INCORRECT_MESSAGES
    return rng.choice(messages).format(operation=problem.operation.spanish_name)


def hint(h: Hint) -> str:
    return h.text


def explanation_step(step: ExplanationStep) -> str:
    return f"{step.title}. {step.description}"


def lesson_intro(lesson: Lesson) -> str:
    return f"Comenzamos la lección: {lesson.title}"


def lesson_completed() -> str:
    return "¡Lección completada! Pasemos a la siguiente."


def path_completed() -> str:
    return "¡Felicidades! Has completado todas las lecciones disponibles."


def practice_intro(concept: Concept) -> str:
    return f"Vamos a practicar {concept.display_name}"


def badge_announcement(badge: Badge) -> str:
    return f"¡Nuevo logro desbloqueado: {badge.name}!"


def level_up(level: int) -> str:
    return f"¡Subiste al nivel {level}!"
