"""
The fixed learning path: six ordered units, each with ordered lessons.
"""

from typing import Optional

from learning_models import (
    Concept,
    LearningPath,
    LearningUnit,
    Lesson,
    LessonNotFoundError,
    MathCategory,
    UnitNotFoundError,
)
from problem_generator import ProblemGenerator

UNITS = [
    ("unit_1", "Primeros Pasos", "Suma básica con números pequeños", "🌱", MathCategory.ADDITION),
    ("unit_2", "Suma Divertida", "Suma con números más grandes", "➕", MathCategory.ADDITION),
    ("unit_3", "Restar Fácil", "Resta básica paso a paso", "➖", MathCategory.SUBTRACTION),
    ("unit_4", "Resta Avanzada", "Resta con números grandes", "🎯", MathCategory.SUBTRACTION),
    ("unit_5", "Multiplicar", "Tablas de multiplicar", "✖️", MathCategory.MULTIPLICATION),
    ("unit_6", "Dividir", "División básica", "➗", MathCategory.DIVISION),
]


def _lesson(unit_id: str, n: int, title: str, concept: Concept, problems) -> Lesson:
    return Lesson(id=f"{unit_id}_lesson_{n}", title=title, concept=concept, problems=problems)


def build_lessons(unit_id: str, category: MathCategory, generator: ProblemGenerator) -> list[Lesson]:
    gen = generator
    if category is MathCategory.ADDITION:
        return [
            _lesson(unit_id, 1, "Suma 1-5", Concept.SINGLE_DIGIT_ADDITION,
                    gen.generate_batch(Concept.SINGLE_DIGIT_ADDITION, 5, max_operand=5)),
            _lesson(unit_id, 2, "Suma 1-10", Concept.SINGLE_DIGIT_ADDITION,
                    gen.generate_batch(Concept.SINGLE_DIGIT_ADDITION, 8, max_operand=10)),
            _lesson(unit_id, 3, "Suma con 10+", Concept.DOUBLE_DIGIT_ADDITION,
                    gen.generate_batch(Concept.DOUBLE_DIGIT_ADDITION, 6, max_operand=20)),
        ]
    if category is MathCategory.SUBTRACTION:
        return [
            _lesson(unit_id, 1, "Resta 1-5", Concept.SINGLE_DIGIT_SUBTRACTION,
                    gen.generate_batch(Concept.SINGLE_DIGIT_SUBTRACTION, 5, max_operand=5)),
            _lesson(unit_id, 2, "Resta 1-10", Concept.SINGLE_DIGIT_SUBTRACTION,
                    gen.generate_batch(Concept.SINGLE_DIGIT_SUBTRACTION, 8, max_operand=10)),
        ]
    if category is MathCategory.MULTIPLICATION:
        return [
            _lesson(unit_id, 1, "Tabla del 2", Concept.MULTIPLICATION_TABLES,
                    gen.generate_batch(Concept.MULTIPLICATION_TABLES, 5, table=2)),
            _lesson(unit_id, 2, "Tabla del 3", Concept.MULTIPLICATION_TABLES,
                    gen.generate_batch(Concept.MULTIPLICATION_TABLES, 5, table=3)),
        ]
    if category is MathCategory.DIVISION:
        return [
            _lesson(unit_id, 1, "División por 2", Concept.DIVISION_BASICS,
                    gen.generate_batch(Concept.DIVISION_BASICS, 5, table=2)),
        ]
    raise ValueError(f"No lessons defined for category {category!r}")


def build_learning_path(generator: Optional[ProblemGenerator] = None) -> LearningPath:
    """Fresh path with only the first unit unlocked."""
    generator = generator or ProblemGenerator()
    units = [
        LearningUnit(
            id=unit_id,
            title=title,
            description=description,
            icon=icon,
            lessons=build_lessons(unit_id, category, generator),
            category=category,
            is_unlocked=index == 0,
        )
        for index, (unit_id, title, description, icon, category) in enumerate(UNITS)
    ]
    return LearningPath(units=units)


def find_unit(path: LearningPath, unit_id: str) -> LearningUnit:
    for unit in path.units:
        if unit.id == unit_id:
            return unit
    raise UnitNotFoundError(unit_id)


def find_lesson(path: LearningPath, lesson_id: str) -> Lesson:
    for unit in path.units:
        for lesson in unit.lessons:
            if lesson.id == lesson_id:
                return lesson
    raise LessonNotFoundError(lesson_id)


def unit_of_lesson(path: LearningPath, lesson_id: str) -> LearningUnit:
    for unit in path.units:
        if any(lesson.id == lesson_id for lesson in unit.lessons):
            return unit
    raise LessonNotFoundError(lesson_id)
