"""Unit tests for curriculum.py and the concept tables in learning_models.py."""

import random

import pytest

from curriculum import build_learning_path, build_lessons, find_lesson, find_unit, unit_of_lesson
from learning_models import (
    IDEAL_TIME_MS,
    Concept,
    LessonNotFoundError,
    MathCategory,
    UnitNotFoundError,
    UnknownConceptError,
    parse_concept,
    unit_id_for_lesson,
)
from problem_generator import ProblemGenerator


@pytest.fixture
def path():
    return build_learning_path(ProblemGenerator(random.Random(1)))


class TestLearningPath:
    def test_shape(self, path):
        assert [u.id for u in path.units] == [f"unit_{n}" for n in range(1, 7)]
        assert [len(u.lessons) for u in path.units] == [3, 3, 2, 2, 2, 1]
        assert [u.is_unlocked for u in path.units] == [True] + [False] * 5

    def test_lesson_sizes(self, path):
        assert [len(l.problems) for l in path.units[0].lessons] == [5, 8, 6]
        assert [len(l.problems) for l in path.units[2].lessons] == [5, 8]
        assert [len(l.problems) for l in path.units[4].lessons] == [5, 5]
        assert len(path.units[5].lessons[0].problems) == 5

    def test_lesson_problems_match_concept(self, path):
        for unit in path.units:
            for lesson in unit.lessons:
                assert all(p.concept == lesson.concept for p in lesson.problems)
                assert all(p.hints and p.explanation for p in lesson.problems)

    def test_division_by_two(self, path):
        lesson = find_lesson(path, "unit_6_lesson_1")
        assert all(p.operand_b == 2 and p.operand_a % 2 == 0 for p in lesson.problems)

    def test_category_without_lessons(self):
        with pytest.raises(ValueError):
            build_lessons("unit_7", MathCategory.MIXED, ProblemGenerator(random.Random(1)))

    def test_fresh_path_has_no_xp(self, path):
        assert path.total_xp == 0
        assert all(u.xp_earned == 0 and u.target_xp == 100 for u in path.units)
        assert all(l.xp_value == 20 for u in path.units for l in u.lessons)


class TestLookups:
    def test_find(self, path):
        assert find_lesson(path, "unit_3_lesson_2").title == "Resta 1-10"
        assert find_unit(path, "unit_5").title == "Multiplicar"
        assert unit_of_lesson(path, "unit_5_lesson_2").id == "unit_5"
        assert unit_id_for_lesson("unit_5_lesson_2") == "unit_5"

    def test_unknown_ids(self, path):
        with pytest.raises(LessonNotFoundError) as exc:
            find_lesson(path, "unit_9_lesson_1")
        assert exc.value.lesson_id == "unit_9_lesson_1"
        with pytest.raises(UnitNotFoundError):
            find_unit(path, "unit_9")
        with pytest.raises(LessonNotFoundError):
            unit_of_lesson(path, "nope")


class TestConcepts:
    def test_every_concept_is_described(self):
        for concept in Concept:
            assert concept in IDEAL_TIME_MS
            assert concept.display_name
            assert concept.description
            assert concept.operation

    def test_ideal_times(self):
        assert Concept.SINGLE_DIGIT_ADDITION.ideal_time_ms == 5000
        assert Concept.MULTIPLICATION_TABLES.ideal_time_ms == 4000

    def test_parse(self):
        assert parse_concept("multiplication_tables") == Concept.MULTIPLICATION_TABLES
        assert parse_concept("Multiplication Tables") == Concept.MULTIPLICATION_TABLES
        assert parse_concept(" division-basics ") == Concept.DIVISION_BASICS

    def test_parse_unknown(self):
        with pytest.raises(UnknownConceptError):
            parse_concept("fractions")
