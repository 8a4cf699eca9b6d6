"""
Learning data models for the adaptive practice engine.
Pydantic v2 models; every entity is an immutable snapshot.
"""

from datetime import date, datetime, timedelta
from enum import Enum
from typing import Annotated, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, computed_field, model_validator


class LessonNotFoundError(LookupError):
    def __init__(self, lesson_id: str):
        super().__init__(f"Lesson not found: '{lesson_id}'")
        self.lesson_id = lesson_id


class UnitNotFoundError(LookupError):
    def __init__(self, unit_id: str):
        super().__init__(f"Unit not found: '{unit_id}'")
        self.unit_id = unit_id


class UnknownConceptError(ValueError):
    pass


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class MathCategory(str, Enum):
    ADDITION = "addition"
    SUBTRACTION = "subtraction"
    MULTIPLICATION = "multiplication"
    DIVISION = "division"
    MIXED = "mixed"


class Operation(str, Enum):
    ADDITION = "addition"
    SUBTRACTION = "subtraction"
    MULTIPLICATION = "multiplication"
    DIVISION = "division"

    @property
    def symbol(self) -> str:
        return OPERATION_SYMBOLS[self]

    @property
    def spanish_name(self) -> str:
        return OPERATION_NAMES[self]

    @property
    def category(self) -> MathCategory:
        return MathCategory(self.value)

    def apply(self, a: int, b: int) -> int:
        if self is Operation.ADDITION:
            return a + b
        if self is Operation.SUBTRACTION:
            return a - b
        if self is Operation.MULTIPLICATION:
            return a * b
        return a // b


OPERATION_SYMBOLS = {
    Operation.ADDITION: "+",
    Operation.SUBTRACTION: "-",
    Operation.MULTIPLICATION: "×",
    Operation.DIVISION: "÷",
}

OPERATION_NAMES = {
    Operation.ADDITION: "suma",
    Operation.SUBTRACTION: "resta",
    Operation.MULTIPLICATION: "multiplicación",
    Operation.DIVISION: "división",
}


class Concept(str, Enum):
    SINGLE_DIGIT_ADDITION = "single_digit_addition"
    DOUBLE_DIGIT_ADDITION = "double_digit_addition"
    ADDITION_WITH_CARRYING = "addition_with_carrying"
    SINGLE_DIGIT_SUBTRACTION = "single_digit_subtraction"
    DOUBLE_DIGIT_SUBTRACTION = "double_digit_subtraction"
    SUBTRACTION_WITH_BORROWING = "subtraction_with_borrowing"
    MULTIPLICATION_TABLES = "multiplication_tables"
    DIVISION_BASICS = "division_basics"

    @property
    def display_name(self) -> str:
        return CONCEPT_INFO[self][0]

    @property
    def description(self) -> str:
        return CONCEPT_INFO[self][1]

    @property
    def operation(self) -> Operation:
        return CONCEPT_OPERATIONS[self]

    @property
    def ideal_time_ms(self) -> int:
        return IDEAL_TIME_MS[self]


CONCEPT_INFO = {
    Concept.SINGLE_DIGIT_ADDITION: ("Suma de 1 dígito", "Sumar números del 1 al 9"),
    Concept.DOUBLE_DIGIT_ADDITION: ("Suma de 2 dígitos", "Sumar números del 10 al 99"),
    Concept.ADDITION_WITH_CARRYING: ("Suma con llevada", "Suma que requiere llevar números"),
    Concept.SINGLE_DIGIT_SUBTRACTION: ("Resta de 1 dígito", "Restar números del 1 al 9"),
    Concept.DOUBLE_DIGIT_SUBTRACTION: ("Resta de 2 dígitos", "Restar números del 10 al 99"),
    Concept.SUBTRACTION_WITH_BORROWING: ("Resta con préstamo", "Resta que requiere prestar"),
    Concept.MULTIPLICATION_TABLES: ("Tablas de multiplicar", "Multiplicación básica 1-10"),
    Concept.DIVISION_BASICS: ("División básica", "División simple sin residuo"),
}

CONCEPT_OPERATIONS = {
    Concept.SINGLE_DIGIT_ADDITION: Operation.ADDITION,
    Concept.DOUBLE_DIGIT_ADDITION: Operation.ADDITION,
    Concept.ADDITION_WITH_CARRYING: Operation.ADDITION,
    Concept.SINGLE_DIGIT_SUBTRACTION: Operation.SUBTRACTION,
    Concept.DOUBLE_DIGIT_SUBTRACTION: Operation.SUBTRACTION,
    Concept.SUBTRACTION_WITH_BORROWING: Operation.SUBTRACTION,
    Concept.MULTIPLICATION_TABLES: Operation.MULTIPLICATION,
    Concept.DIVISION_BASICS: Operation.DIVISION,
}

# Time (ms) a fluent student needs per problem
IDEAL_TIME_MS = {
    Concept.SINGLE_DIGIT_ADDITION: 5000,
    Concept.DOUBLE_DIGIT_ADDITION: 8000,
    Concept.ADDITION_WITH_CARRYING: 7000,
    Concept.SINGLE_DIGIT_SUBTRACTION: 6000,
    Concept.DOUBLE_DIGIT_SUBTRACTION: 10000,
    Concept.SUBTRACTION_WITH_BORROWING: 7000,
    Concept.MULTIPLICATION_TABLES: 4000,
    Concept.DIVISION_BASICS: 8000,
}


def parse_concept(value: str) -> Concept:
    """Resolve 'Multiplication Tables', 'multiplication-tables' etc. to a Concept."""
    key = value.strip().lower().replace(" ", "_").replace("-", "_")
    try:
        return Concept(key)
    except ValueError:
        raise UnknownConceptError(f"Unknown concept: '{value}'") from None


class DifficultyLevel(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    EXPERT = "expert"


class MasteryLevel(str, Enum):
    NOT_STARTED = "not_started"
    LEARNING = "learning"
    PRACTICING = "practicing"
    MASTERED = "mastered"


class HintType(str, Enum):
    CONCEPTUAL = "conceptual"
    VISUAL = "visual"
    STEP_BY_STEP = "step_by_step"
    ENCOURAGEMENT = "encouragement"


class VisualType(str, Enum):
    COUNTING_OBJECTS = "counting_objects"
    NUMBER_LINE = "number_line"
    GROUPING = "grouping"
    DECOMPOSITION = "decomposition"
    VISUAL_EQUATION = "visual_equation"


class BadgeRarity(str, Enum):
    COMMON = "common"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"


class Snapshot(BaseModel):
    model_config = ConfigDict(frozen=True)


def local_time(value: Optional[datetime] = None) -> datetime:
    """
    Naive local time, the one convention every stored timestamp follows.
    Aware values are converted; None means now.
    """
    if value is None:
        return datetime.now()
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


LocalDatetime = Annotated[datetime, AfterValidator(local_time)]


# ---------------------------------------------------------------------------
# Problems
# ---------------------------------------------------------------------------

class Hint(Snapshot):
    level: int
    text: str
    type: HintType


class ExplanationStep(Snapshot):
    step_number: int
    title: str
    description: str
    calculation: str
    visual: Optional[str] = None


class ProblemExplanation(Snapshot):
    steps: list[ExplanationStep]
    visual_representation: str
    audio_script: str


class VisualElement(Snapshot):
    content: str
    position: int
    is_interactive: bool = False


class VisualAid(Snapshot):
    type: VisualType
    description: str
    elements: list[VisualElement] = Field(default_factory=list)


class Problem(Snapshot):
    id: str
    operand_a: int
    operand_b: int
    operation: Operation
    correct_answer: int
    options: list[int]
    difficulty: DifficultyLevel
    concept: Concept
    hints: list[Hint] = Field(default_factory=list)
    visual_aid: Optional[VisualAid] = None
    explanation: Optional[ProblemExplanation] = None

    @model_validator(mode="after")
    def _check_options(self):
        if len(self.options) != 4 or len(set(self.options)) != 4:
            raise ValueError("a problem needs exactly 4 distinct options")
        if self.options.count(self.correct_answer) != 1:
            raise ValueError("options must contain the correct answer exactly once")
        if any(o < 0 for o in self.options):
            raise ValueError("options must be non-negative")
        return self

    @property
    def question(self) -> str:
        return f"{self.operand_a} {self.operation.symbol} {self.operand_b}"


# ---------------------------------------------------------------------------
# Performance & mastery
# ---------------------------------------------------------------------------

class PerformanceObservation(Snapshot):
    problem_id: str
    concept: Concept
    difficulty: DifficultyLevel = DifficultyLevel.BEGINNER
    is_correct: bool
    time_spent_ms: int = Field(ge=0)
    hints_used: int = Field(default=0, ge=0)
    attempts: int = Field(default=1, ge=1)
    timestamp: LocalDatetime = Field(default_factory=datetime.now)


REVIEW_MASTERY = 0.7
REVIEW_AFTER = timedelta(days=7)


class ConceptMastery(Snapshot):
    concept: Concept
    total_attempts: int = 0
    correct_attempts: int = 0
    average_time_ms: int = 0
    average_hints: float = 0.0
    last_practiced_at: Optional[LocalDatetime] = None
    mastery_score: float = Field(default=0.0, ge=0.0, le=1.0)

    @property
    def accuracy_rate(self) -> float:
        if self.total_attempts == 0:
            return 0.0
        return self.correct_attempts / self.total_attempts

    def needs_review(self, now: Optional[datetime] = None) -> bool:
        if self.mastery_score < REVIEW_MASTERY or self.last_practiced_at is None:
            return True
        return local_time(now) - self.last_practiced_at > REVIEW_AFTER


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------

class StreakData(Snapshot):
    current: int = 0
    longest: int = 0
    last_activity_at: LocalDatetime = Field(default_factory=datetime.now)
    last_goal_date: Optional[date] = None  # day the daily goal was last credited


class Badge(Snapshot):
    id: str
    name: str
    description: str
    icon: str
    unlocked_at: LocalDatetime
    rarity: BadgeRarity


class UserPreferences(Snapshot):
    audio_enabled: bool = True
    animations_enabled: bool = True
    difficulty: DifficultyLevel = DifficultyLevel.BEGINNER
    daily_goal: int = Field(default=50, ge=0)  # XP target per day


class UnitProgress(Snapshot):
    unit_id: str
    completed_lessons: set[str] = Field(default_factory=set)
    xp_earned: int = 0
    mastery_level: MasteryLevel = MasteryLevel.NOT_STARTED
    last_accessed_at: Optional[LocalDatetime] = None


class LearningProgress(Snapshot):
    unit_progress: dict[str, UnitProgress] = Field(default_factory=dict)
    mastered_concepts: set[Concept] = Field(default_factory=set)
    weekly_xp: list[int] = Field(default_factory=lambda: [0] * 7)  # last slot is today
    weekly_xp_date: Optional[date] = None
    total_problems_completed: int = 0
    total_correct: int = 0
    accuracy_rate: float = 0.0


class UserProfile(Snapshot):
    id: str = "default_user"
    name: str = "Estudiante"
    avatar: str = "🦙"
    xp_total: int = 0
    streak: StreakData = Field(default_factory=StreakData)
    badges: list[Badge] = Field(default_factory=list)
    preferences: UserPreferences = Field(default_factory=UserPreferences)
    progress: LearningProgress = Field(default_factory=LearningProgress)

    @computed_field
    @property
    def level(self) -> int:
        return self.xp_total // 100 + 1


# ---------------------------------------------------------------------------
# Learning path
# ---------------------------------------------------------------------------

class Lesson(Snapshot):
    id: str
    title: str
    concept: Concept
    problems: list[Problem] = Field(default_factory=list)
    is_completed: bool = False
    mastery_level: MasteryLevel = MasteryLevel.NOT_STARTED
    xp_value: int = 20


class LearningUnit(Snapshot):
    id: str
    title: str
    description: str
    icon: str
    lessons: list[Lesson]
    category: MathCategory
    is_unlocked: bool = False
    completion_percentage: float = 0.0
    xp_earned: int = 0
    target_xp: int = 100


class LearningPath(Snapshot):
    units: list[LearningUnit]
    total_xp: int = 0
    completed_units: int = 0


def unit_id_for_lesson(lesson_id: str) -> str:
    """Lesson ids are '<unit_id>_lesson_<n>'."""
    return lesson_id.split("_lesson", 1)[0]
