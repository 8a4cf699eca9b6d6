"""
Arithmetic problem generator.
Operands, distractors, hints, visual aids and worked explanations.
All randomness comes from one injectable random.Random.
"""

import logging
import random
from typing import Optional

from learning_models import (
    Concept,
    DifficultyLevel,
    ExplanationStep,
    Hint,
    HintType,
    Operation,
    Problem,
    ProblemExplanation,
    VisualAid,
    VisualElement,
    VisualType,
)

logger = logging.getLogger(__name__)

DISTRACTOR_COUNT = 3
DRAWS_PER_RANGE = 30

# Multiplication table value by difficulty
TABLE_RANGES = {
    DifficultyLevel.BEGINNER: (2, 5),
    DifficultyLevel.INTERMEDIATE: (2, 7),
    DifficultyLevel.ADVANCED: (2, 9),
    DifficultyLevel.EXPERT: (2, 10),
}

DIVISOR_RANGES = {
    DifficultyLevel.BEGINNER: (2, 5),
    DifficultyLevel.INTERMEDIATE: (2, 6),
    DifficultyLevel.ADVANCED: (2, 8),
    DifficultyLevel.EXPERT: (2, 10),
}

YELLOW = "🟡"
GREEN = "🟢"
CROSS = "❌"


class ProblemGenerator:
    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    # -- public API ---------------------------------------------------------

    def generate_for_concept(
        self,
        concept: Concept,
        difficulty: DifficultyLevel = DifficultyLevel.BEGINNER,
        with_teaching_aids: bool = True,
    ) -> Problem:
        a, b = self._operands_for_concept(concept, difficulty)
        return self.build(a, b, concept.operation, concept, difficulty, with_teaching_aids)

    def generate(
        self,
        max_operand: int = 10,
        operation: Optional[Operation] = None,
        with_teaching_aids: bool = False,
    ) -> Problem:
        """Free-play problem: small operands, random +/- unless an operation is given."""
        max_operand = max(max_operand, 2)
        rng = self.rng
        if operation is None:
            operation = rng.choice([Operation.ADDITION, Operation.SUBTRACTION])

        if operation is Operation.ADDITION:
            a = rng.randint(1, max_operand)
            b = rng.randint(1, max_operand)
            concept = (
                Concept.SINGLE_DIGIT_ADDITION if max_operand <= 9
                else Concept.DOUBLE_DIGIT_ADDITION
            )
        elif operation is Operation.SUBTRACTION:
            a = rng.randint(min(5, max_operand), max_operand)
            b = rng.randint(1, a - 1)
            concept = (
                Concept.SINGLE_DIGIT_SUBTRACTION if max_operand <= 9
                else Concept.DOUBLE_DIGIT_SUBTRACTION
            )
        elif operation is Operation.MULTIPLICATION:
            a = rng.randint(1, 5)
            b = rng.randint(1, 5)
            concept = Concept.MULTIPLICATION_TABLES
        else:
            b = rng.randint(2, 5)
            a = b * rng.randint(1, 5)
            concept = Concept.DIVISION_BASICS

        return self.build(a, b, operation, concept, DifficultyLevel.BEGINNER, with_teaching_aids)

    def generate_batch(
        self,
        concept: Concept,
        count: int,
        difficulty: DifficultyLevel = DifficultyLevel.BEGINNER,
        max_operand: Optional[int] = None,
        table: Optional[int] = None,
    ) -> list[Problem]:
        """Lesson content. max_operand narrows +/- lessons, table pins the
        multiplication table or the divisor."""
        problems = []
        for _ in range(count):
            if table is not None and concept in (
                Concept.MULTIPLICATION_TABLES, Concept.DIVISION_BASICS
            ):
                a, b = self._table_operands(concept, table)
            elif max_operand is not None and concept.operation in (
                Operation.ADDITION, Operation.SUBTRACTION
            ):
                a, b = self._bounded_operands(concept, max_operand)
            else:
                a, b = self._operands_for_concept(concept, difficulty)
            problems.append(self.build(a, b, concept.operation, concept, difficulty, True))
        return problems

    def generate_mixed(self, count: int) -> list[Problem]:
        problems = []
        for _ in range(count):
            operation = self.rng.choice(list(Operation))
            if operation in (Operation.ADDITION, Operation.SUBTRACTION):
                problems.append(self.generate(10, operation, with_teaching_aids=True))
            else:
                concept = (
                    Concept.MULTIPLICATION_TABLES if operation is Operation.MULTIPLICATION
                    else Concept.DIVISION_BASICS
                )
                problems.append(self.generate_for_concept(concept))
        return problems

    def distractors(self, correct: int, count: int = DISTRACTOR_COUNT) -> list[int]:
        """Distinct non-negative wrong answers near the correct one.

        Draws correct+delta with delta in [-r, r], r = max(1, correct // 3).
        When a range runs dry the range doubles, so the search always ends.
        """
        spread = max(1, correct // 3)
        wrong: set[int] = set()
        while len(wrong) < count:
            for _ in range(DRAWS_PER_RANGE):
                delta = self.rng.randint(-spread, spread)
                candidate = correct + delta
                if delta != 0 and candidate >= 0:
                    wrong.add(candidate)
                    if len(wrong) == count:
                        break
            else:
                logger.debug(f"Distractor range exhausted for {correct}, widening to ±{spread * 2}")
                spread *= 2
        return sorted(wrong)

    # -- operands -----------------------------------------------------------

    def _operands_for_concept(self, concept: Concept, difficulty: DifficultyLevel) -> tuple[int, int]:
        rng = self.rng
        if concept is Concept.SINGLE_DIGIT_ADDITION:
            return rng.randint(1, 9), rng.randint(1, 9)
        if concept is Concept.DOUBLE_DIGIT_ADDITION:
            return rng.randint(10, 99), rng.randint(10, 99)
        if concept is Concept.ADDITION_WITH_CARRYING:
            ones_a = rng.randint(1, 9)
            ones_b = rng.randint(10 - ones_a, 9)
            tens_a = rng.randint(1, 4)
            tens_b = rng.randint(1, 4)
            return tens_a * 10 + ones_a, tens_b * 10 + ones_b
        if concept is Concept.SINGLE_DIGIT_SUBTRACTION:
            a = rng.randint(2, 9)
            return a, rng.randint(1, a - 1)
        if concept is Concept.DOUBLE_DIGIT_SUBTRACTION:
            a = rng.randint(11, 99)
            return a, rng.randint(10, a - 1)
        if concept is Concept.SUBTRACTION_WITH_BORROWING:
            ones_a = rng.randint(0, 8)
            ones_b = rng.randint(ones_a + 1, 9)
            tens_a = rng.randint(2, 9)
            tens_b = rng.randint(1, tens_a - 1)
            return tens_a * 10 + ones_a, tens_b * 10 + ones_b
        if concept is Concept.MULTIPLICATION_TABLES:
            low, high = TABLE_RANGES[difficulty]
            return self._table_operands(concept, rng.randint(low, high))
        if concept is Concept.DIVISION_BASICS:
            low, high = DIVISOR_RANGES[difficulty]
            return self._table_operands(concept, rng.randint(low, high))
        raise ValueError(f"No operand rule for concept {concept!r}")

    def _table_operands(self, concept: Concept, table: int) -> tuple[int, int]:
        factor = self.rng.randint(1, 10)
        if concept is Concept.DIVISION_BASICS:
            # dividend built from divisor * quotient so it always divides evenly
            return table * factor, table
        return table, factor

    def _bounded_operands(self, concept: Concept, max_operand: int) -> tuple[int, int]:
        low = 10 if concept in (Concept.DOUBLE_DIGIT_ADDITION, Concept.DOUBLE_DIGIT_SUBTRACTION) else 1
        max_operand = max(max_operand, low + 1)
        if concept.operation is Operation.ADDITION:
            return self.rng.randint(low, max_operand), self.rng.randint(low, max_operand)
        a = self.rng.randint(low + 1, max_operand)
        return a, self.rng.randint(low, a - 1)

    # -- assembly -----------------------------------------------------------

    def build(
        self,
        a: int,
        b: int,
        operation: Operation,
        concept: Concept,
        difficulty: DifficultyLevel,
        with_teaching_aids: bool,
    ) -> Problem:
        correct = operation.apply(a, b)
        options = self.distractors(correct) + [correct]
        self.rng.shuffle(options)

        return Problem(
            id=f"{self.rng.getrandbits(32):08x}",
            operand_a=a,
            operand_b=b,
            operation=operation,
            correct_answer=correct,
            options=options,
            difficulty=difficulty,
            concept=concept,
            hints=build_hints(a, b, operation) if with_teaching_aids else [],
            visual_aid=build_visual_aid(a, b, operation) if with_teaching_aids else None,
            explanation=build_explanation(a, b, operation, correct) if with_teaching_aids else None,
        )


# ---------------------------------------------------------------------------
# Teaching aids
# ---------------------------------------------------------------------------

def build_hints(a: int, b: int, operation: Operation) -> list[Hint]:
    """Four hints, most generic first."""
    if operation is Operation.ADDITION:
        texts = [
            ("💡 Puedes usar tus dedos para contar", HintType.VISUAL),
            (f"🔢 Empieza desde {a} y cuenta {b} números más", HintType.STEP_BY_STEP),
            ("➕ Sumar significa 'juntar' o 'agregar'", HintType.CONCEPTUAL),
            (f"✨ La respuesta será mayor que {a}", HintType.ENCOURAGEMENT),
        ]
    elif operation is Operation.SUBTRACTION:
        texts = [
            ("💡 Restar significa 'quitar' algo", HintType.CONCEPTUAL),
            (f"🔢 Empieza desde {a} y cuenta {b} hacia atrás", HintType.STEP_BY_STEP),
            (f"➖ ¿Cuánto queda si quitas {b} de {a}?", HintType.VISUAL),
            (f"✨ La respuesta será menor que {a}", HintType.ENCOURAGEMENT),
        ]
    elif operation is Operation.MULTIPLICATION:
        texts = [
            ("💡 Multiplicar es sumar el mismo número varias veces", HintType.CONCEPTUAL),
            (f"🔢 {a} × {b} = {a} + {a} + ... ({b} veces)", HintType.STEP_BY_STEP),
            (f"✖️ Puedes hacer grupos de {a}", HintType.VISUAL),
            (f"✨ ¿Recuerdas la tabla del {a}?", HintType.ENCOURAGEMENT),
        ]
    else:
        texts = [
            ("💡 Dividir es repartir en grupos iguales", HintType.CONCEPTUAL),
            (f"🔢 ¿Cuántas veces cabe {b} en {a}?", HintType.STEP_BY_STEP),
            (f"➗ Piensa en la tabla del {b}", HintType.VISUAL),
            (f"✨ {b} × ? = {a}", HintType.ENCOURAGEMENT),
        ]
    return [Hint(level=i + 1, text=text, type=kind) for i, (text, kind) in enumerate(texts)]


def build_visual_aid(a: int, b: int, operation: Operation) -> VisualAid:
    """Object rows are interactive so the child can tap to count them; totals are not."""
    if operation is Operation.ADDITION:
        return VisualAid(
            type=VisualType.COUNTING_OBJECTS,
            description="Cuenta todos los objetos",
            elements=[
                VisualElement(content=YELLOW * a, position=0, is_interactive=True),
                VisualElement(content=GREEN * b, position=1, is_interactive=True),
                VisualElement(content=f"Total: {a + b}", position=2),
            ],
        )
    if operation is Operation.SUBTRACTION:
        return VisualAid(
            type=VisualType.COUNTING_OBJECTS,
            description="Quita los objetos marcados",
            elements=[
                VisualElement(content="Inicial: " + YELLOW * a, position=0, is_interactive=True),
                VisualElement(content="Quitar: " + CROSS * b, position=1, is_interactive=True),
                VisualElement(content="Quedan: " + YELLOW * (a - b), position=2),
            ],
        )
    if operation is Operation.MULTIPLICATION:
        groups = [
            VisualElement(content=f"Grupo {g}: " + YELLOW * a, position=g - 1, is_interactive=True)
            for g in range(1, b + 1)
        ]
        groups.append(VisualElement(content=f"Total: {a * b}", position=b))
        return VisualAid(type=VisualType.GROUPING, description="Cuenta los grupos", elements=groups)

    result = a // b
    return VisualAid(
        type=VisualType.GROUPING,
        description="Reparte en grupos iguales",
        elements=[
            VisualElement(content="Total: " + YELLOW * a, position=0, is_interactive=True),
            VisualElement(content=f"Grupos de {b}: " + (YELLOW * b + " ") * result, position=1),
            VisualElement(content=f"Resultado: {result} grupos", position=2),
        ],
    )


def build_explanation(a: int, b: int, operation: Operation, answer: int) -> ProblemExplanation:
    sym = operation.symbol
    if operation is Operation.ADDITION:
        steps = [
            ("Identifica los números", f"Tenemos {a} y {b}", f"{a} + {b}",
             YELLOW * a + " + " + GREEN * b),
            ("Cuenta desde el primer número", f"Empieza en {a} y cuenta {b} más",
             f"{a} → {a + 1} → ... → {answer}", None),
            ("Resultado", f"Al juntar todo obtenemos {answer}", f"{a} + {b} = {answer}",
             YELLOW * a + GREEN * b + f" = {answer} total"),
        ]
        visual = YELLOW * a + " + " + GREEN * b + f" = {answer}"
        script = (f"Vamos a sumar {a} más {b}. Empezamos con {a} y agregamos {b} más, "
                  f"eso nos da {answer}.")
    elif operation is Operation.SUBTRACTION:
        steps = [
            ("Identifica los números", f"Tenemos {a} y queremos quitar {b}", f"{a} - {b}",
             YELLOW * a + " (quitamos " + CROSS * b + ")"),
            ("Cuenta hacia atrás", f"Desde {a}, cuenta {b} hacia atrás",
             f"{a} → {a - 1} → ... → {answer}", None),
            ("Resultado", f"Después de quitar {b}, quedan {answer}", f"{a} - {b} = {answer}",
             YELLOW * answer + f" (quedan {answer})"),
        ]
        visual = YELLOW * a + " - " + CROSS * b + " = " + YELLOW * answer
        script = (f"Vamos a restar {b} de {a}. Empezamos con {a} y quitamos {b}, "
                  f"nos quedan {answer}.")
    elif operation is Operation.MULTIPLICATION:
        steps = [
            ("Entender la multiplicación", "Multiplicar es sumar el mismo número varias veces",
             f"{a} {sym} {b}", None),
            ("Crear grupos", f"Hacemos {b} grupos de {a}", f"{a} + {a} + ... ({b} veces)",
             (YELLOW * a + " ") * b),
            ("Contar el total", f"Contamos todo y obtenemos {answer}", f"{a} {sym} {b} = {answer}", None),
        ]
        visual = (YELLOW * a + " ") * b + f"= {answer}"
        script = (f"Vamos a multiplicar {a} por {b}. Eso significa {b} grupos de {a}, "
                  f"que nos da {answer}.")
    else:
        steps = [
            ("Entender la división", "Dividir es repartir en grupos iguales", f"{a} {sym} {b}", None),
            ("Hacer grupos", f"Repartimos {a} objetos en grupos de {b}", "¿Cuántos grupos?",
             (YELLOW * b + " ") * answer),
            ("Contar grupos", f"Obtenemos {answer} grupos completos", f"{a} {sym} {b} = {answer}", None),
        ]
        visual = YELLOW * a + " → " + (YELLOW * b + " ") * answer + f"= {answer} grupos"
        script = (f"Vamos a dividir {a} entre {b}. Repartimos en grupos de {b} "
                  f"y obtenemos {answer} grupos.")

    return ProblemExplanation(
        steps=[
            ExplanationStep(step_number=i + 1, title=t, description=d, calculation=c, visual=v)
            for i, (t, d, c, v) in enumerate(steps)
        ],
        visual_representation=visual,
        audio_script=script,
    )
