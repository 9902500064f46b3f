"""Answer checking and score computation.

Questions and answers are explicit variants. Which variant applies is decided
once, when a question is loaded or an answer is collected, and the scorer
only dispatches on the variant type.

Malformed input fails fast with ``ScoringError``: an empty question list,
questions and answers of different lengths, an answer variant that does not
fit its question, or a choice index outside the question's choices.
"""

from dataclasses import dataclass
from typing import Any, FrozenSet, Iterable, List, Optional, Sequence, Tuple, Union

QUESTION_IDENTIFICATION = "identification"
QUESTION_MULTIPLE_CHOICE = "multiple-choice"
MIN_CHOICES = 2


class ScoringError(ValueError):
    pass


@dataclass(frozen=True)
class IdentificationQuestion:
    prompt: str
    correct_answers: Tuple[str, ...]

    def __post_init__(self) -> None:
        if not self.correct_answers:
            raise ScoringError("Identification question needs at least one accepted answer")


@dataclass(frozen=True)
class SingleChoiceQuestion:
    prompt: str
    choices: Tuple[str, ...]
    correct_answer: int

    def __post_init__(self) -> None:
        _check_choices(self.choices)
        _check_index(self.correct_answer, self.choices)


@dataclass(frozen=True)
class MultiChoiceQuestion:
    prompt: str
    choices: Tuple[str, ...]
    correct_answers: FrozenSet[int]

    def __post_init__(self) -> None:
        _check_choices(self.choices)
        if not self.correct_answers:
            raise ScoringError("Multiple-answer question needs at least one correct choice")
        for index in self.correct_answers:
            _check_index(index, self.choices)


Question = Union[IdentificationQuestion, SingleChoiceQuestion, MultiChoiceQuestion]


@dataclass(frozen=True)
class TextAnswer:
    text: str = ""


@dataclass(frozen=True)
class ChoiceAnswer:
    index: Optional[int] = None


@dataclass(frozen=True)
class ChoiceSetAnswer:
    indices: FrozenSet[int] = frozenset()


Answer = Union[TextAnswer, ChoiceAnswer, ChoiceSetAnswer]


@dataclass(frozen=True)
class Score:
    correct: int
    total: int
    percentage: int

    def as_dict(self) -> dict:
        return {"correct": self.correct, "total": self.total, "percentage": self.percentage}


def _check_choices(choices: Sequence[str]) -> None:
    if len(choices) < MIN_CHOICES:
        raise ScoringError(f"Multiple-choice question needs at least {MIN_CHOICES} choices")


def _is_index(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _check_index(value: Any, choices: Sequence[str]) -> int:
    if not _is_index(value):
        raise ScoringError(f"Choice index must be an integer, got {value!r}")
    if value < 0 or value >= len(choices):
        raise ScoringError(f"Choice index {value} is out of range for {len(choices)} choices")
    return value


def normalize_answer(text: str) -> str:
    return text.strip().lower()


def round_percentage(part: int, whole: int) -> int:
    """Return ``round(100 * part / whole)`` with halves rounded up."""
    if whole <= 0:
        raise ScoringError("Cannot compute a percentage of zero items")
    return (200 * part + whole) // (2 * whole)


def answer_from_value(question: Question, value: Any) -> Answer:
    """Build the answer variant for ``question`` from a raw JSON value.

    ``None`` means unanswered. A scalar index given for a multiple-answer
    question is wrapped as a one-element set.
    """
    if isinstance(question, IdentificationQuestion):
        if value is None:
            return TextAnswer("")
        if isinstance(value, str):
            return TextAnswer(value)
        raise ScoringError(f"Identification answer must be text, got {value!r}")

    if isinstance(question, SingleChoiceQuestion):
        if value is None:
            return ChoiceAnswer(None)
        return ChoiceAnswer(_check_index(value, question.choices))

    if isinstance(question, MultiChoiceQuestion):
        if value is None:
            return ChoiceSetAnswer(frozenset())
        items = value if isinstance(value, (list, tuple, set, frozenset)) else [value]
        return ChoiceSetAnswer(frozenset(_check_index(item, question.choices) for item in items))

    raise ScoringError(f"Unsupported question type: {type(question).__name__}")


def answer_to_value(answer: Answer) -> Any:
    if isinstance(answer, TextAnswer):
        return answer.text
    if isinstance(answer, ChoiceAnswer):
        return answer.index
    if isinstance(answer, ChoiceSetAnswer):
        return sorted(answer.indices)
    raise ScoringError(f"Unsupported answer type: {type(answer).__name__}")


def is_answered(answer: Answer) -> bool:
    if isinstance(answer, TextAnswer):
        return bool(answer.text.strip())
    if isinstance(answer, ChoiceAnswer):
        return answer.index is not None
    return bool(answer.indices)


def check_identification_answer(user_answer: str, correct_answers: Iterable[str]) -> bool:
    normalized = normalize_answer(user_answer)
    return any(normalize_answer(correct) == normalized for correct in correct_answers)


def check_answer(question: Question, answer: Answer) -> bool:
    if isinstance(question, IdentificationQuestion):
        if not isinstance(answer, TextAnswer):
            raise ScoringError("Identification question expects a text answer")
        return check_identification_answer(answer.text, question.correct_answers)

    if isinstance(question, MultiChoiceQuestion):
        if isinstance(answer, ChoiceSetAnswer):
            selected = answer.indices
        elif isinstance(answer, ChoiceAnswer):
            selected = frozenset() if answer.index is None else frozenset([answer.index])
        else:
            raise ScoringError("Multiple-choice question expects choice indices")
        for index in selected:
            _check_index(index, question.choices)
        return selected == question.correct_answers

    if isinstance(question, SingleChoiceQuestion):
        if not isinstance(answer, ChoiceAnswer):
            raise ScoringError("Single-answer question expects one choice index")
        if answer.index is None:
            return False
        return _check_index(answer.index, question.choices) == question.correct_answer

    raise ScoringError(f"Unsupported question type: {type(question).__name__}")


def grade_answers(questions: Sequence[Question], answers: Sequence[Answer]) -> List[bool]:
    if not questions:
        raise ScoringError("Cannot score a quiz without questions")
    if len(answers) != len(questions):
        raise ScoringError(f"Expected {len(questions)} answers, got {len(answers)}")
    return [check_answer(question, answer) for question, answer in zip(questions, answers)]


def calculate_score(questions: Sequence[Question], answers: Sequence[Answer]) -> Score:
    results = grade_answers(questions, answers)
    correct = sum(1 for item in results if item)
    total = len(questions)
    return Score(correct=correct, total=total, percentage=round_percentage(correct, total))


def describe_expected_answer(question: Question) -> str:
    if isinstance(question, IdentificationQuestion):
        return " or ".join(question.correct_answers)
    if isinstance(question, SingleChoiceQuestion):
        return question.choices[question.correct_answer]
    return ", ".join(question.choices[index] for index in sorted(question.correct_answers))
