import random
from typing import Any, List, Optional, Sequence

from quizmaker.services.scoring import ScoringError


def build_question_order(count: int, shuffle: bool, rng: Optional[random.Random] = None) -> List[int]:
    """Presentation order for ``count`` questions: ``order[display] = original``."""
    order = list(range(count))
    if not shuffle:
        return order
    source = rng or random.SystemRandom()
    # Fisher-Yates
    for i in range(len(order) - 1, 0, -1):
        j = source.randint(0, i)
        order[i], order[j] = order[j], order[i]
    return order


def is_permutation(order: Sequence[Any], count: int) -> bool:
    if len(order) != count:
        return False
    if any(not isinstance(item, int) or isinstance(item, bool) for item in order):
        return False
    return sorted(order) == list(range(count))


def restore_answer_order(order: Sequence[int], answers: Sequence[Any]) -> List[Any]:
    """Map answers collected in display order back to original question order."""
    if len(answers) != len(order) or not is_permutation(order, len(order)):
        raise ScoringError("Question order must be a permutation matching the answers")
    restored: List[Any] = [None] * len(order)
    for display_index, original_index in enumerate(order):
        restored[original_index] = answers[display_index]
    return restored
