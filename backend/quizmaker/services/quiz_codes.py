"""Quiz join codes.

A code looks like ``AAAAA-BBBBB``: ten symbols drawn from ``[A-Za-z0-9]``
with a dash at index 5. Generation makes no uniqueness promise; callers that
persist codes retry on collision.
"""

import secrets
import string
from typing import Any, Optional, Protocol

CODE_ALPHABET = string.ascii_uppercase + string.ascii_lowercase + string.digits
CODE_LENGTH = 11
CODE_DASH_INDEX = 5
CODE_FORMAT_HINT = "XXXXX-XXXXX"

_ALPHABET_SET = frozenset(CODE_ALPHABET)


class RandomSource(Protocol):
    def choice(self, seq: Any) -> Any: ...


def generate_quiz_code(rng: Optional[RandomSource] = None) -> str:
    source = rng or secrets.SystemRandom()
    half = CODE_DASH_INDEX
    head = "".join(source.choice(CODE_ALPHABET) for _ in range(half))
    tail = "".join(source.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH - half - 1))
    return f"{head}-{tail}"


def is_valid_quiz_code(code: Any) -> bool:
    if not isinstance(code, str) or len(code) != CODE_LENGTH:
        return False
    if code[CODE_DASH_INDEX] != "-":
        return False
    for index, char in enumerate(code):
        if index == CODE_DASH_INDEX:
            continue
        if char not in _ALPHABET_SET:
            return False
    return True
