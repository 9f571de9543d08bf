"""
Correct-answer resolution.

Source data stores `correct_answer` as free text: the full option text, a
letter ("B", "option c", "D."), or a 1-based number ("2", "Option 4"). This
module maps that text onto an index into `options`.
"""

from __future__ import annotations

import re
from typing import Optional, Sequence

_LETTER_PATTERN = re.compile(r"^(?:option\s*)?([A-D])\.?$", re.IGNORECASE)
_NUMBER_PATTERN = re.compile(r"^(?:option\s*)?(\d+)$", re.IGNORECASE)


def detect_correct_option(
    options: Optional[Sequence[str]],
    correct_answer: Optional[str],
) -> Optional[int]:
    """
    Return the 0-based index of the correct option, or None.

    Precedence:
    1. exact option text (case-insensitive, trimmed)
    2. letter A-D
    3. 1-based number

    A letter or number pointing past the end of `options` does not match.
    """
    if not options or not correct_answer or not correct_answer.strip():
        return None

    answer = correct_answer.strip()
    lowered = answer.lower()

    for index, option in enumerate(options):
        if option.strip().lower() == lowered:
            return index

    letter = _LETTER_PATTERN.match(answer)
    if letter:
        index = ord(letter.group(1).upper()) - ord("A")
        if index < len(options):
            return index

    number = _NUMBER_PATTERN.match(answer)
    if number:
        index = int(number.group(1)) - 1
        if 0 <= index < len(options):
            return index

    return None
