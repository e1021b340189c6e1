"""Room code generation and input normalization."""

import random
import re
import string
from typing import Optional

ROOM_CODE_ALPHABET = string.digits + string.ascii_uppercase
MIN_CODE_LENGTH = 3


def make_room_code(rng: Optional[random.Random] = None, length: int = 4) -> str:
    """Random uppercase base-36 room code."""
    rng = rng or random.Random()
    return "".join(rng.choice(ROOM_CODE_ALPHABET) for _ in range(length))


def normalize_room_code(text: str, length: int = 4) -> str:
    """Uppercase, drop whitespace, cut to the code length."""
    return re.sub(r"\s", "", text).upper()[:length]


def is_valid_room_code(code: str) -> bool:
    return len(code) >= MIN_CODE_LENGTH and all(c in ROOM_CODE_ALPHABET for c in code)
