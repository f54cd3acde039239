"""
Tracking code generation.

Codes look like ``BR123456789AB``: the ``BR`` prefix, nine zero-padded
digits and two uppercase letters.
"""

from typing import Iterable, Optional
import logging
import random
import re
import string

logger = logging.getLogger("trackfy.codes")

CODE_PREFIX = "BR"
SENTINEL_CODE = "BR000000000XX"
CODE_PATTERN = re.compile(r"^BR\d{9}[A-Z]{2}$")


class CodeGenerator:

    def __init__(self, rng: Optional[random.Random] = None, max_attempts: int = 10):
        self.rng = rng or random.Random()
        self.max_attempts = max_attempts

    def generate(self) -> str:
        """Random tracking code, or the sentinel if generation fails."""
        try:
            digits = f"{self.rng.randrange(10 ** 9):09d}"
            letters = "".join(self.rng.choice(string.ascii_uppercase) for _ in range(2))
            return f"{CODE_PREFIX}{digits}{letters}"
        except Exception:
            logger.exception("Error generating tracking code")
            return SENTINEL_CODE

    def generate_unique(self, existing: Iterable[str]) -> str:
        """
        Generate a code not present in ``existing`` (case-insensitive).

        Gives up after ``max_attempts`` candidates and returns the last one.
        """
        taken = {code.upper() for code in existing if isinstance(code, str)}
        candidate = self.generate()
        for _ in range(self.max_attempts - 1):
            if candidate not in taken:
                return candidate
            logger.info("Tracking code collision on %s, regenerating", candidate)
            candidate = self.generate()
        if candidate in taken:
            logger.warning("Could not avoid a code collision after %s attempts", self.max_attempts)
        return candidate


def is_valid_code(code: str) -> bool:
    return bool(CODE_PATTERN.match(code or ""))
