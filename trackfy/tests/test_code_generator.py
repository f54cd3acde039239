"""
Tests for tracking code generation.
"""

import random

from trackfy.app.domain.tracking.code_generator import (
    CODE_PATTERN, SENTINEL_CODE, CodeGenerator, is_valid_code,
)


def test_generated_codes_match_format():
    generator = CodeGenerator(rng=random.Random(42))

    codes = [generator.generate() for _ in range(200)]

    assert all(CODE_PATTERN.match(code) for code in codes)
    assert len(set(codes)) > 190


def test_digits_are_zero_padded(mocker):
    rng = random.Random()
    mocker.patch.object(rng, "randrange", return_value=42)
    mocker.patch.object(rng, "choice", return_value="Q")

    assert CodeGenerator(rng=rng).generate() == "BR000000042QQ"


def test_failure_returns_sentinel(mocker):
    rng = random.Random()
    mocker.patch.object(rng, "randrange", side_effect=RuntimeError("entropy exhausted"))

    assert CodeGenerator(rng=rng).generate() == SENTINEL_CODE
    assert is_valid_code(SENTINEL_CODE)


def test_generate_unique_skips_existing_codes(mocker):
    generator = CodeGenerator()
    mocker.patch.object(generator, "generate", side_effect=["BR000000001AA", "BR000000002BB"])

    assert generator.generate_unique(["br000000001aa"]) == "BR000000002BB"


def test_generate_unique_gives_up_after_max_attempts(mocker):
    generator = CodeGenerator(max_attempts=3)
    mocker.patch.object(generator, "generate", return_value="BR000000001AA")

    assert generator.generate_unique(["BR000000001AA"]) == "BR000000001AA"
    assert generator.generate.call_count == 3
