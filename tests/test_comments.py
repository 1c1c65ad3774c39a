import random

import pytest

from academics.comments import (
    FEEDBACK_COMMENTS,
    PERFORMANCE_COMMENTS,
    POSITION_COMMENTS,
    CommentGenerator,
    performance_band,
    position_band,
    principal_comment,
)


class FirstChoice:
    """Always picks the first template."""

    def choice(self, sequence):
        return sequence[0]


@pytest.mark.parametrize("average, band", [
    (95, "excellent"), (80, "excellent"), (79.99, "veryGood"), (70, "veryGood"),
    (65, "good"), (50, "average"), (45, "belowAverage"), (39, "poor"),
])
def test_performance_band(average, band):
    assert performance_band(average) == band


@pytest.mark.parametrize("position, total, band", [
    (1, 10, "top"), (2, 10, "upper"), (3, 10, "upper"), (4, 10, "middle"),
    (7, 10, "middle"), (8, 10, "lower"), (1, 1, "lower"), (1, 0, "lower"),
])
def test_position_band(position, total, band):
    assert position_band(position, total) == band


def test_pools_have_the_expected_sizes():
    assert all(len(pool) == 10 for pool in PERFORMANCE_COMMENTS.values())
    assert all(len(pool) == 8 for pool in POSITION_COMMENTS.values())
    assert all(len(pool) == 5 for pool in FEEDBACK_COMMENTS.values())
    assert set(FEEDBACK_COMMENTS) == set(PERFORMANCE_COMMENTS)


def test_generate_joins_one_sentence_from_each_pool():
    generator = CommentGenerator(rng=FirstChoice())

    comment = generator.generate(85, 1, 20)

    assert comment == " ".join([
        PERFORMANCE_COMMENTS["excellent"][0],
        POSITION_COMMENTS["top"][0],
        FEEDBACK_COMMENTS["excellent"][0],
    ])


def test_same_seed_gives_the_same_comment():
    first = CommentGenerator(rng=random.Random(3)).generate(62, 5, 20)
    second = CommentGenerator(rng=random.Random(3)).generate(62, 5, 20)

    assert first == second


def test_options_are_unique_and_at_least_three():
    generator = CommentGenerator(rng=random.Random(11))

    options = generator.generate_options(72, 4, 30)

    assert 3 <= len(options) <= 5
    assert len(set(options)) == len(options)


def test_options_fall_back_to_repeats_when_retries_run_out():
    generator = CommentGenerator(rng=FirstChoice(), max_retries=20)

    options = generator.generate_options(30, 30, 30)

    assert len(options) == 3
    assert len(set(options)) == 1


@pytest.mark.parametrize("average, start", [
    (80, "Exceptional performance!"),
    (75, "Very good performance!"),
    (60, "Good performance!"),
    (55, "Fair performance."),
    (10, "Poor performance."),
])
def test_principal_comment(average, start):
    assert principal_comment(average).startswith(start)
