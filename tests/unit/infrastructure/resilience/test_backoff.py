import random

import pytest

from asanacli.infrastructure.resilience.backoff import (
    BackoffPolicy, format_retry_after, parse_retry_after,
)


@pytest.fixture
def policy():
    return BackoffPolicy(rng=random.Random(42))


@pytest.mark.parametrize("attempt, lower", [(0, 1.0), (1, 2.0), (2, 4.0), (3, 8.0), (4, 16.0)])
def test_wait_grows_exponentially_with_bounded_jitter(policy, attempt, lower):
    for _ in range(50):
        wait = policy.compute(attempt)
        assert lower <= wait <= lower * 1.25


def test_wait_is_capped(policy):
    for attempt in (5, 6, 10, 30):
        wait = policy.compute(attempt)
        assert 30.0 <= wait <= 37.5


def test_server_hint_is_used_verbatim(policy):
    assert policy.compute(0, 30.0) == 30.0
    assert policy.compute(3, 2.0) == 2.0


@pytest.mark.parametrize("hint", [None, 0, -5])
def test_non_positive_hint_is_ignored(policy, hint):
    assert 1.0 <= policy.compute(0, hint) <= 1.25


def test_seeded_random_source_is_reproducible():
    first = BackoffPolicy(rng=random.Random(7))
    second = BackoffPolicy(rng=random.Random(7))
    assert [first.compute(n) for n in range(4)] == [second.compute(n) for n in range(4)]


def test_defaults():
    policy = BackoffPolicy()
    assert (policy.base, policy.cap, policy.max_attempts) == (1.0, 30.0, 3)


@pytest.mark.parametrize("kwargs", [{"base": 0}, {"cap": -1}, {"max_attempts": -1}])
def test_invalid_arguments(kwargs):
    with pytest.raises(ValueError):
        BackoffPolicy(**kwargs)


@pytest.mark.parametrize("header, expected", [
    ("30", 30.0),
    (" 5 ", 5.0),
    ("0", None),
    ("-3", None),
    ("", None),
    (None, None),
    ("Wed, 21 Oct 2015 07:28:00 GMT", None),
    ("1.5", None),
])
def test_parse_retry_after(header, expected):
    assert parse_retry_after(header) == expected


def test_format_retry_after():
    assert format_retry_after(30.0) == "30s"
    assert format_retry_after(None) == ""
    assert format_retry_after(0) == ""
