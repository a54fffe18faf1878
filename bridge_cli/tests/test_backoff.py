import random

import pytest

from bridge_cli.config import ClientSettings
from bridge_cli.network.backoff import BackoffPolicy


def test_delay_follows_exponential_formula():
    policy = BackoffPolicy(initial_delay_ms=1000, multiplier=2, max_delay_ms=30000)

    assert [policy.delay(n) for n in range(7)] == [1000, 2000, 4000, 8000, 16000, 30000, 30000]


def test_delay_is_monotonic_and_capped():
    policy = BackoffPolicy(initial_delay_ms=250, multiplier=1.5, max_delay_ms=10000)
    delays = [policy.delay(n) for n in range(200)]

    assert delays[0] == 250
    assert all(later >= earlier for earlier, later in zip(delays, delays[1:]))
    assert max(delays) == 10000


def test_huge_attempt_does_not_overflow():
    policy = BackoffPolicy()

    assert policy.delay(10_000) == policy.max_delay_ms


def test_extreme_multiplier_saturates_instead_of_overflowing():
    policy = BackoffPolicy(initial_delay_ms=1, multiplier=1e200, max_delay_ms=1e300)

    assert policy.delay(1) == 1e200
    assert policy.delay(2) == 1e300
    assert policy.delay(50) == 1e300


def test_tiny_initial_delay_with_large_cap():
    policy = BackoffPolicy(initial_delay_ms=1e-300, multiplier=10, max_delay_ms=1e300)

    assert policy.delay(599) <= 1e300
    assert policy.delay(700) == 1e300


def test_negative_attempt_rejected():
    with pytest.raises(ValueError):
        BackoffPolicy().delay(-1)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"initial_delay_ms": 0},
        {"multiplier": 1},
        {"initial_delay_ms": 5000, "max_delay_ms": 1000},
        {"jitter": 1.0},
    ],
)
def test_invalid_policy_rejected(kwargs):
    with pytest.raises(ValueError):
        BackoffPolicy(**kwargs)


def test_jitter_only_shortens_delay():
    policy = BackoffPolicy(initial_delay_ms=100, multiplier=2, max_delay_ms=800, jitter=0.5, rng=random.Random(7))

    for attempt in range(10):
        base = policy.base_delay(attempt)
        delay = policy.delay(attempt)
        assert base * 0.5 <= delay <= base


def test_from_settings_uses_reconnect_fields():
    settings = ClientSettings(
        reconnect_initial_delay_ms=50,
        reconnect_multiplier=3,
        reconnect_max_delay_ms=900,
    )
    policy = BackoffPolicy.from_settings(settings)

    assert policy.delay(0) == 50
    assert policy.delay(2) == 450
    assert policy.delay(3) == 900
