"""Tests for jarseal.core.retry — RetryPolicy and RetryingSigner."""

from __future__ import annotations

import logging
from unittest.mock import Mock

import pytest

from jarseal.core.retry import RetryingSigner, RetryPolicy
from jarseal.errors import RetriesExhaustedError, SigningError, TransientSigningError

# ── RetryPolicy ───────────────────────────────────────────────────────


@pytest.mark.parametrize(
    ("attempt", "limit", "expected"),
    [(1, 3, True), (3, 3, True), (4, 3, False), (1, 0, False), (0, 0, True)],
)
def test_should_retry_iff_attempt_within_limit(attempt, limit, expected):
    assert RetryPolicy(limit=limit).should_retry(attempt) is expected


def test_should_retry_explicit_limit_overrides_policy():
    policy = RetryPolicy(limit=0)
    assert policy.should_retry(2, limit=5) is True


def test_wait_is_fixed():
    policy = RetryPolicy(limit=5, wait=30)
    assert [policy.wait_before(n) for n in range(2, 6)] == [30, 30, 30, 30]


def test_policy_defaults():
    policy = RetryPolicy()
    assert policy.limit == 3
    assert policy.wait == 30


# ── RetryingSigner ────────────────────────────────────────────────────


def _signer(primitive, limit=3, wait=5.0):
    sleeps: list[float] = []
    return RetryingSigner(primitive, RetryPolicy(limit=limit, wait=wait), sleep=sleeps.append), sleeps


@pytest.mark.parametrize("limit", [0, 1, 3])
def test_permanent_failure_calls_limit_plus_one(limit):
    primitive = Mock()
    primitive.sign.side_effect = TransientSigningError("HTTP 503")
    signer, sleeps = _signer(primitive, limit=limit)

    with pytest.raises(RetriesExhaustedError) as exc_info:
        signer.sign(b"jar")

    assert primitive.sign.call_count == limit + 1
    assert exc_info.value.attempts == limit + 1
    # Waits happen only between attempts
    assert len(sleeps) == limit


@pytest.mark.parametrize("k", [1, 2, 4])
def test_success_on_call_k(k):
    primitive = Mock()
    primitive.sign.side_effect = [TransientSigningError("reset")] * (k - 1) + [b"signed"]
    signer, sleeps = _signer(primitive, limit=3)

    assert signer.sign(b"jar", "SHA-256") == b"signed"
    assert primitive.sign.call_count == k
    assert sleeps == [5.0] * (k - 1)
    primitive.sign.assert_called_with(b"jar", "SHA-256")


def test_exhaustion_keeps_last_cause():
    primitive = Mock()
    first, last = TransientSigningError("first"), TransientSigningError("last")
    primitive.sign.side_effect = [first, last]
    signer, _ = _signer(primitive, limit=1)

    with pytest.raises(RetriesExhaustedError) as exc_info:
        signer.sign(b"jar")

    assert exc_info.value.cause is last
    assert exc_info.value.__cause__ is last


def test_non_retryable_error_raised_immediately():
    primitive = Mock()
    primitive.sign.side_effect = SigningError("HTTP 403 Forbidden")
    signer, sleeps = _signer(primitive, limit=3)

    with pytest.raises(SigningError, match="403"):
        signer.sign(b"jar")

    assert primitive.sign.call_count == 1
    assert sleeps == []


def test_non_signing_errors_propagate_without_retry():
    primitive = Mock()
    primitive.sign.side_effect = ValueError("bug")
    signer, _ = _signer(primitive)

    with pytest.raises(ValueError, match="bug"):
        signer.sign(b"jar")
    assert primitive.sign.call_count == 1


def test_each_attempt_is_logged(caplog):
    primitive = Mock()
    primitive.sign.side_effect = [TransientSigningError("reset"), b"signed"]
    logger = logging.getLogger("test.retry")
    signer = RetryingSigner(primitive, RetryPolicy(limit=2, wait=0), logger=logger, sleep=lambda _: None)

    with caplog.at_level(logging.INFO, logger="test.retry"):
        signer.sign(b"jar", label="app.jar")

    messages = [r.getMessage() for r in caplog.records]
    assert any("app.jar failed (attempt 1/3" in m for m in messages)
    assert any("Signed app.jar (attempt 2" in m for m in messages)
