"""Tests for jarseal.errors — exception hierarchy."""

import pickle
from pathlib import Path

import pytest

from jarseal.core.models import BatchResult, Failure, Success, Verdict
from jarseal.errors import (
    AlreadySignedError,
    ArchiveFormatError,
    BatchSigningError,
    ConfigurationError,
    InnerArchiveError,
    JarsealError,
    RetriesExhaustedError,
    SigningError,
    TransientSigningError,
)


def test_jarseal_error_is_exception():
    assert issubclass(JarsealError, Exception)


@pytest.mark.parametrize(
    "cls",
    [
        SigningError,
        TransientSigningError,
        RetriesExhaustedError,
        AlreadySignedError,
        ArchiveFormatError,
        InnerArchiveError,
        BatchSigningError,
        ConfigurationError,
    ],
)
def test_all_errors_inherit_jarseal_error(cls):
    assert issubclass(cls, JarsealError)


def test_signing_error_default_not_retryable():
    e = SigningError("HTTP 403")
    assert e.retryable is False
    assert e.output == ""
    assert str(e) == "HTTP 403"


def test_transient_error_is_retryable():
    e = TransientSigningError("connection reset", output="trace")
    assert isinstance(e, SigningError)
    assert e.retryable is True
    assert e.output == "trace"


def test_signing_error_pickle_roundtrip():
    """SigningError should survive pickle/unpickle with output and retryable preserved."""
    e = TransientSigningError("timed out", output="jarsigner: timeout")
    restored = pickle.loads(pickle.dumps(e))
    assert isinstance(restored, TransientSigningError)
    assert str(restored) == "timed out"
    assert restored.retryable is True
    assert restored.output == "jarsigner: timeout"


def test_signing_error_setstate_none():
    e = SigningError("test", retryable=True)
    e.__setstate__(None)
    assert e.retryable is True


def test_retries_exhausted_carries_cause():
    cause = TransientSigningError("HTTP 503")
    e = RetriesExhaustedError(cause, 4)
    assert e.cause is cause
    assert e.attempts == 4
    assert "4 attempt(s)" in str(e)
    assert "HTTP 503" in str(e)


def test_inner_archive_error_carries_failure():
    cause = SigningError("boom")
    failure = Failure(Path("outer.jar/lib/a.jar"), cause)
    e = InnerArchiveError("lib/a.jar", failure)
    assert e.entry == "lib/a.jar"
    assert e.failure is failure
    assert e.cause is cause
    assert e.results == (failure,)
    assert "lib/a.jar" in str(e)


def test_batch_error_message_aborted():
    failure = Failure(Path("b.jar"), SigningError("refused"))
    result = BatchResult((Success(Path("a.jar")), failure), Verdict.ABORTED)
    e = BatchSigningError(result)
    assert e.result is result
    assert str(e) == "Signing aborted at b.jar: refused"


def test_batch_error_message_partial_failure():
    failures = (Failure(Path("a.jar"), SigningError("x")), Failure(Path("c.jar"), SigningError("y")))
    result = BatchResult(failures, Verdict.PARTIAL_FAILURE)
    assert str(BatchSigningError(result)) == "2 artifact(s) failed to sign"


def test_batch_error_message_counts_nested_failures():
    nested = Failure(Path("a.jar/lib/x.jar"), SigningError("x"))
    result = BatchResult((Success(Path("a.jar"), (nested,)),), Verdict.PARTIAL_FAILURE)
    assert str(BatchSigningError(result)) == "1 nested archive(s) failed to sign"
