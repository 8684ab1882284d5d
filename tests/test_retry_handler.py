from typing import List

import pytest

from likes_archiver.config import RetryConfig
from likes_archiver.exceptions import AuthenticationError
from likes_archiver.models import ErrorKind, FetchOutcome, FetchStatus
from likes_archiver.resilience.retry_handler import RetryHandler, RetryState


class ScriptedFetch:
    """Returns queued outcomes in order, repeating the last one."""

    def __init__(self, *outcomes: FetchOutcome):
        self.outcomes = list(outcomes)
        self.calls = 0

    async def __call__(self, item_id: str) -> FetchOutcome:
        self.calls += 1
        template = self.outcomes[min(self.calls, len(self.outcomes)) - 1]
        return FetchOutcome(item_id, template.status, template.error_kind, template.output)


def _rate_limited() -> FetchOutcome:
    return FetchOutcome("x", FetchStatus.FAILED, ErrorKind.RATE_LIMIT, "429 Too Many Requests")


def _handler(delays: List[float], max_retries: int = 3) -> RetryHandler:
    async def sleep(seconds: float) -> None:
        delays.append(seconds)

    return RetryHandler(RetryConfig(max_retries=max_retries, rate_limit_wait=900.0), sleep=sleep)


@pytest.mark.asyncio
async def test_rate_limit_is_waited_out_then_succeeds() -> None:
    delays: List[float] = []
    handler = _handler(delays)
    fetch = ScriptedFetch(_rate_limited(), _rate_limited(), FetchOutcome("x", FetchStatus.SUCCEEDED))

    outcome = await handler.execute_with_retry(fetch, "100")

    assert outcome.succeeded
    assert outcome.attempts == 3
    assert delays == [900.0, 900.0]
    assert handler.history == [
        RetryState.FETCHING,
        RetryState.AWAITING_RETRY,
        RetryState.RETRYING,
        RetryState.AWAITING_RETRY,
        RetryState.RETRYING,
        RetryState.SUCCEEDED,
    ]
    assert handler.get_stats()["total_retries"] == 2


@pytest.mark.asyncio
async def test_gives_up_after_max_retries() -> None:
    delays: List[float] = []
    handler = _handler(delays, max_retries=3)
    fetch = ScriptedFetch(_rate_limited())

    outcome = await handler.execute_with_retry(fetch, "100")

    assert outcome.status == FetchStatus.FAILED
    assert outcome.error_kind == ErrorKind.RATE_LIMIT
    assert fetch.calls == 4
    assert outcome.attempts == 4
    assert len(delays) == 3
    assert handler.state == RetryState.FAILED_TERMINAL


@pytest.mark.asyncio
async def test_non_transient_failure_is_not_retried() -> None:
    delays: List[float] = []
    handler = _handler(delays)
    fetch = ScriptedFetch(FetchOutcome("x", FetchStatus.FAILED, ErrorKind.NETWORK_ERROR, "ECONNRESET"))

    outcome = await handler.execute_with_retry(fetch, "100")

    assert outcome.error_kind == ErrorKind.NETWORK_ERROR
    assert fetch.calls == 1
    assert delays == []
    assert handler.history == [RetryState.FETCHING, RetryState.FAILED_TERMINAL]


@pytest.mark.asyncio
async def test_no_media_counts_as_success_state() -> None:
    handler = _handler([])
    outcome = await handler.execute_with_retry(ScriptedFetch(FetchOutcome("x", FetchStatus.NO_MEDIA)), "100")

    assert outcome.status == FetchStatus.NO_MEDIA
    assert handler.state == RetryState.SUCCEEDED


@pytest.mark.asyncio
async def test_authentication_failure_raises() -> None:
    handler = _handler([])
    fetch = ScriptedFetch(FetchOutcome("x", FetchStatus.FAILED, ErrorKind.AUTH_ERROR, "Login failed"))

    with pytest.raises(AuthenticationError) as excinfo:
        await handler.execute_with_retry(fetch, "100")

    assert excinfo.value.item_id == "100"
    assert excinfo.value.output == "Login failed"
    assert handler.state == RetryState.FAILED_TERMINAL
