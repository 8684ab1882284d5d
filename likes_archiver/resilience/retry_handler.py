"""
Run-level retry handling for metadata fetches.
Waits out transient failures (rate limits) and escalates authentication failures.
"""

import asyncio
from enum import Enum
from typing import Awaitable, Callable, List, Optional

from likes_archiver.config import RetryConfig
from likes_archiver.exceptions import AuthenticationError
from likes_archiver.models import ErrorKind, FetchOutcome, FetchStatus


class RetryState(str, Enum):
    FETCHING = "fetching"
    AWAITING_RETRY = "awaiting_retry"
    RETRYING = "retrying"
    FAILED_TERMINAL = "failed_terminal"
    SUCCEEDED = "succeeded"


class RetryHandler:
    """Drives one post's metadata fetch through the retry state machine."""

    def __init__(
        self,
        config: Optional[RetryConfig] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        """
        Initialize retry handler.

        Args:
            config: RetryConfig instance, uses defaults if None
            sleep: Awaitable delay function, replaceable in tests
        """
        self.config = config or RetryConfig()
        self._sleep = sleep
        self.state: Optional[RetryState] = None
        self.history: List[RetryState] = []
        self._total_retries = 0
        self._total_waited = 0.0

    def _enter(self, state: RetryState):
        self.state = state
        self.history.append(state)

    def is_transient(self, outcome: FetchOutcome) -> bool:
        return outcome.error_kind in self.config.transient_kinds

    async def execute_with_retry(
        self,
        fetch: Callable[[str], Awaitable[FetchOutcome]],
        item_id: str
    ) -> FetchOutcome:
        """
        Fetch a post, retrying transient failures.

        Args:
            fetch: Coroutine function returning a FetchOutcome for an id
            item_id: Post id

        Returns:
            Final FetchOutcome; ``attempts`` holds the number of fetches made

        Raises:
            AuthenticationError: The downloader reported an authentication failure
        """
        self.history = []
        self._enter(RetryState.FETCHING)
        retries = 0

        while True:
            outcome = await fetch(item_id)
            outcome.attempts = retries + 1

            if outcome.status != FetchStatus.FAILED:
                self._enter(RetryState.SUCCEEDED)
                return outcome

            if outcome.error_kind == ErrorKind.AUTH_ERROR:
                self._enter(RetryState.FAILED_TERMINAL)
                raise AuthenticationError(item_id, outcome.output)

            if not self.is_transient(outcome) or retries >= self.config.max_retries:
                self._enter(RetryState.FAILED_TERMINAL)
                return outcome

            retries += 1
            self._enter(RetryState.AWAITING_RETRY)
            wait = self.config.rate_limit_wait
            print(f"  {outcome.error_kind.value}: waiting {wait:.0f}s before retry "
                  f"{retries}/{self.config.max_retries}...")
            await self._sleep(wait)
            self._total_retries += 1
            self._total_waited += wait
            self._enter(RetryState.RETRYING)

    def get_stats(self) -> dict:
        """
        Get retry handler statistics.

        Returns:
            Dict with handler state info
        """
        return {
            'total_retries': self._total_retries,
            'total_waited': self._total_waited,
            'max_retries': self.config.max_retries,
            'rate_limit_wait': self.config.rate_limit_wait
        }
