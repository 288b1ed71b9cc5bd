import asyncio
import logging
import random
from abc import abstractmethod
from typing import Optional

from ..exceptions import (
    CompletionError, NetworkError, OperationCancelled, UnauthorizedError,
)
from ..gateways import CancellationToken, CompletionGateway

logger = logging.getLogger(__name__)


class LLMClient(CompletionGateway):
    """Completion gateway with retry, backoff and cooperative cancellation.

    Subclasses implement the blocking ``_complete`` hook; it runs in a
    worker thread and is raced against the cancellation token.
    """

    def __init__(self, max_retries: int = 3, retry_delay: float = 2.0):
        self.max_retries = max_retries
        self.retry_delay = retry_delay

    # ── Public entry point ──

    async def request_completion(
        self,
        messages: list[dict[str, str]],
        cancellation_token: Optional[CancellationToken] = None,
    ) -> str:
        """Return the assistant reply for *messages*.

        Retries transient failures with jittered exponential backoff.
        Raises :class:`UnauthorizedError` immediately, :class:`NetworkError`
        once retries are exhausted and :class:`OperationCancelled` as soon
        as the token fires.
        """
        last_error: Exception | None = None

        for attempt in range(1, self.max_retries + 1):
            if cancellation_token is not None:
                cancellation_token.raise_if_cancelled()
            try:
                result = await self._run_cancellable(messages, cancellation_token)
                if not result or not result.strip():
                    raise CompletionError("LLM returned an empty response")
                return result

            except (OperationCancelled, UnauthorizedError):
                raise
            except Exception as e:
                last_error = e
                logger.warning(
                    "[LLM] Error on attempt %d/%d: %s", attempt, self.max_retries, e)

                if attempt < self.max_retries:
                    wait = self.retry_delay * (2 ** (attempt - 1))
                    jitter = wait * 0.1 * random.random()

                    # Special handling for 429: wait longer
                    if "429" in str(e):
                        wait *= 2
                        logger.info("[LLM] Rate limit detected (429). Backing off for %.1fs", wait)

                    await self._sleep(wait + jitter, cancellation_token)

        raise NetworkError(
            f"LLM failed after {self.max_retries} retries: {last_error}")

    # ── Cancellation plumbing ──

    async def _run_cancellable(
        self,
        messages: list[dict[str, str]],
        token: Optional[CancellationToken],
    ) -> str:
        work = asyncio.ensure_future(asyncio.to_thread(self._complete, messages))
        if token is None:
            return await work

        waiter = asyncio.ensure_future(token.wait())
        try:
            done, _ = await asyncio.wait(
                {work, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            waiter.cancel()

        if work in done:
            return work.result()

        # The worker thread cannot be interrupted; its result is discarded
        work.cancel()
        logger.info("[LLM] Request cancelled")
        raise OperationCancelled("Completion request cancelled")

    @staticmethod
    async def _sleep(seconds: float, token: Optional[CancellationToken]) -> None:
        if token is None:
            await asyncio.sleep(seconds)
            return
        try:
            await asyncio.wait_for(token.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return
        raise OperationCancelled("Completion request cancelled")

    # ── Subclass hook ──

    @abstractmethod
    def _complete(self, messages: list[dict[str, str]]) -> str:
        """Blocking request returning the reply text."""
