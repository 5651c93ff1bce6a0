"""
Update retriever - one grounded generation call turned into validated records.
"""
import asyncio
import logging
import time
from datetime import date
from typing import Callable, List, Optional

from .backends import GenerationBackend
from .errors import RetrievalTimeoutError
from .models import UPDATE_LIST_SCHEMA, UpdateRecord
from .parsing import FreeTextParser, ResponseParser
from .prompts import DEFAULT_LOOKBACK_DAYS, build_update_prompt

logger = logging.getLogger(__name__)


class UpdateRetriever:
    """
    Fetches recent MFDS announcements from a generation backend.

    Holds no per-call state, so one instance can serve concurrent requests.
    Results come back in backend order; callers sort them.
    """

    def __init__(
        self,
        backend: GenerationBackend,
        parser: Optional[ResponseParser] = None,
        timeout: Optional[float] = None,
        clock: Optional[Callable[[], date]] = None,
        lookback_days: int = DEFAULT_LOOKBACK_DAYS,
    ):
        self.backend = backend
        self.parser = parser or FreeTextParser()
        self.timeout = timeout
        self.clock = clock or date.today
        self.lookback_days = lookback_days

    def compose_prompt(self) -> str:
        return build_update_prompt(
            today=self.clock(),
            structured=self.parser.structured,
            lookback_days=self.lookback_days,
        )

    async def fetch_updates(self) -> List[UpdateRecord]:
        """
        Run the retrieval once.

        Returns:
            Validated records; empty when the backend returned no usable text

        Raises:
            UpstreamError: backend failure (RetrievalTimeoutError on timeout)
            ContractViolationError: structured output was malformed
        """
        prompt = self.compose_prompt()
        schema = UPDATE_LIST_SCHEMA if self.parser.structured else None

        logger.info(
            "Requesting MFDS updates (provider=%s, model=%s, structured=%s)",
            self.backend.provider, self.backend.model, self.parser.structured,
        )
        started = time.perf_counter()
        try:
            text = await asyncio.wait_for(
                self.backend.generate(prompt, search_grounding=True, response_schema=schema),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            logger.error("Generation backend timed out after %ss", self.timeout)
            raise RetrievalTimeoutError(
                f"Generation backend did not respond within {self.timeout}s"
            ) from e
        elapsed_ms = (time.perf_counter() - started) * 1000

        if not text or not text.strip():
            logger.info("Backend returned no text after %.1fms", elapsed_ms)
            return []

        records = self.parser.parse(text)
        logger.info("Retrieved %s MFDS updates in %.1fms", len(records), elapsed_ms)
        return records
