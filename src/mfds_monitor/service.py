"""
Update service - the caller side of the retriever: sorting, filtering, caching.
"""
import logging
import time
from typing import Callable, List, Optional

from cachetools import TTLCache

from .config import Config
from .llm_factory import BackendFactory
from .models import UpdateCategory, UpdateRecord, filter_by_category, sort_records
from .parsing import select_parser
from .retriever import UpdateRetriever

logger = logging.getLogger(__name__)

_BATCH_KEY = "updates"


class UpdateService:
    """Serves date-sorted MFDS updates, optionally from a short-lived cache."""

    def __init__(self, retriever: UpdateRetriever, cache_ttl: Optional[float] = None,
                 timer: Callable[[], float] = time.monotonic):
        self.retriever = retriever
        self.cache_ttl = cache_ttl
        self._cache: Optional[TTLCache] = (
            TTLCache(maxsize=1, ttl=cache_ttl, timer=timer) if cache_ttl else None
        )

    @property
    def backend(self):
        return self.retriever.backend

    def invalidate(self) -> None:
        if self._cache is not None:
            self._cache.clear()

    async def get_updates(self, category: Optional[UpdateCategory] = None) -> List[UpdateRecord]:
        """
        Fetch updates newest first.

        The sort here is authoritative; the backend's ordering is only a hint.
        With caching enabled every caller receives its own copies of the
        cached records.
        """
        if self._cache is None:
            records = sort_records(await self.retriever.fetch_updates())
            return filter_by_category(records, category)

        records = self._cache.get(_BATCH_KEY)
        if records is None:
            records = sort_records(await self.retriever.fetch_updates())
            self._cache[_BATCH_KEY] = records
        else:
            logger.debug("Serving %s cached MFDS updates", len(records))
        return [record.model_copy() for record in filter_by_category(records, category)]


def create_update_service(config: Config, structured: Optional[bool] = None,
                          timeout: Optional[float] = None) -> UpdateService:
    """
    Build the service from configuration.

    Raises:
        BackendNotConfiguredError: no credential for the configured provider
    """
    backend = BackendFactory.create(
        provider=config.ai.provider,
        model=config.ai.model,
        api_key=config.resolve_api_key(),
        timeout=timeout or config.ai.timeout,
    )
    structured = config.ai.structured_output if structured is None else structured
    retriever = UpdateRetriever(
        backend,
        parser=select_parser(structured, backend),
        timeout=timeout or config.ai.timeout,
        lookback_days=config.retrieval.lookback_days,
    )
    cache_ttl = config.cache.ttl if config.cache.enabled else None
    return UpdateService(retriever, cache_ttl=cache_ttl)
