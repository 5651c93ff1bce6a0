"""
Unit tests for the update service and its construction from configuration
"""

import pytest

from mfds_monitor.backends import GeminiBackend, OpenRouterBackend
from mfds_monitor.errors import BackendNotConfiguredError, UpstreamError
from mfds_monitor.models import UpdateCategory
from mfds_monitor.parsing import FreeTextParser, StructuredParser
from mfds_monitor.retriever import UpdateRetriever
from mfds_monitor.service import UpdateService, create_update_service

from fixtures.mock_gemini_responses import BARE_ARRAY


@pytest.fixture
def make_service(fake_backend_cls, fixed_today):
    def _make(cache_ttl=None, timer=None, **backend_kwargs):
        backend_kwargs.setdefault("text", BARE_ARRAY)
        retriever = UpdateRetriever(fake_backend_cls(**backend_kwargs), clock=lambda: fixed_today)
        if timer is None:
            return UpdateService(retriever, cache_ttl=cache_ttl)
        return UpdateService(retriever, cache_ttl=cache_ttl, timer=timer)
    return _make


@pytest.mark.asyncio
async def test_updates_sorted_newest_first(make_service):
    records = await make_service().get_updates()
    assert [r.date for r in records] == ["2025-06-10", "2025-06-01", "2025-05-15"]


@pytest.mark.asyncio
async def test_category_filter(make_service):
    records = await make_service().get_updates(category=UpdateCategory.LAW_NOTICE)
    assert [r.date for r in records] == ["2025-06-10", "2025-06-01"]
    assert all(r.category is UpdateCategory.LAW_NOTICE for r in records)


@pytest.mark.asyncio
async def test_no_cache_by_default(make_service):
    service = make_service()
    await service.get_updates()
    await service.get_updates()
    assert len(service.backend.calls) == 2


@pytest.mark.asyncio
async def test_cache_reused_until_invalidated(make_service):
    service = make_service(cache_ttl=60)
    first = await service.get_updates()
    filtered = await service.get_updates(category=UpdateCategory.LEGISLATIVE_NOTICE)
    assert len(service.backend.calls) == 1
    assert len(first) == 3
    assert len(filtered) == 1

    service.invalidate()
    await service.get_updates()
    assert len(service.backend.calls) == 2


@pytest.mark.asyncio
async def test_expired_cache_refetches(make_service):
    clock = {"now": 1000.0}
    service = make_service(cache_ttl=60, timer=lambda: clock["now"])

    await service.get_updates()
    clock["now"] += 30
    await service.get_updates()
    assert len(service.backend.calls) == 1

    clock["now"] += 31
    await service.get_updates()
    assert len(service.backend.calls) == 2


@pytest.mark.asyncio
async def test_failures_are_not_cached(make_service):
    service = make_service(cache_ttl=60, error=UpstreamError("down"))
    for _ in range(2):
        with pytest.raises(UpstreamError):
            await service.get_updates()
    assert len(service.backend.calls) == 2


@pytest.mark.asyncio
async def test_cached_records_are_copied_per_caller(make_service):
    service = make_service(cache_ttl=60)
    first = await service.get_updates()
    first[0].title = "변경됨"

    second = await service.get_updates()
    assert second[0].title != "변경됨"
    assert second[0] is not first[0]
    assert len(service.backend.calls) == 1


class TestCreateUpdateService:

    def test_gemini_free_text_by_default(self, make_config):
        service = create_update_service(make_config(ai={"api_key": "test-key-1234567890"}))
        assert isinstance(service.backend, GeminiBackend)
        assert service.backend.model == "gemini-2.5-flash"
        assert isinstance(service.retriever.parser, FreeTextParser)
        assert service.cache_ttl is None

    def test_structured_output_from_configuration(self, make_config):
        config = make_config(ai={
            "api_key": "test-key-1234567890",
            "structured_output": True,
            "model": "gemini-3-pro-preview",
        })
        service = create_update_service(config)
        assert isinstance(service.retriever.parser, StructuredParser)

    def test_default_gemini_model_falls_back_to_free_text(self, make_config):
        config = make_config(ai={"api_key": "test-key-1234567890", "structured_output": True})
        service = create_update_service(config)
        assert service.backend.model == "gemini-2.5-flash"
        assert isinstance(service.retriever.parser, FreeTextParser)

    def test_structured_override(self, make_config):
        config = make_config(ai={"api_key": "test-key-1234567890", "structured_output": True})
        service = create_update_service(config, structured=False)
        assert isinstance(service.retriever.parser, FreeTextParser)

    def test_openrouter_falls_back_to_free_text(self, make_config, monkeypatch):
        monkeypatch.setenv("OPENROUTER_API_KEY", "router-key-1234567890")
        config = make_config(ai={"provider": "openrouter", "structured_output": True})
        service = create_update_service(config)
        assert isinstance(service.backend, OpenRouterBackend)
        assert isinstance(service.retriever.parser, FreeTextParser)

    def test_settings_flow_through(self, make_config):
        config = make_config(
            ai={"api_key": "test-key-1234567890", "timeout": 45, "model": "gemini-2.5-pro"},
            retrieval={"lookback_days": 30},
            cache={"enabled": True, "ttl": 120},
        )
        service = create_update_service(config)
        assert service.backend.model == "gemini-2.5-pro"
        assert service.retriever.timeout == 45
        assert service.retriever.lookback_days == 30
        assert service.cache_ttl == 120

    def test_missing_key(self, make_config):
        with pytest.raises(BackendNotConfiguredError):
            create_update_service(make_config())
