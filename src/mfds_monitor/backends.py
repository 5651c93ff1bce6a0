"""
Generation backends - search-grounded text generation behind one interface.
"""
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import httpx

from .errors import BackendNotConfiguredError, UpstreamError

logger = logging.getLogger(__name__)


class GenerationBackend(ABC):
    """A generative model that can ground its answer in live web search."""

    provider = "base"
    supports_structured_output = False

    def __init__(self, model: str):
        self.model = model

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        *,
        search_grounding: bool = True,
        response_schema: Optional[Dict[str, Any]] = None,
    ) -> Optional[str]:
        """
        Run one generation.

        Args:
            prompt: Instruction text
            search_grounding: Enable the provider's web search tool
            response_schema: JSON schema the output must follow (structured mode only)

        Returns:
            Response text, or None when the backend produced none

        Raises:
            UpstreamError: transport, authentication or backend failure
        """

    async def list_models(self) -> List[str]:
        """Model names visible to the configured credential."""
        return []


def to_gemini_schema(schema: Dict[str, Any]):
    """Convert a JSON-schema dict into a google-genai Schema."""
    from google.genai import types

    kwargs: Dict[str, Any] = {"type": schema["type"].upper()}
    if "description" in schema:
        kwargs["description"] = schema["description"]
    if "enum" in schema:
        kwargs["enum"] = list(schema["enum"])
    if "items" in schema:
        kwargs["items"] = to_gemini_schema(schema["items"])
    if "properties" in schema:
        kwargs["properties"] = {name: to_gemini_schema(sub) for name, sub in schema["properties"].items()}
        kwargs["property_ordering"] = list(schema["properties"])
    if "required" in schema:
        kwargs["required"] = list(schema["required"])
    return types.Schema(**kwargs)


# Model families that accept a response schema together with the Google Search
# tool. Gemini 2.x rejects that combination with a 400.
GROUNDED_SCHEMA_MODEL_PREFIXES = ("gemini-3",)


def gemini_supports_structured_output(model: str) -> bool:
    """True when the model can return schema-constrained JSON while grounded."""
    name = model.rsplit("/", 1)[-1]
    return name.startswith(GROUNDED_SCHEMA_MODEL_PREFIXES)


class GeminiBackend(GenerationBackend):
    """Google Gemini via the google-genai SDK, grounded with Google Search."""

    provider = "gemini"

    @property
    def supports_structured_output(self) -> bool:
        return gemini_supports_structured_output(self.model)

    def __init__(
        self,
        api_key: Optional[str],
        model: str = "gemini-2.5-flash",
        timeout: Optional[float] = None,
        client: Optional[Any] = None,
    ):
        super().__init__(model)
        if client is None:
            if not api_key:
                raise BackendNotConfiguredError("GEMINI_API_KEY or AI_API_KEY environment variable required")
            from google import genai
            from google.genai import types

            http_options = types.HttpOptions(timeout=int(timeout * 1000)) if timeout else None
            client = genai.Client(api_key=api_key, http_options=http_options)
        # Injected clients are used by tests.
        self._client = client

    async def generate(
        self,
        prompt: str,
        *,
        search_grounding: bool = True,
        response_schema: Optional[Dict[str, Any]] = None,
    ) -> Optional[str]:
        from google.genai import errors as genai_errors
        from google.genai import types

        config_kwargs: Dict[str, Any] = {}
        if search_grounding:
            config_kwargs["tools"] = [types.Tool(google_search=types.GoogleSearch())]
        if response_schema is not None:
            config_kwargs["response_mime_type"] = "application/json"
            config_kwargs["response_schema"] = to_gemini_schema(response_schema)

        try:
            response = await self._client.aio.models.generate_content(
                model=self.model,
                contents=prompt,
                config=types.GenerateContentConfig(**config_kwargs),
            )
        except genai_errors.APIError as e:
            logger.error("Gemini request failed: %s", e)
            raise UpstreamError(
                f"Gemini request failed: {e.message or e}",
                detail=str(e),
                status_code=e.code,
            ) from e
        except httpx.HTTPError as e:
            logger.error("Gemini transport error: %s", e)
            raise UpstreamError(f"Gemini transport error: {e}", detail=repr(e)) from e

        return response.text

    async def list_models(self) -> List[str]:
        names = []
        pager = await self._client.aio.models.list()
        async for model in pager:
            if model.name and "gemini" in model.name:
                names.append(model.name)
        return names


class OpenRouterBackend(GenerationBackend):
    """OpenRouter via its OpenAI-compatible API; grounding uses the :online model variant."""

    provider = "openrouter"
    supports_structured_output = False
    BASE_URL = "https://openrouter.ai/api/v1"

    def __init__(
        self,
        api_key: Optional[str],
        model: str = "google/gemini-2.5-flash",
        timeout: Optional[float] = None,
        llm: Optional[Any] = None,
        grounded_llm: Optional[Any] = None,
    ):
        super().__init__(model)
        if not api_key and (llm is None or grounded_llm is None):
            raise BackendNotConfiguredError("OPENROUTER_API_KEY or AI_API_KEY environment variable required")
        self.api_key = api_key
        self.timeout = timeout
        self._llm = llm or self._create_llm(model)
        self._grounded_llm = grounded_llm or self._create_llm(f"{model}:online")

    def _create_llm(self, model: str):
        from langchain_openai import ChatOpenAI

        return ChatOpenAI(
            model=model,
            base_url=self.BASE_URL,
            api_key=self.api_key,
            temperature=0.1,
            timeout=self.timeout,
            max_retries=0,
        )

    async def generate(
        self,
        prompt: str,
        *,
        search_grounding: bool = True,
        response_schema: Optional[Dict[str, Any]] = None,
    ) -> Optional[str]:
        import openai
        from langchain_core.messages import HumanMessage

        if response_schema is not None:
            logger.debug("OpenRouter backend ignores response_schema")

        llm = self._grounded_llm if search_grounding else self._llm
        try:
            response = await llm.ainvoke([HumanMessage(content=prompt)])
        except openai.OpenAIError as e:
            logger.error("OpenRouter request failed: %s", e)
            raise UpstreamError(
                f"OpenRouter request failed: {e}",
                detail=repr(e),
                status_code=getattr(e, "status_code", None),
            ) from e
        except httpx.HTTPError as e:
            logger.error("OpenRouter transport error: %s", e)
            raise UpstreamError(f"OpenRouter transport error: {e}", detail=repr(e)) from e

        content = response.content
        if isinstance(content, list):
            content = "".join(
                part.get("text", "") if isinstance(part, dict) else str(part) for part in content
            )
        return content or None

    async def list_models(self) -> List[str]:
        async with httpx.AsyncClient(timeout=self.timeout or 30) as client:
            response = await client.get(
                f"{self.BASE_URL}/models",
                headers={"Authorization": f"Bearer {self.api_key}"},
            )
            response.raise_for_status()
        return [m["id"] for m in response.json().get("data", []) if "id" in m]
