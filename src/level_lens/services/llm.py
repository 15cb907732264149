"""Generation provider backed by OpenAI chat completions."""

from typing import Optional

import openai
from asyncio_throttle import Throttler

from ..core import get_logger, settings as default_settings, Settings
from ..core import GenerationFailedError, ProviderUnavailableError
from .provider import GenerationProvider, GenerationSession, SessionConfig

logger = get_logger(__name__)


class OpenAISession(GenerationSession):
    """A system prompt plus sampling parameters against a shared OpenAI client."""

    def __init__(
        self,
        config: SessionConfig,
        client: openai.AsyncOpenAI,
        throttler: Throttler,
        model: str,
        max_tokens: int,
    ):
        super().__init__(config)
        self._client = client
        self._throttler = throttler
        self._model = model
        self._max_tokens = config.max_tokens or max_tokens

    async def generate(self, prompt: str) -> str:
        """
        Generate a response for ``prompt``.

        Args:
            prompt: User prompt for the model

        Returns:
            Generated response text

        Raises:
            GenerationFailedError: If the session is destroyed or the API call fails
        """
        if self.destroyed:
            raise GenerationFailedError(
                f"Session {self.id} has been destroyed", provider="openai", kind=self.kind.value
            )

        async with self._throttler:
            try:
                logger.debug(
                    "Generating LLM response",
                    session_id=self.id,
                    model=self._model,
                    max_tokens=self._max_tokens,
                    temperature=self.config.temperature,
                )

                response = await self._client.chat.completions.create(
                    model=self._model,
                    messages=[
                        {"role": "system", "content": self.config.system_prompt},
                        {"role": "user", "content": prompt},
                    ],
                    max_tokens=self._max_tokens,
                    temperature=self.config.temperature,
                )

                if not response.choices:
                    raise GenerationFailedError(
                        "No response choices returned from OpenAI", provider="openai", kind=self.kind.value
                    )

                content = response.choices[0].message.content
                if not content:
                    raise GenerationFailedError(
                        "Empty response content from OpenAI", provider="openai", kind=self.kind.value
                    )

                logger.debug(
                    "LLM response generated successfully",
                    session_id=self.id,
                    response_length=len(content),
                    tokens_used=response.usage.total_tokens if response.usage else None,
                )

                return content.strip()

            except GenerationFailedError:
                raise
            except openai.APIError as exc:
                logger.error(
                    "OpenAI API error",
                    session_id=self.id,
                    error=str(exc),
                    error_code=getattr(exc, 'code', None),
                )
                raise GenerationFailedError(
                    f"OpenAI API error: {str(exc)}",
                    provider="openai",
                    kind=self.kind.value,
                    details={"status_code": getattr(exc, 'status_code', None)},
                ) from exc


class OpenAIGenerationProvider(GenerationProvider):
    """Creates OpenAI-backed sessions; available whenever an API key is configured."""

    name = "openai"

    def __init__(
        self,
        config: Optional[Settings] = None,
        client: Optional[openai.AsyncOpenAI] = None,
    ):
        self.settings = config or default_settings
        self._client = client
        if self._client is None and self.settings.openai_api_key:
            self._client = openai.AsyncOpenAI(api_key=self.settings.openai_api_key)
        # Shared across sessions so the limit applies to the whole provider
        self.throttler = Throttler(rate_limit=self.settings.provider_requests_per_minute, period=60)

    async def is_available(self) -> bool:
        return self._client is not None

    async def create_session(self, config: SessionConfig) -> OpenAISession:
        if not await self.is_available():
            raise ProviderUnavailableError(
                "OpenAI provider is not configured (missing OPENAI_API_KEY)", provider=self.name
            )

        session = OpenAISession(
            config,
            client=self._client,
            throttler=self.throttler,
            model=self.settings.openai_model,
            max_tokens=self.settings.openai_max_tokens,
        )
        logger.debug("OpenAI session created", session_id=session.id, kind=config.kind.value)
        return session

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.close()
