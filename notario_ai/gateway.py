"""
Narrow adapter over the hosted AI provider.

The pipeline only needs three capabilities from the provider:
  - read an image and answer in free text        (transcription)
  - answer in JSON that matches a given schema   (analysis)
  - answer with web search enabled, with sources (research)

`AIGateway` is the contract; `OpenAIGateway` implements it with the OpenAI
SDK. Tests substitute a fake gateway so no network call is ever made.
"""

from __future__ import annotations

import base64
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

import httpx
import openai

from .config import Settings
from .exceptions import ConfigurationError, GatewayError

logger = logging.getLogger(__name__)


# ─── Data Structures ────────────────────────────────────────────────


@dataclass
class Citation:
    """A raw citation as reported by the provider. Either part may be missing."""

    title: str | None
    uri: str | None


@dataclass
class GroundedAnswer:
    """Free-text answer plus whatever citations the provider attached."""

    text: str
    citations: list[Citation] = field(default_factory=list)


# ─── Contract ────────────────────────────────────────────────────────


class AIGateway(ABC):
    """Contract for provider-specific AI clients."""

    @abstractmethod
    def transcribe_image(self, *, image: bytes, media_type: str, instruction: str) -> str:
        """Return the model's free-text reading of the image."""

    @abstractmethod
    def complete_json(
        self,
        *,
        system_prompt: str,
        user_prompt: str,
        json_schema: dict[str, object],
    ) -> str:
        """Return the model's answer as JSON text conforming to `json_schema`."""

    @abstractmethod
    def search(self, *, prompt: str) -> GroundedAnswer:
        """Answer `prompt` with web search enabled."""


# ─── OpenAI Implementation ───────────────────────────────────────────


class OpenAIGateway(AIGateway):
    """AI gateway built on the OpenAI chat and responses APIs."""

    def __init__(
        self,
        *,
        api_key: str,
        timeout_seconds: int,
        transcription_model: str,
        analysis_model: str,
        research_model: str,
        base_url: str | None = None,
    ) -> None:
        self._client = openai.OpenAI(
            api_key=api_key,
            timeout=timeout_seconds,
            base_url=base_url,
        )
        self.transcription_model = transcription_model
        self.analysis_model = analysis_model
        self.research_model = research_model

    def transcribe_image(self, *, image: bytes, media_type: str, instruction: str) -> str:
        data_url = f"data:{media_type};base64,{base64.b64encode(image).decode('ascii')}"
        try:
            response = self._client.chat.completions.create(
                model=self.transcription_model,
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {"type": "image_url", "image_url": {"url": data_url}},
                            {"type": "text", "text": instruction},
                        ],
                    }
                ],
            )
        except (openai.APIConnectionError, httpx.ConnectError, httpx.TimeoutException) as exc:
            raise GatewayError(f"AI provider network error: {exc}") from exc
        except openai.APIError as exc:
            raise GatewayError(f"AI provider API error: {exc}") from exc

        return _first_choice_content(response)

    def complete_json(
        self,
        *,
        system_prompt: str,
        user_prompt: str,
        json_schema: dict[str, object],
    ) -> str:
        try:
            response = self._client.chat.completions.create(
                model=self.analysis_model,
                response_format={
                    "type": "json_schema",
                    "json_schema": {
                        "name": "notarial_analysis",
                        "strict": True,
                        "schema": json_schema,
                    },
                },
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
            )
        except (openai.APIConnectionError, httpx.ConnectError, httpx.TimeoutException) as exc:
            raise GatewayError(f"AI provider network error: {exc}") from exc
        except openai.APIError as exc:
            raise GatewayError(f"AI provider API error: {exc}") from exc

        return _first_choice_content(response)

    def search(self, *, prompt: str) -> GroundedAnswer:
        try:
            response = self._client.responses.create(
                model=self.research_model,
                tools=[{"type": "web_search_preview"}],
                input=prompt,
            )
        except (openai.APIConnectionError, httpx.ConnectError, httpx.TimeoutException) as exc:
            raise GatewayError(f"AI provider network error: {exc}") from exc
        except openai.APIError as exc:
            raise GatewayError(f"AI provider API error: {exc}") from exc

        return GroundedAnswer(
            text=response.output_text or "",
            citations=_url_citations(response),
        )


# ─── Helpers ─────────────────────────────────────────────────────────


def _first_choice_content(response: object) -> str:
    choices = getattr(response, "choices", None)
    if not choices:
        return ""
    return choices[0].message.content or ""


def _url_citations(response: object) -> list[Citation]:
    """Collect `url_citation` annotations from every output message."""
    citations: list[Citation] = []
    for item in getattr(response, "output", None) or []:
        if getattr(item, "type", None) != "message":
            continue
        for part in getattr(item, "content", None) or []:
            for annotation in getattr(part, "annotations", None) or []:
                if getattr(annotation, "type", None) != "url_citation":
                    continue
                citations.append(
                    Citation(
                        title=getattr(annotation, "title", None),
                        uri=getattr(annotation, "url", None),
                    )
                )
    return citations


def build_gateway(settings: Settings) -> OpenAIGateway:
    """Create the OpenAI gateway, or fail if no API key is configured."""
    if not settings.has_api_key:
        raise ConfigurationError(
            "OPENAI_API_KEY is not set — the document pipeline is unavailable"
        )
    logger.info(
        "Using OpenAI models: transcription=%s analysis=%s research=%s",
        settings.transcription_model,
        settings.analysis_model,
        settings.research_model,
    )
    return OpenAIGateway(
        api_key=settings.openai_api_key,
        timeout_seconds=settings.openai_timeout_seconds,
        transcription_model=settings.transcription_model,
        analysis_model=settings.analysis_model,
        research_model=settings.research_model,
        base_url=settings.openai_base_url,
    )
