"""
Document pipeline — three sequential calls to the AI provider.

Flow:
  ┌──────────────┐
  │ Scanned image│
  └──────┬───────┘
         │
  ┌──────▼───────┐
  │  Transcribe  │   ← Vision model, verbatim text
  └──────┬───────┘
         │
  ┌──────▼───────┐
  │   Analyze    │   ← Reasoning model, strict JSON schema
  └──────┬───────┘
         │
  ┌──────▼───────┐
  │  Research    │   ← Search-grounded model, repeatable
  └──────────────┘

Design principles:
  - Each stage fails with its own exception type, so failures are attributable.
  - Analysis sees at most `analysis_char_limit` characters of the transcript.
    The prefix is kept and the rest is dropped, silently for the model but
    logged here. The returned `raw_text` is always the full transcript.
  - Research can be repeated against the same analysed text without
    re-running transcription or analysis.
"""

from __future__ import annotations

import json
import logging

from pydantic import ValidationError

from .config import (
    DEFAULT_ANALYSIS_CHAR_LIMIT,
    DEFAULT_RESEARCH_CONTEXT_CHAR_LIMIT,
    Settings,
)
from .exceptions import AnalysisParseError, GatewayError, ResearchError, TranscriptionError
from .gateway import AIGateway, Citation, build_gateway
from .models import AnalysisResult, ResearchEntry, Source
from .prompts import (
    ANALYSIS_JSON_SCHEMA,
    ANALYSIS_SYSTEM_PROMPT,
    ANALYSIS_USER_TEMPLATE,
    RESEARCH_PROMPT_TEMPLATE,
    TRANSCRIPTION_INSTRUCTION,
)

logger = logging.getLogger(__name__)


class DocumentPipeline:
    """Transcribes, analyses and researches notarial documents.

    Usage:
        pipeline = DocumentPipeline(gateway)
        text = pipeline.transcribe(image_bytes, "image/png")
        analysis = pipeline.analyze(text)
        entry = pipeline.research("Is the ITBI receipt required?", analysis.raw_text)
    """

    def __init__(
        self,
        gateway: AIGateway,
        analysis_char_limit: int = DEFAULT_ANALYSIS_CHAR_LIMIT,
        research_context_char_limit: int = DEFAULT_RESEARCH_CONTEXT_CHAR_LIMIT,
    ):
        self.gateway = gateway
        self.analysis_char_limit = analysis_char_limit
        self.research_context_char_limit = research_context_char_limit

    @classmethod
    def from_settings(cls, settings: Settings) -> DocumentPipeline:
        """Build a pipeline over the OpenAI gateway described by `settings`."""
        return cls(
            build_gateway(settings),
            analysis_char_limit=settings.analysis_char_limit,
            research_context_char_limit=settings.research_context_char_limit,
        )

    # ─── Stage 1: Transcription ─────────────────────────────────────

    def transcribe(self, image: bytes, media_type: str) -> str:
        """Extract the document's text verbatim from the scanned image.

        Raises:
            TranscriptionError: the provider failed or returned no text.
        """
        logger.info("Transcribing %s image (%d bytes)...", media_type, len(image))
        try:
            text = self.gateway.transcribe_image(
                image=image,
                media_type=media_type,
                instruction=TRANSCRIPTION_INSTRUCTION,
            )
        except GatewayError as e:
            raise TranscriptionError(
                "Transcription request failed", {"cause": str(e)}
            ) from e

        if not text or not text.strip():
            raise TranscriptionError("Transcription returned no text")

        logger.info("Transcription succeeded (%d characters)", len(text))
        return text

    # ─── Stage 2: Structured Analysis ───────────────────────────────

    def is_truncated_for_analysis(self, text: str) -> bool:
        """Whether `analyze` would send only a prefix of `text`."""
        return len(text) > self.analysis_char_limit

    def analyze(self, text: str) -> AnalysisResult:
        """Ask the reasoning model for a structured legal analysis of `text`.

        Raises:
            AnalysisParseError: the provider failed, or its payload was empty,
                not JSON, or not in the expected shape.
        """
        sent = text[: self.analysis_char_limit]
        if len(sent) < len(text):
            logger.warning(
                "Transcript truncated for analysis: %d of %d characters sent",
                len(sent),
                len(text),
            )

        logger.info("Requesting structured analysis...")
        try:
            payload = self.gateway.complete_json(
                system_prompt=ANALYSIS_SYSTEM_PROMPT,
                user_prompt=ANALYSIS_USER_TEMPLATE.format(text=sent),
                json_schema=ANALYSIS_JSON_SCHEMA,
            )
        except GatewayError as e:
            raise AnalysisParseError("Analysis request failed", {"cause": str(e)}) from e

        if not payload or not payload.strip():
            raise AnalysisParseError("Analysis returned an empty response")

        try:
            data = json.loads(payload)
        except json.JSONDecodeError as e:
            raise AnalysisParseError(
                "Analysis response is not valid JSON", {"cause": str(e)}
            ) from e

        if not isinstance(data, dict):
            raise AnalysisParseError(
                "Analysis response is not a JSON object",
                {"type": type(data).__name__},
            )

        try:
            parsed = AnalysisResult.model_validate(data)
        except ValidationError as e:
            raise AnalysisParseError(
                "Analysis response does not match the expected shape",
                {"errors": e.errors(include_url=False)},
            ) from e

        # The model may echo a shortened copy; keep the full transcript
        result = parsed.model_copy(update={"raw_text": text})
        logger.info(
            "Analysis succeeded: %s, %d risk finding(s)",
            result.document_type or "unclassified document",
            len(result.risk_factors),
        )
        return result

    # ─── Stage 3: Grounded Research ─────────────────────────────────

    def research(self, query: str, context_text: str) -> ResearchEntry:
        """Answer a legal question about the document with web search.

        An answer without sources is valid (inconclusive), not an error.

        Raises:
            ResearchError: the provider failed or returned no text.
        """
        prompt = RESEARCH_PROMPT_TEMPLATE.format(
            context=context_text[: self.research_context_char_limit],
            query=query,
        )

        logger.info("Running grounded research...")
        try:
            answer = self.gateway.search(prompt=prompt)
        except GatewayError as e:
            raise ResearchError("Research request failed", {"cause": str(e)}) from e

        if not answer.text or not answer.text.strip():
            raise ResearchError("Research returned no text")

        sources = _resolvable_sources(answer.citations)
        logger.info("Research succeeded with %d source(s)", len(sources))
        return ResearchEntry(query=query, findings=answer.text, sources=sources)


# ─── Helpers ─────────────────────────────────────────────────────────


def _resolvable_sources(citations: list[Citation]) -> list[Source]:
    """Keep citations that have both a title and a URI, first occurrence wins."""
    sources: list[Source] = []
    seen: set[str] = set()
    for citation in citations:
        title = (citation.title or "").strip()
        uri = (citation.uri or "").strip()
        if not title or not uri or uri in seen:
            continue
        seen.add(uri)
        sources.append(Source(title=title, uri=uri))
    return sources
