"""
Pydantic models for documents, analyses and research — typed at the boundary.

The analysis shape mirrors the JSON the reasoning model is asked to return
(camelCase aliases), so a model response validates straight into
`AnalysisResult`. If the payload does not fit, it fails loudly here rather
than half-populating the workspace.
"""

from __future__ import annotations

import base64
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ─── Severity Levels ────────────────────────────────────────────────


class Severity(str, Enum):
    """Severity of a risk finding. Ordinal: HIGH is the most severe."""

    LOW = "LOW"  # Note for the clerk
    MEDIUM = "MEDIUM"  # Needs attention before the act
    HIGH = "HIGH"  # Likely defect — do not proceed without review

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    @property
    def label(self) -> str:
        return _SEVERITY_LABEL[self]


_SEVERITY_RANK = {Severity.LOW: 1, Severity.MEDIUM: 2, Severity.HIGH: 3}

_SEVERITY_LABEL = {
    Severity.LOW: "Nota",
    Severity.MEDIUM: "Atenção",
    Severity.HIGH: "Risco Alto",
}


# ─── Pipeline Status ────────────────────────────────────────────────


class Status(str, Enum):
    """Where the workspace is in the upload → analysis → research cycle."""

    IDLE = "IDLE"
    TRANSCRIBING_DOCUMENT = "TRANSCRIBING_DOCUMENT"
    ANALYZING_DOCUMENT = "ANALYZING_DOCUMENT"
    RESEARCHING_QUERY = "RESEARCHING_QUERY"
    READY = "READY"
    FAILED = "FAILED"

    @property
    def in_flight(self) -> bool:
        return self in IN_FLIGHT_STATUSES


IN_FLIGHT_STATUSES: frozenset[Status] = frozenset({
    Status.TRANSCRIBING_DOCUMENT,
    Status.ANALYZING_DOCUMENT,
    Status.RESEARCHING_QUERY,
})


class Panel(str, Enum):
    """The mutually exclusive UI panel a client should render."""

    UPLOAD = "UPLOAD"
    PROCESSING = "PROCESSING"
    WORKSPACE = "WORKSPACE"
    ERROR = "ERROR"


# ─── Analysis Models ────────────────────────────────────────────────


class RiskFinding(BaseModel):
    """A flagged clause, omission or defect in the document."""

    model_config = ConfigDict(frozen=True)

    severity: Severity
    description: str
    location: str = ""  # Quoted excerpt or clause pointer, best-effort

    @field_validator("location", mode="before")
    @classmethod
    def _none_location_is_empty(cls, value: object) -> object:
        return "" if value is None else value


class AnalysisResult(BaseModel):
    """Structured legal reading of one transcribed document.

    Built atomically from a single model response and immutable afterwards.
    `raw_text` is always the full transcription, never the model's echo.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    raw_text: str = Field(default="", alias="rawText")
    summary: str = ""
    document_type: str = Field(default="", alias="documentType")
    parties: list[str] = Field(default_factory=list)
    dates: list[str] = Field(default_factory=list)
    missing_requirements: list[str] = Field(
        default_factory=list, alias="missingRequirements"
    )
    risk_factors: list[RiskFinding] = Field(default_factory=list, alias="riskFactors")

    @field_validator(
        "parties", "dates", "missing_requirements", "risk_factors", mode="before"
    )
    @classmethod
    def _null_list_is_empty(cls, value: object) -> object:
        # Models occasionally answer `null` instead of `[]`
        return [] if value is None else value

    @field_validator("raw_text", "summary", "document_type", mode="before")
    @classmethod
    def _null_text_is_empty(cls, value: object) -> object:
        return "" if value is None else value

    @property
    def has_high_risk(self) -> bool:
        """True when at least one finding is HIGH severity."""
        return any(r.severity == Severity.HIGH for r in self.risk_factors)

    @property
    def highest_severity(self) -> Optional[Severity]:
        if not self.risk_factors:
            return None
        return max((r.severity for r in self.risk_factors), key=lambda s: s.rank)

    @property
    def is_formally_compliant(self) -> bool:
        return not self.missing_requirements


# ─── Research Models ────────────────────────────────────────────────


class Source(BaseModel):
    """A web page cited by the search-grounded model."""

    model_config = ConfigDict(frozen=True)

    title: str
    uri: str


class ResearchEntry(BaseModel):
    """One answered research question. Findings may contain markdown."""

    model_config = ConfigDict(frozen=True)

    query: str
    findings: str = ""
    sources: list[Source] = Field(default_factory=list)


# ─── Document Record ────────────────────────────────────────────────


def _new_document_id() -> str:
    return uuid.uuid4().hex


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DocumentRecord(BaseModel):
    """The single live document of a workspace session.

    Mutated in place as each pipeline stage completes; replaced wholesale
    when a new file is submitted.
    """

    id: str = Field(default_factory=_new_document_id)
    filename: str
    media_type: str
    image: bytes = Field(repr=False, exclude=True)
    transcript: Optional[str] = None
    analysis: Optional[AnalysisResult] = None
    research: list[ResearchEntry] = Field(default_factory=list)  # Newest first
    analysis_input_truncated: bool = False
    created_at: datetime = Field(default_factory=_utcnow)

    @property
    def preview_data_url(self) -> str:
        """The image as a `data:` URL, ready for an <img src>."""
        encoded = base64.b64encode(self.image).decode("ascii")
        return f"data:{self.media_type};base64,{encoded}"

    def add_research(self, entry: ResearchEntry) -> None:
        """Prepend a research entry; entries are never reordered or removed."""
        self.research.insert(0, entry)
