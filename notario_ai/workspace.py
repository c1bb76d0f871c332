"""
Workspace — the single-document session and its status state machine.

States:

    IDLE ──► TRANSCRIBING_DOCUMENT ──► ANALYZING_DOCUMENT ──► READY
                      │                        │               │  ▲
                      └──────────► FAILED ◄────┘               ▼  │
                                                       RESEARCHING_QUERY

Exactly one `DocumentRecord` and one `Status` exist per workspace. Only the
workspace mutates them; presentation reads a `WorkspaceView` snapshot.
One operation runs at a time: a second caller is rejected with
`WorkspaceBusyError` rather than queued.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from pydantic import BaseModel

from .exceptions import (
    AnalysisParseError,
    ResearchError,
    TranscriptionError,
    UnsupportedDocumentError,
    WorkspaceBusyError,
)
from .models import DocumentRecord, Panel, ResearchEntry, Status
from .pipeline import DocumentPipeline

logger = logging.getLogger(__name__)


# ─── Constants ───────────────────────────────────────────────────────

SUPPORTED_MEDIA_TYPES: frozenset[str] = frozenset({
    "image/png", "image/jpeg", "image/jpg",
})

STATUS_MESSAGES: dict[Status, str] = {
    Status.TRANSCRIBING_DOCUMENT: "Realizando OCR de alta precisão...",
    Status.ANALYZING_DOCUMENT: "Analisando requisitos legais (Lei 6.015/73 e CC/2002)...",
    Status.RESEARCHING_QUERY: "Consultando jurisprudência e legislação...",
}

PROCESSING_ERROR_MESSAGE = (
    "Ocorreu um erro ao processar o documento. Tente novamente."
)

_PANELS: dict[Status, Panel] = {
    Status.IDLE: Panel.UPLOAD,
    Status.TRANSCRIBING_DOCUMENT: Panel.PROCESSING,
    Status.ANALYZING_DOCUMENT: Panel.PROCESSING,
    Status.RESEARCHING_QUERY: Panel.PROCESSING,
    Status.READY: Panel.WORKSPACE,
    Status.FAILED: Panel.ERROR,
}


# ─── View Snapshot ───────────────────────────────────────────────────


class WorkspaceView(BaseModel):
    """Read-only picture of the workspace for rendering."""

    status: Status
    panel: Panel
    status_message: str = ""
    error_message: Optional[str] = None
    document: Optional[DocumentRecord] = None


# ─── Controller ──────────────────────────────────────────────────────


class Workspace:
    """Owns the live document and drives it through the pipeline.

    Usage:
        workspace = Workspace(DocumentPipeline(gateway))
        workspace.submit_file("escritura.png", "image/png", image_bytes)
        if workspace.status is Status.READY:
            workspace.submit_research_query("Prazo para anular a venda?")
    """

    def __init__(self, pipeline: DocumentPipeline):
        self.pipeline = pipeline
        self._status = Status.IDLE
        self._record: DocumentRecord | None = None
        self._error_message: str | None = None
        self._busy = threading.Lock()  # Held for the whole of one operation
        self._state = threading.RLock()  # Guards status/record reads and writes

    # ─── Read Side ───────────────────────────────────────────────────

    @property
    def status(self) -> Status:
        return self._status

    @property
    def record(self) -> DocumentRecord | None:
        return self._record

    @property
    def is_busy(self) -> bool:
        return self._busy.locked()

    @property
    def panel(self) -> Panel:
        return _PANELS[self._status]

    @property
    def status_message(self) -> str:
        return STATUS_MESSAGES.get(self._status, "")

    @property
    def error_message(self) -> str | None:
        return self._error_message

    def snapshot(self) -> WorkspaceView:
        """Copy the current state so readers never see a half-applied update."""
        with self._state:
            document = None
            if self._record is not None:
                document = self._record.model_copy(
                    update={"research": list(self._record.research)}
                )
            return WorkspaceView(
                status=self._status,
                panel=self.panel,
                status_message=self.status_message,
                error_message=self._error_message,
                document=document,
            )

    # ─── Transitions ─────────────────────────────────────────────────

    def submit_file(self, filename: str, media_type: str, image: bytes) -> DocumentRecord:
        """Start over with a new scanned document and run transcription + analysis.

        Stage failures do not raise: the workspace ends in FAILED with a
        generic message and the partial record stays visible. Unexpected
        errors from the AI provider end the same way.

        Raises:
            UnsupportedDocumentError: empty payload or unsupported media type.
            WorkspaceBusyError: another operation is in flight.
        """
        media_type = _normalize_media_type(media_type)
        if media_type not in SUPPORTED_MEDIA_TYPES:
            raise UnsupportedDocumentError(
                f"Unsupported media type '{media_type}' — upload a PNG or JPEG scan",
                {"media_type": media_type},
            )
        if not image:
            raise UnsupportedDocumentError("Uploaded file is empty")

        with self._single_flight("submit_file"):
            record = DocumentRecord(filename=filename, media_type=media_type, image=image)
            # Record and status change together: a new record is never READY
            with self._state:
                self._record = record
                self._error_message = None
                self._status = Status.TRANSCRIBING_DOCUMENT
            logger.info("New document %s (%s)", record.id, filename)

            try:
                transcript = self.pipeline.transcribe(image, media_type)
                with self._state:
                    record.transcript = transcript
                    record.analysis_input_truncated = (
                        self.pipeline.is_truncated_for_analysis(transcript)
                    )

                self._set_status(Status.ANALYZING_DOCUMENT)
                analysis = self.pipeline.analyze(transcript)
                with self._state:
                    record.analysis = analysis
                self._set_status(Status.READY)
            except (TranscriptionError, AnalysisParseError) as e:
                self._fail(e)
            except Exception as e:
                logger.exception("Unexpected error while processing document %s", record.id)
                self._fail(e)

            return record

    def submit_research_query(self, query: str) -> ResearchEntry | None:
        """Research a question about the analysed document.

        Returns the new entry, or None when nothing was done: the workspace
        is not READY, there is no analysis, the query is blank, or the
        research call failed. A failed call is logged and the workspace goes
        back to READY with the research list unchanged.

        Raises:
            WorkspaceBusyError: another operation is in flight.
        """
        entry, _attempted = self.run_research_query(query)
        return entry

    def run_research_query(self, query: str) -> tuple[ResearchEntry | None, bool]:
        """Same as `submit_research_query`, plus whether the provider was called.

        `(None, False)` means the query was ignored; `(None, True)` means the
        research call failed.
        """
        with self._single_flight("submit_research_query"):
            record = self._record
            if self._status is not Status.READY or record is None or record.analysis is None:
                logger.info("Research ignored: workspace is %s", self._status.value)
                return None, False
            if not query or not query.strip():
                return None, False

            self._set_status(Status.RESEARCHING_QUERY)
            try:
                entry = self.pipeline.research(query, record.analysis.raw_text)
            except ResearchError as e:
                logger.error("Research failed for document %s: %s", record.id, e)
                return None, True
            except Exception:
                logger.exception("Unexpected error while researching document %s", record.id)
                return None, True
            finally:
                self._set_status(Status.READY)

            with self._state:
                record.add_research(entry)
            return entry, True

    def reset(self) -> None:
        """Discard the current document and go back to IDLE."""
        with self._single_flight("reset"):
            with self._state:
                self._record = None
                self._error_message = None
                self._status = Status.IDLE
            logger.info("Workspace reset")

    # ─── Internals ───────────────────────────────────────────────────

    @contextmanager
    def _single_flight(self, operation: str) -> Iterator[None]:
        if not self._busy.acquire(blocking=False):
            raise WorkspaceBusyError(
                f"Cannot {operation.replace('_', ' ')}: workspace is {self._status.value}",
                {"status": self._status.value},
            )
        try:
            yield
        finally:
            self._busy.release()

    def _set_status(self, status: Status) -> None:
        with self._state:
            logger.debug("Status %s -> %s", self._status.value, status.value)
            self._status = status

    def _fail(self, error: Exception) -> None:
        logger.error("Document processing failed at %s: %s", self._status.value, error)
        with self._state:
            self._error_message = PROCESSING_ERROR_MESSAGE
            self._status = Status.FAILED


def _normalize_media_type(media_type: str | None) -> str:
    # "image/jpeg; charset=binary" -> "image/jpeg"
    return (media_type or "").split(";", 1)[0].strip().lower()
