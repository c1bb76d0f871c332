"""
NotárioAI — FastAPI Server
==========================

HTTP surface for a browser client. The server owns one workspace (one live
document) for the whole process.

Endpoints:
    GET    /workspace                  Current status, panel and document
    POST   /workspace/document         Upload a scan (PNG/JPEG) and analyse it
    GET    /workspace/document/image   The uploaded scan, for preview
    POST   /workspace/research         Ask a grounded research question
    DELETE /workspace                  Discard the document, back to IDLE
    GET    /health                     Health check / readiness check

Run:
    uvicorn api:app --reload              # Dev (http://localhost:8000)
    uvicorn api:app --host 0.0.0.0        # Production

Docs:
    http://localhost:8000/docs             # Swagger UI (auto-generated)
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from fastapi import FastAPI, HTTPException, Response, UploadFile
from pydantic import BaseModel, Field

from notario_ai import __version__
from notario_ai.config import configure_logging, get_settings
from notario_ai.exceptions import (
    ConfigurationError,
    UnsupportedDocumentError,
    WorkspaceBusyError,
)
from notario_ai.models import (
    AnalysisResult,
    Panel,
    ResearchEntry,
    Severity,
    Status,
)
from notario_ai.pipeline import DocumentPipeline
from notario_ai.workspace import Workspace, WorkspaceView

logger = logging.getLogger("notario_ai.api")


# ─── Application Lifespan (build the workspace) ─────────────────────

_workspace: Workspace | None = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Read settings once and build the workspace if a credential is set."""
    global _workspace  # noqa: PLW0603
    settings = get_settings()
    configure_logging(settings.log_level)
    try:
        _workspace = Workspace(DocumentPipeline.from_settings(settings))
    except ConfigurationError as e:
        logger.error("%s", e)
        _workspace = None
    yield
    _workspace = None


# ─── FastAPI App ─────────────────────────────────────────────────────

app = FastAPI(
    title="NotárioAI API",
    description=(
        "AI-assisted reading of scanned notarial documents: verbatim "
        "transcription, structured legal-risk analysis, and search-grounded "
        "legal research."
    ),
    version=__version__,
    lifespan=lifespan,
)


# ─── Request / Response Schemas ─────────────────────────────────────


class ResearchRequest(BaseModel):
    """Request body for the /workspace/research endpoint."""

    query: str = Field(
        ...,
        min_length=1,
        description="The research question, in natural language.",
        json_schema_extra={
            "example": "Qual o prazo decadencial para anular esta venda de ascendente para descendente?"
        },
    )


class RiskFindingOut(BaseModel):
    severity: Severity
    label: str = Field(description="Display label for the severity")
    description: str
    location: str


class AnalysisOut(BaseModel):
    """API-facing analysis with the derived flags a client renders."""

    raw_text: str
    summary: str
    document_type: str
    parties: list[str]
    dates: list[str]
    missing_requirements: list[str]
    risk_factors: list[RiskFindingOut]
    has_high_risk: bool
    highest_severity: Optional[Severity] = None
    is_formally_compliant: bool


class DocumentOut(BaseModel):
    id: str
    filename: str
    media_type: str
    image_url: str
    created_at: datetime
    transcript: Optional[str] = None
    analysis_input_truncated: bool
    analysis: Optional[AnalysisOut] = None
    research: list[ResearchEntry]


class WorkspaceOut(BaseModel):
    """Everything a client needs to render the current panel."""

    status: Status
    panel: Panel
    status_message: str
    error_message: Optional[str] = None
    document: Optional[DocumentOut] = None

    model_config = {"json_schema_extra": {"example": {
        "status": "READY",
        "panel": "WORKSPACE",
        "status_message": "",
        "error_message": None,
        "document": {
            "id": "3f1c9a...",
            "filename": "escritura.png",
            "media_type": "image/png",
            "image_url": "/workspace/document/image",
            "created_at": "2026-01-01T12:00:00Z",
            "transcript": "ESCRITURA PÚBLICA DE COMPRA E VENDA ...",
            "analysis_input_truncated": False,
            "analysis": None,
            "research": [],
        },
    }}}


class HealthResponse(BaseModel):
    status: str
    version: str
    ai_configured: bool


# ─── Helpers ─────────────────────────────────────────────────────────


def _get_workspace() -> Workspace:
    if _workspace is None:
        raise HTTPException(
            status_code=503,
            detail="Document pipeline unavailable — OPENAI_API_KEY is not configured",
        )
    return _workspace


def _analysis_out(analysis: AnalysisResult) -> AnalysisOut:
    return AnalysisOut(
        raw_text=analysis.raw_text,
        summary=analysis.summary,
        document_type=analysis.document_type,
        parties=analysis.parties,
        dates=analysis.dates,
        missing_requirements=analysis.missing_requirements,
        risk_factors=[
            RiskFindingOut(
                severity=r.severity,
                label=r.severity.label,
                description=r.description,
                location=r.location,
            )
            for r in analysis.risk_factors
        ],
        has_high_risk=analysis.has_high_risk,
        highest_severity=analysis.highest_severity,
        is_formally_compliant=analysis.is_formally_compliant,
    )


def _build_response(view: WorkspaceView) -> WorkspaceOut:
    """Convert the internal workspace snapshot to the API response schema."""
    document_out = None
    doc = view.document
    if doc is not None:
        document_out = DocumentOut(
            id=doc.id,
            filename=doc.filename,
            media_type=doc.media_type,
            image_url="/workspace/document/image",
            created_at=doc.created_at,
            transcript=doc.transcript,
            analysis_input_truncated=doc.analysis_input_truncated,
            analysis=_analysis_out(doc.analysis) if doc.analysis else None,
            research=doc.research,
        )

    return WorkspaceOut(
        status=view.status,
        panel=view.panel,
        status_message=view.status_message,
        error_message=view.error_message,
        document=document_out,
    )


# ─── Endpoints ───────────────────────────────────────────────────────


@app.get(
    "/workspace",
    summary="Current workspace state",
    tags=["Workspace"],
    responses={503: {"description": "Pipeline not configured"}},
)
def get_workspace() -> WorkspaceOut:
    """Returns the status, the panel to render, and the live document."""
    return _build_response(_get_workspace().snapshot())


@app.post(
    "/workspace/document",
    summary="Upload a scanned document and analyse it",
    tags=["Workspace"],
    responses={
        400: {"description": "Empty file"},
        409: {"description": "Another operation is in progress"},
        413: {"description": "File too large"},
        415: {"description": "Not a PNG or JPEG image"},
        503: {"description": "Pipeline not configured"},
    },
)
async def upload_document(file: UploadFile) -> WorkspaceOut:
    """Upload a PNG/JPEG scan. Replaces any previous document.

    The response carries status `READY` with the analysis, or `FAILED` with a
    generic error message (the image preview stays available either way).
    """
    workspace = _get_workspace()
    max_bytes = get_settings().max_upload_bytes

    if file.size and file.size > max_bytes:
        raise HTTPException(status_code=413, detail=f"File too large (max {max_bytes} bytes)")

    content = await file.read()
    if len(content) > max_bytes:
        raise HTTPException(status_code=413, detail=f"File too large (max {max_bytes} bytes)")
    if not content:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")

    try:
        await asyncio.to_thread(
            workspace.submit_file,
            file.filename or "documento",
            file.content_type or "",
            content,
        )
    except UnsupportedDocumentError as e:
        raise HTTPException(status_code=415, detail=str(e))
    except WorkspaceBusyError as e:
        raise HTTPException(status_code=409, detail=str(e))

    return _build_response(workspace.snapshot())


@app.get(
    "/workspace/document/image",
    summary="The uploaded scan",
    tags=["Workspace"],
    responses={404: {"description": "No document uploaded"}},
)
def get_document_image() -> Response:
    """Returns the original image bytes for on-screen preview."""
    record = _get_workspace().record
    if record is None:
        raise HTTPException(status_code=404, detail="No document uploaded")
    return Response(content=record.image, media_type=record.media_type)


@app.post(
    "/workspace/research",
    summary="Research a legal question about the document",
    tags=["Research"],
    responses={
        409: {"description": "No analysed document, or another operation is in progress"},
        422: {"description": "Blank query"},
        502: {"description": "Research failed; the workspace is back to READY"},
        503: {"description": "Pipeline not configured"},
    },
)
async def research(request: ResearchRequest) -> ResearchEntry:
    """Runs a search-grounded query against the analysed document.

    On success the entry is also prepended to the document's research list.
    """
    workspace = _get_workspace()
    if not request.query.strip():
        raise HTTPException(status_code=422, detail="Query must not be blank")
    if workspace.status.in_flight:
        raise HTTPException(
            status_code=409,
            detail=f"Another operation is in progress (workspace is {workspace.status.value})",
        )

    try:
        entry, attempted = await asyncio.to_thread(
            workspace.run_research_query, request.query
        )
    except WorkspaceBusyError as e:
        raise HTTPException(status_code=409, detail=str(e))

    if not attempted:
        raise HTTPException(
            status_code=409,
            detail=f"No analysed document to research (workspace is {workspace.status.value})",
        )
    if entry is None:
        raise HTTPException(status_code=502, detail="Research failed — please try again")
    return entry


@app.delete(
    "/workspace",
    summary="Discard the current document",
    tags=["Workspace"],
    responses={409: {"description": "Another operation is in progress"}},
)
def reset_workspace() -> WorkspaceOut:
    """Drops the live document and returns to the upload panel."""
    workspace = _get_workspace()
    try:
        workspace.reset()
    except WorkspaceBusyError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return _build_response(workspace.snapshot())


@app.get(
    "/health",
    summary="Health check",
    tags=["System"],
)
def health_check() -> HealthResponse:
    """Returns service status and whether the AI provider is configured."""
    return HealthResponse(
        status="healthy" if _workspace is not None else "degraded",
        version=__version__,
        ai_configured=_workspace is not None,
    )
