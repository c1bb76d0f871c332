"""
Tests for the data model — defaults, derived flags, and record behaviour.

Run: pytest tests/ -v
"""

from __future__ import annotations

import base64

import pytest
from pydantic import ValidationError

from conftest import PNG_BYTES, SAMPLE_ANALYSIS
from notario_ai.models import (
    AnalysisResult,
    DocumentRecord,
    ResearchEntry,
    RiskFinding,
    Severity,
    Status,
)


# ═══════════════════════════════════════════════════════════════════════
# SEVERITY
# ═══════════════════════════════════════════════════════════════════════


class TestSeverity:
    def test_high_is_most_severe(self):
        assert Severity.HIGH.rank > Severity.MEDIUM.rank > Severity.LOW.rank

    def test_labels(self):
        assert Severity.HIGH.label == "Risco Alto"
        assert Severity.MEDIUM.label == "Atenção"
        assert Severity.LOW.label == "Nota"

    def test_unknown_severity_rejected(self):
        with pytest.raises(ValidationError):
            RiskFinding(severity="CRITICAL", description="x", location="")


# ═══════════════════════════════════════════════════════════════════════
# ANALYSIS RESULT
# ═══════════════════════════════════════════════════════════════════════


class TestAnalysisResult:
    def test_parses_camel_case_payload(self):
        result = AnalysisResult.model_validate(SAMPLE_ANALYSIS)
        assert result.document_type == "Escritura Pública de Compra e Venda"
        assert result.missing_requirements == ["Comprovante de recolhimento do ITBI"]
        assert result.risk_factors[0].severity is Severity.HIGH

    def test_missing_requirements_defaults_to_empty_list(self):
        payload = {k: v for k, v in SAMPLE_ANALYSIS.items() if k != "missingRequirements"}
        result = AnalysisResult.model_validate(payload)
        assert result.missing_requirements == []

    def test_null_arrays_become_empty_lists(self):
        result = AnalysisResult.model_validate(
            {"summary": "s", "parties": None, "dates": None,
             "missingRequirements": None, "riskFactors": None}
        )
        assert result.parties == []
        assert result.dates == []
        assert result.missing_requirements == []
        assert result.risk_factors == []

    def test_null_location_becomes_empty(self):
        finding = RiskFinding(severity="LOW", description="x", location=None)
        assert finding.location == ""

    def test_high_risk_flag(self):
        result = AnalysisResult.model_validate(SAMPLE_ANALYSIS)
        assert result.has_high_risk is True
        assert result.highest_severity is Severity.HIGH

    def test_no_high_risk_when_only_low_and_medium(self):
        result = AnalysisResult(
            risk_factors=[
                RiskFinding(severity=Severity.LOW, description="a"),
                RiskFinding(severity=Severity.MEDIUM, description="b"),
            ]
        )
        assert result.has_high_risk is False
        assert result.highest_severity is Severity.MEDIUM

    def test_no_findings(self):
        result = AnalysisResult()
        assert result.has_high_risk is False
        assert result.highest_severity is None

    def test_formal_compliance(self):
        assert AnalysisResult().is_formally_compliant is True
        assert AnalysisResult(missing_requirements=["DOI"]).is_formally_compliant is False

    def test_is_immutable(self):
        result = AnalysisResult.model_validate(SAMPLE_ANALYSIS)
        with pytest.raises(ValidationError):
            result.summary = "changed"


# ═══════════════════════════════════════════════════════════════════════
# DOCUMENT RECORD
# ═══════════════════════════════════════════════════════════════════════


class TestDocumentRecord:
    def _record(self) -> DocumentRecord:
        return DocumentRecord(filename="a.png", media_type="image/png", image=PNG_BYTES)

    def test_new_record_has_id_and_no_analysis(self):
        record = self._record()
        assert len(record.id) == 32
        assert record.analysis is None
        assert record.transcript is None
        assert record.research == []

    def test_ids_are_unique(self):
        assert self._record().id != self._record().id

    def test_research_is_prepended(self):
        record = self._record()
        first = ResearchEntry(query="Q1", findings="A1")
        second = ResearchEntry(query="Q2", findings="A2")
        record.add_research(first)
        record.add_research(second)
        assert record.research == [second, first]

    def test_preview_data_url(self):
        url = self._record().preview_data_url
        assert url.startswith("data:image/png;base64,")
        assert base64.b64decode(url.split(",", 1)[1]) == PNG_BYTES

    def test_image_not_serialized(self):
        assert "image" not in self._record().model_dump()


class TestStatus:
    @pytest.mark.parametrize(
        "status",
        [Status.TRANSCRIBING_DOCUMENT, Status.ANALYZING_DOCUMENT, Status.RESEARCHING_QUERY],
    )
    def test_in_flight(self, status):
        assert status.in_flight

    @pytest.mark.parametrize("status", [Status.IDLE, Status.READY, Status.FAILED])
    def test_stable(self, status):
        assert not status.in_flight
