"""Pytest configuration — project root importable, fake AI provider, no network."""

import json
import sys
from pathlib import Path
from unittest.mock import patch

import pytest

sys.path.insert(0, str(Path(__file__).parent))

from notario_ai.gateway import AIGateway, Citation, GroundedAnswer  # noqa: E402
from notario_ai.pipeline import DocumentPipeline  # noqa: E402
from notario_ai.workspace import Workspace  # noqa: E402


# ─── Sample Data ─────────────────────────────────────────────────────

SAMPLE_TRANSCRIPT = """\
REPÚBLICA FEDERATIVA DO BRASIL
ESCRITURA PÚBLICA DE COMPRA E VENDA
Livro 112  Folha 045
Aos 10 dias do mês de março de 2025, perante mim, Tabelião, compareceram:
OUTORGANTE VENDEDOR: JOSÉ DA SILVA, brasileiro, casado, CPF 123.456.789-00;
OUTORGADO COMPRADOR: MARIA SOUZA, brasileira, solteira, CPF 987.654.321-00.
Objeto: imóvel matrícula 45.678 do 2º Registro de Imóveis.
Preço: R$ 350.000,00 (trezentos e cinquenta mil reais).
[Assinatura Ilegível]  [Selo do Cartório]"""

SAMPLE_ANALYSIS = {
    "rawText": SAMPLE_TRANSCRIPT[:40],
    "summary": "Compra e venda de imóvel urbano entre particulares.",
    "documentType": "Escritura Pública de Compra e Venda",
    "parties": ["José da Silva (Outorgante Vendedor)", "Maria Souza (Outorgada Compradora)"],
    "dates": ["10/03/2025"],
    "missingRequirements": ["Comprovante de recolhimento do ITBI"],
    "riskFactors": [
        {
            "severity": "HIGH",
            "description": "Vendedor casado sem outorga uxória.",
            "location": "OUTORGANTE VENDEDOR: JOSÉ DA SILVA, brasileiro, casado",
        },
        {
            "severity": "LOW",
            "description": "Número do livro parcialmente legível.",
            "location": "Livro 112",
        },
    ],
}

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


# ─── Fake AI Provider ────────────────────────────────────────────────


class FakeGateway(AIGateway):
    """Deterministic stand-in for the AI provider.

    Set `transcript`, `analysis_payload` or `answer` to change what it returns,
    or the matching `*_error` attribute to make a call raise. Every call is
    recorded in `calls` as (method name, kwargs).
    """

    def __init__(self) -> None:
        self.transcript: str = SAMPLE_TRANSCRIPT
        self.analysis_payload: str = json.dumps(SAMPLE_ANALYSIS)
        self.answer = GroundedAnswer(
            text="A venda exige **outorga conjugal** (art. 1.647 do Código Civil).",
            citations=[
                Citation(title="Código Civil — Planalto", uri="https://www.planalto.gov.br/cc"),
            ],
        )
        self.transcribe_error: Exception | None = None
        self.analysis_error: Exception | None = None
        self.search_error: Exception | None = None
        self.on_call = None  # Optional hook: callable(method_name)
        self.calls: list[tuple[str, dict]] = []

    def _record(self, method: str, **kwargs: object) -> None:
        self.calls.append((method, kwargs))
        if self.on_call is not None:
            self.on_call(method)

    def calls_to(self, method: str) -> list[dict]:
        return [kwargs for name, kwargs in self.calls if name == method]

    def transcribe_image(self, *, image: bytes, media_type: str, instruction: str) -> str:
        self._record("transcribe_image", image=image, media_type=media_type, instruction=instruction)
        if self.transcribe_error is not None:
            raise self.transcribe_error
        return self.transcript

    def complete_json(self, *, system_prompt: str, user_prompt: str, json_schema: dict) -> str:
        self._record(
            "complete_json",
            system_prompt=system_prompt,
            user_prompt=user_prompt,
            json_schema=json_schema,
        )
        if self.analysis_error is not None:
            raise self.analysis_error
        return self.analysis_payload

    def search(self, *, prompt: str) -> GroundedAnswer:
        self._record("search", prompt=prompt)
        if self.search_error is not None:
            raise self.search_error
        return self.answer


# ─── Fixtures ────────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def _no_real_ai_calls():
    """Any OpenAI client built during tests is a mock — the suite never hits the network."""
    with patch("notario_ai.gateway.openai.OpenAI"):
        yield


@pytest.fixture()
def fake_gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture()
def pipeline(fake_gateway: FakeGateway) -> DocumentPipeline:
    return DocumentPipeline(fake_gateway)


@pytest.fixture()
def workspace(pipeline: DocumentPipeline) -> Workspace:
    return Workspace(pipeline)


@pytest.fixture()
def ready_workspace(workspace: Workspace) -> Workspace:
    """A workspace with the sample document fully analysed."""
    workspace.submit_file("escritura.png", "image/png", PNG_BYTES)
    return workspace
