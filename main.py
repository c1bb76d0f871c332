#!/usr/bin/env python3
"""
NotárioAI — Entry Point
=======================

Runs the full pipeline on a scanned document image from disk and prints the
analysis, then answers any research questions given on the command line.

Usage:
    OPENAI_API_KEY=sk-... python main.py escritura.png
    OPENAI_API_KEY=sk-... python main.py escritura.jpg -q "Exige ITBI?" -q "Prazo de registro?"
"""

from __future__ import annotations

import argparse
import mimetypes
import sys
from pathlib import Path

from notario_ai.config import configure_logging, get_settings
from notario_ai.exceptions import ConfigurationError, NotarioError
from notario_ai.models import DocumentRecord, ResearchEntry, Severity, Status
from notario_ai.pipeline import DocumentPipeline
from notario_ai.workspace import Workspace


# ─── ANSI Color Constants ───────────────────────────────────────────

_RED = "\033[91m"
_YELLOW = "\033[93m"
_GREEN = "\033[92m"
_CYAN = "\033[96m"
_DIM = "\033[2m"
_BOLD = "\033[1m"
_RESET = "\033[0m"
_WIDTH = 72

_SEVERITY_COLORS = {
    Severity.HIGH: _RED,
    Severity.MEDIUM: _YELLOW,
    Severity.LOW: _CYAN,
}


# ─── Pretty Printer Helpers ─────────────────────────────────────────


def _print_list(label: str, items: list[str], empty: str) -> None:
    print(f"  {_BOLD}{label}{_RESET}")
    if not items:
        print(f"    {_DIM}{empty}{_RESET}")
    for item in items:
        print(f"    • {item}")


def _print_risks(record: DocumentRecord) -> None:
    """Print risk findings, most severe first."""
    assert record.analysis is not None
    risks = sorted(
        record.analysis.risk_factors, key=lambda r: r.severity.rank, reverse=True
    )
    print(f"\n  {_BOLD}RISCOS ({len(risks)}){_RESET}")
    if not risks:
        print(f"    {_GREEN}Nenhum risco evidente detectado na análise preliminar.{_RESET}")
    for r in risks:
        color = _SEVERITY_COLORS[r.severity]
        print(f"    {color}[{r.severity.label}]{_RESET} {r.description}")
        if r.location:
            print(f"      {_DIM}Localização: \"{r.location}\"{_RESET}")


def _print_research(entry: ResearchEntry) -> None:
    print(f"\n  {_BOLD}{_CYAN}? {entry.query}{_RESET}")
    for line in entry.findings.splitlines():
        print(f"    {line}")
    if entry.sources:
        print(f"    {_DIM}Fontes:{_RESET}")
        for src in entry.sources:
            print(f"      {_DIM}- {src.title} <{src.uri}>{_RESET}")


# ─── Pretty Printer ─────────────────────────────────────────────────


def print_report(workspace: Workspace) -> int:
    """Pretty-print the analysed document with ANSI color codes.

    Returns:
        0 if the document was analysed, 1 if processing failed.
    """
    record = workspace.record
    print(f"\n{'=' * _WIDTH}")
    print(f"{_BOLD}{_CYAN}  ANÁLISE NOTARIAL{_RESET}")
    print(f"{'=' * _WIDTH}")
    if record is not None:
        print(f"  Arquivo:     {record.filename} ({record.media_type})")
        print(f"  Documento:   {_DIM}{record.id}{_RESET}")
    print(f"{'─' * _WIDTH}")

    if workspace.status is not Status.READY or record is None or record.analysis is None:
        print(f"  {_RED}{_BOLD}{workspace.error_message or 'Falha no processamento'}{_RESET}")
        print(f"{'=' * _WIDTH}\n")
        return 1

    analysis = record.analysis
    print(f"  Natureza:    {_BOLD}{analysis.document_type or 'Não classificado'}{_RESET}")
    if analysis.has_high_risk:
        print(f"  {_RED}{_BOLD}RISCO ELEVADO{_RESET}")
    if record.analysis_input_truncated:
        print(f"  {_YELLOW}Texto longo: a análise considerou apenas o início da transcrição.{_RESET}")
    print(f"{'─' * _WIDTH}")
    print(f"  {analysis.summary}")
    print(f"{'─' * _WIDTH}")

    _print_list("PARTES", analysis.parties, "Nenhuma parte identificada automaticamente.")
    _print_list("DATAS", analysis.dates, "Nenhuma data encontrada.")
    _print_list(
        "REQUISITOS AUSENTES",
        analysis.missing_requirements,
        "O documento aparenta cumprir os requisitos formais básicos.",
    )
    _print_risks(record)

    for entry in reversed(record.research):
        _print_research(entry)

    print(f"\n{'=' * _WIDTH}\n")
    return 0


# ─── Main ────────────────────────────────────────────────────────────


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Analyse a scanned notarial document.")
    parser.add_argument("image", type=Path, help="PNG or JPEG scan of the document")
    parser.add_argument(
        "-q",
        "--query",
        action="append",
        default=[],
        help="Research question to ask after the analysis (repeatable)",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Run the pipeline on one image and print the report."""
    args = _parse_args(argv)
    settings = get_settings()
    configure_logging(settings.log_level)

    try:
        pipeline = DocumentPipeline.from_settings(settings)
    except ConfigurationError as e:
        print(f"{_RED}{e}{_RESET}", file=sys.stderr)
        return 2

    media_type = mimetypes.guess_type(args.image.name)[0] or ""
    workspace = Workspace(pipeline)

    print(f"\n  Analisando {args.image.name}...\n")
    try:
        workspace.submit_file(args.image.name, media_type, args.image.read_bytes())
    except (OSError, NotarioError) as e:
        print(f"{_RED}{e}{_RESET}", file=sys.stderr)
        return 2

    queries = args.query if workspace.status is Status.READY else []
    for query in queries:
        if workspace.submit_research_query(query) is None:
            print(f"  {_YELLOW}Pesquisa falhou: {query}{_RESET}", file=sys.stderr)

    return print_report(workspace)


if __name__ == "__main__":
    sys.exit(main())
