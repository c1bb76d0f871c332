"""
Fixed instructions sent to the AI provider, and the analysis JSON schema.

The schema is the contract between the reasoning model and `AnalysisResult`:
keep the two in sync.
"""

from __future__ import annotations


# ─── Transcription ───────────────────────────────────────────────────

TRANSCRIPTION_INSTRUCTION = """\
Act as a professional OCR system for a Brazilian notary office (cartório).
Transcribe ALL of the text in this image exactly as written.

RULES:
1. Do not summarise, translate, correct or reorder anything.
2. Preserve the layout: keep line breaks, and keep tables as tables.
3. Render stamps, seals and illegible signatures as bracketed placeholders,
   e.g. [Assinatura Ilegível], [Selo do Cartório], [Carimbo].
4. Return only the transcription, with no commentary.
"""


# ─── Legal Analysis ──────────────────────────────────────────────────

ANALYSIS_SYSTEM_PROMPT = """\
You are an AI notary (Tabelião) specialised in Brazilian notarial and registry
law. Analyse the text extracted from a scanned document.

Goal: identify the nature of the act, the parties, legal risks, and
compliance with the Civil Code (CC/2002), the Public Registries Law
(Lei 6.015/73) and the rules of the Corregedoria (CNJ).

Return a JSON object with these exact keys:
{
    "rawText": "the text you analysed",
    "summary": "technical-legal summary of the notarial act",
    "documentType": "classification, e.g. Escritura Pública de Compra e Venda, Procuração Ad Judicia, Certidão de Inteiro Teor",
    "parties": ["full qualification of each party (Outorgante, Outorgado, Comprador, Vendedor, Tabelião)"],
    "dates": ["signature, issue or expiry dates found"],
    "missingRequirements": ["formal requirements or accessory documents that appear absent, e.g. Certidão Negativa de Débitos, ITBI, Reconhecimento de Firma, DOI"],
    "riskFactors": [
        {"severity": "LOW | MEDIUM | HIGH", "description": "abusive clause, material error, apparent defect of consent or lack of clarity", "location": "the clause or excerpt concerned"}
    ]
}

Write all free-text values in Brazilian Portuguese. Use empty lists when
nothing applies; never invent parties or dates that are not in the text.
"""

ANALYSIS_USER_TEMPLATE = """\
Text extracted from the document:

\"\"\"
{text}
\"\"\"
"""

_STRING_LIST = {"type": "array", "items": {"type": "string"}}

ANALYSIS_JSON_SCHEMA: dict[str, object] = {
    "type": "object",
    "additionalProperties": False,
    "required": [
        "rawText",
        "summary",
        "documentType",
        "parties",
        "dates",
        "missingRequirements",
        "riskFactors",
    ],
    "properties": {
        "rawText": {"type": "string"},
        "summary": {"type": "string"},
        "documentType": {"type": "string"},
        "parties": _STRING_LIST,
        "dates": _STRING_LIST,
        "missingRequirements": _STRING_LIST,
        "riskFactors": {
            "type": "array",
            "items": {
                "type": "object",
                "additionalProperties": False,
                "required": ["severity", "description", "location"],
                "properties": {
                    "severity": {"type": "string", "enum": ["LOW", "MEDIUM", "HIGH"]},
                    "description": {"type": "string"},
                    "location": {"type": "string"},
                },
            },
        },
    },
}


# ─── Grounded Research ───────────────────────────────────────────────

RESEARCH_PROMPT_TEMPLATE = """\
You are a legal research assistant for a Brazilian notary office.

Context of the analysed document:
\"\"\"
{context}
\"\"\"

User question: "{query}"

Search the web and answer based on Brazilian legislation (Civil Code, Public
Registries Law) and recent case law (STJ/STF). Give a reasoned answer in
Brazilian Portuguese and cite your sources.
"""
