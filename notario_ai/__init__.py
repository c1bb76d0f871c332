"""
NotárioAI — AI-assisted reading of scanned notarial documents.

Architecture: Transcription (vision model) → Legal analysis (reasoning model)
→ Optional grounded research (search-enabled model), driven by a single
in-memory workspace.
Philosophy:  The model reads and reasons. Code owns the state.
"""

__version__ = "1.0.0"
