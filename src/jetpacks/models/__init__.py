from __future__ import annotations

from jetpacks.models.document import Document, ParserConfig, Section

__all__ = [
    "Document",
    "ParserConfig",
    "Section",
]
