from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ParserConfig(BaseModel):
    """Heading markers that describe the layout of the source README."""

    model_config = ConfigDict(frozen=True)

    title_prefix: str = "# "
    divider: str = "## Jetpacks"
    # One marker for every article heading; the depth is not hardcoded elsewhere.
    section_prefix: str = "## "
    fence_markers: tuple[str, ...] = ("```",)


class Section(BaseModel):
    """A single article: its heading text and raw Markdown body."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    title: str
    body: str = Field(serialization_alias="bodyMarkdown")


class Document(BaseModel):
    """Parsed README: title, description and articles in source order."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    title: str = Field(serialization_alias="mainTitle")
    description: str = Field(serialization_alias="mainDescription")
    sections: tuple[Section, ...] = Field(default=(), serialization_alias="articles")

    def to_payload(self) -> dict:
        """Return the JSON shape served by ``GET /api/jetpack/articles``."""
        return self.model_dump(mode="json", by_alias=True)
