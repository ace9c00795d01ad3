"""Typed parameter, element and statistics models for the ``filesearch`` module."""

from __future__ import annotations

from typing import Annotated

from pydantic import BaseModel, Field

# Files larger than this are not scanned for content by default: 10 MB
DEFAULT_MAX_FILE_SIZE = 10 * 1024 * 1024


class FileSearchParams(BaseModel):
    paths: list[str] = Field(default_factory=list, description="Roots to search.")
    names: list[str] = Field(
        default_factory=list,
        description="Regexes matched against file base names. Any one must match.",
    )
    contents: list[str] = Field(
        default_factory=list,
        description="Regexes matched against each line of a file. Any one must match.",
    )
    max_depth: Annotated[int, Field(ge=0)] | None = Field(
        default=None, description="Directory levels below each root to descend (0 = root only)."
    )
    max_file_size: Annotated[int, Field(ge=1)] = Field(
        default=DEFAULT_MAX_FILE_SIZE,
        description="Files larger than this many bytes are skipped for content matching.",
    )
    max_matches: Annotated[int, Field(ge=1)] | None = Field(
        default=None, description="Stop after this many matching files."
    )


class LineMatch(BaseModel):
    line_number: int
    text: str


class FileMatch(BaseModel):
    path: str
    size: int
    name_matched: bool = False
    lines: list[LineMatch] = Field(default_factory=list)


class FileSearchStatistics(BaseModel):
    files_scanned: int = 0
    directories_scanned: int = 0
    files_matched: int = 0
    files_skipped: int = 0
    duration_seconds: float = 0.0
    stopped: bool = False
