"""FileSearch module — Implementation.

Walks one or more directory trees and reports files whose base name matches
one of ``names`` and/or whose content matches one of ``contents``.  When both
filters are given a file must satisfy both.

Unreadable files and directories are reported as soft errors in
``Result.errors``; they never fail the run.  A stop request from the host is
honoured between two files.
"""

from __future__ import annotations

import argparse
import os
import re
import time
from pathlib import Path
from typing import IO, Any

from pydantic import ValidationError
from rich.console import Console
from rich.prompt import IntPrompt, Prompt

from modwire.exceptions import InvalidParametersError
from modwire.logging import get_logger
from modwire.modules.base import BaseModule
from modwire.modules.filesearch.models import (
    FileMatch,
    FileSearchParams,
    FileSearchStatistics,
    LineMatch,
)
from modwire.protocol.models import Result
from modwire.protocol.reader import StopWatcher

log = get_logger(__name__)


class FileSearchModule(BaseModule):
    NAME = "filesearch"
    VERSION = "1.0.0"
    PARAMS_MODEL = FileSearchParams

    parameters: FileSearchParams | None

    # ------------------------------------------------------------------
    # Mandatory capabilities
    # ------------------------------------------------------------------

    def validate_parameters(self) -> None:
        p = self.parameters
        if p is None:
            raise InvalidParametersError(self.NAME, "no parameters loaded")
        if not p.paths:
            raise InvalidParametersError(self.NAME, "at least one path is required")
        if not p.names and not p.contents:
            raise InvalidParametersError(
                self.NAME, "at least one name or content pattern is required"
            )
        for pattern in [*p.names, *p.contents]:
            try:
                re.compile(pattern)
            except re.error as exc:
                raise InvalidParametersError(
                    self.NAME, f"invalid regular expression {pattern!r}: {exc}"
                ) from exc

    def run(self, stream: IO[Any]) -> str:
        params = self.load_parameters(stream)
        watcher = self.watch_for_stop(stream)

        search = _Search(params, watcher)
        started = time.monotonic()
        search.execute()
        search.stats.duration_seconds = round(time.monotonic() - started, 6)
        search.stats.stopped = watcher.stopped

        log.info(
            "filesearch_completed",
            files_scanned=search.stats.files_scanned,
            files_matched=search.stats.files_matched,
            stopped=search.stats.stopped,
        )
        result = Result(
            found_anything=bool(search.matches),
            success=True,
            elements=search.matches,
            statistics=search.stats,
            errors=search.errors,
        )
        return self.build_output(result)

    # ------------------------------------------------------------------
    # Optional capabilities
    # ------------------------------------------------------------------

    def print_results(self, result: Result, verbose: bool) -> list[str]:
        matches = result.get_elements(list[FileMatch]) if result.elements is not None else []
        lines: list[str] = []
        for match in matches:
            if not match.lines:
                lines.append(match.path)
            for line in match.lines:
                lines.append(f"{match.path}:{line.line_number}: {line.text}")

        if verbose:
            if result.statistics is not None:
                stats = result.get_statistics(FileSearchStatistics)
                lines.append(
                    f"statistics: {stats.files_scanned} files and "
                    f"{stats.directories_scanned} directories scanned, "
                    f"{stats.files_matched} matched, {stats.files_skipped} skipped "
                    f"in {stats.duration_seconds:.3f}s"
                    + (" (stopped)" if stats.stopped else "")
                )
            lines.extend(f"error: {err}" for err in result.errors)
        return lines

    def parse_parameters(self, args: list[str]) -> dict[str, Any]:
        parser = _ArgumentParser(prog=self.NAME, add_help=False, exit_on_error=False)
        parser.add_argument("paths", nargs="+")
        parser.add_argument("--name", dest="names", action="append", default=[])
        parser.add_argument("--content", dest="contents", action="append", default=[])
        parser.add_argument("--max-depth", type=int)
        parser.add_argument("--max-file-size", type=int)
        parser.add_argument("--max-matches", type=int)
        try:
            namespace = parser.parse_args(args)
        except argparse.ArgumentError as exc:
            raise InvalidParametersError(self.NAME, str(exc)) from exc

        values = {k: v for k, v in vars(namespace).items() if v is not None}
        return self._checked_payload(values)

    def create_parameters(self) -> dict[str, Any]:
        console = Console(stderr=True)
        paths = _split(Prompt.ask("Paths to search (comma separated)", default=".", console=console))
        names = _split(Prompt.ask("File name patterns (regex, comma separated)", default="", console=console))
        contents = _split(Prompt.ask("Content patterns (regex, comma separated)", default="", console=console))
        max_depth = IntPrompt.ask(
            "Maximum depth (empty for unlimited)", default=None, show_default=False, console=console
        )
        values: dict[str, Any] = {"paths": paths, "names": names, "contents": contents}
        if max_depth is not None:
            values["max_depth"] = max_depth
        return self._checked_payload(values)

    def _checked_payload(self, values: dict[str, Any]) -> dict[str, Any]:
        try:
            self.parameters = FileSearchParams.model_validate(values)
        except ValidationError as exc:
            messages = "; ".join(e.get("msg", "") for e in exc.errors(include_url=False))
            raise InvalidParametersError(self.NAME, messages) from exc
        self.validate_parameters()
        return self.parameters.model_dump(mode="json", exclude_none=True)


class _ArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that raises instead of exiting the process."""

    def error(self, message: str) -> Any:
        raise InvalidParametersError(self.prog, message)


def _split(raw: str) -> list[str]:
    return [part.strip() for part in raw.split(",") if part.strip()]


class _Search:
    """State of one filesearch run."""

    def __init__(self, params: FileSearchParams, watcher: StopWatcher) -> None:
        self.params = params
        self.watcher = watcher
        self.name_patterns = [re.compile(p) for p in params.names]
        self.content_patterns = [re.compile(p) for p in params.contents]
        self.matches: list[FileMatch] = []
        self.errors: list[str] = []
        self.stats = FileSearchStatistics()

    def execute(self) -> None:
        for root in self.params.paths:
            if not self._walk(Path(root)):
                return

    def _done(self) -> bool:
        if self.watcher.stopped:
            return True
        limit = self.params.max_matches
        return limit is not None and len(self.matches) >= limit

    def _walk(self, root: Path) -> bool:
        """Search under *root*.  Returns False once the run must end."""
        if root.is_file():
            self._check_file(root)
            return not self._done()

        def on_error(exc: OSError) -> None:
            self.errors.append(f"{exc.filename}: {exc.strerror}")

        root_depth = len(root.parts)
        for dirpath, dirnames, filenames in os.walk(root, onerror=on_error):
            self.stats.directories_scanned += 1
            depth = len(Path(dirpath).parts) - root_depth
            if self.params.max_depth is not None and depth >= self.params.max_depth:
                dirnames.clear()
            for filename in sorted(filenames):
                if self._done():
                    return False
                self._check_file(Path(dirpath) / filename)
            dirnames.sort()
        return not self._done()

    def _check_file(self, path: Path) -> None:
        self.stats.files_scanned += 1
        name_matched = False
        if self.name_patterns:
            name_matched = any(p.search(path.name) for p in self.name_patterns)
            if not name_matched:
                return

        try:
            size = path.stat().st_size
        except OSError as exc:
            self.errors.append(f"{path}: {exc.strerror}")
            return

        lines: list[LineMatch] = []
        if self.content_patterns:
            if size > self.params.max_file_size:
                self.stats.files_skipped += 1
                return
            try:
                lines = self._match_content(path)
            except OSError as exc:
                self.errors.append(f"{path}: {exc.strerror}")
                return
            if not lines:
                return

        self.matches.append(FileMatch(path=str(path), size=size, name_matched=name_matched, lines=lines))
        self.stats.files_matched += 1

    def _match_content(self, path: Path) -> list[LineMatch]:
        found: list[LineMatch] = []
        with path.open(encoding="utf-8", errors="replace") as f:
            for number, line in enumerate(f, start=1):
                text = line.rstrip("\r\n")
                if any(p.search(text) for p in self.content_patterns):
                    found.append(LineMatch(line_number=number, text=text))
        return found
