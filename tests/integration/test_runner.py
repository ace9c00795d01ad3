"""Integration tests — hosting modules over the control protocol.

These drive real module instances through OS pipes on worker threads, the
same way a parent process drives a child worker over stdio.
"""

from __future__ import annotations

import io
import logging
import sys
from pathlib import Path
from typing import IO, Any

import pytest
import structlog
from pydantic import BaseModel

from modwire.exceptions import InvalidParametersError, ModuleNotFoundError, ResultParseError
from modwire.logging import configure_logging
from modwire.modules import BaseModule, ModuleRegistry, override_registry
from modwire.modules.filesearch.models import FileMatch
from modwire.protocol.models import Result
from modwire.runner import ModuleSession, run_module, serve
from tests.helpers import stream_of


class CountdownParams(BaseModel):
    ticks: int
    interval: float


class CountdownModule(BaseModule):
    """Ticks until done or until the host asks it to stop."""

    NAME = "countdown"
    PARAMS_MODEL = CountdownParams

    def validate_parameters(self) -> None:
        pass

    def run(self, stream: IO[Any]) -> str:
        params = self.load_parameters(stream)
        watcher = self.watch_for_stop(stream)
        done = 0
        while done < params.ticks and not watcher.wait(params.interval):
            done += 1
        return self.build_output(
            Result(
                found_anything=done > 0,
                success=True,
                elements=done,
                statistics={"stopped": watcher.stopped},
            )
        )


class ExplodingModule(BaseModule):
    NAME = "exploding"
    PARAMS_MODEL = CountdownParams

    def validate_parameters(self) -> None:
        pass

    def run(self, stream: IO[Any]) -> str:
        self.load_parameters(stream)
        raise RuntimeError("boom")


class SilentModule(BaseModule):
    """Consumes its parameters but never builds an output line."""

    NAME = "silent"
    PARAMS_MODEL = CountdownParams

    def validate_parameters(self) -> None:
        pass

    def run(self, stream: IO[Any]) -> Any:
        self.load_parameters(stream)
        return None


@pytest.fixture
def registry(module_registry: ModuleRegistry) -> ModuleRegistry:
    module_registry.register(CountdownModule.NAME, CountdownModule)
    module_registry.register(ExplodingModule.NAME, ExplodingModule)
    module_registry.register(SilentModule.NAME, SilentModule)
    return module_registry


@pytest.fixture
def unconfigured_logging() -> Any:
    structlog.reset_defaults()
    yield
    configure_logging(level="debug")


@pytest.mark.integration
class TestServe:
    def test_writes_one_result_line(self, registry: ModuleRegistry) -> None:
        stdout = io.BytesIO()
        output = serve("hostinfo", stream_of({"class": "parameters", "parameters": {}}), stdout, registry)
        assert stdout.getvalue() == output.encode("utf-8") + b"\n"
        assert Result.from_json(output).success is True

    def test_unknown_module(self, registry: ModuleRegistry) -> None:
        with pytest.raises(ModuleNotFoundError):
            serve("nope", io.BytesIO(), io.BytesIO(), registry)

    def test_missing_output_is_a_result_error(self, registry: ModuleRegistry) -> None:
        stdout = io.BytesIO()
        params = {"class": "parameters", "parameters": {"ticks": 1, "interval": 0}}
        with pytest.raises(ResultParseError, match="NoneType"):
            serve("silent", stream_of(params), stdout, registry)
        assert stdout.getvalue() == b""

    def test_unconfigured_logging_goes_to_stderr(
        self, registry: ModuleRegistry, unconfigured_logging: None
    ) -> None:
        stdout = io.BytesIO()
        serve("hostinfo", stream_of({"class": "parameters", "parameters": {}}), stdout, registry)
        assert structlog.is_configured()
        handlers = logging.getLogger().handlers
        assert [h.stream for h in handlers] == [sys.stderr]  # type: ignore[attr-defined]
        assert stdout.getvalue().count(b"\n") == 1

    def test_existing_logging_config_is_kept(self, registry: ModuleRegistry) -> None:
        before = list(logging.getLogger().handlers)
        serve("hostinfo", stream_of({"class": "parameters", "parameters": {}}), io.BytesIO(), registry)
        assert logging.getLogger().handlers == before


@pytest.mark.integration
class TestRunModule:
    def test_filesearch_end_to_end(self, registry: ModuleRegistry, search_tree: Path) -> None:
        result = run_module(
            "filesearch", {"paths": [str(search_tree)], "contents": ["ERROR"]}, registry, timeout=30
        )
        assert result.success is True
        paths = [Path(m.path).name for m in result.get_elements(list[FileMatch])]
        assert paths == ["app.log", "old.log"]

    def test_runs_to_completion_without_stop(self, registry: ModuleRegistry) -> None:
        result = run_module("countdown", {"ticks": 3, "interval": 0.001}, registry, timeout=30)
        assert result.get_elements(int) == 3
        assert result.get_statistics(dict[str, bool]) == {"stopped": False}

    def test_module_error_is_reraised(self, registry: ModuleRegistry) -> None:
        with pytest.raises(InvalidParametersError):
            run_module("filesearch", {"paths": []}, registry, timeout=30)

    def test_unexpected_exception_is_reraised(self, registry: ModuleRegistry) -> None:
        with pytest.raises(RuntimeError, match="boom"):
            run_module("exploding", {"ticks": 1, "interval": 0}, registry, timeout=30)

    def test_missing_output_is_a_result_error(self, registry: ModuleRegistry) -> None:
        with pytest.raises(ResultParseError, match="silent"):
            run_module("silent", {"ticks": 1, "interval": 0}, registry, timeout=30)

    def test_uses_process_registry_by_default(self, registry: ModuleRegistry) -> None:
        override_registry(registry)
        assert run_module("hostinfo", {}, timeout=30).found_anything is True


@pytest.mark.integration
class TestModuleSession:
    def test_stop_ends_a_long_run(self, registry: ModuleRegistry) -> None:
        session = ModuleSession(registry.create("countdown"))
        session.start({"ticks": 100_000, "interval": 0.01})
        assert session.running
        session.stop()
        result = session.wait(timeout=30)

        assert result.get_statistics(dict[str, bool]) == {"stopped": True}
        assert result.get_elements(int) < 100_000
        assert not session.running

    def test_wait_timeout(self, registry: ModuleRegistry) -> None:
        session = ModuleSession(registry.create("countdown"))
        session.start({"ticks": 100_000, "interval": 0.01})
        with pytest.raises(TimeoutError):
            session.wait(timeout=0.05)
        session.stop()
        assert session.wait(timeout=30).get_statistics(dict[str, bool])["stopped"] is True

    def test_stop_after_input_closed_is_a_noop(self, registry: ModuleRegistry) -> None:
        session = ModuleSession(registry.create("countdown"))
        session.start({"ticks": 1, "interval": 0.001})
        session.close_input()
        session.stop()
        assert session.wait(timeout=30).get_elements(int) == 1

    def test_session_name_defaults_to_module_name(self, registry: ModuleRegistry) -> None:
        session = ModuleSession(registry.create("hostinfo"))
        assert session.name == "hostinfo"
        session.start({})
        session.close_input()
        assert session.wait(timeout=30).success is True
