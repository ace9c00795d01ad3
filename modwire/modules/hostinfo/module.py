"""HostInfo module — Implementation.

Implements only the mandatory capabilities: no printer, no parameter
creator, no parameter parser.
"""

from __future__ import annotations

import os
import platform
import socket
import time
from typing import IO, Any

from pydantic import BaseModel, ConfigDict

from modwire.modules.base import BaseModule
from modwire.protocol.models import Result


class HostInfoParams(BaseModel):
    model_config = ConfigDict(extra="forbid")

    include_network: bool = False


class HostInfo(BaseModel):
    hostname: str
    system: str
    release: str
    machine: str
    python_version: str
    cpu_count: int | None
    pid: int
    fqdn: str | None = None


class HostInfoStatistics(BaseModel):
    collection_seconds: float


class HostInfoModule(BaseModule):
    NAME = "hostinfo"
    VERSION = "1.0.0"
    PARAMS_MODEL = HostInfoParams

    def validate_parameters(self) -> None:
        # Every shape accepted by HostInfoParams is usable.
        return None

    def run(self, stream: IO[Any]) -> str:
        params = self.load_parameters(stream)
        started = time.monotonic()
        result = Result()

        info = HostInfo(
            hostname=platform.node(),
            system=platform.system(),
            release=platform.release(),
            machine=platform.machine(),
            python_version=platform.python_version(),
            cpu_count=os.cpu_count(),
            pid=os.getpid(),
        )
        if params.include_network:
            try:
                info.fqdn = socket.getfqdn()
            except OSError as exc:
                result.add_error(f"fqdn lookup failed: {exc}")

        result.found_anything = True
        result.success = True
        result.elements = info
        result.statistics = HostInfoStatistics(
            collection_seconds=round(time.monotonic() - started, 6)
        )
        return self.build_output(result)
