"""Pytest configuration and shared fixtures for xwayback tests

This module provides an in-process fake compositor that speaks just enough of
the Wayland wire protocol to answer the bootstrap client, plus helpers for
fake executables and spawners.
"""

from __future__ import annotations

import io
import itertools
import os
import socket
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import pytest

from xwayback.common.config import ConfigLoader
from xwayback.protocol.wire import DISPLAY_ID, MessageReader, args_decode, message_encode

XDG_MANAGER_NAME = 100


@dataclass
class FakeOutput:
    """Output advertised by the fake compositor"""
    make: str = "Acme"
    model: str = "X1"
    width: int = 1920
    height: int = 1080
    refresh: int = 60000
    scale: int = 1
    physical_width: int = 520
    physical_height: int = 290
    subpixel: int = 2
    transform: int = 0
    x: int = 0
    y: int = 0
    logical_width: Optional[int] = None
    logical_height: Optional[int] = None
    name: str = "HDMI-A-1"
    description: str = "Acme X1 monitor"


@dataclass
class FakeCompositor:
    """
    Serve one Wayland client connection from a background thread.

    Requests are answered in order, so a wl_display.sync callback always
    arrives after every event caused by earlier requests.
    """
    connection: socket.socket
    outputs: list[FakeOutput] = field(default_factory=list)
    xdg_manager: bool = True
    xdg_manager_first: bool = False
    error_on_registry: bool = False
    removed_globals: list[int] = field(default_factory=list)
    requests: list[tuple[int, int, tuple[Any, ...]]] = field(default_factory=list)
    xdg_requests: list[int] = field(default_factory=list)

    def __post_init__(self) -> None:
        self._reader = MessageReader()
        self._interfaces: dict[int, str] = {DISPLAY_ID: "wl_display"}
        self._bound_outputs: dict[int, FakeOutput] = {}
        self._serial = itertools.count(1)
        self._thread = threading.Thread(target=self.serve, daemon=True)

    def start(self) -> "FakeCompositor":
        self._thread.start()
        return self

    def join(self, timeout: float = 5.0) -> None:
        self._thread.join(timeout)

    def globals_get(self) -> list[tuple[int, str, int]]:
        entries = [(i + 1, "wl_output", 4) for i in range(len(self.outputs))]
        entries.append((50, "wl_seat", 7))
        if self.xdg_manager:
            manager = (XDG_MANAGER_NAME, "zxdg_output_manager_v1", 3)
            if self.xdg_manager_first:
                entries.insert(0, manager)
            else:
                entries.append(manager)
        return entries

    def serve(self) -> None:
        try:
            while True:
                data = self.connection.recv(4096)
                if not data:
                    return
                self._reader.bytes_feed(data)
                for message in self._reader.messages_drain():
                    self.request_handle(message.object_id, message.opcode, message.body)
        except OSError:
            return
        finally:
            self.connection.close()

    def send(self, object_id: int, opcode: int, signature: str, *args: Any) -> None:
        self.connection.sendall(message_encode(object_id, opcode, signature, *args))

    def request_handle(self, object_id: int, opcode: int, body: bytes) -> None:
        interface = self._interfaces.get(object_id)
        if interface == "wl_display" and opcode == 1:
            (registry_id,) = args_decode(body, "n")
            self.requests.append((object_id, opcode, (registry_id,)))
            self._interfaces[registry_id] = "wl_registry"
            if self.error_on_registry:
                self.send(DISPLAY_ID, 0, "ous", registry_id, 1, "no registry for you")
                return
            for name, iface, version in self.globals_get():
                self.send(registry_id, 0, "usu", name, iface, version)
            for name in self.removed_globals:
                self.send(registry_id, 1, "u", name)
        elif interface == "wl_display" and opcode == 0:
            (callback_id,) = args_decode(body, "n")
            self.requests.append((object_id, opcode, (callback_id,)))
            self.send(callback_id, 0, "u", next(self._serial))
            self.send(DISPLAY_ID, 1, "u", callback_id)
        elif interface == "wl_registry" and opcode == 0:
            name, iface, version, new_id = args_decode(body, "usun")
            self.requests.append((object_id, opcode, (name, iface, version, new_id)))
            self._interfaces[new_id] = iface
            if iface == "wl_output":
                output = self.outputs[name - 1]
                self._bound_outputs[new_id] = output
                self.outputEvents_send(new_id, output, version)
        elif interface == "zxdg_output_manager_v1" and opcode == 1:
            xdg_id, output_id = args_decode(body, "no")
            self.requests.append((object_id, opcode, (xdg_id, output_id)))
            self.xdg_requests.append(output_id)
            self._interfaces[xdg_id] = "zxdg_output_v1"
            self.xdgEvents_send(xdg_id, self._bound_outputs[output_id])

    def outputEvents_send(self, output_id: int, output: FakeOutput, version: int) -> None:
        self.send(
            output_id, 0, "iiiiissi",
            0, 0, output.physical_width, output.physical_height,
            output.subpixel, output.make, output.model, output.transform,
        )
        self.send(output_id, 1, "uiii", 0x2, 640, 480, 59940)
        self.send(output_id, 1, "uiii", 0x3, output.width, output.height, output.refresh)
        if version >= 2:
            self.send(output_id, 3, "i", output.scale)
            self.send(output_id, 2, "")

    def xdgEvents_send(self, xdg_id: int, output: FakeOutput) -> None:
        width = output.logical_width if output.logical_width is not None else output.width
        height = output.logical_height if output.logical_height is not None else output.height
        self.send(xdg_id, 0, "ii", output.x, output.y)
        self.send(xdg_id, 1, "ii", width, height)
        self.send(xdg_id, 3, "s", output.name)
        self.send(xdg_id, 4, "s", output.description)
        self.send(xdg_id, 2, "")


class FakeProcess:
    """Popen stand-in that exits with a fixed status"""

    _pids = itertools.count(4000)

    def __init__(self, argv: list[str], returncode: int = 0) -> None:
        self.argv = argv
        self.pid = next(self._pids)
        self.returncode = returncode
        self.wait_calls = 0

    def wait(self, timeout: Optional[float] = None) -> int:
        self.wait_calls += 1
        return self.returncode


class FakeSpawner:
    """
    Popen-compatible factory.

    The first spawn is treated as the compositor: a FakeCompositor is started
    on a duplicate of the control descriptor from argv[1].
    """

    def __init__(self, outputs: list[FakeOutput], compositor_status: int = 0, **options: Any) -> None:
        self.outputs = outputs
        self.compositor_status = compositor_status
        self.options = options
        self.calls: list[dict[str, Any]] = []
        self.processes: list[FakeProcess] = []
        self.compositor: Optional[FakeCompositor] = None

    def __call__(self, argv, pass_fds=(), close_fds=True, env=None) -> FakeProcess:
        self.calls.append(
            {"argv": list(argv), "pass_fds": tuple(pass_fds), "close_fds": close_fds, "env": dict(env or {})}
        )
        if len(self.calls) == 1:
            control = socket.socket(fileno=os.dup(int(argv[1])))
            self.compositor = FakeCompositor(control, outputs=self.outputs, **self.options).start()
            process = FakeProcess(list(argv), self.compositor_status)
        else:
            process = FakeProcess(list(argv))
        self.processes.append(process)
        return process


def executable_create(path: Path) -> Path:
    path.write_text("#!/bin/sh\nexit 0\n")
    path.chmod(0o755)
    return path


@pytest.fixture(autouse=True)
def isolate_config(monkeypatch) -> None:
    """Never pick up config files from the host"""
    monkeypatch.setattr(ConfigLoader, "DEFAULT_CONFIG_PATHS", [])


@pytest.fixture
def socket_pair():
    """Connected socket pair closed after the test"""
    client, server = socket.socketpair(socket.AF_UNIX, socket.SOCK_STREAM)
    yield client, server
    client.close()
    server.close()


@pytest.fixture
def executables(tmp_path) -> dict[str, str]:
    """Environment pointing both collaborator paths at dummy executables"""
    compositor = executable_create(tmp_path / "wayback-compositor")
    xwayland = executable_create(tmp_path / "Xwayland")
    return {
        "WAYBACK_COMPOSITOR_PATH": str(compositor),
        "XWAYLAND_PATH": str(xwayland),
        "PATH": os.environ.get("PATH", ""),
    }


@pytest.fixture
def log_stream() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def fake_compositor_class():
    return FakeCompositor


@pytest.fixture
def fake_output_class():
    return FakeOutput


@pytest.fixture
def fake_spawner_class():
    return FakeSpawner
