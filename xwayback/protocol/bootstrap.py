"""
Wayland bootstrap client.

The launcher connects to the compositor over its retained control socket and
acts as a minimal Wayland client, just long enough to learn every output's
geometry. Xwayland needs that geometry on its command line, so discovery must
finish before it can be spawned.

Sequence:
    1. wl_display.get_registry
    2. barrier 1 (wl_display.sync): all globals announced; every wl_output is
       bound, and get_xdg_output is requested for each output once the
       zxdg_output_manager_v1 global is known
    3. barrier 2: every output and xdg-output event has been delivered
"""

from __future__ import annotations

import logging
import socket
from dataclasses import dataclass
from typing import Optional

from xwayback.common.errors import ProtocolError
from xwayback.common.types import DisplayDescriptor
from xwayback.output.directory import OutputDirectory
from xwayback.output.events import (
    OutputEvent,
    OutputEventType,
    displayReady_mark,
    outputEvent_apply,
)
from xwayback.protocol.wire import DISPLAY_ID, MessageReader, WireMessage, args_decode, message_encode

logger = logging.getLogger(__name__)

WL_OUTPUT = "wl_output"
XDG_OUTPUT_MANAGER = "zxdg_output_manager_v1"
WL_OUTPUT_VERSION = 3
XDG_OUTPUT_MANAGER_VERSION = 2

# wl_display
DISPLAY_SYNC = 0
DISPLAY_GET_REGISTRY = 1
DISPLAY_EVENT_ERROR = 0
DISPLAY_EVENT_DELETE_ID = 1
# wl_registry
REGISTRY_BIND = 0
REGISTRY_EVENT_GLOBAL = 0
REGISTRY_EVENT_GLOBAL_REMOVE = 1
# wl_callback
CALLBACK_EVENT_DONE = 0
# zxdg_output_manager_v1
XDG_MANAGER_GET_XDG_OUTPUT = 1

# opcode -> (event type, signature, payload field names)
OUTPUT_EVENTS: dict[int, tuple[OutputEventType, str, tuple[str, ...]]] = {
    0: (
        OutputEventType.GEOMETRY,
        "iiiiissi",
        ("x", "y", "physical_width", "physical_height", "subpixel", "make", "model", "transform"),
    ),
    1: (OutputEventType.MODE, "uiii", ("flags", "width", "height", "refresh")),
    2: (OutputEventType.DONE, "", ()),
    3: (OutputEventType.SCALE, "i", ("factor",)),
}
XDG_OUTPUT_EVENTS: dict[int, tuple[OutputEventType, str, tuple[str, ...]]] = {
    0: (OutputEventType.LOGICAL_POSITION, "ii", ("x", "y")),
    1: (OutputEventType.LOGICAL_SIZE, "ii", ("width", "height")),
    2: (OutputEventType.EXTENDED_DONE, "", ()),
    3: (OutputEventType.NAME, "s", ("name",)),
    4: (OutputEventType.DESCRIPTION, "s", ("description",)),
}


@dataclass
class BoundObject:
    """Client-side proxy bookkeeping for one object id"""

    interface: str
    registry_name: Optional[int] = None


class BootstrapClient:
    """One-shot Wayland client that fills an OutputDirectory"""

    def __init__(
        self,
        connection: socket.socket,
        directory: OutputDirectory,
        log: Optional[logging.Logger] = None,
    ) -> None:
        """
        Initialize client state.

        Args:
            connection: Connected stream socket to the compositor
            directory: Directory receiving discovered outputs
            log: Launcher logger
        """
        self._connection: socket.socket = connection
        self._directory: OutputDirectory = directory
        self._log: logging.Logger = log or logger
        self._reader = MessageReader()
        self._objects: dict[int, BoundObject] = {}
        self._next_id: int = DISPLAY_ID + 1
        self._registry_id: Optional[int] = None
        self._xdg_manager_id: Optional[int] = None
        self._xdg_outputs: dict[int, int] = {}  # registry name -> xdg output id
        self._done_callbacks: set[int] = set()

    @property
    def extendedInfo_available(self) -> bool:
        return self._xdg_manager_id is not None

    def outputs_discover(self) -> OutputDirectory:
        """
        Run the registry handshake and both barriers.

        Returns:
            The populated directory, with every output marked READY

        Raises:
            ProtocolError: On connection failure, compositor error, or when no
                output was advertised
        """
        self._registry_id = self.objectId_allocate("wl_registry")
        self.request_send(DISPLAY_ID, DISPLAY_GET_REGISTRY, "n", self._registry_id)

        self.roundtrip_run()
        self._log.debug(
            "Registry scan complete: %d output(s), xdg-output %s",
            len(self._directory),
            "available" if self.extendedInfo_available else "not advertised",
        )
        # xdg-output attributes only arrive after a second roundtrip
        self.roundtrip_run()

        if len(self._directory) == 0:
            raise ProtocolError("Unable to get outputs")

        for descriptor in self._directory:
            ready = displayReady_mark(descriptor)
            self._directory.display_update(ready)
            self._log.debug(
                "Output %s (%s %s): %dx%d+%d+%d scale %d @ %.3f Hz",
                ready.name or ready.registry_name,
                ready.make,
                ready.model,
                ready.width,
                ready.height,
                ready.x,
                ready.y,
                ready.scale,
                ready.refresh,
            )
        return self._directory

    def objectId_allocate(self, interface: str, registry_name: Optional[int] = None) -> int:
        object_id = self._next_id
        self._next_id += 1
        self._objects[object_id] = BoundObject(interface=interface, registry_name=registry_name)
        return object_id

    def request_send(self, object_id: int, opcode: int, signature: str, *args) -> None:
        """
        Encode and send one request.

        Raises:
            ProtocolError: If the connection is unusable
        """
        data = message_encode(object_id, opcode, signature, *args)
        try:
            self._connection.sendall(data)
        except OSError as e:
            raise ProtocolError(f"Unable to connect to wayback-compositor: {e}") from e

    def roundtrip_run(self) -> None:
        """
        Send wl_display.sync and dispatch events until its callback fires.

        Raises:
            ProtocolError: On EOF, socket error, or a compositor error event
        """
        callback_id = self.objectId_allocate("wl_callback")
        self.request_send(DISPLAY_ID, DISPLAY_SYNC, "n", callback_id)
        while callback_id not in self._done_callbacks:
            for message in self.messages_read():
                self.event_dispatch(message)
        self._done_callbacks.discard(callback_id)

    def messages_read(self) -> list[WireMessage]:
        try:
            data = self._connection.recv(4096)
        except OSError as e:
            raise ProtocolError(f"Lost connection to wayback-compositor: {e}") from e
        if not data:
            raise ProtocolError("wayback-compositor closed the connection")
        self._reader.bytes_feed(data)
        try:
            return self._reader.messages_drain()
        except ValueError as e:
            raise ProtocolError(f"Malformed message from wayback-compositor: {e}") from e

    def event_dispatch(self, message: WireMessage) -> None:
        """Route one event to its handler by target object"""
        if message.object_id == DISPLAY_ID:
            self.displayEvent_handle(message)
            return

        bound = self._objects.get(message.object_id)
        if bound is None:
            # Events for objects already destroyed are dropped
            return
        if bound.interface == "wl_registry":
            self.registryEvent_handle(message)
        elif bound.interface == "wl_callback":
            if message.opcode == CALLBACK_EVENT_DONE:
                self._done_callbacks.add(message.object_id)
        elif bound.interface == WL_OUTPUT:
            self.outputEvent_handle(bound, message, OUTPUT_EVENTS)
        elif bound.interface == "zxdg_output_v1":
            self.outputEvent_handle(bound, message, XDG_OUTPUT_EVENTS)

    def displayEvent_handle(self, message: WireMessage) -> None:
        if message.opcode == DISPLAY_EVENT_ERROR:
            object_id, code, text = self.args_get(message, "ous")
            raise ProtocolError(
                f"wayback-compositor error on object {object_id} (code {code}): {text}"
            )
        if message.opcode == DISPLAY_EVENT_DELETE_ID:
            (object_id,) = self.args_get(message, "u")
            self._objects.pop(object_id, None)

    def registryEvent_handle(self, message: WireMessage) -> None:
        if message.opcode == REGISTRY_EVENT_GLOBAL:
            name, interface, version = self.args_get(message, "usu")
            self.global_handle(name, interface, version)
        elif message.opcode == REGISTRY_EVENT_GLOBAL_REMOVE:
            (name,) = self.args_get(message, "u")
            if name in self._directory:
                self._log.debug("Output %d removed before startup completed", name)
                self._directory.display_remove(name)
                self._xdg_outputs.pop(name, None)

    def global_handle(self, name: int, interface: str, version: int) -> None:
        """
        Bind the globals the bootstrap needs.

        Args:
            name: Registry name of the global
            interface: Interface name
            version: Highest version the compositor supports
        """
        if interface == WL_OUTPUT:
            output_id = self.objectId_allocate(WL_OUTPUT, registry_name=name)
            self.global_bind(name, interface, min(version, WL_OUTPUT_VERSION), output_id)
            self._directory.display_register(DisplayDescriptor(registry_name=name))
            if self.extendedInfo_available:
                self.xdgOutput_request(name, output_id)
        elif interface == XDG_OUTPUT_MANAGER:
            self._xdg_manager_id = self.objectId_allocate(XDG_OUTPUT_MANAGER)
            self.global_bind(
                name, interface, min(version, XDG_OUTPUT_MANAGER_VERSION), self._xdg_manager_id
            )
            # Outputs announced before the manager still need their xdg objects
            for object_id, bound in list(self._objects.items()):
                if bound.interface == WL_OUTPUT and bound.registry_name in self._directory:
                    self.xdgOutput_request(bound.registry_name, object_id)

    def global_bind(self, name: int, interface: str, version: int, new_id: int) -> None:
        self.request_send(self._registry_id, REGISTRY_BIND, "usun", name, interface, version, new_id)

    def xdgOutput_request(self, registry_name: int, output_id: int) -> None:
        if registry_name in self._xdg_outputs or self._xdg_manager_id is None:
            return
        xdg_id = self.objectId_allocate("zxdg_output_v1", registry_name=registry_name)
        self._xdg_outputs[registry_name] = xdg_id
        self.request_send(self._xdg_manager_id, XDG_MANAGER_GET_XDG_OUTPUT, "no", xdg_id, output_id)

    def outputEvent_handle(
        self,
        bound: BoundObject,
        message: WireMessage,
        table: dict[int, tuple[OutputEventType, str, tuple[str, ...]]],
    ) -> None:
        entry = table.get(message.opcode)
        if entry is None or bound.registry_name not in self._directory:
            return
        event_type, signature, fields = entry
        values = self.args_get(message, signature)
        event = OutputEvent(event_type=event_type, payload=dict(zip(fields, values)))
        current = self._directory.display_get(bound.registry_name)
        self._directory.display_update(outputEvent_apply(current, event))

    def args_get(self, message: WireMessage, signature: str) -> tuple:
        try:
            return args_decode(message.body, signature)
        except ValueError as e:
            raise ProtocolError(
                f"Malformed event {message.opcode} on object {message.object_id}: {e}"
            ) from e
