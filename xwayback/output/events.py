"""
Output events and the descriptor reducer.

Inbound `wl_output` and `zxdg_output_v1` events are decoded into
`OutputEvent` values and folded into a `DisplayDescriptor` by the pure
`outputEvent_apply` reducer, so the bootstrap state machine can be driven by
synthetic events without a compositor.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

from xwayback.common.types import DisplayDescriptor, DisplayState, Subpixel, Transform

__all__ = [
    "OutputEventType",
    "OutputEvent",
    "MODE_CURRENT",
    "outputEvent_apply",
    "displayReady_mark",
]

# wl_output.mode flag for the mode currently in use
MODE_CURRENT = 0x1


class OutputEventType(Enum):
    """Output events the bootstrap client consumes"""

    GEOMETRY = "geometry"
    MODE = "mode"
    SCALE = "scale"
    DONE = "done"
    LOGICAL_POSITION = "logical_position"
    LOGICAL_SIZE = "logical_size"
    NAME = "name"
    DESCRIPTION = "description"
    EXTENDED_DONE = "extended_done"


@dataclass(frozen=True)
class OutputEvent:
    """Single decoded output event"""

    event_type: OutputEventType
    payload: dict[str, Any] = field(default_factory=dict)

    def isExtended(self) -> bool:
        """Check if this event comes from the xdg-output extension"""
        return self.event_type in (
            OutputEventType.LOGICAL_POSITION,
            OutputEventType.LOGICAL_SIZE,
            OutputEventType.NAME,
            OutputEventType.DESCRIPTION,
            OutputEventType.EXTENDED_DONE,
        )


def subpixel_coerce(value: int) -> Subpixel:
    try:
        return Subpixel(value)
    except ValueError:
        return Subpixel.UNKNOWN


def transform_coerce(value: int) -> Transform:
    try:
        return Transform(value)
    except ValueError:
        return Transform.NORMAL


def outputEvent_apply(descriptor: DisplayDescriptor, event: OutputEvent) -> DisplayDescriptor:
    """
    Fold one output event into a descriptor.

    Args:
        descriptor: Current descriptor value.
        event: Decoded event.

    Returns:
        Updated descriptor (the input is never mutated).
    """
    payload = event.payload
    kind = event.event_type

    if kind is OutputEventType.GEOMETRY:
        return replace(
            descriptor,
            physical_width=int(payload["physical_width"]),
            physical_height=int(payload["physical_height"]),
            subpixel=subpixel_coerce(int(payload["subpixel"])),
            make=payload.get("make") or "",
            model=payload.get("model") or "",
            transform=transform_coerce(int(payload["transform"])),
        )
    if kind is OutputEventType.MODE:
        # Only the current mode describes what the output is showing
        if not int(payload.get("flags", MODE_CURRENT)) & MODE_CURRENT:
            return descriptor
        return replace(
            descriptor,
            width=int(payload["width"]),
            height=int(payload["height"]),
            refresh=int(payload["refresh"]) / 1000,
        )
    if kind is OutputEventType.SCALE:
        return replace(descriptor, scale=int(payload["factor"]))
    if kind is OutputEventType.DONE:
        if descriptor.state is DisplayState.DISCOVERED:
            return replace(descriptor, state=DisplayState.GEOMETRY_KNOWN)
        return descriptor
    if kind is OutputEventType.LOGICAL_POSITION:
        return replace(descriptor, x=int(payload["x"]), y=int(payload["y"]))
    if kind is OutputEventType.LOGICAL_SIZE:
        return replace(descriptor, width=int(payload["width"]), height=int(payload["height"]))
    if kind is OutputEventType.NAME:
        return replace(descriptor, name=str(payload["name"]))
    if kind is OutputEventType.DESCRIPTION:
        return replace(descriptor, description=str(payload["description"]))
    if kind is OutputEventType.EXTENDED_DONE:
        if descriptor.state in (DisplayState.DISCOVERED, DisplayState.GEOMETRY_KNOWN):
            return replace(descriptor, state=DisplayState.EXTENDED_KNOWN)
        return descriptor

    raise ValueError(f"Unhandled output event: {kind}")


def displayReady_mark(descriptor: DisplayDescriptor) -> DisplayDescriptor:
    """Mark a descriptor as having crossed both barriers"""
    return replace(descriptor, state=DisplayState.READY)
