"""Anonymous socket-pair channels between the launcher and its children"""

from __future__ import annotations

import socket
from dataclasses import dataclass
from typing import Optional

from xwayback.common.errors import ResourceError

__all__ = ["SocketPairChannel", "SessionChannels", "channel_create", "channels_create"]


@dataclass
class SocketPairChannel:
    """
    Two connected AF_UNIX stream sockets.

    `compositor_end` is always handed to the compositor. `peer_end` is kept by
    the launcher (control channel) or handed to Xwayland.
    """

    label: str
    compositor_end: Optional[socket.socket]
    peer_end: Optional[socket.socket]

    @property
    def compositor_fd(self) -> int:
        if self.compositor_end is None:
            raise ValueError(f"{self.label}: compositor end already closed")
        return self.compositor_end.fileno()

    @property
    def peer_fd(self) -> int:
        if self.peer_end is None:
            raise ValueError(f"{self.label}: peer end already closed")
        return self.peer_end.fileno()

    def compositorEnd_close(self) -> None:
        if self.compositor_end is not None:
            self.compositor_end.close()
            self.compositor_end = None

    def peerEnd_close(self) -> None:
        if self.peer_end is not None:
            self.peer_end.close()
            self.peer_end = None

    def close(self) -> None:
        self.compositorEnd_close()
        self.peerEnd_close()


@dataclass
class SessionChannels:
    """All channels of one session"""

    control: SocketPairChannel
    display: SocketPairChannel
    window_manager: Optional[SocketPairChannel] = None

    def all_get(self) -> list[SocketPairChannel]:
        channels = [self.control, self.display]
        if self.window_manager is not None:
            channels.append(self.window_manager)
        return channels

    def compositorFds_get(self) -> list[int]:
        """Descriptors handed to the compositor, in argv order"""
        return [channel.compositor_fd for channel in self.all_get()]

    def close(self) -> None:
        for channel in self.all_get():
            channel.close()


def channel_create(label: str) -> SocketPairChannel:
    """
    Create one socket-pair channel.

    Raises:
        ResourceError: If socketpair(2) fails
    """
    try:
        compositor_end, peer_end = socket.socketpair(socket.AF_UNIX, socket.SOCK_STREAM)
    except OSError as e:
        raise ResourceError.fromOSError_create(f"Unable to create {label} socket", e) from e
    return SocketPairChannel(label=label, compositor_end=compositor_end, peer_end=peer_end)


def channels_create(window_manager: bool = True) -> SessionChannels:
    """
    Create the control, display and (optionally) window-manager channels.

    Channels created before a failure are closed before the error propagates.

    Args:
        window_manager: Whether to create the Xwayland `-wm` channel

    Returns:
        SessionChannels

    Raises:
        ResourceError: If any socket pair cannot be created
    """
    labels = ["Xwayback", "Xwayland"]
    if window_manager:
        labels.append("Xwayback-x11")

    created: list[SocketPairChannel] = []
    try:
        for label in labels:
            created.append(channel_create(label))
    except ResourceError:
        for channel in created:
            channel.close()
        raise

    return SessionChannels(
        control=created[0],
        display=created[1],
        window_manager=created[2] if window_manager else None,
    )
