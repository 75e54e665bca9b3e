"""
Session orchestration and supervision.

This module owns the startup choreography: resolve both executables, create
the socket-pair channels, spawn the compositor, learn output geometry over
the control channel, spawn Xwayland sized to the selected output, then wait
for the compositor to exit.
"""

from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass
from typing import Callable, Mapping, Optional, Sequence

from xwayback.args.translator import xwaylandArgv_build
from xwayback.common.config import Config
from xwayback.common.errors import ExecutableError, ResourceError
from xwayback.common.types import DisplayDescriptor
from xwayback.launcher.channels import SessionChannels, channels_create
from xwayback.output.directory import OutputDirectory
from xwayback.protocol.bootstrap import BootstrapClient

logger = logging.getLogger(__name__)

__all__ = [
    "SESSION_VARIABLES",
    "ChildProcessHandle",
    "SessionOrchestrator",
    "sessionEnvironment_build",
    "exitStatus_get",
]

# Variables describing the Wayland session the launcher itself runs in
SESSION_VARIABLES = ("WAYLAND_DISPLAY", "WAYLAND_SOCKET")

ProcessSpawner = Callable[..., "subprocess.Popen[bytes]"]


@dataclass
class ChildProcessHandle:
    """Spawned child and the descriptors transferred to it"""

    label: str
    process: "subprocess.Popen[bytes]"
    transferred_fds: tuple[int, ...]

    @property
    def pid(self) -> int:
        return self.process.pid


def sessionEnvironment_build(
    environ: Mapping[str, str], wayland_socket: Optional[int] = None
) -> dict[str, str]:
    """
    Build a child environment free of inherited session variables.

    Args:
        environ: Launcher environment.
        wayland_socket: Descriptor to export as WAYLAND_SOCKET, if any.

    Returns:
        New environment mapping.
    """
    env = {key: value for key, value in environ.items() if key not in SESSION_VARIABLES}
    if wayland_socket is not None:
        env["WAYLAND_SOCKET"] = str(wayland_socket)
    return env


def exitStatus_get(returncode: int) -> int:
    """Translate a Popen return code into a shell-style exit status"""
    if returncode < 0:
        return 128 + (-returncode)
    return returncode


class SessionOrchestrator:
    """Drives one compositor + Xwayland session from start to finish"""

    def __init__(
        self,
        config: Config,
        log: Optional[logging.Logger] = None,
        environ: Optional[Mapping[str, str]] = None,
        process_spawn: ProcessSpawner = subprocess.Popen,
    ) -> None:
        """
        Initialize orchestrator.

        Args:
            config: Launcher configuration with environment overrides applied.
            log: Launcher logger.
            environ: Environment children inherit (defaults to os.environ).
            process_spawn: Popen-compatible factory.
        """
        self.config: Config = config
        self.log: logging.Logger = log or logger
        self.environ: Mapping[str, str] = environ if environ is not None else os.environ
        self.process_spawn: ProcessSpawner = process_spawn

        self.compositor_path: str = config.paths.compositor
        self.xwayland_path: str = config.paths.xwayland
        self.channels: Optional[SessionChannels] = None
        self.directory: OutputDirectory = OutputDirectory(self.log)
        self.compositor: Optional[ChildProcessHandle] = None
        self.xwayland: Optional[ChildProcessHandle] = None

    def session_run(self, passthrough: Sequence[str], verbosity: Optional[int] = None) -> int:
        """
        Run the whole startup sequence and supervise the session.

        Args:
            passthrough: Filtered user tokens for Xwayland.
            verbosity: Validated `-verbose` level to mirror, if given.

        Returns:
            The compositor's exit status.

        Raises:
            XwaybackError: On any fatal startup failure.
        """
        self.executablePaths_resolve()
        try:
            self.channels_create()
            self.compositor_spawn()
            output = self.outputs_bootstrap()
            self.xwayland_spawn(output, passthrough, verbosity)
            return self.session_supervise()
        finally:
            if self.channels is not None:
                self.channels.close()

    def executablePaths_resolve(self) -> tuple[str, str]:
        """
        Verify both collaborator executables.

        Returns:
            Compositor and Xwayland paths.

        Raises:
            ExecutableError: If either is missing or not executable.
        """
        for label, path in (
            ("wayback-compositor", self.compositor_path),
            ("Xwayland", self.xwayland_path),
        ):
            if not (os.path.isfile(path) and os.access(path, os.X_OK)):
                raise ExecutableError(f"{label} executable {path} not found or not executable")
        self.log.debug("Compositor: %s, Xwayland: %s", self.compositor_path, self.xwayland_path)
        return self.compositor_path, self.xwayland_path

    def channels_create(self) -> SessionChannels:
        self.channels = channels_create(window_manager=self.config.session.window_manager)
        return self.channels

    def child_spawn(
        self, label: str, argv: list[str], fds: tuple[int, ...], env: dict[str, str]
    ) -> ChildProcessHandle:
        """
        Spawn one child keeping only the given descriptors open.

        Raises:
            ResourceError: If the process cannot be started.
        """
        self.log.debug("Launching %s: %s", label, " ".join(argv))
        try:
            process = self.process_spawn(argv, pass_fds=fds, close_fds=True, env=env)
        except OSError as e:
            raise ResourceError.fromOSError_create(f"Failed to launch {label}", e) from e
        return ChildProcessHandle(label=label, process=process, transferred_fds=fds)

    def compositor_spawn(self) -> ChildProcessHandle:
        """
        Start the compositor with its channel descriptors in argv.

        The launcher's copies of the transferred endpoints are closed once
        the child exists.
        """
        channels = self.channels_require()
        fds = tuple(channels.compositorFds_get())
        argv = [self.compositor_path] + [str(fd) for fd in fds]
        env = sessionEnvironment_build(self.environ)

        self.compositor = self.child_spawn("wayback-compositor", argv, fds, env)
        for channel in channels.all_get():
            channel.compositorEnd_close()
        self.log.debug("wayback-compositor started (pid %d)", self.compositor.pid)
        return self.compositor

    def outputs_bootstrap(self) -> DisplayDescriptor:
        """
        Discover outputs over the control channel and pick one.

        Raises:
            ProtocolError: If discovery fails or yields no outputs.
        """
        channels = self.channels_require()
        if channels.control.peer_end is None:
            raise ValueError("control channel already closed")
        client = BootstrapClient(channels.control.peer_end, self.directory, self.log)
        client.outputs_discover()

        self.directory.display_select(self.config.session.output)
        output = self.directory.display_finalize()
        self.log.info(
            "Using output %s (%s %s) at %s",
            output.name or output.registry_name,
            output.make,
            output.model,
            output.geometry_format(),
        )
        return output

    def xwayland_spawn(
        self,
        output: DisplayDescriptor,
        passthrough: Sequence[str],
        verbosity: Optional[int] = None,
    ) -> ChildProcessHandle:
        """
        Start Xwayland on the display channel, sized to the selected output.

        Args:
            output: Selected output.
            passthrough: Filtered user tokens.
            verbosity: `-verbose` level to mirror.
        """
        channels = self.channels_require()
        display_fd = channels.display.peer_fd
        wm_fd: Optional[int] = None
        fds: list[int] = [display_fd]
        if channels.window_manager is not None:
            wm_fd = channels.window_manager.peer_fd
            fds.append(wm_fd)

        argv = xwaylandArgv_build(
            self.xwayland_path,
            output,
            passthrough,
            terminate_delay=self.config.session.terminate_delay,
            wm_fd=wm_fd,
            verbosity=verbosity,
        )
        env = sessionEnvironment_build(self.environ, wayland_socket=display_fd)

        self.xwayland = self.child_spawn("Xwayland", argv, tuple(fds), env)
        channels.display.peerEnd_close()
        if channels.window_manager is not None:
            channels.window_manager.peerEnd_close()
        self.log.debug("Xwayland started (pid %d)", self.xwayland.pid)
        return self.xwayland

    def session_supervise(self) -> int:
        """
        Block until the compositor exits.

        Xwayland is not waited on; it ends with the compositor's session.

        Returns:
            Compositor exit status.
        """
        if self.compositor is None:
            raise ValueError("compositor has not been spawned")
        returncode = self.compositor.process.wait()
        status = exitStatus_get(returncode)
        self.log.debug("wayback-compositor exited with status %d", status)
        return status

    def channels_require(self) -> SessionChannels:
        if self.channels is None:
            raise ValueError("channels have not been created")
        return self.channels
