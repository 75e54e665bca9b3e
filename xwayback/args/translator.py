"""
Legacy command-line translation.

This module owns scanning the X server command line for options the launcher
acts on, filtering recognised options out of the pass-through set, and
assembling the Xwayland argument vector.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Optional, Sequence

from xwayback import BUG_URL, PROJECT_URL, __version__
from xwayback.args.options import (
    OPTION_TABLE,
    VERBOSE_MAX,
    VERBOSE_MIN,
    OptionSpec,
    option_find,
)
from xwayback.common.errors import UsageError
from xwayback.common.types import DisplayDescriptor

__all__ = [
    "LauncherAction",
    "LauncherOptions",
    "launcherOptions_scan",
    "tokens_filter",
    "verbosity_parse",
    "helpText_build",
    "versionText_build",
    "xwaylandArgv_build",
]

VERBOSE_PATTERN = re.compile(r"-?[0-9]+")


class LauncherAction(Enum):
    """What the launcher should do after scanning the command line"""

    RUN = "run"
    HELP = "help"
    VERSION = "version"


@dataclass(frozen=True)
class LauncherOptions:
    """Result of scanning the command line for launcher-handled options"""

    action: LauncherAction = LauncherAction.RUN
    verbosity: Optional[int] = None


def verbosity_parse(operand: str) -> int:
    """
    Validate a `-verbose` operand.

    Only an optional minus sign followed by ASCII digits is accepted.

    Args:
        operand: Raw operand token.

    Returns:
        Verbosity in [0, 20].

    Raises:
        UsageError: If the operand is not an integer in range.
    """
    if VERBOSE_PATTERN.fullmatch(operand) is None:
        raise UsageError(f"Invalid verbosity level '{operand}': not an integer")
    value = int(operand, 10)
    if not VERBOSE_MIN <= value <= VERBOSE_MAX:
        raise UsageError(
            f"Invalid verbosity level {value}: must be between {VERBOSE_MIN} and {VERBOSE_MAX}"
        )
    return value


def optionPositions_iter(
    tokens: Sequence[str], table: tuple[OptionSpec, ...]
) -> Iterator[tuple[int, OptionSpec]]:
    """Yield (index, spec) for each recognised option, skipping operands"""
    i = 0
    while i < len(tokens):
        spec = option_find(tokens[i], table)
        if spec is not None:
            yield i, spec
            if spec.requires_operand and i + 1 < len(tokens):
                i += 1
        i += 1


def launcherOptions_scan(
    tokens: Sequence[str], table: tuple[OptionSpec, ...] = OPTION_TABLE
) -> LauncherOptions:
    """
    Scan tokens for options the launcher acts on.

    The first of `-help`, `-version` or `-showconfig` wins and `-verbose` is
    not validated at all in that case. Operands of other operand-bearing
    options are skipped, never interpreted.

    Args:
        tokens: Command line without the program name.
        table: Option table.

    Returns:
        Requested action and verbosity.

    Raises:
        UsageError: On a missing or malformed `-verbose` operand.
    """
    positions = list(optionPositions_iter(tokens, table))
    for _, spec in positions:
        if spec.name == "-help":
            return LauncherOptions(action=LauncherAction.HELP)
        if spec.name in ("-version", "-showconfig"):
            return LauncherOptions(action=LauncherAction.VERSION)

    verbosity: Optional[int] = None
    for i, spec in positions:
        if spec.name != "-verbose":
            continue
        if i + 1 >= len(tokens):
            raise UsageError("Option -verbose requires an operand")
        verbosity = verbosity_parse(tokens[i + 1])
    return LauncherOptions(verbosity=verbosity)


def tokens_filter(tokens: Sequence[str], table: tuple[OptionSpec, ...] = OPTION_TABLE) -> list[str]:
    """
    Drop recognised options, forwarding everything else in order.

    An operand-bearing option also consumes the following token when one
    exists; as the last token it is consumed alone.

    Args:
        tokens: Command line without the program name.
        table: Option table.

    Returns:
        Pass-through tokens.
    """
    passthrough: list[str] = []
    i = 0
    while i < len(tokens):
        spec = option_find(tokens[i], table)
        if spec is None:
            passthrough.append(tokens[i])
        elif spec.requires_operand and i + 1 < len(tokens):
            i += 1
        i += 1
    return passthrough


def helpText_build(prog: str, table: tuple[OptionSpec, ...] = OPTION_TABLE) -> list[str]:
    """
    Build the `-help` page.

    Args:
        prog: Program name for the usage line.
        table: Option table; ignored options are not listed.

    Returns:
        Lines to log at info level.
    """
    lines = [
        f"Wayback <{PROJECT_URL}> X.Org compatibility layer",
        f"Report bugs to <{BUG_URL}>.",
        f"Usage: {prog} [:<display>] [option]",
    ]
    for spec in table:
        if spec.ignore:
            continue
        operand = " opt" if spec.requires_operand else ""
        lines.append(f"\t{spec.name}{operand}\t\t {spec.description}")
    return lines


def versionText_build() -> list[str]:
    """Build the `-version` / `-showconfig` banner"""
    return [
        f"Wayback <{PROJECT_URL}> X.Org compatibility layer",
        f"Version {__version__}",
    ]


def xwaylandArgv_build(
    xwayland_path: str,
    output: DisplayDescriptor,
    passthrough: Sequence[str],
    terminate_delay: int = 3,
    wm_fd: Optional[int] = None,
    verbosity: Optional[int] = None,
) -> list[str]:
    """
    Assemble the Xwayland argument vector.

    Args:
        xwayland_path: Xwayland executable (argv[0]).
        output: Selected output; its logical size becomes `-geometry`.
        passthrough: Filtered user tokens, appended last.
        terminate_delay: Operand of `-terminate`.
        wm_fd: Window-manager socket descriptor, when that channel exists.
        verbosity: Mirrored `-verbose` level, when the user gave one.

    Returns:
        Complete argv for Xwayland.
    """
    argv: list[str] = [
        xwayland_path,
        "-terminate",
        str(terminate_delay),
        "-geometry",
        output.geometry_format(),
    ]
    if wm_fd is not None:
        argv += ["-wm", str(wm_fd)]
    if verbosity is not None:
        argv += ["-verbose", str(verbosity)]
    argv += list(passthrough)
    return argv
