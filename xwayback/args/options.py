"""
Legacy X server option table.

Options the launcher handles itself come first; the rest are Xwayland and
Xorg(1) options that have no meaning under Wayback and are dropped before
Xwayland is started.
"""

from __future__ import annotations

from dataclasses import dataclass

__all__ = [
    "OptionSpec",
    "OPTION_TABLE",
    "VERBOSE_MIN",
    "VERBOSE_MAX",
    "option_find",
]

VERBOSE_MIN = 0
VERBOSE_MAX = 20


@dataclass(frozen=True)
class OptionSpec:
    """One recognised command-line option"""

    name: str
    description: str = ""
    requires_operand: bool = False
    ignore: bool = False


def ignored(name: str, requires_operand: bool) -> OptionSpec:
    return OptionSpec(name=name, requires_operand=requires_operand, ignore=True)


OPTION_TABLE: tuple[OptionSpec, ...] = (
    # handled by the launcher
    OptionSpec("-help", "show help page"),
    OptionSpec("-showconfig", "alias to -version"),
    OptionSpec("-version", "show Xwayback version"),
    OptionSpec("-verbose", "set verbosity level (0-20)", requires_operand=True),
    # Xwayland options the launcher controls itself
    ignored("-decorate", False),
    ignored("-enable-ei-portal", False),
    ignored("-fullscreen", False),
    ignored("-geometry", True),
    ignored("-glamor", True),
    ignored("-hidpi", False),
    ignored("-host-grab", False),
    ignored("-noTouchPointerEmulation", False),
    ignored("-force-xrandr-emulation", False),
    ignored("-nokeymap", False),
    ignored("-rootless", False),
    ignored("-shm", False),
    ignored("-wm", True),
    # Xorg(1)-specific options
    ignored("-allowMouseOpenFail", False),
    ignored("-allowNonLocalXvidtune", False),
    ignored("-bgamma", True),
    ignored("-bpp", True),
    ignored("-config", True),
    ignored("-configdir", True),
    ignored("-configure", True),
    ignored("-crt", True),
    ignored("-depth", True),
    ignored("-disableVidMode", False),
    ignored("-fbbpp", True),
    ignored("-gamma", True),
    ignored("-ggamma", True),
    ignored("-ignoreABI", False),
    ignored("-isolateDevice", True),
    ignored("-keeptty", False),
    ignored("-keyboard", True),
    ignored("-layout", True),
    ignored("-logverbose", True),
    ignored("-modulepath", True),
    ignored("-noautoBindCPU", False),
    ignored("-nosilk", False),
    ignored("-novtswitch", False),
    ignored("-pointer", True),
    ignored("-quiet", False),
    ignored("-rgamma", True),
    ignored("-sharevts", False),
    ignored("-screen", True),
    ignored("-showDefaultModulePath", False),
    ignored("-showDefaultLibPath", False),
    ignored("-showopts", False),
    ignored("-weight", True),
)


def option_find(token: str, table: tuple[OptionSpec, ...] = OPTION_TABLE) -> OptionSpec | None:
    """Return the option whose name equals token exactly, if any"""
    for spec in table:
        if spec.name == token:
            return spec
    return None
