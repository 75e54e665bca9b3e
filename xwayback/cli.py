"""Xwayback command-line entry point"""

from __future__ import annotations

import logging
import os
import subprocess
import sys
from typing import Mapping, NoReturn, Optional, Sequence, TextIO

from xwayback.args.translator import (
    LauncherAction,
    helpText_build,
    launcherOptions_scan,
    tokens_filter,
    versionText_build,
)
from xwayback.common.config import Config, ConfigLoader
from xwayback.common.errors import UsageError, XwaybackError
from xwayback.common.log import LogConfig, colorEnabled_resolve, logger_create, verbosityLevel_map
from xwayback.launcher.orchestrator import ProcessSpawner, SessionOrchestrator


def launcher_run(
    argv: Sequence[str],
    environ: Optional[Mapping[str, str]] = None,
    stream: Optional[TextIO] = None,
    process_spawn: ProcessSpawner = subprocess.Popen,
) -> int:
    """
    Run the launcher and return its exit status.

    Args:
        argv: Full command line including the program name.
        environ: Environment (defaults to os.environ).
        stream: Log destination (defaults to stderr).
        process_spawn: Popen-compatible factory used for both children.

    Returns:
        0 for help/version, the compositor's status after a normal session,
        1 on any fatal startup failure.
    """
    if environ is None:
        environ = os.environ
    if stream is None:
        stream = sys.stderr
    prog: str = os.path.basename(argv[0]) if argv else "Xwayback"
    tokens: list[str] = list(argv[1:])

    log: logging.Logger = logger_create(
        LogConfig(
            context="Xwayback",
            level=logging.INFO,
            use_color=colorEnabled_resolve(stream, environ),
        ),
        stream=stream,
    )

    try:
        options = launcherOptions_scan(tokens)
        if options.action is LauncherAction.HELP:
            for line in helpText_build(prog):
                log.info(line)
            return 0
        if options.action is LauncherAction.VERSION:
            for line in versionText_build():
                log.info(line)
            return 0

        config: Config = ConfigLoader.configWithEnvironment_load(environ=environ)
        log.setLevel(logLevel_resolve(options.verbosity, config))

        if not tokens:
            log.warning("No arguments given; Xwayland will choose the display number")

        orchestrator = SessionOrchestrator(
            config, log=log, environ=environ, process_spawn=process_spawn
        )
        return orchestrator.session_run(tokens_filter(tokens), verbosity=options.verbosity)
    except XwaybackError as e:
        log.error(str(e))
        return 1


def logLevel_resolve(verbosity: Optional[int], config: Config) -> int:
    """
    Resolve effective log level: `-verbose` wins over the config file.

    Raises:
        UsageError: If the configured level name is unknown.
    """
    if verbosity is not None:
        return verbosityLevel_map(verbosity)
    level = getattr(logging, config.logging.level.upper(), None)
    if not isinstance(level, int):
        raise UsageError(f"Unknown log level '{config.logging.level}' in config")
    return level


def main() -> NoReturn:
    """Main entry point for the Xwayback command"""
    try:
        sys.exit(launcher_run(sys.argv))
    except KeyboardInterrupt:
        sys.exit(130)


if __name__ == "__main__":
    main()
