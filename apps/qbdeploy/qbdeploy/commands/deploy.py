"""Deploy command - run the full deployment sequence"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from qbdeploy.lib.config import DeployConfig, RunConfig, load_deploy_config
from qbdeploy.lib.errors import INTERRUPTED_EXIT_CODE, ConfigurationError
from qbdeploy.lib.logs import setup_logging
from qbdeploy.lib.sequencer import Sequencer, Toolchain

from .utils import console, resolve_log_file


def deploy_command(
    environment: str = "development",
    skip_build: bool = False,
    skip_deploy: bool = False,
    force: bool = False,
    config_path: Optional[Path] = None,
    log_file: Optional[Path] = None,
    verbose: bool = False,
) -> None:
    """Deploy the application and exit with the run's exit code."""
    try:
        settings = load_deploy_config(config_path)
    except ConfigurationError as e:
        # no settings to read log_file from
        log = setup_logging(
            console,
            resolve_log_file(DeployConfig().log_file, log_file),
            verbose=verbose,
        )
        log.error(e.message)
        raise typer.Exit(e.exit_code)

    log = setup_logging(
        console, resolve_log_file(settings.log_file, log_file), verbose=verbose
    )

    try:
        run = RunConfig.from_cli(
            environment,
            skip_build=skip_build,
            skip_deploy=skip_deploy,
            force=force,
        )
        settings = settings.for_environment(run.environment)
    except ConfigurationError as e:
        log.error(e.message)
        raise typer.Exit(e.exit_code)

    sequencer = Sequencer(run, settings, Toolchain.from_config(settings), log, console)
    try:
        report = sequencer.run()
    except KeyboardInterrupt:
        log.error("Deployment interrupted")
        raise typer.Exit(INTERRUPTED_EXIT_CODE)

    raise typer.Exit(report.exit_code)
