"""qbdeploy CLI Main Entry Point

Deploys the Quiz Builder application (Spring Boot backend, React
frontend, MySQL) to Kubernetes by sequencing Ansible, Docker and the
Kubernetes API.

Usage:
    qbdeploy                       # Full deployment in development mode
    qbdeploy -e production         # Full deployment in production mode
    qbdeploy -s -k                 # Only validate configuration and prerequisites
    qbdeploy -f                    # Continue even if the Kubernetes deployment fails
    qbdeploy -h                    # Show this help
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from ._version import __version__
from .commands import deploy_command

typer_app = typer.Typer(
    add_completion=False,
    context_settings={"help_option_names": ["-h", "--help"]},
)


@typer_app.command()
def cli(
    environment: str = typer.Option(
        "development",
        "-e",
        "--environment",
        help="Environment (development|staging|production).",
    ),
    skip_build: bool = typer.Option(
        False, "-s", "--skip-build", help="Skip container build step."
    ),
    skip_deploy: bool = typer.Option(
        False,
        "-k",
        "--skip-k8s",
        "--skip-deploy",
        help="Skip Kubernetes deployment step.",
    ),
    force: bool = typer.Option(
        False, "-f", "--force", help="Continue even if the Kubernetes deployment fails."
    ),
    config: Optional[Path] = typer.Option(
        None, "-c", "--config", help="Path to qbdeploy.yaml (default: search upwards)."
    ),
    log_file: Optional[Path] = typer.Option(
        None, "--log-file", help="Append log lines to this file."
    ),
    verbose: bool = typer.Option(
        False, "-v", "--verbose", help="Show debug output, including commands run."
    ),
    version: bool = typer.Option(False, "--version", help="Show version and exit."),
) -> None:
    """Quiz Builder deployment: build containers, deploy to Kubernetes, verify.

    \b
    Examples:
        qbdeploy                    Full deployment in development mode
        qbdeploy -e production      Full deployment in production mode
        qbdeploy -s -k              Only validate configuration
        qbdeploy -f                 Force deployment
    """
    if version:
        typer.echo(f"qbdeploy {__version__}")
        raise typer.Exit()

    deploy_command(
        environment=environment,
        skip_build=skip_build,
        skip_deploy=skip_deploy,
        force=force,
        config_path=config,
        log_file=log_file,
        verbose=verbose,
    )


def app() -> None:
    """Entry point for the installed `qbdeploy` script."""
    typer_app()


if __name__ == "__main__":
    app()
