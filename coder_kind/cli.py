# /*
# Copyright 2026 The Grove Authors.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# */

"""
cli.py - Coder on a local kind cluster.

Subcommands:
    install      Deploy Coder (default when no subcommand is given)
    cleanup      Remove the tunnel, the cluster and the local session
    diagnostics  Check status (alias: diag)
    tunnel       Restart the localhost:80 relay only

Environment Variables:
    - CODER_ADMIN_EMAIL (default: admin@coder.local)
    - CODER_ADMIN_USERNAME (default: admin)
    - CODER_ADMIN_PASSWORD (default: SuperSecretPassword123!)
    - CODER_KIND_* overrides for cluster, namespace, URLs and chart versions

Examples:
    # Deploy Coder
    coder-kind install

    # Remove everything
    coder-kind cleanup

    # Check status
    coder-kind diag
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Callable

import click
import typer
from pydantic import ValidationError
from pydantic_settings import BaseSettings
from rich.markup import escape
from typer.core import TyperGroup

from coder_kind import console, logger
from coder_kind.config import (
    AdminConfig,
    ClusterConfig,
    CoderConfig,
    ComponentConfig,
    InstallOptions,
    display_config,
    session_config_dir,
)
from coder_kind.diagnostics import run_diagnostics
from coder_kind.orchestrator import run_cleanup, run_install
from coder_kind.tunnel import start_tunnel

USAGE = "Usage: coder-kind {install|cleanup|diagnostics|tunnel}"


class CommandGroup(TyperGroup):
    """Command group that answers an unknown subcommand with usage and exit status 1."""

    def resolve_command(self, ctx: click.Context, args: list[str]):
        try:
            return super().resolve_command(ctx, args)
        except click.UsageError as err:
            console.print(f"[red]{escape(err.format_message())}[/red]")
            console.print(USAGE, markup=False)
            raise typer.Exit(1)


app = typer.Typer(
    cls=CommandGroup,
    help="Deploy Coder on a local kind cluster.",
    add_completion=False,
)


def _exit_on_error(fn: Callable[[], None]) -> None:
    try:
        fn()
    except Exception as e:
        console.print(f"[red]\u274c {escape(str(e))}[/red]")
        sys.exit(1)


def _cluster_overrides(cluster_name: str | None, namespace: str | None) -> dict:
    overrides: dict = {}
    if cluster_name is not None:
        overrides["cluster_name"] = cluster_name
    if namespace is not None:
        overrides["namespace"] = namespace
    return overrides


def _cluster_config(cluster_name: str | None, namespace: str | None) -> ClusterConfig:
    # Init kwargs take precedence over CODER_KIND_* and are validated.
    return ClusterConfig(**_cluster_overrides(cluster_name, namespace))


def _settings_or_defaults(model: type[BaseSettings], **overrides):
    """Load *model* from the environment, falling back to its defaults if that fails validation."""
    try:
        return model(**overrides)
    except ValidationError as err:
        logger.debug("Invalid %s settings: %s", model.__name__, err)
        console.print(f"[yellow]\u26a0\ufe0f  Invalid {model.__name__} settings, using defaults[/yellow]")
        return model.model_construct(**overrides)


def _install(cluster_name: str | None = None, namespace: str | None = None, skip_template: bool = False) -> None:
    cluster_cfg = _cluster_config(cluster_name, namespace)
    coder_cfg = CoderConfig()
    comp_cfg = ComponentConfig()
    admin_cfg = AdminConfig()
    display_config(cluster_cfg, coder_cfg, comp_cfg, admin_cfg)
    run_install(
        cluster_cfg, coder_cfg, comp_cfg, admin_cfg,
        session_config_dir(),
        InstallOptions(skip_template=skip_template),
    )


@app.callback(invoke_without_command=True)
def _main_callback(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Deploy Coder on a local kind cluster.

    Runs install when no subcommand is given.
    """
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    if ctx.invoked_subcommand is None:
        _exit_on_error(_install)


@app.command()
def install(
    cluster_name: str | None = typer.Option(
        None, "--cluster-name", help="kind cluster name (overrides CODER_KIND_CLUSTER_NAME)"),
    namespace: str | None = typer.Option(
        None, "--namespace", help="Namespace for PostgreSQL and Coder"),
    skip_template: bool = typer.Option(
        False, "--skip-template", help="Skip pushing the kubernetes workspace template"),
) -> None:
    """Deploy Coder: cluster, PostgreSQL, Coder, CoreDNS, tunnel, admin user, template."""
    _exit_on_error(lambda: _install(cluster_name, namespace, skip_template))


@app.command()
def cleanup(
    cluster_name: str | None = typer.Option(None, "--cluster-name", help="kind cluster name"),
) -> None:
    """Remove the tunnel container, the kind cluster and the local session."""
    _exit_on_error(lambda: run_cleanup(_cluster_config(cluster_name, None), session_config_dir()))


def diagnostics(
    cluster_name: str | None = typer.Option(None, "--cluster-name", help="kind cluster name"),
    namespace: str | None = typer.Option(None, "--namespace", help="Namespace Coder runs in"),
) -> None:
    """Report tunnel, pod, DNS, health and log status."""
    run_diagnostics(
        _settings_or_defaults(ClusterConfig, **_cluster_overrides(cluster_name, namespace)),
        _settings_or_defaults(CoderConfig),
        _settings_or_defaults(ComponentConfig),
        session_config_dir(),
    )


app.command("diagnostics")(diagnostics)
app.command("diag", hidden=True)(diagnostics)


@app.command()
def tunnel(
    cluster_name: str | None = typer.Option(None, "--cluster-name", help="kind cluster name"),
    namespace: str | None = typer.Option(None, "--namespace", help="Namespace Coder runs in"),
) -> None:
    """Restart the relay forwarding localhost to the Coder NodePort."""
    _exit_on_error(lambda: start_tunnel(_cluster_config(cluster_name, namespace), ComponentConfig()))


def main() -> None:
    app()


if __name__ == "__main__":
    main()
