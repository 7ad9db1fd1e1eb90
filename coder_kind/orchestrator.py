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

"""Orchestration functions that compose domain modules into workflows."""

from __future__ import annotations

import shutil
from pathlib import Path

from rich.panel import Panel
from rich.text import Text

from coder_kind import console
from coder_kind.bootstrap import bootstrap_admin
from coder_kind.cluster import create_cluster, delete_cluster
from coder_kind.components import install_coder, install_postgresql
from coder_kind.config import (
    AdminConfig,
    ClusterConfig,
    CoderConfig,
    ComponentConfig,
    InstallOptions,
)
from coder_kind.constants import REQUIRED_COMMANDS, TEMPLATE_WORK_DIR
from coder_kind.dns import configure_coredns
from coder_kind.session import clear_session, read_session_token
from coder_kind.template import push_template
from coder_kind.tunnel import remove_tunnel, start_tunnel
from coder_kind.utils import missing_commands


def check_prerequisites() -> None:
    """Verify every external tool the install pipeline drives is on PATH.

    Raises:
        RuntimeError: Naming all missing tools at once.
    """
    console.print(Panel.fit("Checking prerequisites", style="bold blue"))
    missing = missing_commands(REQUIRED_COMMANDS)
    if missing:
        raise RuntimeError(f"Missing required tools: {' '.join(missing)}")
    console.print("[green]\u2705 All required tools are available[/green]")


def print_status(coder_cfg: CoderConfig, admin_cfg: AdminConfig) -> None:
    """Print connection details and next steps."""
    template = coder_cfg.template_name
    lines = [
        f"URL:      {coder_cfg.access_url}",
        f"Username: {admin_cfg.username}",
        f"Password: {admin_cfg.password}",
        "",
        "Create a workspace:",
        f"  coder create my-workspace --template {template}",
        "",
        "Connect:",
        "  coder ssh my-workspace",
        "  coder ping my-workspace",
    ]
    console.print(Panel(Text("\n".join(lines)), title="Coder is ready!", border_style="green", expand=False))


def run_install(
    cluster_cfg: ClusterConfig,
    coder_cfg: CoderConfig,
    comp_cfg: ComponentConfig,
    admin_cfg: AdminConfig,
    config_dir: Path,
    options: InstallOptions | None = None,
    template_dir: Path = TEMPLATE_WORK_DIR,
) -> None:
    """Run the install pipeline: cluster, PostgreSQL, Coder, DNS, tunnel, admin, template.

    Each step is safe to re-run, so running the pipeline again converges to
    the same end state.

    Args:
        cluster_cfg: Cluster configuration.
        coder_cfg: Coder access and readiness configuration.
        comp_cfg: Chart versions and images.
        admin_cfg: Administrative account credentials.
        config_dir: coder CLI config directory for the session.
        options: Install options, or None for defaults.
        template_dir: Scratch directory for the workspace template.

    Raises:
        RuntimeError: If any step fails.
    """
    if options is None:
        options = InstallOptions()

    check_prerequisites()
    create_cluster(cluster_cfg)
    install_postgresql(cluster_cfg, comp_cfg)
    install_coder(cluster_cfg, coder_cfg, comp_cfg)
    configure_coredns(cluster_cfg)
    start_tunnel(cluster_cfg, comp_cfg)
    bootstrap_admin(coder_cfg, admin_cfg, config_dir)
    if not options.skip_template:
        push_template(cluster_cfg, coder_cfg, template_dir, read_session_token(config_dir))
    print_status(coder_cfg, admin_cfg)


def run_cleanup(cluster_cfg: ClusterConfig, config_dir: Path, template_dir: Path = TEMPLATE_WORK_DIR) -> None:
    """Remove the relay container, the cluster, and local session and template files.

    Every step is best-effort, so cleanup succeeds on a machine with nothing
    installed.
    """
    console.print(Panel.fit("Cleaning up", style="bold blue"))
    remove_tunnel(cluster_cfg)
    delete_cluster(cluster_cfg)
    clear_session(config_dir)
    shutil.rmtree(template_dir, ignore_errors=True)
    console.print("[green]\u2705 Done[/green]")
