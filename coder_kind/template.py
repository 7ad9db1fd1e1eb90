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

"""Kubernetes workspace template rendering and push."""

from __future__ import annotations

import shutil
from pathlib import Path

import sh
from rich.panel import Panel

from coder_kind import console
from coder_kind.config import ClusterConfig, CoderConfig
from coder_kind.constants import TEMPLATE_FILE, TEMPLATE_SOURCE_DIR
from coder_kind.session import coder_cli_env


def render_template() -> str:
    """Return the Terraform source of the workspace template.

    The source is static; the target namespace is supplied at push time.
    """
    return (TEMPLATE_SOURCE_DIR / TEMPLATE_FILE).read_text()


def write_template(template_dir: Path) -> Path:
    """Recreate *template_dir* containing only the template's ``main.tf``.

    Returns:
        Path of the written file.
    """
    shutil.rmtree(template_dir, ignore_errors=True)
    template_dir.mkdir(parents=True)
    target = template_dir / TEMPLATE_FILE
    target.write_text(render_template())
    return target


def push_template(cluster_cfg: ClusterConfig, coder_cfg: CoderConfig, template_dir: Path, token: str) -> None:
    """Write the template and push it to Coder with the coder CLI.

    Args:
        cluster_cfg: Cluster configuration with the workspace namespace.
        coder_cfg: Coder configuration with the URL and template name.
        template_dir: Scratch directory for the template source.
        token: Session token for the push.
    """
    console.print(Panel.fit("Creating template", style="bold blue"))
    write_template(template_dir)

    console.print(f"[yellow]\u2139\ufe0f  Pushing template '{coder_cfg.template_name}'...[/yellow]")
    sh.coder(
        "templates", "push", coder_cfg.template_name,
        "-d", str(template_dir),
        "-y",
        "--variable", f"namespace={cluster_cfg.namespace}",
        _env=coder_cli_env(coder_cfg.access_url, token),
    )
    console.print("[green]\u2705 Template ready[/green]")
