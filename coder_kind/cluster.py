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

"""kind cluster lifecycle."""

from __future__ import annotations

import sh
from rich.panel import Panel

from coder_kind import console, logger
from coder_kind.config import ClusterConfig


def delete_cluster(cluster_cfg: ClusterConfig) -> None:
    """Delete the kind cluster.

    Args:
        cluster_cfg: Cluster configuration with the cluster name.
    """
    console.print(f"[yellow]\u2139\ufe0f  Deleting kind cluster '{cluster_cfg.cluster_name}'...[/yellow]")
    try:
        sh.kind("delete", "cluster", "--name", cluster_cfg.cluster_name)
        console.print(f"[green]\u2705 Cluster '{cluster_cfg.cluster_name}' deleted[/green]")
    except (sh.ErrorReturnCode, sh.CommandNotFound) as err:
        logger.debug("kind delete failed: %s", err)
        console.print(f"[yellow]\u26a0\ufe0f  Cluster '{cluster_cfg.cluster_name}' not found or already deleted[/yellow]")


def create_cluster(cluster_cfg: ClusterConfig) -> None:
    """Recreate the kind cluster from scratch.

    Any cluster with the same name is deleted first so repeated runs start
    from the same state.

    Args:
        cluster_cfg: Cluster configuration with the cluster name.
    """
    console.print(Panel.fit("Creating kind cluster", style="bold blue"))
    delete_cluster(cluster_cfg)

    sh.kind("create", "cluster", "--name", cluster_cfg.cluster_name)
    console.print("[green]\u2705 Kind cluster ready[/green]")
