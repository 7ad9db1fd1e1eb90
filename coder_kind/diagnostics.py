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

"""Read-only status report. Every check degrades to a placeholder."""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path

from rich.panel import Panel
from rich.table import Table

from coder_kind import console, logger
from coder_kind.bootstrap import CoderAPI
from coder_kind.config import ClusterConfig, CoderConfig, ComponentConfig
from coder_kind.constants import (
    COREDNS_CUSTOM_CONFIGMAP,
    COREDNS_OVERRIDE_KEY,
    DNS_TEST_HOST,
    DNS_TEST_POD,
    DNS_TEST_TIMEOUT_SECONDS,
    LABEL_CODER_APP,
    LOG_TAIL_LINES,
    NS_KUBE_SYSTEM,
)
from coder_kind.session import read_session_token
from coder_kind.tunnel import tunnel_status
from coder_kind.utils import run_kubectl


def _kubectl_output(cluster_cfg: ClusterConfig, args: list[str], timeout: int = 30) -> str:
    """Run kubectl against the cluster's context; raise if it fails or prints nothing."""
    ok, stdout, stderr = run_kubectl(["--context", cluster_cfg.kube_context, *args], timeout=timeout)
    if not ok or not stdout.strip():
        raise RuntimeError(stderr.strip() or "no output")
    return stdout.rstrip()


def _print_raw(text: str) -> None:
    console.print(text, markup=False, highlight=False)


def _section(title: str, render: Callable[[], None], fallback: str) -> None:
    console.print(Panel.fit(title, style="bold blue"))
    try:
        render()
    except Exception as err:
        logger.debug("%s check failed: %s", title, err)
        console.print(f"[yellow]{fallback}[/yellow]", highlight=False)


def _show_tunnel(cluster_cfg: ClusterConfig) -> None:
    rows = tunnel_status(cluster_cfg)
    if not rows:
        raise LookupError(cluster_cfg.tunnel_container)
    table = Table("Status", "Ports")
    for status, ports in rows:
        table.add_row(status, ports)
    console.print(table)


def _show_pods(cluster_cfg: ClusterConfig) -> None:
    _print_raw(_kubectl_output(
        cluster_cfg,
        ["get", "pods", "-n", cluster_cfg.namespace, "-l", LABEL_CODER_APP, "-o", "wide"],
    ))


def _show_coredns(cluster_cfg: ClusterConfig) -> None:
    configmap = json.loads(_kubectl_output(
        cluster_cfg,
        ["get", "configmap", COREDNS_CUSTOM_CONFIGMAP, "-n", NS_KUBE_SYSTEM, "-o", "json"],
    ))
    override = (configmap.get("data") or {}).get(COREDNS_OVERRIDE_KEY)
    if not override:
        raise LookupError(COREDNS_OVERRIDE_KEY)
    _print_raw(override.rstrip())


def _show_dns_test(cluster_cfg: ClusterConfig, comp_cfg: ComponentConfig) -> None:
    _print_raw(_kubectl_output(
        cluster_cfg,
        [
            "run", DNS_TEST_POD, "-i", "--rm",
            f"--image={comp_cfg.dns_test_image}",
            "--restart=Never",
            "--", "nslookup", DNS_TEST_HOST,
        ],
        timeout=DNS_TEST_TIMEOUT_SECONDS,
    ))


def _show_health(coder_cfg: CoderConfig, config_dir: Path) -> None:
    try:
        token = read_session_token(config_dir)
    except RuntimeError:
        token = None
    console.print_json(data=CoderAPI(coder_cfg.access_url, token=token).health())


def _show_logs(cluster_cfg: ClusterConfig) -> None:
    _print_raw(_kubectl_output(
        cluster_cfg,
        ["logs", "-n", cluster_cfg.namespace, "-l", LABEL_CODER_APP, f"--tail={LOG_TAIL_LINES}"],
    ))


def run_diagnostics(cluster_cfg: ClusterConfig, coder_cfg: CoderConfig, comp_cfg: ComponentConfig,
                    config_dir: Path) -> None:
    """Print the state of the tunnel, Coder pod, CoreDNS, DNS, health and logs.

    Never raises; a failed check prints its placeholder instead.
    """
    _section("Tunnel", lambda: _show_tunnel(cluster_cfg), "Not running")
    _section("Coder Pod", lambda: _show_pods(cluster_cfg), "Not found")
    _section("CoreDNS", lambda: _show_coredns(cluster_cfg), "Not configured")
    _section("DNS Test (from a pod)", lambda: _show_dns_test(cluster_cfg, comp_cfg), "Could not run DNS test")
    _section("Health", lambda: _show_health(coder_cfg, config_dir), f"Cannot reach {coder_cfg.access_url}")
    _section(f"Logs (last {LOG_TAIL_LINES} lines)", lambda: _show_logs(cluster_cfg), "No logs")
