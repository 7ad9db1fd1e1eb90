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

"""PostgreSQL and Coder installation."""

from __future__ import annotations

import sh
import yaml
from rich.panel import Panel

from coder_kind import console
from coder_kind.config import ClusterConfig, CoderConfig, ComponentConfig
from coder_kind.constants import (
    CODER_SERVICE,
    CODER_WAIT_TIMEOUT,
    DB_NAME,
    DB_PASSWORD,
    DB_PORT,
    DB_SECRET_KEY,
    DB_SECRET_NAME,
    DB_USER,
    HELM_CHART_CODER,
    HELM_CHART_POSTGRESQL,
    HELM_RELEASE_CODER,
    HELM_RELEASE_POSTGRESQL,
    HELM_REPO_BITNAMI,
    HELM_REPO_BITNAMI_URL,
    HELM_REPO_CODER,
    HELM_REPO_CODER_URL,
    POSTGRESQL_HELM_VALUES,
    POSTGRESQL_WAIT_TIMEOUT,
)
from coder_kind.utils import helm_repo_add, helm_set_args, render_and_apply


def postgres_connection_url(namespace: str) -> str:
    """Build the in-cluster PostgreSQL connection URL for Coder.

    Args:
        namespace: Namespace the PostgreSQL release lives in.

    Returns:
        A ``postgres://`` URL with TLS disabled.
    """
    host = f"{HELM_RELEASE_POSTGRESQL}.{namespace}.svc.cluster.local"
    return f"postgres://{DB_USER}:{DB_PASSWORD}@{host}:{DB_PORT}/{DB_NAME}?sslmode=disable"


def coder_chart_values(coder_cfg: CoderConfig) -> dict:
    """Build the Helm values for the Coder chart.

    Args:
        coder_cfg: Coder configuration with the access URLs.

    Returns:
        Values dictionary ready for YAML serialization.
    """
    return {
        "coder": {
            "env": [
                {
                    "name": "CODER_PG_CONNECTION_URL",
                    "valueFrom": {"secretKeyRef": {"name": DB_SECRET_NAME, "key": DB_SECRET_KEY}},
                },
                {"name": "CODER_ACCESS_URL", "value": coder_cfg.access_url},
                {"name": "CODER_WILDCARD_ACCESS_URL", "value": coder_cfg.wildcard_access_url},
                {"name": "CODER_OAUTH2_GITHUB_DEFAULT_PROVIDER_ENABLE", "value": "false"},
            ],
            "service": {"type": "NodePort"},
        },
    }


def ensure_namespace(namespace: str) -> None:
    """Create the namespace, or leave it unchanged if it already exists."""
    render_and_apply("namespace", namespace)


def install_postgresql(cluster_cfg: ClusterConfig, comp_cfg: ComponentConfig) -> None:
    """Install PostgreSQL via Helm and publish its connection-URL secret.

    Args:
        cluster_cfg: Cluster configuration with the target namespace.
        comp_cfg: Component configuration with the chart version.
    """
    console.print(Panel.fit("Installing PostgreSQL", style="bold blue"))
    namespace = cluster_cfg.namespace
    ensure_namespace(namespace)
    helm_repo_add(HELM_REPO_BITNAMI, HELM_REPO_BITNAMI_URL)

    helm_args = [
        "upgrade", "--install", HELM_RELEASE_POSTGRESQL, HELM_CHART_POSTGRESQL,
        "--namespace", namespace,
        *helm_set_args(POSTGRESQL_HELM_VALUES),
        "--wait", f"--timeout={POSTGRESQL_WAIT_TIMEOUT}",
    ]
    if comp_cfg.postgresql_version:
        helm_args += ["--version", comp_cfg.postgresql_version]
    sh.helm(*helm_args)

    render_and_apply(
        "secret", "generic", DB_SECRET_NAME,
        "--namespace", namespace,
        f"--from-literal={DB_SECRET_KEY}={postgres_connection_url(namespace)}",
    )
    console.print("[green]\u2705 PostgreSQL ready[/green]")


def install_coder(cluster_cfg: ClusterConfig, coder_cfg: CoderConfig, comp_cfg: ComponentConfig) -> None:
    """Install Coder via Helm with inline values.

    Args:
        cluster_cfg: Cluster configuration with the target namespace.
        coder_cfg: Coder configuration with the access URLs.
        comp_cfg: Component configuration with the chart version.
    """
    console.print(Panel.fit("Installing Coder", style="bold blue"))
    helm_repo_add(HELM_REPO_CODER, HELM_REPO_CODER_URL)

    helm_args = [
        "upgrade", "--install", HELM_RELEASE_CODER, HELM_CHART_CODER,
        "--namespace", cluster_cfg.namespace,
        "--values", "-",
        "--wait", f"--timeout={CODER_WAIT_TIMEOUT}",
    ]
    if comp_cfg.coder_version:
        helm_args += ["--version", comp_cfg.coder_version]
    sh.helm(*helm_args, _in=yaml.safe_dump(coder_chart_values(coder_cfg), sort_keys=False))
    console.print("[green]\u2705 Coder installed[/green]")


def coder_service_field(namespace: str, jsonpath: str) -> str:
    """Read a single field of the Coder service.

    Args:
        namespace: Namespace Coder is installed in.
        jsonpath: kubectl JSONPath expression, e.g. ``{.spec.clusterIP}``.

    Returns:
        The stripped field value, empty if unset.
    """
    return str(sh.kubectl(
        "get", "svc", CODER_SERVICE,
        "-n", namespace,
        "-o", f"jsonpath={jsonpath}",
    )).strip()
