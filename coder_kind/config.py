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

"""Configuration classes and config models."""

from __future__ import annotations

import os
import sys
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from rich.panel import Panel

from coder_kind import console
from coder_kind.constants import (
    CODER_CONFIG_DIRNAME,
    DEFAULT_ACCESS_URL,
    DEFAULT_ADMIN_EMAIL,
    DEFAULT_ADMIN_PASSWORD,
    DEFAULT_ADMIN_USERNAME,
    DEFAULT_CLUSTER_NAME,
    DEFAULT_DNS_TEST_IMAGE,
    DEFAULT_NAMESPACE,
    DEFAULT_TEMPLATE_NAME,
    DEFAULT_TUNNEL_CONTAINER,
    DEFAULT_TUNNEL_HOST_PORT,
    DEFAULT_TUNNEL_IMAGE,
    DEFAULT_WILDCARD_ACCESS_URL,
    READINESS_MAX_ATTEMPTS,
    READINESS_POLL_INTERVAL_SECONDS,
    READINESS_REQUEST_TIMEOUT_SECONDS,
    dep_value,
)


# ============================================================================
# Configuration classes
# ============================================================================

class ClusterConfig(BaseSettings):
    """kind cluster configuration, auto-loaded from CODER_KIND_* env vars.

    Attributes:
        cluster_name: Name of the kind cluster.
        namespace: Kubernetes namespace for PostgreSQL and Coder.
        tunnel_container: Name of the socat relay container.
        tunnel_host_port: Host port the relay listens on.
    """

    model_config = SettingsConfigDict(env_prefix="CODER_KIND_", extra="ignore")

    cluster_name: str = Field(default=DEFAULT_CLUSTER_NAME, pattern=r"^[a-z0-9][a-z0-9.-]*$")
    namespace: str = Field(default=DEFAULT_NAMESPACE, pattern=r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?$")
    tunnel_container: str = DEFAULT_TUNNEL_CONTAINER
    tunnel_host_port: int = Field(default=DEFAULT_TUNNEL_HOST_PORT, ge=1, le=65535)

    @property
    def control_plane_container(self) -> str:
        """Docker container name kind gives the control-plane node."""
        return f"{self.cluster_name}-control-plane"

    @property
    def kube_context(self) -> str:
        """kubeconfig context kind writes for the cluster."""
        return f"kind-{self.cluster_name}"


class CoderConfig(BaseSettings):
    """Coder access and readiness settings, auto-loaded from CODER_KIND_* env vars.

    Attributes:
        access_url: Base URL Coder is reachable on from the host.
        wildcard_access_url: Wildcard host pattern for subdomain apps.
        template_name: Name the workspace template is pushed under.
        readiness_max_attempts: Maximum readiness probe attempts.
        readiness_poll_interval: Seconds to wait between probe attempts.
        readiness_timeout: Per-attempt HTTP timeout in seconds.
    """

    model_config = SettingsConfigDict(env_prefix="CODER_KIND_", extra="ignore")

    access_url: str = Field(default=DEFAULT_ACCESS_URL, pattern=r"^https?://")
    wildcard_access_url: str = DEFAULT_WILDCARD_ACCESS_URL
    template_name: str = DEFAULT_TEMPLATE_NAME
    readiness_max_attempts: int = Field(default=READINESS_MAX_ATTEMPTS, ge=1)
    readiness_poll_interval: float = Field(default=READINESS_POLL_INTERVAL_SECONDS, ge=0)
    readiness_timeout: float = Field(default=READINESS_REQUEST_TIMEOUT_SECONDS, gt=0)


class ComponentConfig(BaseSettings):
    """Chart versions and images, auto-loaded from CODER_KIND_* env vars.

    Attributes:
        postgresql_version: PostgreSQL chart version, or empty for latest.
        coder_version: Coder chart version, or empty for latest.
        tunnel_image: Image running the socat relay.
        dns_test_image: Image used for the in-cluster DNS lookup.
    """

    model_config = SettingsConfigDict(env_prefix="CODER_KIND_", extra="ignore")

    postgresql_version: str = dep_value("postgresql", "chart_version", default="")
    coder_version: str = dep_value("coder", "chart_version", default="")
    tunnel_image: str = dep_value("images", "tunnel", default=DEFAULT_TUNNEL_IMAGE)
    dns_test_image: str = dep_value("images", "dns_test", default=DEFAULT_DNS_TEST_IMAGE)


class AdminConfig(BaseSettings):
    """First administrative account, loaded from CODER_ADMIN_* env vars."""

    model_config = SettingsConfigDict(env_prefix="CODER_ADMIN_", extra="ignore")

    email: str = DEFAULT_ADMIN_EMAIL
    username: str = DEFAULT_ADMIN_USERNAME
    password: str = DEFAULT_ADMIN_PASSWORD


# ============================================================================
# Install options
# ============================================================================

@dataclass(frozen=True)
class InstallOptions:
    """Options for the install pipeline.

    Attributes:
        skip_template: Whether to skip pushing the workspace template.
    """

    skip_template: bool = False


def session_config_dir(platform: str | None = None, environ: Mapping[str, str] | None = None) -> Path:
    """Resolve the directory the coder CLI reads its session from.

    Args:
        platform: ``sys.platform`` value, defaulting to the running interpreter's.
        environ: Environment mapping, defaulting to ``os.environ``.

    Returns:
        The ``coderv2`` config directory for the platform.
    """
    platform = sys.platform if platform is None else platform
    environ = os.environ if environ is None else environ
    home = Path(environ.get("HOME") or Path.home())
    if platform == "darwin":
        return home / "Library" / "Application Support" / CODER_CONFIG_DIRNAME
    config_home = environ.get("XDG_CONFIG_HOME") or str(home / ".config")
    return Path(config_home) / CODER_CONFIG_DIRNAME


def display_config(cluster_cfg: ClusterConfig, coder_cfg: CoderConfig, comp_cfg: ComponentConfig,
                   admin_cfg: AdminConfig) -> None:
    """Print the resolved configuration.

    Args:
        cluster_cfg: kind cluster configuration.
        coder_cfg: Coder access configuration.
        comp_cfg: Chart versions and images.
        admin_cfg: Administrative account credentials.
    """
    console.print(Panel.fit("Configuration", style="bold blue"))

    console.print("[yellow]kind cluster:[/yellow]")
    console.print(f"  cluster_name    : {cluster_cfg.cluster_name}")
    console.print(f"  namespace       : {cluster_cfg.namespace}")
    console.print(f"  tunnel          : {cluster_cfg.tunnel_container} (:{cluster_cfg.tunnel_host_port})")

    console.print("[yellow]Coder:[/yellow]")
    console.print(f"  access_url      : {coder_cfg.access_url}", highlight=False)
    console.print(f"  wildcard_url    : {coder_cfg.wildcard_access_url}", highlight=False)
    console.print(f"  admin           : {admin_cfg.username} <{admin_cfg.email}>", markup=False)

    console.print("[yellow]Charts:[/yellow]")
    console.print(f"  postgresql      : {comp_cfg.postgresql_version or 'latest'}")
    console.print(f"  coder           : {comp_cfg.coder_version or 'latest'}")
