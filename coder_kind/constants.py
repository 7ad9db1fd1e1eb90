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

"""Constants, dependency loading, and dep_value helper."""

from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Any

import yaml

# -- Resolved paths --
PACKAGE_DIR = Path(__file__).resolve().parent
TEMPLATE_SOURCE_DIR = PACKAGE_DIR / "templates" / "kubernetes"


def load_dependencies() -> dict:
    """Load chart versions and images from dependencies.yaml.

    Returns:
        Parsed YAML content as a nested dictionary.
    """
    deps_file = PACKAGE_DIR / "dependencies.yaml"
    with open(deps_file) as f:
        return yaml.safe_load(f)


DEPENDENCIES = load_dependencies()


def dep_value(*keys: str, default: Any = None) -> Any:
    """Safely traverse the DEPENDENCIES dict by key path.

    Args:
        *keys: Sequence of dictionary keys to traverse.
        default: Value to return if any key is missing.

    Returns:
        The value at the nested key path, or *default* if not found.
    """
    node = DEPENDENCIES
    for key in keys:
        if not isinstance(node, dict):
            return default
        node = node.get(key)
        if node is None:
            return default
    return node


REQUIRED_COMMANDS = ("kind", "kubectl", "helm", "docker", "coder")

# -- Readiness poll --
READINESS_MAX_ATTEMPTS = 60
READINESS_POLL_INTERVAL_SECONDS = 2
READINESS_REQUEST_TIMEOUT_SECONDS = 2
API_REQUEST_TIMEOUT_SECONDS = 10
HEALTH_REQUEST_TIMEOUT_SECONDS = 5

# -- Coder HTTP API --
API_BUILDINFO = "/api/v2/buildinfo"
API_FIRST_USER = "/api/v2/users/first"
API_LOGIN = "/api/v2/users/login"
API_HEALTH = "/api/v2/debug/health"
SESSION_TOKEN_HEADER = "Coder-Session-Token"

# -- Namespaces --
NS_KUBE_SYSTEM = "kube-system"

# -- Helm releases --
HELM_RELEASE_POSTGRESQL = "postgresql"
HELM_RELEASE_CODER = "coder"

# -- Helm repos --
HELM_REPO_BITNAMI = "bitnami"
HELM_REPO_BITNAMI_URL = "https://charts.bitnami.com/bitnami"
HELM_CHART_POSTGRESQL = "bitnami/postgresql"
HELM_REPO_CODER = "coder-v2"
HELM_REPO_CODER_URL = "https://helm.coder.com/v2"
HELM_CHART_CODER = "coder-v2/coder"

POSTGRESQL_WAIT_TIMEOUT = "300s"
CODER_WAIT_TIMEOUT = "600s"

# -- Database --
DB_USER = "coder"
DB_PASSWORD = "coder"
DB_NAME = "coder"
DB_PORT = 5432
DB_SECRET_NAME = "coder-db-url"
DB_SECRET_KEY = "url"

# -- Helm override keys --
POSTGRESQL_HELM_VALUES = (
    ("auth.username", DB_USER),
    ("auth.password", DB_PASSWORD),
    ("auth.database", DB_NAME),
    ("primary.persistence.size", "1Gi"),
    ("primary.resources.requests.memory", "64Mi"),
    ("primary.resources.requests.cpu", "50m"),
    ("primary.resources.limits.memory", "256Mi"),
)

# -- Coder service --
CODER_SERVICE = "coder"
LABEL_CODER_APP = "app.kubernetes.io/name=coder"

# -- CoreDNS --
COREDNS_CONFIGMAP = "coredns"
COREDNS_DEPLOYMENT = "coredns"
COREDNS_CUSTOM_CONFIGMAP = "coredns-custom"
COREDNS_CUSTOM_MOUNT_PATH = "/etc/coredns/custom"
COREDNS_OVERRIDE_KEY = "nip.io.override"
COREDNS_IMPORT_LINE = f"import {COREDNS_CUSTOM_MOUNT_PATH}/*.override"
COREDNS_IMPORT_ANCHOR = "ready"
COREDNS_IMPORT_INDENT = "        "
COREDNS_ROLLOUT_TIMEOUT = "60s"
NIP_IO_REWRITE_PATTERN = r"(.*)\.127\.0\.0\.1\.nip\.io"

# -- Tunnel --
KIND_DOCKER_NETWORK = "kind"
TUNNEL_RESTART_POLICY = "unless-stopped"

# -- Session --
CODER_CONFIG_DIRNAME = "coderv2"
SESSION_FILE = "session"
URL_FILE = "url"

# -- Template --
TEMPLATE_FILE = "main.tf"
TEMPLATE_WORK_DIR = Path(tempfile.gettempdir()) / "coder-k8s-template"

# -- Diagnostics --
DNS_TEST_POD = "dns-test"
DNS_TEST_HOST = "coder.127.0.0.1.nip.io"
DNS_TEST_TIMEOUT_SECONDS = 60
LOG_TAIL_LINES = 10

# -- Defaults --
DEFAULT_CLUSTER_NAME = "coder-test"
DEFAULT_NAMESPACE = "coder"
DEFAULT_TUNNEL_CONTAINER = "coder-tunnel"
DEFAULT_TUNNEL_HOST_PORT = 80
DEFAULT_ACCESS_URL = "http://coder.127.0.0.1.nip.io"
DEFAULT_WILDCARD_ACCESS_URL = "*.coder.127.0.0.1.nip.io"
DEFAULT_TEMPLATE_NAME = "kubernetes"
DEFAULT_ADMIN_EMAIL = "admin@coder.local"
DEFAULT_ADMIN_USERNAME = "admin"
DEFAULT_ADMIN_PASSWORD = "SuperSecretPassword123!"
DEFAULT_TUNNEL_IMAGE = "alpine/socat"
DEFAULT_DNS_TEST_IMAGE = "busybox"
