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

"""CoreDNS rewrite so workspace pods resolve the nip.io access URL in-cluster.

Inside a pod ``127.0.0.1`` is the pod itself, so ``*.127.0.0.1.nip.io`` must be
rewritten to the Coder service name before it reaches the upstream resolver.
"""

from __future__ import annotations

import json

import sh
import yaml
from rich.panel import Panel

from coder_kind import console, logger
from coder_kind.components import coder_service_field
from coder_kind.config import ClusterConfig
from coder_kind.constants import (
    CODER_SERVICE,
    COREDNS_CONFIGMAP,
    COREDNS_CUSTOM_CONFIGMAP,
    COREDNS_CUSTOM_MOUNT_PATH,
    COREDNS_DEPLOYMENT,
    COREDNS_IMPORT_ANCHOR,
    COREDNS_IMPORT_INDENT,
    COREDNS_IMPORT_LINE,
    COREDNS_OVERRIDE_KEY,
    COREDNS_ROLLOUT_TIMEOUT,
    NIP_IO_REWRITE_PATTERN,
    NS_KUBE_SYSTEM,
)


def coder_service_host(namespace: str) -> str:
    """Cluster-internal DNS name of the Coder service."""
    return f"{CODER_SERVICE}.{namespace}.svc.cluster.local"


def rewrite_rule(namespace: str) -> str:
    """CoreDNS rewrite directive mapping nip.io hosts to the Coder service."""
    return f"rewrite name regex {NIP_IO_REWRITE_PATTERN} {coder_service_host(namespace)}"


def custom_configmap(namespace: str) -> dict:
    """Build the ``coredns-custom`` ConfigMap holding the rewrite rule.

    Args:
        namespace: Namespace Coder is installed in.

    Returns:
        ConfigMap manifest as a dictionary ready for YAML serialization.
    """
    return {
        "apiVersion": "v1",
        "kind": "ConfigMap",
        "metadata": {"name": COREDNS_CUSTOM_CONFIGMAP, "namespace": NS_KUBE_SYSTEM},
        "data": {COREDNS_OVERRIDE_KEY: rewrite_rule(namespace) + "\n"},
    }


def patch_corefile(corefile: str) -> str:
    """Add the custom-override import to a Corefile.

    The import is inserted after every ``ready`` directive. A Corefile that
    already imports the overrides is returned unchanged.
    """
    if COREDNS_IMPORT_LINE in corefile:
        return corefile
    return corefile.replace(
        COREDNS_IMPORT_ANCHOR,
        f"{COREDNS_IMPORT_ANCHOR}\n{COREDNS_IMPORT_INDENT}{COREDNS_IMPORT_LINE}",
    )


def patch_coredns_configmap(configmap: dict) -> dict:
    """Return *configmap* with its Corefile patched; other keys untouched."""
    data = dict(configmap.get("data") or {})
    data["Corefile"] = patch_corefile(data.get("Corefile", ""))
    return {**configmap, "data": data}


def volume_patch() -> list[dict]:
    """JSON patch mounting ``coredns-custom`` into the CoreDNS deployment."""
    return [
        {
            "op": "add",
            "path": "/spec/template/spec/volumes/-",
            "value": {
                "name": COREDNS_CUSTOM_CONFIGMAP,
                "configMap": {"name": COREDNS_CUSTOM_CONFIGMAP},
            },
        },
        {
            "op": "add",
            "path": "/spec/template/spec/containers/0/volumeMounts/-",
            "value": {
                "name": COREDNS_CUSTOM_CONFIGMAP,
                "mountPath": COREDNS_CUSTOM_MOUNT_PATH,
                "readOnly": True,
            },
        },
    ]


def has_custom_volume(deployment: dict) -> bool:
    """Whether a CoreDNS deployment already mounts the custom ConfigMap."""
    volumes = deployment.get("spec", {}).get("template", {}).get("spec", {}).get("volumes") or []
    return any(volume.get("name") == COREDNS_CUSTOM_CONFIGMAP for volume in volumes)


def _mount_custom_configmap() -> None:
    """Mount the custom ConfigMap into CoreDNS; failures are reported, not raised."""
    try:
        deployment = json.loads(str(sh.kubectl(
            "get", "deployment", COREDNS_DEPLOYMENT, "-n", NS_KUBE_SYSTEM, "-o", "json",
        )))
        if has_custom_volume(deployment):
            console.print("[yellow]   CoreDNS already mounts the custom config[/yellow]")
            return
        sh.kubectl(
            "patch", "deployment", COREDNS_DEPLOYMENT, "-n", NS_KUBE_SYSTEM,
            "--type=json", "-p", json.dumps(volume_patch()),
        )
    except (sh.ErrorReturnCode, ValueError) as err:
        logger.debug("CoreDNS deployment patch failed: %s", err)
        console.print("[yellow]\u26a0\ufe0f  Could not patch the CoreDNS deployment, continuing[/yellow]")


def configure_coredns(cluster_cfg: ClusterConfig) -> None:
    """Point ``*.127.0.0.1.nip.io`` at the Coder service for in-cluster clients.

    Args:
        cluster_cfg: Cluster configuration with the Coder namespace.

    Raises:
        RuntimeError: If the Coder service has no cluster IP.
    """
    console.print(Panel.fit("Configuring CoreDNS for in-cluster DNS resolution", style="bold blue"))
    namespace = cluster_cfg.namespace

    if not coder_service_field(namespace, "{.spec.clusterIP}"):
        raise RuntimeError("Could not get Coder service IP")

    sh.kubectl("apply", "-f", "-", _in=yaml.safe_dump(custom_configmap(namespace), sort_keys=False))

    configmap = json.loads(str(sh.kubectl(
        "get", "configmap", COREDNS_CONFIGMAP, "-n", NS_KUBE_SYSTEM, "-o", "json",
    )))
    sh.kubectl("apply", "-f", "-", _in=json.dumps(patch_coredns_configmap(configmap)))

    _mount_custom_configmap()

    sh.kubectl("rollout", "restart", "deployment", COREDNS_DEPLOYMENT, "-n", NS_KUBE_SYSTEM)
    sh.kubectl(
        "rollout", "status", "deployment", COREDNS_DEPLOYMENT,
        "-n", NS_KUBE_SYSTEM, f"--timeout={COREDNS_ROLLOUT_TIMEOUT}",
    )
    console.print(
        f"[green]\u2705 CoreDNS configured: *.127.0.0.1.nip.io -> {coder_service_host(namespace)}[/green]"
    )
