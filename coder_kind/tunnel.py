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

"""socat relay container forwarding a host port to the Coder NodePort."""

from __future__ import annotations

import docker
from rich.panel import Panel

from coder_kind import console, logger
from coder_kind.components import coder_service_field
from coder_kind.config import ClusterConfig, ComponentConfig
from coder_kind.constants import KIND_DOCKER_NETWORK, TUNNEL_RESTART_POLICY


def _remove_container(docker_client: docker.DockerClient, name: str) -> bool:
    """Force-remove a container by name. Returns False if it did not exist or could not be removed."""
    try:
        docker_client.containers.get(name).remove(force=True)
        return True
    except docker.errors.NotFound:
        return False
    except docker.errors.APIError as err:
        logger.debug("Could not remove container %s: %s", name, err)
        return False


def node_ip(docker_client: docker.DockerClient, cluster_cfg: ClusterConfig) -> str:
    """Address of the kind control-plane node on the ``kind`` docker network.

    Args:
        docker_client: Docker client instance.
        cluster_cfg: Cluster configuration with the cluster name.

    Returns:
        The node IP, or an empty string if the node or network is missing.
    """
    try:
        container = docker_client.containers.get(cluster_cfg.control_plane_container)
    except docker.errors.NotFound:
        return ""
    networks = container.attrs.get("NetworkSettings", {}).get("Networks") or {}
    return (networks.get(KIND_DOCKER_NETWORK) or {}).get("IPAddress", "")


def relay_command(target_ip: str, target_port: str, listen_port: int) -> list[str]:
    """socat arguments relaying *listen_port* to ``target_ip:target_port``."""
    return [
        f"tcp-listen:{listen_port},fork,reuseaddr",
        f"tcp-connect:{target_ip}:{target_port}",
    ]


def start_tunnel(cluster_cfg: ClusterConfig, comp_cfg: ComponentConfig) -> None:
    """Replace the relay container with one pointing at the current NodePort.

    Args:
        cluster_cfg: Cluster configuration with relay name and host port.
        comp_cfg: Component configuration with the relay image.

    Raises:
        RuntimeError: If the node IP or the Coder NodePort cannot be resolved.
    """
    console.print(Panel.fit("Starting tunnel", style="bold blue"))
    docker_client = docker.from_env()
    try:
        if _remove_container(docker_client, cluster_cfg.tunnel_container):
            console.print("[yellow]   Removed existing tunnel container[/yellow]")

        kind_ip = node_ip(docker_client, cluster_cfg)
        if not kind_ip:
            raise RuntimeError("Could not get Kind node IP")
        node_port = coder_service_field(cluster_cfg.namespace, "{.spec.ports[0].nodePort}")
        if not node_port:
            raise RuntimeError("Could not get Coder NodePort")

        port = cluster_cfg.tunnel_host_port
        docker_client.containers.run(
            comp_cfg.tunnel_image,
            relay_command(kind_ip, node_port, port),
            name=cluster_cfg.tunnel_container,
            network=KIND_DOCKER_NETWORK,
            restart_policy={"Name": TUNNEL_RESTART_POLICY},
            ports={f"{port}/tcp": port},
            detach=True,
        )
    finally:
        docker_client.close()
    console.print(f"[green]\u2705 Tunnel ready: localhost:{port} -> {kind_ip}:{node_port}[/green]")


def remove_tunnel(cluster_cfg: ClusterConfig) -> None:
    """Remove the relay container if present; docker being unavailable is not an error."""
    try:
        docker_client = docker.from_env()
    except docker.errors.DockerException as err:
        console.print(f"[yellow]\u26a0\ufe0f  Failed to connect to Docker: {err}[/yellow]")
        return
    try:
        if _remove_container(docker_client, cluster_cfg.tunnel_container):
            console.print(f"[green]\u2705 Tunnel container '{cluster_cfg.tunnel_container}' removed[/green]")
        else:
            logger.debug("Tunnel container %s not removed", cluster_cfg.tunnel_container)
    finally:
        docker_client.close()


def tunnel_status(cluster_cfg: ClusterConfig) -> list[tuple[str, str]]:
    """Status and port mappings of containers matching the relay name.

    Args:
        cluster_cfg: Cluster configuration with the relay name.

    Returns:
        List of (status, ports) tuples; empty if nothing matches.
    """
    docker_client = docker.from_env()
    try:
        rows = []
        for container in docker_client.containers.list(filters={"name": cluster_cfg.tunnel_container}):
            ports = container.attrs.get("NetworkSettings", {}).get("Ports") or {}
            mappings = [
                f"{binding.get('HostIp', '')}:{binding.get('HostPort', '')}->{container_port}"
                for container_port, bindings in sorted(ports.items())
                for binding in (bindings or [])
            ]
            rows.append((container.status, ", ".join(mappings)))
        return rows
    finally:
        docker_client.close()
