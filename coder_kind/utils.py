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

"""Utility functions for kubectl, helm, and command checks."""

from __future__ import annotations

import subprocess
from collections.abc import Iterable

import sh

from coder_kind import logger


def require_command(cmd: str) -> None:
    """Check if a command exists on the system PATH.

    Args:
        cmd: Name of the CLI command to check.

    Raises:
        RuntimeError: If the command is not found.
    """
    try:
        found = sh.which(cmd)
    except sh.ErrorReturnCode:
        found = None
    if not found:
        raise RuntimeError(f"Required command '{cmd}' not found. Please install it first.")


def missing_commands(cmds: Iterable[str]) -> list[str]:
    """Return the commands from *cmds* that are not on PATH, in order."""
    missing = []
    for cmd in cmds:
        try:
            require_command(cmd)
        except RuntimeError:
            missing.append(cmd)
    return missing


def helm_set_args(values: Iterable[tuple[str, str]]) -> list[str]:
    """Flatten ``(key, value)`` pairs into ``--set key=value`` arguments."""
    return [item for key, value in values for item in ("--set", f"{key}={value}")]


def helm_repo_add(name: str, url: str) -> None:
    """Add (or refresh) a Helm repository and update its index.

    Args:
        name: Local repository alias.
        url: Repository URL.
    """
    sh.helm("repo", "add", name, url, "--force-update")
    sh.helm("repo", "update", name)


def render_and_apply(*create_args: str) -> None:
    """Render a resource with ``kubectl create --dry-run`` and apply it.

    Applying the rendered manifest overwrites an existing object instead of
    failing with AlreadyExists.

    Args:
        *create_args: Arguments following ``kubectl create``.
    """
    manifest = sh.kubectl("create", *create_args, "--dry-run=client", "-o", "yaml")
    sh.kubectl("apply", "-f", "-", _in=manifest)


def run_kubectl(args: list[str], timeout: int = 30) -> tuple[bool, str, str]:
    """Run a kubectl command via subprocess and return (success, stdout, stderr).

    Never raises; a missing binary or timeout is reported as a failure.

    Args:
        args: kubectl arguments (e.g. ``["get", "pods", "-n", "default"]``).
        timeout: Maximum seconds to wait for the command to complete.

    Returns:
        Tuple of (success, stdout, stderr).
    """
    logger.debug("kubectl %s", " ".join(args))
    try:
        result = subprocess.run(
            ["kubectl", *args],
            capture_output=True,
            text=True,
            timeout=timeout,
        )
        return result.returncode == 0, result.stdout, result.stderr
    except (subprocess.SubprocessError, OSError) as exc:
        return False, "", str(exc)
