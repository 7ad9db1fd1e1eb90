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

"""Session token and URL files shared with the coder CLI."""

from __future__ import annotations

import os
import shutil
from pathlib import Path

from coder_kind.constants import SESSION_FILE, URL_FILE


def write_session(config_dir: Path, token: str, url: str) -> None:
    """Replace the session directory with a fresh token and URL.

    Args:
        config_dir: The coder CLI config directory.
        token: Session token returned by login.
        url: Coder base URL.
    """
    shutil.rmtree(config_dir, ignore_errors=True)
    config_dir.mkdir(parents=True)
    (config_dir / SESSION_FILE).write_text(token)
    (config_dir / URL_FILE).write_text(url)


def read_session_token(config_dir: Path) -> str:
    """Read the persisted session token.

    Raises:
        RuntimeError: If the session file is missing or empty.
    """
    session_file = config_dir / SESSION_FILE
    try:
        token = session_file.read_text().strip()
    except FileNotFoundError:
        token = ""
    if not token:
        raise RuntimeError(f"No session token at {session_file}. Run install first.")
    return token


def clear_session(config_dir: Path) -> None:
    shutil.rmtree(config_dir, ignore_errors=True)


def coder_cli_env(url: str, token: str) -> dict[str, str]:
    """Process environment for coder CLI calls authenticated with *token*."""
    return {**os.environ, "CODER_URL": url, "CODER_SESSION_TOKEN": token}
