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

"""Coder API readiness, first-user creation, and login."""

from __future__ import annotations

import time
from collections.abc import Callable
from pathlib import Path

import requests
import sh
from rich.panel import Panel
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_fixed

from coder_kind import console, logger
from coder_kind.config import AdminConfig, CoderConfig
from coder_kind.constants import (
    API_BUILDINFO,
    API_FIRST_USER,
    API_HEALTH,
    API_LOGIN,
    API_REQUEST_TIMEOUT_SECONDS,
    HEALTH_REQUEST_TIMEOUT_SECONDS,
    SESSION_TOKEN_HEADER,
)
from coder_kind.session import coder_cli_env, write_session


class CoderAPI:
    """Thin client for the handful of Coder endpoints used during bootstrap."""

    def __init__(self, base_url: str, session: requests.Session | None = None, token: str | None = None) -> None:
        self.base_url = base_url.rstrip("/")
        self.session = session if session is not None else requests.Session()
        if token:
            self.session.headers[SESSION_TOKEN_HEADER] = token

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def buildinfo(self, timeout: float) -> requests.Response:
        """GET the build-info endpoint.

        Raises:
            requests.RequestException: On connection failure or a non-2xx status.
        """
        resp = self.session.get(self._url(API_BUILDINFO), timeout=timeout)
        resp.raise_for_status()
        return resp

    def create_first_user(self, admin_cfg: AdminConfig) -> requests.Response:
        """POST the first-user endpoint; the caller decides what a failure means."""
        return self.session.post(
            self._url(API_FIRST_USER),
            json={
                "email": admin_cfg.email,
                "username": admin_cfg.username,
                "password": admin_cfg.password,
                "trial": False,
            },
            timeout=API_REQUEST_TIMEOUT_SECONDS,
        )

    def login(self, admin_cfg: AdminConfig) -> str:
        """Log in with password credentials and return the session token.

        Raises:
            RuntimeError: If the response carries no ``session_token``.
        """
        resp = self.session.post(
            self._url(API_LOGIN),
            json={"email": admin_cfg.email, "password": admin_cfg.password},
            timeout=API_REQUEST_TIMEOUT_SECONDS,
        )
        try:
            body = resp.json()
        except ValueError:
            body = None
        token = body.get("session_token") if isinstance(body, dict) else None
        if not token:
            raise RuntimeError(f"Failed to get session token. Response: {resp.text}")
        return token

    def health(self, timeout: float = HEALTH_REQUEST_TIMEOUT_SECONDS) -> dict:
        """Fetch the debug health report.

        Returns:
            The overall, DERP and websocket health flags.
        """
        resp = self.session.get(self._url(API_HEALTH), timeout=timeout)
        report = resp.json()
        return {
            "healthy": report.get("healthy"),
            "derp": (report.get("derp") or {}).get("healthy"),
            "websocket": (report.get("websocket") or {}).get("healthy"),
        }


def wait_for_api(api: CoderAPI, coder_cfg: CoderConfig, sleep: Callable[[float], None] = time.sleep) -> None:
    """Poll build-info until Coder answers or the attempt ceiling is reached.

    Args:
        api: Client pointed at the Coder base URL.
        coder_cfg: Coder configuration with attempt count, interval and timeout.
        sleep: Sleep function used between attempts.

    Raises:
        RuntimeError: If no attempt succeeds.
    """
    @retry(
        stop=stop_after_attempt(coder_cfg.readiness_max_attempts),
        wait=wait_fixed(coder_cfg.readiness_poll_interval),
        retry=retry_if_exception_type(requests.RequestException),
        sleep=sleep,
        reraise=True,
    )
    def _probe() -> None:
        logger.debug("Probing %s%s", api.base_url, API_BUILDINFO)
        api.buildinfo(coder_cfg.readiness_timeout)

    try:
        _probe()
    except requests.RequestException as err:
        raise RuntimeError(f"Coder not responding at {api.base_url}") from err


def verify_session(url: str, token: str) -> None:
    """Run ``coder whoami`` with the token passed through the environment.

    Raises:
        RuntimeError: If the coder CLI rejects the session.
    """
    try:
        sh.coder("whoami", _env=coder_cli_env(url, token))
    except sh.ErrorReturnCode as err:
        raise RuntimeError("Session verification failed. Token may be invalid.") from err


def bootstrap_admin(
    coder_cfg: CoderConfig,
    admin_cfg: AdminConfig,
    config_dir: Path,
    api: CoderAPI | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> str:
    """Wait for Coder, create the admin account, log in, and persist the session.

    Args:
        coder_cfg: Coder configuration with the access URL and poll settings.
        admin_cfg: Administrative account credentials.
        config_dir: coder CLI config directory to write the session into.
        api: Client to use, or None to create one for the access URL.
        sleep: Sleep function used by the readiness poll.

    Returns:
        The session token.

    Raises:
        RuntimeError: If Coder never becomes ready, login fails, or the
            session cannot be verified.
    """
    console.print(Panel.fit("Bootstrapping Coder", style="bold blue"))
    api = api if api is not None else CoderAPI(coder_cfg.access_url)

    console.print("[yellow]\u2139\ufe0f  Waiting for Coder API...[/yellow]")
    wait_for_api(api, coder_cfg, sleep=sleep)

    console.print("[yellow]\u2139\ufe0f  Creating admin user...[/yellow]")
    resp = api.create_first_user(admin_cfg)
    if resp.ok:
        console.print(f"[green]  \u2713 Created {admin_cfg.username}[/green]")
    else:
        logger.debug("First-user response %s: %s", resp.status_code, resp.text)
        console.print(f"[yellow]   Admin user not created (HTTP {resp.status_code}), it may already exist[/yellow]")

    console.print("[yellow]\u2139\ufe0f  Logging in...[/yellow]")
    token = api.login(admin_cfg)
    write_session(config_dir, token, coder_cfg.access_url)

    console.print("[yellow]\u2139\ufe0f  Verifying session...[/yellow]")
    verify_session(coder_cfg.access_url, token)
    console.print(f"[green]\u2705 Logged in as {admin_cfg.username}[/green]")
    return token
