"""Unit tests for the Coder readiness poll and admin bootstrap."""

import pytest
import requests

from coder_kind import bootstrap

from .conftest import FakeResponse, FakeSession, sh_error

BUILDINFO = ("GET", "/api/v2/buildinfo")
FIRST_USER = ("POST", "/api/v2/users/first")
LOGIN = ("POST", "/api/v2/users/login")
HEALTH = ("GET", "/api/v2/debug/health")


class SleepRecorder:
    def __init__(self):
        self.calls = []

    def __call__(self, seconds):
        self.calls.append(seconds)


def _api(routes):
    session = FakeSession(routes=routes)
    return bootstrap.CoderAPI("http://coder.127.0.0.1.nip.io/", session=session), session


def _ready_routes(login=None, first_user=None):
    return {
        BUILDINFO: FakeResponse(200, {"version": "v2.20.0"}),
        FIRST_USER: first_user or FakeResponse(201, {"user_id": "u1"}),
        LOGIN: login or FakeResponse(201, {"session_token": "tok-123"}),
    }


def test_base_url_is_normalized():
    api, _ = _api({})
    assert api.base_url == "http://coder.127.0.0.1.nip.io"


def test_token_header_is_set():
    api = bootstrap.CoderAPI("http://x", session=FakeSession(), token="tok")
    assert api.session.headers["Coder-Session-Token"] == "tok"


def test_wait_for_api_gives_up_after_attempt_ceiling(coder_cfg):
    api, session = _api({BUILDINFO: requests.ConnectionError("refused")})
    sleep = SleepRecorder()

    with pytest.raises(RuntimeError, match="Coder not responding at http://coder.127.0.0.1.nip.io"):
        bootstrap.wait_for_api(api, coder_cfg, sleep=sleep)

    assert session.count(*BUILDINFO) == 60
    assert sleep.calls == [2] * 59
    assert all(kwargs["timeout"] == 2 for _, _, kwargs in session.requests)


def test_wait_for_api_counts_error_status_as_failure(coder_cfg):
    cfg = coder_cfg.model_copy(update={"readiness_max_attempts": 3})
    api, session = _api({BUILDINFO: FakeResponse(503)})
    with pytest.raises(RuntimeError):
        bootstrap.wait_for_api(api, cfg, sleep=SleepRecorder())
    assert session.count(*BUILDINFO) == 3


def test_wait_for_api_returns_once_ready(coder_cfg):
    api, session = _api({BUILDINFO: [
        requests.ConnectionError("refused"),
        requests.Timeout("slow"),
        FakeResponse(200, {"version": "v2"}),
    ]})
    sleep = SleepRecorder()
    bootstrap.wait_for_api(api, coder_cfg, sleep=sleep)
    assert session.count(*BUILDINFO) == 3
    assert sleep.calls == [2, 2]


def test_login_returns_token(admin_cfg):
    api, session = _api({LOGIN: FakeResponse(201, {"session_token": "tok-123"})})
    assert api.login(admin_cfg) == "tok-123"
    assert session.requests[0][2]["json"] == {"email": "admin@coder.local", "password": "SuperSecretPassword123!"}


@pytest.mark.parametrize("response", [
    FakeResponse(401, {"message": "Incorrect email or password."}),
    FakeResponse(200, {"session_token": ""}),
    FakeResponse(502, None, text="Bad Gateway"),
])
def test_login_without_token_is_fatal(admin_cfg, response):
    api, _ = _api({LOGIN: response})
    with pytest.raises(RuntimeError, match="Failed to get session token. Response: "):
        api.login(admin_cfg)


def test_health_summary():
    api, _ = _api({HEALTH: FakeResponse(200, {
        "healthy": True,
        "derp": {"healthy": True, "regions": {}},
        "websocket": {"healthy": False},
        "database": {"healthy": True},
    })})
    assert api.health() == {"healthy": True, "derp": True, "websocket": False}


def test_bootstrap_admin_persists_verified_session(fake_sh, tmp_path, coder_cfg, admin_cfg):
    api, session = _api(_ready_routes())
    config_dir = tmp_path / "coderv2"

    token = bootstrap.bootstrap_admin(coder_cfg, admin_cfg, config_dir, api=api, sleep=SleepRecorder())

    assert token == "tok-123"
    assert (config_dir / "session").read_text() == "tok-123"
    assert (config_dir / "url").read_text() == "http://coder.127.0.0.1.nip.io"
    first_user = next(kwargs for method, path, kwargs in session.requests if (method, path) == FIRST_USER)
    assert first_user["json"] == {
        "email": "admin@coder.local",
        "username": "admin",
        "password": "SuperSecretPassword123!",
        "trial": False,
    }
    whoami = fake_sh.calls[-1]
    assert whoami.argv == ("coder", "whoami")
    assert whoami.kwargs["_env"]["CODER_SESSION_TOKEN"] == "tok-123"
    assert whoami.kwargs["_env"]["CODER_URL"] == "http://coder.127.0.0.1.nip.io"


def test_bootstrap_admin_ignores_existing_user(fake_sh, tmp_path, coder_cfg, admin_cfg):
    routes = _ready_routes(first_user=FakeResponse(409, {"message": "The initial user has already been created."}))
    api, _ = _api(routes)
    token = bootstrap.bootstrap_admin(coder_cfg, admin_cfg, tmp_path / "coderv2", api=api, sleep=SleepRecorder())
    assert token == "tok-123"


def test_bootstrap_admin_failed_login_leaves_no_session(fake_sh, tmp_path, coder_cfg, admin_cfg):
    api, _ = _api(_ready_routes(login=FakeResponse(401, {"message": "nope"})))
    config_dir = tmp_path / "coderv2"
    with pytest.raises(RuntimeError, match="Failed to get session token"):
        bootstrap.bootstrap_admin(coder_cfg, admin_cfg, config_dir, api=api, sleep=SleepRecorder())
    assert not config_dir.exists()
    assert fake_sh.argv("coder") == []


def test_bootstrap_admin_rejected_session(fake_sh, tmp_path, coder_cfg, admin_cfg):
    def _coder(*args, **kwargs):
        raise sh_error("coder whoami")

    fake_sh.on("coder", _coder)
    api, _ = _api(_ready_routes())
    with pytest.raises(RuntimeError, match="Session verification failed"):
        bootstrap.bootstrap_admin(coder_cfg, admin_cfg, tmp_path / "coderv2", api=api, sleep=SleepRecorder())


def test_bootstrap_admin_never_ready(fake_sh, tmp_path, coder_cfg, admin_cfg):
    cfg = coder_cfg.model_copy(update={"readiness_max_attempts": 2})
    api, session = _api({BUILDINFO: requests.ConnectionError("refused")})
    with pytest.raises(RuntimeError, match="Coder not responding"):
        bootstrap.bootstrap_admin(cfg, admin_cfg, tmp_path / "coderv2", api=api, sleep=SleepRecorder())
    assert session.count(*FIRST_USER) == 0
