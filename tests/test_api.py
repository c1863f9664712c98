"""Integration tests for the FastAPI routes.

Uses monkeypatching to point the config chain at a tmp_path rig file and
resets the ConsoleState singleton, isolating each test from configs/ on disk.
"""

from __future__ import annotations

import time
from collections.abc import Iterator
from pathlib import Path

import pytest
import yaml
from fastapi.testclient import TestClient


def _test_rig_data() -> dict:
    """A two-arm rig plus one arm whose type is unknown."""
    return {
        "console": {"name": "console", "io": "io", "io_period": 0.01},
        "arms": {
            "PSM1": {
                "type": "psm",
                "pid": "pid-psm1.xml",
                "arm": "psm1.json",
                "pid_period": 0.0,
                "arm_period": 0.01,
            },
            "ECM": {
                "type": "ecm",
                "pid": "pid-ecm.xml",
                "arm": "ecm.json",
                "pid_period": 0.0,
                "arm_period": 0.01,
            },
            "SUJ": {"type": "suj", "pid": "pid-suj.xml", "arm": "suj.json"},
        },
    }


@pytest.fixture()
def isolated_app(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[TestClient]:
    """Create an isolated TestClient; the lifespan builds and stops the rig."""
    import armconsole.config as config_mod
    import armconsole.state as state_mod

    config_file = tmp_path / "console.yaml"
    config_file.write_text(yaml.dump(_test_rig_data(), sort_keys=False))
    monkeypatch.setattr(config_mod, "CONFIG_PATH", config_file)
    monkeypatch.setattr(config_mod, "CONFIG_EXAMPLE_PATH", tmp_path / "nope.yaml")

    # Reset ConsoleState singleton to prevent cross-test pollution
    monkeypatch.setattr(state_mod, "_state", None)

    from armconsole.api.app import app

    with TestClient(app) as client:
        yield client


def _wait_for_events(client: TestClient, event: str, count: int, timeout: float = 2.0) -> list:
    deadline = time.monotonic() + timeout
    data: list = []
    while time.monotonic() < deadline:
        data = client.get("/console/events", params={"event": event}).json()
        if len(data) >= count:
            break
        time.sleep(0.02)
    return data


# ------------------------------------------------------------------
# Health
# ------------------------------------------------------------------


def test_health(isolated_app: TestClient) -> None:
    r = isolated_app.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


# ------------------------------------------------------------------
# Console routes
# ------------------------------------------------------------------


def test_list_arms(isolated_app: TestClient) -> None:
    r = isolated_app.get("/console/arms")
    assert r.status_code == 200
    data = r.json()
    assert [a["name"] for a in data] == ["PSM1", "ECM"]
    assert data[0]["armType"] == "psm"
    assert data[0]["pidComponentName"] == "PSM1-PID"
    assert data[0]["phase"] == "registered"
    assert any(c["required"] == "IOPSM1" for c in data[0]["connections"])


def test_get_arm(isolated_app: TestClient) -> None:
    r = isolated_app.get("/console/arms/ECM")
    assert r.status_code == 200
    data = r.json()
    assert data["armType"] == "ecm"
    assert data["armConfigFile"] == "ecm.json"


def test_get_arm_not_found(isolated_app: TestClient) -> None:
    r = isolated_app.get("/console/arms/SUJ")
    assert r.status_code == 404


def test_set_control_state(isolated_app: TestClient) -> None:
    r = isolated_app.post("/console/state", json={"state": "READY"})
    assert r.status_code == 200
    assert r.json() == {"state": "READY", "result": "command_succeeded"}

    from armconsole.state import get_state

    manager = get_state().manager
    assert manager.get_component("PSM1").states == ["READY"]
    assert manager.get_component("ECM").states == ["READY"]

    events = _wait_for_events(isolated_app, "Status", 2)
    messages = [e["message"] for e in events]
    assert "PSM1: control state READY" in messages
    assert "ECM: control state READY" in messages


def test_set_control_state_empty_rejected(isolated_app: TestClient) -> None:
    r = isolated_app.post("/console/state", json={"state": ""})
    assert r.status_code == 422


def test_events_unknown_filter(isolated_app: TestClient) -> None:
    r = isolated_app.get("/console/events", params={"event": "Debug"})
    assert r.status_code == 400


def test_events_limit(isolated_app: TestClient) -> None:
    from armconsole.state import get_state

    io = get_state().manager.get_component("io")
    for i in range(5):
        io.emit_message("PSM1", "Warning", f"warning {i}")

    _wait_for_events(isolated_app, "Warning", 5)
    r = isolated_app.get("/console/events", params={"event": "Warning", "limit": 2})
    assert r.status_code == 200
    assert [e["message"] for e in r.json()] == ["warning 3", "warning 4"]


# ------------------------------------------------------------------
# System routes
# ------------------------------------------------------------------


def test_system_status(isolated_app: TestClient) -> None:
    r = isolated_app.get("/system/status")
    assert r.status_code == 200
    data = r.json()
    assert data["phase"] == "ready"
    assert data["total_arms"] == 2
    assert data["failedArms"] == ["SUJ"]


def test_system_config(isolated_app: TestClient) -> None:
    r = isolated_app.get("/system/config")
    assert r.status_code == 200
    data = r.json()
    assert data["console"] == {"name": "console", "io": "io", "io_period": 0.01}
    assert list(data["arms"]) == ["PSM1", "ECM", "SUJ"]


def test_restart_rebuilds_rig(isolated_app: TestClient) -> None:
    assert isolated_app.post("/console/state", json={"state": "READY"}).status_code == 200

    r = isolated_app.post("/system/restart")
    assert r.status_code == 200
    assert r.json() == {
        "phase": "ready",
        "arms": ["PSM1", "ECM"],
        "failedArms": ["SUJ"],
        "error": None,
    }

    from armconsole.state import get_state

    # Rebuilt components start with no recorded states.
    assert get_state().manager.get_component("PSM1").states == []
    assert [a["name"] for a in isolated_app.get("/console/arms").json()] == ["PSM1", "ECM"]


def test_restart_in_progress_refused(isolated_app: TestClient) -> None:
    import armconsole.api.routes.system as system_mod

    assert system_mod._restart_lock.acquire(blocking=False)
    try:
        r = isolated_app.post("/system/restart")
    finally:
        system_mod._restart_lock.release()
    assert r.status_code == 409


def test_console_unavailable_when_stopped(isolated_app: TestClient) -> None:
    from armconsole.state import get_state

    get_state().shutdown()

    assert isolated_app.get("/console/arms").status_code == 503
    assert isolated_app.post("/console/state", json={"state": "READY"}).status_code == 503
    assert isolated_app.get("/console/events").status_code == 503
    assert isolated_app.get("/system/status").json()["phase"] == "uninitialized"
