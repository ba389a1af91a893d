import json
import os
from pathlib import Path

import pytest

from waypost import cli

APP_SOURCE = """
from waypost.app import Application
from waypost.context import current_request

app = Application()


@app.route("/ping")
def ping():
    return {"pong": current_request().header("x-token")}


@app.route("/users/{id}")
def user():
    return {"id": current_request().params["id"]}


app.hooks.add_action("router_no_match", print, priority=3)
"""


def _write_app(tmp_path: Path, monkeypatch, name: str) -> str:
    (tmp_path / f"{name}.py").write_text(APP_SOURCE)
    monkeypatch.syspath_prepend(str(tmp_path))
    return f"{name}:app"


def test_cli_parser_supports_commands() -> None:
    parser = cli.build_parser()

    assert parser.parse_args(["routes", "--json"]).json is True
    parsed = parser.parse_args(["request", "/x", "-X", "post", "-H", "A: b", "-H", "C: d"])
    assert parsed.command == "request"
    assert parsed.header == ["A: b", "C: d"]
    assert parser.parse_args(["serve", "--port", "9000"]).port == 9000


def test_request_command_prints_body(tmp_path: Path, monkeypatch, capsys) -> None:
    target = _write_app(tmp_path, monkeypatch, "cli_request_app")

    exit_code = cli.main(["request", "/ping", "-H", "X-Token: abc", "--app", target, "--project-path", str(tmp_path)])

    assert exit_code == 0
    assert json.loads(capsys.readouterr().out) == {"pong": "abc"}


def test_request_command_fails_for_error_status(tmp_path: Path, monkeypatch, capsys) -> None:
    target = _write_app(tmp_path, monkeypatch, "cli_request_missing_app")

    exit_code = cli.main(["request", "/missing", "-i", "--app", target, "--project-path", str(tmp_path)])

    out = capsys.readouterr().out
    assert exit_code == 1
    assert "HTTP 404" in out
    assert "Access-Control-Allow-Origin: *" in out


def test_request_command_rejects_bad_header(tmp_path: Path, monkeypatch) -> None:
    target = _write_app(tmp_path, monkeypatch, "cli_bad_header_app")

    assert cli.main(["request", "/ping", "-H", "nocolon", "--app", target, "--project-path", str(tmp_path)]) == 2


def test_routes_command_json(tmp_path: Path, monkeypatch, capsys) -> None:
    target = _write_app(tmp_path, monkeypatch, "cli_routes_app")

    exit_code = cli.main(["routes", "--json", "--app", target, "--project-path", str(tmp_path)])

    payload = json.loads(capsys.readouterr().out)
    assert exit_code == 0
    assert [route["pattern"] for route in payload["routes"]] == ["/ping", "/users/{id}"]
    assert payload["routes"][1]["params"] == ["id"]
    assert payload["routes"][0]["handler"] == "cli_routes_app.ping"


def test_hooks_command_lists_registrations(tmp_path: Path, monkeypatch, capsys) -> None:
    target = _write_app(tmp_path, monkeypatch, "cli_hooks_app")

    exit_code = cli.main(["hooks", "--app", target, "--project-path", str(tmp_path)])

    out = capsys.readouterr().out
    assert exit_code == 0
    assert "router_no_match" in out
    assert "action" in out


def test_unknown_app_target_exits_with_error(tmp_path: Path) -> None:
    assert cli.main(["routes", "--app", "no_such_module_here:app", "--project-path", str(tmp_path)]) == 2


def test_serve_reload_exports_config_flags(tmp_path: Path, monkeypatch) -> None:
    uvicorn = pytest.importorskip("uvicorn")
    calls: list[tuple] = []
    monkeypatch.setattr(uvicorn, "run", lambda app, **kwargs: calls.append((app, kwargs)))
    for name in ("WAYPOST_PROJECT_PATH", "WAYPOST_APP", "WAYPOST_SYSTEM_CONFIG", "WAYPOST_RUNTIME_OVERRIDE", "WAYPOST_LOG_FILE"):
        monkeypatch.delenv(name, raising=False)
    system = tmp_path / "system.yaml"
    system.write_text("server:\n  port: 8123\n")
    runtime = tmp_path / "runtime.yaml"
    runtime.write_text("system_routes:\n  enabled: true\n")

    exit_code = cli.main(
        [
            "serve",
            "--reload",
            "--project-path",
            str(tmp_path),
            "--system-config",
            str(system),
            "--runtime-override",
            str(runtime),
        ]
    )

    assert exit_code == 0
    assert calls[0][0] == "waypost.server:create_app_from_env"
    assert calls[0][1]["port"] == 8123
    assert calls[0][1]["factory"] is True
    assert os.environ["WAYPOST_PROJECT_PATH"] == str(tmp_path.resolve())
    assert os.environ["WAYPOST_SYSTEM_CONFIG"] == str(system.resolve())
    assert os.environ["WAYPOST_RUNTIME_OVERRIDE"] == str(runtime.resolve())
    assert "WAYPOST_APP" not in os.environ
    assert "WAYPOST_LOG_FILE" not in os.environ
