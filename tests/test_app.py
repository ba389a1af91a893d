from pathlib import Path

import pytest

from waypost.app import Application, load_application
from waypost.config import CONFIG_FILENAME, WaypostConfig
from waypost.context import current_request


def test_decorators_register_routes_and_error_handlers() -> None:
    app = Application()

    @app.route("/hello/{name}")
    def hello() -> dict:
        return {"hello": current_request().params["name"]}

    @app.error_handler(404)
    def missing() -> dict:
        return {"missing": current_request().path}

    assert app.handle("/hello/ada").json_body() == {"hello": "ada"}
    response = app.handle("/nowhere")
    assert response.status == 404
    assert response.json_body() == {"missing": "/nowhere"}


def test_default_cors_headers_are_applied() -> None:
    app = Application()
    app.route("/x")(lambda: "x")

    headers = app.handle("/x").headers

    assert headers["Access-Control-Allow-Origin"] == "*"
    assert headers["Access-Control-Allow-Headers"] == "Content-Type, Authorization"


def test_from_project_builds_routes_from_config(tmp_path: Path, monkeypatch) -> None:
    package = tmp_path / "app_project_views"
    package.mkdir()
    (package / "__init__.py").write_text("")
    (package / "home.py").write_text("def handle():\n    return 'welcome'\n")
    (tmp_path / CONFIG_FILENAME).write_text(
        """
views:
  package: app_project_views
system_routes:
  enabled: true
routes:
  home:
    view: Home
"""
    )
    monkeypatch.syspath_prepend(str(tmp_path))

    app = Application.from_project(tmp_path)

    assert app.handle("/home").body == "welcome"
    assert app.handle("/system/client-ip", client_host="10.1.2.3").json_body() == "10.1.2.3"


def test_route_tree_without_views_package_is_rejected() -> None:
    with pytest.raises(ValueError, match="views.package"):
        Application(config=WaypostConfig(routes={"home": {"view": "Home"}}))


def test_load_application_targets(tmp_path: Path, monkeypatch) -> None:
    (tmp_path / "app_targets.py").write_text(
        "from waypost.app import Application\n\n"
        "app = Application()\n"
        "app.route('/ping')(lambda: 'pong')\n\n"
        "def factory(config):\n"
        "    built = Application(config=config)\n"
        "    built.route('/factory')(lambda: 'made')\n"
        "    return built\n\n"
        "def wrong(config):\n"
        "    return 'nope'\n\n"
        "CONSTANT = 3\n"
    )
    monkeypatch.syspath_prepend(str(tmp_path))
    config = WaypostConfig()

    assert load_application("app_targets:app", config).handle("/ping").body == "pong"
    assert load_application("app_targets:factory", config).handle("/factory").body == "made"
    assert isinstance(load_application(None, config), Application)
    for target in ("app_targets", "app_targets:missing", "app_targets:wrong", "app_targets:CONSTANT"):
        with pytest.raises(ValueError):
            load_application(target, config)
