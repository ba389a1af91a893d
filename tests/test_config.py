from pathlib import Path

import pytest
from pydantic import ValidationError

from waypost.config import CONFIG_FILENAME, load_effective_config


def test_config_precedence(tmp_path: Path) -> None:
    project = tmp_path / "project"
    project.mkdir()

    (project / CONFIG_FILENAME).write_text(
        """
router:
  debug: true
server:
  port: 9000
views:
  package: app.views
"""
    )

    system = {
        "router": {"debug": False, "log_file": "/var/log/waypost.log"},
        "server": {"host": "0.0.0.0", "port": 8080},
    }
    runtime = {
        "server": {"port": 9100},
    }

    cfg = load_effective_config(project, system_defaults=system, runtime_override=runtime)

    assert cfg.router.debug is True
    assert cfg.router.log_file == "/var/log/waypost.log"
    assert cfg.server.host == "0.0.0.0"
    assert cfg.server.port == 9100
    assert cfg.views.package == "app.views"


def test_defaults_without_project_file(tmp_path: Path) -> None:
    cfg = load_effective_config(tmp_path)

    assert cfg.router.debug is False
    assert cfg.system_routes.enabled is False
    assert cfg.response.default_headers["Access-Control-Allow-Origin"] == "*"
    assert cfg.routes == {}


def test_route_tree_is_loaded_from_yaml(tmp_path: Path) -> None:
    (tmp_path / CONFIG_FILENAME).write_text(
        """
routes:
  auth:
    login:
      view: Auth/Login
    profile:
      view: Auth/Profile
      login_required: true
"""
    )

    cfg = load_effective_config(tmp_path)

    assert cfg.routes["auth"]["profile"] == {"view": "Auth/Profile", "login_required": True}


def test_unknown_keys_are_rejected(tmp_path: Path) -> None:
    (tmp_path / CONFIG_FILENAME).write_text("router:\n  verbose: true\n")

    with pytest.raises(ValidationError):
        load_effective_config(tmp_path)


def test_non_mapping_yaml_is_rejected(tmp_path: Path) -> None:
    (tmp_path / CONFIG_FILENAME).write_text("- just\n- a list\n")

    with pytest.raises(ValueError, match="must decode to a mapping"):
        load_effective_config(tmp_path)
