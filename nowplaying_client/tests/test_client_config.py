from __future__ import annotations

import json
from pathlib import Path

import pytest

from nowplaying_client.client_config import (
    ConfigError,
    OverlaySettings,
    coerce_port,
    load_settings,
    resolve_settings_path,
)


def test_defaults_without_any_source(tmp_path):
    settings = load_settings(settings_path=tmp_path / "missing.json", env={})
    assert settings == OverlaySettings()
    assert settings.endpoint_url == "ws://localhost:8765"


def test_settings_file_values_are_applied(tmp_path):
    path = tmp_path / "overlay_settings.json"
    path.write_text(
        json.dumps({"host": "127.0.0.1", "port": 9000, "autohide_seconds": 8, "hide_album_art": True}),
        encoding="utf-8",
    )
    settings = load_settings(settings_path=path, env={})
    assert settings.endpoint_url == "ws://127.0.0.1:9000"
    assert settings.autohide_seconds == 8.0
    assert settings.hide_album_art is True


def test_unreadable_settings_file_falls_back_to_defaults(tmp_path):
    path = tmp_path / "overlay_settings.json"
    path.write_text("{not json", encoding="utf-8")
    assert load_settings(settings_path=path, env={}) == OverlaySettings()


def test_precedence_cli_over_env_over_file(tmp_path):
    path = tmp_path / "overlay_settings.json"
    path.write_text(json.dumps({"port": 9000, "autohide_seconds": 3}), encoding="utf-8")
    env = {"NOWPLAYING_OVERLAY_PORT": "9100", "NOWPLAYING_OVERLAY_AUTOHIDE": "4"}
    settings = load_settings(settings_path=path, env=env, cli_values={"port": "9200"})
    assert settings.port == 9200
    assert settings.autohide_seconds == 4.0


@pytest.mark.parametrize(
    "token, expected",
    [("1", True), ("yes", True), ("ON", True), ("0", False), ("off", False)],
)
def test_env_flags(token, expected):
    settings = load_settings(env={"NOWPLAYING_OVERLAY_HIDE_ALBUM_ART": token, "NOWPLAYING_OVERLAY_DEBUG": token})
    assert settings.hide_album_art is expected
    assert settings.debug is expected


@pytest.mark.parametrize("value", ["abc", "80", "70000", "", "12.5", True, 8765.5, [8765]])
def test_invalid_port_fails_fast(value):
    with pytest.raises(ConfigError):
        coerce_port(value)


@pytest.mark.parametrize("value, expected", [("8765", 8765), (" 1024 ", 1024), (65535, 65535), (9000.0, 9000)])
def test_valid_ports(value, expected):
    assert coerce_port(value) == expected


def test_invalid_port_in_file_is_not_silently_ignored(tmp_path):
    path = tmp_path / "overlay_settings.json"
    path.write_text(json.dumps({"port": "eighty"}), encoding="utf-8")
    with pytest.raises(ConfigError):
        load_settings(settings_path=path, env={})


@pytest.mark.parametrize("value", ["-1", "soon", "inf"])
def test_invalid_autohide_fails_fast(value):
    with pytest.raises(ConfigError):
        load_settings(env={}, cli_values={"autohide_seconds": value})


def test_invalid_host_and_flag_fail_fast():
    with pytest.raises(ConfigError):
        load_settings(env={}, cli_values={"host": "   "})
    with pytest.raises(ConfigError):
        load_settings(env={"NOWPLAYING_OVERLAY_DEBUG": "maybe"})


def test_resolve_settings_path_prefers_argument(tmp_path):
    env = {"NOWPLAYING_OVERLAY_SETTINGS": str(tmp_path / "env.json")}
    assert resolve_settings_path(str(tmp_path / "arg.json"), env) == (tmp_path / "arg.json").resolve()
    assert resolve_settings_path(None, env) == (tmp_path / "env.json").resolve()
    assert resolve_settings_path(None, {}) == (Path.cwd() / "overlay_settings.json").resolve()
