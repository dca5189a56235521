from pathlib import Path

import pytest

from zonna import ConfigError, load_config


def write(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


def test_defaults_when_no_files(tmp_path):
    cfg = load_config(tmp_path / "missing.toml", tmp_path / "missing-too.toml", environ={})
    assert cfg.filter.max_accuracy_m == 20
    assert cfg.filter.min_movement_m == 3
    assert cfg.closure.radius_m == 20
    assert cfg.closure.min_loop_length_m == 100
    assert cfg.smoothing.window == 3
    assert cfg.area.corridor_radius_m == 10
    assert cfg.conflicts.min_area_m2 == 10
    assert cfg.session.livre_finalize_distance_m == 500
    assert set(cfg.source.values()) == {"default"}


def test_user_overrides_repo(tmp_path):
    repo = write(tmp_path / "repo.toml", "[closure]\nradius_m = 25\nmin_loop_length_m = 150\n")
    user = write(tmp_path / "user.toml", "[closure]\nradius_m = 30\n")

    cfg = load_config(repo, user, environ={})
    assert cfg.closure.radius_m == 30
    assert cfg.closure.min_loop_length_m == 150
    assert cfg.source["closure.radius_m"] == f"user:{user}"
    assert cfg.source["closure.min_loop_length_m"] == f"repo:{repo}"


def test_env_overrides_files(tmp_path):
    user = write(tmp_path / "user.toml", "[filter]\nmin_movement_m = 5\n")
    env = {"ZONNA_FILTER_MIN_MOVEMENT_M": "4.5", "ZONNA_SESSION_LIVRE_FINALIZE_DISTANCE_M": "50"}

    cfg = load_config(tmp_path / "none.toml", user, environ=env)
    assert cfg.filter.min_movement_m == 4.5
    assert cfg.session.livre_finalize_distance_m == 50
    assert cfg.source["filter.min_movement_m"] == "env:ZONNA_FILTER_MIN_MOVEMENT_M"


def test_env_from_os_environ(tmp_path, monkeypatch):
    monkeypatch.setenv("ZONNA_CONFLICTS_MIN_AREA_M2", "25")
    cfg = load_config(tmp_path / "none.toml", tmp_path / "none.toml")
    assert cfg.conflicts.min_area_m2 == 25


def test_unknown_keys_are_ignored(tmp_path):
    repo = write(tmp_path / "repo.toml", "[closure]\nfoo = 1\n[other]\nbar = 2\n")
    cfg = load_config(repo, tmp_path / "none.toml", environ={})
    assert cfg.closure.radius_m == 20


def test_invalid_toml_raises(tmp_path):
    bad = write(tmp_path / "bad.toml", "[closure\nradius_m = ")
    with pytest.raises(ConfigError):
        load_config(bad, tmp_path / "none.toml", environ={})


@pytest.mark.parametrize("value", ["0", "-5", "true", '"abc"'])
def test_non_positive_or_non_numeric_values_raise(tmp_path, value):
    repo = write(tmp_path / "repo.toml", f"[closure]\nradius_m = {value}\n")
    with pytest.raises(ConfigError, match="closure.radius_m"):
        load_config(repo, tmp_path / "none.toml", environ={})


def test_integer_keys_reject_fractions(tmp_path):
    repo = write(tmp_path / "repo.toml", "[smoothing]\nwindow = 2.5\n")
    with pytest.raises(ConfigError):
        load_config(repo, tmp_path / "none.toml", environ={})

    repo = write(tmp_path / "repo.toml", "[smoothing]\nwindow = 5\n")
    cfg = load_config(repo, tmp_path / "none.toml", environ={})
    assert cfg.smoothing.window == 5
    assert isinstance(cfg.smoothing.window, int)


def test_shipped_repo_config_matches_defaults(tmp_path):
    cfg = load_config(user_config_path=tmp_path / "none.toml", environ={})
    defaults = load_config(tmp_path / "none.toml", tmp_path / "none.toml", environ={})
    assert cfg.filter == defaults.filter
    assert cfg.closure == defaults.closure
    assert cfg.session == defaults.session
