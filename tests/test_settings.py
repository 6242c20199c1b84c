import textwrap
from pathlib import Path

import pytest

from memory_match.exceptions import SettingsError
from memory_match.settings import GameSettings


def test_packaged_defaults():
    settings = GameSettings.load(env={})
    assert settings.grid_size == 4
    assert settings.mismatch_delay == 1.0
    assert settings.tick_interval == 1.0
    assert settings.seed is None
    assert settings.persist_best_time is False
    assert settings.best_time_file is None


def test_user_file_overrides_defaults(tmp_path: Path):
    fp = tmp_path / "settings.yaml"
    fp.write_text(
        textwrap.dedent(
            """
            grid_size: 6
            mismatch_delay: 0.5
            seed: 77
            """
        ),
        encoding="utf-8",
    )
    settings = GameSettings.load(user_path=fp, env={})
    assert settings.grid_size == 6
    assert settings.mismatch_delay == 0.5
    assert settings.seed == 77
    assert settings.tick_interval == 1.0


def test_env_overrides_file(tmp_path: Path):
    fp = tmp_path / "settings.yaml"
    fp.write_text("grid_size: 6\n", encoding="utf-8")
    env = {
        "MM_SETTINGS_FILE": str(fp),
        "MM_GRID_SIZE": "8",
        "MM_PERSIST_BEST_TIME": "yes",
        "MM_BEST_TIME_FILE": str(tmp_path / "best.json"),
        "MM_SEED": "none",
    }
    settings = GameSettings.load(env=env)
    assert settings.grid_size == 8
    assert settings.persist_best_time is True
    assert settings.best_time_file == tmp_path / "best.json"
    assert settings.seed is None


def test_invalid_env_value_is_skipped(caplog):
    settings = GameSettings.load(env={"MM_GRID_SIZE": "big", "MM_PERSIST_BEST_TIME": "maybe"})
    assert settings.grid_size == 4
    assert settings.persist_best_time is False
    assert "Ignoring invalid MM_GRID_SIZE" in caplog.text


@pytest.mark.parametrize("grid", ["1", "11"])
def test_out_of_range_grid_size_fails_validation(grid):
    with pytest.raises(SettingsError):
        GameSettings.load(env={"MM_GRID_SIZE": grid})


def test_non_positive_delay_fails_validation():
    with pytest.raises(SettingsError):
        GameSettings.load(env={"MM_MISMATCH_DELAY": "0"})


def test_missing_user_file_falls_back_to_defaults(tmp_path: Path, caplog):
    settings = GameSettings.load(user_path=tmp_path / "nope.yaml", env={})
    assert settings.grid_size == 4
    assert "User settings file not found" in caplog.text


def test_user_file_must_be_a_mapping(tmp_path: Path):
    fp = tmp_path / "settings.yaml"
    fp.write_text("- 1\n- 2\n", encoding="utf-8")
    with pytest.raises(SettingsError):
        GameSettings.load(user_path=fp, env={})


def test_save_writes_yaml_that_loads_back(tmp_path: Path):
    fp = tmp_path / "out" / "settings.yaml"
    GameSettings(grid_size=10, tick_interval=0.25).save(fp)
    loaded = GameSettings.load(user_path=fp, env={})
    assert loaded.grid_size == 10
    assert loaded.tick_interval == 0.25
