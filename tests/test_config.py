from pathlib import Path

import config


def _write_config(path: Path, text: str) -> None:
    path.write_text(text, encoding="utf-8")


def _use_config(tmp_path, monkeypatch, text: str) -> Path:
    config_dir = tmp_path / ".gatedstudy"
    config_dir.mkdir()
    config_path = config_dir / "config.toml"
    _write_config(config_path, text)

    monkeypatch.setattr(config, "CONFIG_DIR", config_dir)
    monkeypatch.setattr(config, "CONFIG_PATH", config_path)
    for name in (
        "GATEDSTUDY_LEARNING_STEPS",
        "GATEDSTUDY_RELEARN_STEPS",
        "GATEDSTUDY_BURY_DELAY_HOURS",
        "GATEDSTUDY_REVIEWS_BEFORE_NEW",
        "GATEDSTUDY_INTERLEAVING",
        "GATEDSTUDY_GATING_ENABLED",
    ):
        monkeypatch.delenv(name, raising=False)
    return config_path


def test_parse_steps_accepts_lists_and_strings():
    assert config.parse_steps([1, 10]) == [1, 10]
    assert config.parse_steps("1, 10,abc, -5, 30") == [1, 10, 30]
    assert config.parse_steps(None) == []


def test_settings_come_from_nested_tables(tmp_path, monkeypatch):
    _use_config(
        tmp_path,
        monkeypatch,
        "[scheduling]\nlearning_steps = [2, 20]\nbury_delay_hours = 6\n\n"
        "[queue]\ninterleaving_enabled = false\n",
    )

    settings = config.load_study_settings()
    assert settings.learning_steps == [2, 20]
    assert settings.relearn_steps == [10]
    assert settings.bury_delay_hours == 6
    assert settings.interleaving_enabled is False
    assert settings.gating_enabled is True


def test_legacy_flat_keys_are_honoured(tmp_path, monkeypatch):
    _use_config(tmp_path, monkeypatch, 'learningSteps = "1, 5"\nburyDelayHours = 0\n')

    settings = config.load_study_settings()
    assert settings.learning_steps == [1, 5]
    assert settings.bury_delay_hours == 0


def test_environment_overrides_file(tmp_path, monkeypatch):
    _use_config(tmp_path, monkeypatch, "[scheduling]\nrelearn_steps = [10]\n")
    monkeypatch.setenv("GATEDSTUDY_RELEARN_STEPS", "5,15")
    monkeypatch.setenv("GATEDSTUDY_GATING_ENABLED", "false")

    assert config.get_config_value("scheduling", "relearn_steps") == [5, 15]
    assert config.load_study_settings().gating_enabled is False


def test_set_gating_enabled_updates_existing_section(tmp_path, monkeypatch):
    config_path = _use_config(tmp_path, monkeypatch, "[gating]\nenabled = true\n")

    config.set_gating_enabled(False)

    updated = config_path.read_text(encoding="utf-8")
    assert "enabled = false" in updated
    assert "enabled = true" not in updated


def test_set_gating_enabled_adds_section_when_missing(tmp_path, monkeypatch):
    config_path = _use_config(tmp_path, monkeypatch, "[queue]\ninterleaving_enabled = true\n")

    config.set_gating_enabled(False)

    updated = config_path.read_text(encoding="utf-8")
    assert "[gating]" in updated
    assert "enabled = false" in updated
    assert "interleaving_enabled = true" in updated
    assert config.load_study_settings().gating_enabled is False
