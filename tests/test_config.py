from pathlib import Path

import pytest

from configs.settings import DEFAULT_CONFIG_PATH, config_from_dict, default_config, load_config
from configs.validator import validate_config, validate_config_file
from exceptions import ConfigValidationError, InvalidConfigError


def test_load_default_config() -> None:
    config = load_config(DEFAULT_CONFIG_PATH)

    assert config.history.max_size == 13
    assert config.history.max_size_policy == "preserve"
    assert config.bookmarks.max_bookmarks == 50
    assert config.recent.max_recent == 12
    assert config.themes.sort_mode == "alpha"
    assert config.themes.default_theme is None
    assert config.state.async_writes is True
    assert config.state.state_file == Path("~/.local/share/themekeeper/state.json").expanduser()


def test_default_config_uses_schema_defaults() -> None:
    config = default_config()

    assert config.history.max_size == 100
    assert config.bookmarks.max_bookmarks == 50
    assert config.themes.aliases == {}


def test_partial_config_is_filled(tmp_path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("history:\n  max_size: 5\nthemes:\n  aliases:\n    dark: tokyonight\n")

    config = load_config(path)

    assert config.history.max_size == 5
    assert config.history.max_size_policy == "preserve"
    assert config.themes.aliases == {"dark": "tokyonight"}
    assert config.recent.max_recent == 12


def test_filetype_themes(tmp_path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("themes:\n  filetype_themes:\n    markdown: nord\n")

    assert load_config(path).themes.filetype_themes == {"markdown": "nord"}
    assert default_config().themes.filetype_themes == {}


def test_empty_config_file(tmp_path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("")

    assert load_config(path) == default_config()


def test_missing_config_file(tmp_path) -> None:
    with pytest.raises(InvalidConfigError):
        load_config(tmp_path / "nope.yaml")


def test_invalid_yaml(tmp_path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("history: [unclosed\n")

    with pytest.raises(InvalidConfigError):
        load_config(path)


def test_non_mapping_config() -> None:
    with pytest.raises(InvalidConfigError):
        config_from_dict(["history"])


@pytest.mark.parametrize(
    "data, field",
    [
        ({"history": {"max_size": 0}}, "max_size"),
        ({"history": {"max_size_policy": "shrink"}}, "max_size_policy"),
        ({"themes": {"sort_mode": "alphabetical"}}, "sort_mode"),
        ({"bookmarks": {"max_bookmarks": "lots"}}, "max_bookmarks"),
        ({"state": {"async_writes": "yes"}}, "async_writes"),
        ({"themes": {"filetype_themes": {"markdown": ""}}}, "filetype_themes"),
    ],
)
def test_schema_violations(data, field) -> None:
    with pytest.raises(ConfigValidationError) as exc_info:
        validate_config(data)

    assert any(field in message for message in exc_info.value.validation_errors)


def test_validate_fills_defaults_in_place() -> None:
    data = {}
    validate_config(data)

    assert data["history"] == {"max_size": 100, "max_size_policy": "preserve"}
    assert data["state"]["async_writes"] is True


def test_validate_config_file_missing(tmp_path) -> None:
    with pytest.raises(ConfigValidationError):
        validate_config_file(tmp_path / "missing.yaml")


def test_validate_default_config_file() -> None:
    validate_config_file(DEFAULT_CONFIG_PATH)
