import json

import pytest

from grade_speeder.core.config import DEFAULT_KEYBINDINGS
from grade_speeder.core.config_store import ConfigStore
from grade_speeder.core.errors import MissingConfigurationError


def test_missing_file_gives_defaults(config_store):
    cfg = config_store.load()
    assert cfg.base_url == ""
    assert cfg.access_token is None
    assert cfg.keybindings == DEFAULT_KEYBINDINGS


def test_corrupt_file_gives_defaults(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{not json", encoding="utf-8")
    assert ConfigStore(path).load().course_id is None


def test_update_merges_and_persists(config_store):
    config_store.update({"base_url": " https://canvas.test/api/v1/ ", "course_id": 3})
    config_store.update({"assignment_id": 4})

    reread = ConfigStore(config_store.path).load()
    assert reread.base_url == "https://canvas.test/api/v1"
    assert reread.course_id == 3
    assert reread.assignment_id == 4


def test_null_clears_absent_keeps(config_store):
    config_store.update({"course_id": 3, "assignment_id": 4, "access_token": "t"})
    config_store.update({"assignment_id": None})

    cfg = config_store.load()
    assert cfg.course_id == 3
    assert cfg.assignment_id is None
    assert cfg.access_token == "t"

    config_store.update({"access_token": ""})
    assert config_store.load().access_token is None


def test_token_never_in_public_view(config_store):
    public = config_store.update({"access_token": "secret"})
    assert public.token_present is True
    dumped = json.dumps(public.model_dump(by_alias=True))
    assert "secret" not in dumped
    assert "tokenPresent" in dumped


def test_keybindings_merge_over_defaults(config_store):
    config_store.update({"keybindings": {"NEXT_FIELD": ["Enter"]}})
    config_store.update({"keybindings": {"CUSTOM": ["x"]}})

    bindings = config_store.load().keybindings
    assert bindings["NEXT_FIELD"] == ["Enter"]
    assert bindings["CUSTOM"] == ["x"]
    assert bindings["PREV_FIELD"] == DEFAULT_KEYBINDINGS["PREV_FIELD"]


def test_require(config_store):
    with pytest.raises(MissingConfigurationError):
        config_store.require()

    config_store.update({"base_url": "https://c.test", "course_id": 1, "access_token": "t"})
    assert config_store.require_course().course_id == 1
    with pytest.raises(MissingConfigurationError):
        config_store.require()

    config_store.update({"assignment_id": 2})
    assert config_store.require().assignment_id == 2
