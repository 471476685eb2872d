import json

from multigig_alerter.state_store import is_writable_dir, load_json, save_json


def test_round_trip(tmp_path) -> None:
    path = tmp_path / "state.json"
    value = {"a": 1, "nested": {"list": [1, "two", None]}, "flag": True}
    assert save_json(path, value) is True
    assert load_json(path, {}) == value


def test_missing_file_returns_copy_of_default(tmp_path) -> None:
    default = {"lastExecutions": {}}
    loaded = load_json(tmp_path / "nope.json", default)
    assert loaded == default
    loaded["lastExecutions"]["x"] = 1
    assert default == {"lastExecutions": {}}


def test_malformed_file_returns_default(tmp_path) -> None:
    path = tmp_path / "state.json"
    path.write_text("{not json", encoding="utf-8")
    assert load_json(path, {"ok": True}) == {"ok": True}


def test_wrong_top_level_type_returns_default(tmp_path) -> None:
    path = tmp_path / "state.json"
    path.write_text("[1, 2, 3]", encoding="utf-8")
    assert load_json(path, {}) == {}


def test_save_creates_parent_dirs_and_leaves_no_temp_files(tmp_path) -> None:
    path = tmp_path / "deep" / "dir" / "state.json"
    assert save_json(path, {"x": 1}) is True
    assert json.loads(path.read_text(encoding="utf-8")) == {"x": 1}
    assert [p.name for p in path.parent.iterdir()] == ["state.json"]


def test_save_unserialisable_returns_false(tmp_path) -> None:
    path = tmp_path / "state.json"
    assert save_json(path, {"x": object()}) is False
    assert not path.exists()


def test_save_into_file_parent_returns_false(tmp_path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("", encoding="utf-8")
    assert save_json(blocker / "state.json", {"x": 1}) is False


def test_save_keeps_previous_content_on_failure(tmp_path) -> None:
    path = tmp_path / "state.json"
    save_json(path, {"v": 1})
    assert save_json(path, {"v": object()}) is False
    assert load_json(path, {}) == {"v": 1}


def test_is_writable_dir(tmp_path) -> None:
    assert is_writable_dir(tmp_path / "new") is True
    blocker = tmp_path / "file"
    blocker.write_text("", encoding="utf-8")
    assert is_writable_dir(blocker / "sub") is False
