"""Tests for runtime configuration loader."""
from __future__ import annotations

import json
from pathlib import Path

import pytest

from rowcount.common.config import error_mode_from_policy, load_runtime_config
from rowcount.common.errors import BackendError, ErrorCode


def test_builtin_low_memory_profile_when_no_config_file(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    config = load_runtime_config("low_memory")
    assert config.profile.chunk_size == 65_536
    assert config.profile.has_header is True
    assert config.global_settings.encoding == "utf-8"
    assert config.global_settings.output_mode == "count"
    assert config.profile_name == "low_memory"


def test_default_config_file_in_working_directory_is_used(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    payload = _config_payload()
    payload["profiles"]["low_memory"]["chunk_size"] = 4096
    (tmp_path / "config").mkdir()
    (tmp_path / "config" / "defaults.json").write_text(json.dumps(payload), encoding="utf-8")
    assert load_runtime_config().profile.chunk_size == 4096


def test_error_mode_resolution() -> None:
    assert error_mode_from_policy("fail-fast") == "strict"
    assert error_mode_from_policy("strict") == "strict"
    assert error_mode_from_policy("replace") == "replace"


def test_overrides_merge_over_file(tmp_path: Path) -> None:
    config_path = _write_config(tmp_path, _config_payload())
    config = load_runtime_config(
        "low_memory",
        config_path=config_path,
        overrides={"global": {"output_mode": "done"}, "profile": {"has_header": False, "chunk_size": 8}},
    )
    assert config.global_settings.output_mode == "done"
    assert config.profile.has_header is False
    assert config.profile.chunk_size == 8


def test_missing_profile_raises_backend_error(tmp_path: Path) -> None:
    config_path = _write_config(tmp_path, _config_payload())
    with pytest.raises(BackendError) as exc:
        load_runtime_config("missing", config_path=config_path)
    assert exc.value.code == ErrorCode.CONFIG_ERROR


def test_explicit_config_path_must_exist(tmp_path: Path) -> None:
    with pytest.raises(BackendError) as exc:
        load_runtime_config("low_memory", config_path=tmp_path / "nope.json")
    assert exc.value.code == ErrorCode.CONFIG_ERROR
    assert "not found" in str(exc.value)


def test_invalid_json_rejected(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(BackendError) as exc:
        load_runtime_config("low_memory", config_path=path)
    assert "not valid JSON" in str(exc.value)


def test_invalid_error_policy_rejected(tmp_path: Path) -> None:
    payload = _config_payload()
    payload["global"]["error_policy"] = "panic"
    config_path = _write_config(tmp_path, payload)
    with pytest.raises(BackendError) as exc:
        load_runtime_config("low_memory", config_path=config_path)
    assert "error_policy" in str(exc.value)


def test_invalid_output_mode_rejected(tmp_path: Path) -> None:
    payload = _config_payload()
    payload["global"]["output_mode"] = "json"
    config_path = _write_config(tmp_path, payload)
    with pytest.raises(BackendError) as exc:
        load_runtime_config("low_memory", config_path=config_path)
    assert "output_mode" in str(exc.value)


def test_unknown_encoding_rejected(tmp_path: Path) -> None:
    payload = _config_payload()
    payload["global"]["encoding"] = "no-such-codec"
    config_path = _write_config(tmp_path, payload)
    with pytest.raises(BackendError) as exc:
        load_runtime_config("low_memory", config_path=config_path)
    assert exc.value.code == ErrorCode.CONFIG_ERROR
    assert "no-such-codec" in str(exc.value)


@pytest.mark.parametrize("chunk_size", [0, -1, "big", True])
def test_chunk_size_must_be_positive_integer(tmp_path: Path, chunk_size) -> None:
    payload = _config_payload()
    payload["profiles"]["low_memory"]["chunk_size"] = chunk_size
    config_path = _write_config(tmp_path, payload)
    with pytest.raises(BackendError) as exc:
        load_runtime_config("low_memory", config_path=config_path)
    assert exc.value.code == ErrorCode.CONFIG_ERROR


def test_has_header_must_be_boolean(tmp_path: Path) -> None:
    payload = _config_payload()
    payload["profiles"]["low_memory"]["has_header"] = "yes"
    config_path = _write_config(tmp_path, payload)
    with pytest.raises(BackendError) as exc:
        load_runtime_config("low_memory", config_path=config_path)
    assert "has_header" in str(exc.value)


def test_profile_missing_required_fields(tmp_path: Path) -> None:
    payload = _config_payload()
    del payload["profiles"]["low_memory"]["chunk_size"]
    config_path = _write_config(tmp_path, payload)
    with pytest.raises(BackendError) as exc:
        load_runtime_config("low_memory", config_path=config_path)
    assert "chunk_size" in str(exc.value)


def _write_config(tmp_path: Path, payload: dict) -> Path:
    path = tmp_path / "config.json"
    path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    return path


def _config_payload() -> dict:
    return {
        "version": 1,
        "global": {
            "encoding": "utf-8",
            "error_policy": "fail-fast",
            "output_mode": "count",
        },
        "profiles": {
            "low_memory": {
                "description": "tmp",
                "chunk_size": 1024,
                "has_header": True,
                "progress_every_chunks": 2,
            }
        },
    }
