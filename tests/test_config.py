"""設定読み込みのユニットテスト"""

from pathlib import Path

import pytest
from tagflags.config import FlagsConfig, apply_env_overrides, deep_merge, load
from tagflags.exceptions import FlagError, FlagErrorCodes


def write(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


def test_load_defaults(tmp_path: Path) -> None:
    cfg = load(write(tmp_path / "config.yaml", ""), environ={})
    assert cfg == FlagsConfig()
    assert cfg.couchbase.timeout_seconds == 5.0
    assert cfg.log.format == "json"


def test_load_with_env_file(tmp_path: Path) -> None:
    base = write(
        tmp_path / "config.yaml",
        "couchbase:\n  base_url: http://localhost:8093\n  bucket: local\nlog:\n  level: INFO\n",
    )
    env = write(tmp_path / "config.prod.yaml", "couchbase:\n  bucket: prod\nlog:\n  level: WARNING\n")
    cfg = load(base, env, environ={})
    assert cfg.couchbase.base_url == "http://localhost:8093"
    assert cfg.couchbase.bucket == "prod"
    assert cfg.log.level == "WARNING"


def test_load_missing_env_file_is_ignored(tmp_path: Path) -> None:
    base = write(tmp_path / "config.yaml", "couchbase:\n  bucket: local\n")
    cfg = load(base, tmp_path / "missing.yaml", environ={})
    assert cfg.couchbase.bucket == "local"


def test_environment_overrides(tmp_path: Path) -> None:
    """COUCHBASE_* 環境変数がファイルより優先されること。"""
    base = write(tmp_path / "config.yaml", "couchbase:\n  bucket: local\n  username: file\n")
    cfg = load(
        base,
        environ={
            "COUCHBASE_HOST": "http://cb:8093",
            "COUCHBASE_USERNAME": "env-user",
            "COUCHBASE_PASSWORD": "secret",
        },
    )
    assert cfg.couchbase.base_url == "http://cb:8093"
    assert cfg.couchbase.bucket == "local"
    assert cfg.couchbase.username == "env-user"
    assert cfg.couchbase.password == "secret"


def test_apply_env_overrides_without_variables_returns_same() -> None:
    data = {"couchbase": {"bucket": "local"}}
    assert apply_env_overrides(data, {}) is data


def test_deep_merge_replaces_lists() -> None:
    assert deep_merge({"a": {"b": [1]}, "c": 1}, {"a": {"b": [2]}}) == {"a": {"b": [2]}, "c": 1}


@pytest.mark.parametrize(
    "text",
    [
        "couchbase:\n  timeout_seconds: 0\n",
        "log:\n  format: xml\n",
        "- not\n- a mapping\n",
        "couchbase: [unclosed\n",
    ],
    ids=["non-positive-timeout", "unknown-format", "non-mapping", "invalid-yaml"],
)
def test_load_invalid(tmp_path: Path, text: str) -> None:
    with pytest.raises(FlagError) as exc_info:
        load(write(tmp_path / "config.yaml", text), environ={})
    assert exc_info.value.code == FlagErrorCodes.CONFIG_ERROR


def test_load_missing_file(tmp_path: Path) -> None:
    with pytest.raises(FlagError) as exc_info:
        load(tmp_path / "missing.yaml", environ={})
    assert exc_info.value.code == FlagErrorCodes.CONFIG_ERROR
