"""設定の型定義と読み込み"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from .exceptions import FlagError, FlagErrorCodes

# 環境変数 -> couchbase セクションのキー
ENV_OVERRIDES: dict[str, str] = {
    "COUCHBASE_HOST": "base_url",
    "COUCHBASE_BUCKET": "bucket",
    "COUCHBASE_USERNAME": "username",
    "COUCHBASE_PASSWORD": "password",
}


class CouchbaseSection(BaseModel):
    """Couchbase Query Service の接続設定。"""

    base_url: str = ""
    bucket: str = ""
    username: str = ""
    password: str = ""
    timeout_seconds: float = Field(default=5.0, gt=0)


class LogSection(BaseModel):
    """ログ設定。"""

    level: str = "INFO"
    format: Literal["json", "text"] = "json"


class FlagsConfig(BaseModel):
    """tagflags の設定全体。"""

    couchbase: CouchbaseSection = Field(default_factory=CouchbaseSection)
    log: LogSection = Field(default_factory=LogSection)


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """base と override をディープマージした新しい辞書を返す。override が優先。"""
    result: dict[str, Any] = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise FlagError(
            code=FlagErrorCodes.CONFIG_ERROR,
            message=f"Failed to read config file: {path}",
            cause=e,
        ) from e
    try:
        data = yaml.safe_load(text) or {}
    except yaml.YAMLError as e:
        raise FlagError(
            code=FlagErrorCodes.CONFIG_ERROR,
            message=f"Failed to parse YAML: {path}",
            cause=e,
        ) from e
    if not isinstance(data, dict):
        raise FlagError(
            code=FlagErrorCodes.CONFIG_ERROR,
            message=f"Config root must be a mapping: {path}",
        )
    return data


def apply_env_overrides(data: dict[str, Any], environ: Mapping[str, str]) -> dict[str, Any]:
    """COUCHBASE_* 環境変数の値で couchbase セクションを上書きする。"""
    overrides = {key: environ[var] for var, key in ENV_OVERRIDES.items() if var in environ}
    if not overrides:
        return data
    return deep_merge(data, {"couchbase": overrides})


def load(
    base_path: Path,
    env_path: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> FlagsConfig:
    """設定ファイルを読み込んで FlagsConfig を返す。

    base_path: ベース設定ファイルパス（必須）
    env_path: 環境別設定ファイルパス（オプション）。存在する場合はベースにマージ。
    environ: 上書きに使う環境変数。省略時は os.environ。
    """
    data = _read_yaml(base_path)
    if env_path is not None and env_path.exists():
        data = deep_merge(data, _read_yaml(env_path))
    data = apply_env_overrides(data, os.environ if environ is None else environ)
    try:
        return FlagsConfig.model_validate(data)
    except PydanticValidationError as e:
        raise FlagError(
            code=FlagErrorCodes.CONFIG_ERROR,
            message=f"Config validation failed: {e}",
            cause=e,
        ) from e
