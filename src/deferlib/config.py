#!/usr/bin/env python3
"""
遅延実行用スレッドプールの設定を YAML ファイルから読み込むモジュールです。

設定例:
    executor:
      max_workers: 4
      thread_name_prefix: defer
"""

from __future__ import annotations

import logging
import pathlib
from typing import Any

import jsonschema
import yaml

import deferlib.thread_util

CONFIG_PATH: str = "config.yaml"

SCHEMA: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "properties": {
        "executor": {
            "type": "object",
            "properties": {
                "max_workers": {"type": "integer", "minimum": 1},
                "thread_name_prefix": {"type": "string", "minLength": 1},
            },
            "additionalProperties": False,
        },
    },
}


class ConfigValidationError(Exception):
    """YAML 設定ファイルの検証エラー."""

    def __init__(self, message: str, details: str) -> None:
        super().__init__(message)
        self.details = details


class ConfigParseError(Exception):
    """YAML パースエラー."""

    def __init__(self, message: str, details: str) -> None:
        super().__init__(message)
        self.details = details


class ConfigFileNotFoundError(Exception):
    """設定ファイルが見つからないエラー."""

    def __init__(self, message: str, details: str) -> None:
        super().__init__(message)
        self.details = details


def _format_path(path: list[str | int]) -> str:
    """エラーパスを人間が読みやすい形式に変換."""
    if not path:
        return "ルート"

    formatted_parts: list[str] = []
    for part in path:
        if isinstance(part, int):
            formatted_parts.append(f"[{part}]")
        elif formatted_parts:
            formatted_parts.append(f".{part}")
        else:
            formatted_parts.append(str(part))

    return "".join(formatted_parts)


def _format_value(value: Any, max_length: int = 50) -> str:
    """値を表示用にフォーマット."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    display = f'"{value}"' if isinstance(value, str) else str(value)

    if len(display) > max_length:
        return display[: max_length - 3] + "..."
    return display


def _format_validation_error(error: jsonschema.exceptions.ValidationError) -> str:
    lines: list[str] = [f"  場所: {_format_path(list(error.path))}"]

    if error.validator == "additionalProperties":
        allowed = set(error.schema.get("properties", {}))
        extra = [k for k in error.instance if k not in allowed] if isinstance(error.instance, dict) else []
        lines.append("  問題: 定義されていないプロパティがあります")
        lines.append(f"  過剰: {', '.join(extra)}")
        lines.append(f"  許可されているプロパティ: {', '.join(sorted(allowed))}")
    elif error.validator == "type":
        lines.append("  問題: 型が不正です")
        lines.append(f"  期待: {error.validator_value}")
        lines.append(f"  実際: {_format_value(error.instance)}")
    elif error.validator in ("minimum", "minLength"):
        lines.append("  問題: 値が小さすぎます")
        lines.append(f"  指定値: {_format_value(error.instance)}")
        lines.append(f"  最小値: {error.validator_value}")
    else:
        lines.append(f"  問題: {error.message}")

    return "\n".join(lines)


def validate_config(yaml_data: Any, schema: dict[str, Any] = SCHEMA) -> None:
    """YAML データをスキーマで検証し、エラーがあれば詳細をログに出力して例外を送出する."""
    validator = jsonschema.Draft202012Validator(schema)
    errors = list(validator.iter_errors(yaml_data))

    if not errors:
        return

    error_messages: list[str] = ["=" * 60, "設定ファイルの検証エラー", "=" * 60, ""]
    for i, error in enumerate(errors, 1):
        error_messages.append(f"エラー {i}:")
        error_messages.append(_format_validation_error(error))
        error_messages.append("")

    details = "\n".join(error_messages)
    logging.error("\n%s", details)

    raise ConfigValidationError(
        f"設定ファイルに {len(errors)} 件の検証エラーがあります",
        details,
    )


def load(config_path: str | pathlib.Path = CONFIG_PATH) -> dict[str, Any]:
    config_path_obj = pathlib.Path(config_path).resolve()
    logging.info("Load config: %s", config_path_obj)

    if not config_path_obj.exists():
        details = f"  ファイルパス: {config_path_obj}"
        logging.error("\n%s", details)
        raise ConfigFileNotFoundError(
            f"設定ファイルが見つかりません: {config_path_obj}",
            details,
        )

    with config_path_obj.open() as file:
        yaml_content = file.read()

    try:
        yaml_data = yaml.load(yaml_content, Loader=yaml.SafeLoader)
    except yaml.YAMLError as e:
        details = f"  問題: {e!s}"
        logging.error("\n%s", details)  # noqa: TRY400
        raise ConfigParseError("YAML ファイルの構文エラー", details) from e

    # NOTE: 空ファイルはすべてデフォルト値として扱う
    if yaml_data is None:
        yaml_data = {}

    validate_config(yaml_data)

    return yaml_data


def executor_options(config: dict[str, Any]) -> dict[str, Any]:
    """設定から create_executor() に渡す引数を取り出す"""
    executor_conf: dict[str, Any] = config.get("executor", {}) or {}

    return {
        "max_workers": executor_conf.get("max_workers"),
        "thread_name_prefix": executor_conf.get(
            "thread_name_prefix", deferlib.thread_util.DEFAULT_THREAD_NAME_PREFIX
        ),
    }
