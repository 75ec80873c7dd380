from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

"""Config loader.

Responsibilities:
- Load YAML config/admin.yml
- Validate against the packaged config_schema.json (extra keys rejected)
- Apply defaults (page_limit=1000, max_bulk_rows=500, type_sample_size=50,
  keep_na_strings=[])
- Environment overrides: TABLE_ADMIN_API_URL / TABLE_ADMIN_WEBHOOK_URL win
  over the YAML values (.env is loaded by the CLI before this runs)
"""

SCHEMA_PATH = Path(__file__).parent / "config_schema.json"
DEFAULT_CONFIG_PATH = Path("config/admin.yml")

ENV_API_URL = "TABLE_ADMIN_API_URL"
ENV_WEBHOOK_URL = "TABLE_ADMIN_WEBHOOK_URL"

DEFAULT_PAGE_LIMIT = 1000
DEFAULT_MAX_BULK_ROWS = 500
DEFAULT_TYPE_SAMPLE_SIZE = 50


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class AdminConfig:
    api_base_url: str
    webhook_url: str | None
    page_limit: int
    max_bulk_rows: int  # 一括貼り付けの最大行数
    type_sample_size: int  # 型推定に使う参照行数
    primary_key_column: str | None  # None -> 先頭列
    keep_na_strings: tuple[str, ...] = ()  # xlsx で空セル扱いしない文字列 (NA 等)


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against JSON schema.

    Raises:
        ConfigError: schema file missing / not valid JSON, or the config
            fails validation (missing required keys, wrong types, extra keys).
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def load_config(path: Path = DEFAULT_CONFIG_PATH) -> AdminConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError("config validation failed: top level must be a mapping")

    _validate_config_schema(data)

    # 環境変数 (.env 含む) を YAML より優先
    api_url = os.getenv(ENV_API_URL) or data["api_base_url"]
    webhook_url = os.getenv(ENV_WEBHOOK_URL) or data.get("webhook_url")
    return AdminConfig(
        api_base_url=api_url,
        webhook_url=webhook_url,
        page_limit=data.get("page_limit", DEFAULT_PAGE_LIMIT),
        max_bulk_rows=data.get("max_bulk_rows", DEFAULT_MAX_BULK_ROWS),
        type_sample_size=data.get("type_sample_size", DEFAULT_TYPE_SAMPLE_SIZE),
        primary_key_column=data.get("primary_key_column"),
        keep_na_strings=tuple(data.get("keep_na_strings") or ()),
    )
