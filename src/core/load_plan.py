"""Typed load-plan parsing for multi-file CSV loads.

This module loads and validates YAML load plans used by the
``csvsql-plan`` command. A plan lists CSV sources and target tables,
with shared defaults for the database and batch settings.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Sequence, cast

import yaml

from core.constants import DEFAULT_BATCH_SIZE, SUPPORTED_PLAN_VERSION
from core.errors import CsvSqlPlanError
from core.types import LoadOptions

_ROOT_KEYS = {"version", "defaults", "loads"}
_DEFAULT_KEYS = {"database", "batch_size", "create_table"}
_LOAD_KEYS = {"source", "table", "database", "batch_size", "create_table", "invalid_path"}


@dataclass(frozen=True)
class LoadPlanDefaults:
    """Default values applied to every load in a plan."""

    database: str | None = None
    batch_size: int = DEFAULT_BATCH_SIZE
    create_table: bool = False


@dataclass(frozen=True)
class LoadPlan:
    """Validated load-plan root object."""

    version: int
    defaults: LoadPlanDefaults
    loads: tuple[LoadOptions, ...]


def load_plan(plan_path: str, default_batch_size: int = DEFAULT_BATCH_SIZE) -> LoadPlan:
    """Load and validate a YAML load plan from disk.

    Relative ``source``, ``database`` and ``invalid_path`` values are
    resolved against the directory holding the plan file.

    Args:
        plan_path: File path to YAML load plan.
        default_batch_size: Batch size for loads and defaults that set none,
            usually ``CsvSqlConfig.batch_size``.

    Returns:
        Fully validated load plan.

    Raises:
        CsvSqlPlanError: If file is invalid or schema checks fail.
    """
    plan_file = Path(plan_path).expanduser().resolve()
    payload = _load_yaml_payload(plan_file)
    root_mapping = _expect_mapping(payload, "load plan root")
    _validate_keys(root_mapping, _ROOT_KEYS, "load plan root")
    version = _parse_version(root_mapping)
    defaults = _parse_defaults(root_mapping, default_batch_size)
    loads = _parse_loads(root_mapping, defaults, plan_file.parent)
    return LoadPlan(version=version, defaults=defaults, loads=loads)


def _load_yaml_payload(plan_file: Path) -> object:
    if not plan_file.exists():
        raise CsvSqlPlanError(
            f"Load plan file does not exist at {plan_file}. Provide a valid YAML file path."
        )
    try:
        payload = cast(object, yaml.safe_load(plan_file.read_text(encoding="utf-8")))
    except OSError as error:
        raise CsvSqlPlanError(
            f"Failed to read load plan at {plan_file}: {error}. Check file permissions and retry."
        ) from error
    except yaml.YAMLError as error:
        raise CsvSqlPlanError(
            f"Failed to parse YAML load plan at {plan_file}: {error}. Fix YAML syntax and retry."
        ) from error
    if payload is None:
        raise CsvSqlPlanError(f"Load plan at {plan_file} is empty. Define 'version' and 'loads'.")
    return payload


def _expect_mapping(value: object, context: str) -> Mapping[str, object]:
    if isinstance(value, Mapping):
        normalized_mapping = {}
        for key, payload in value.items():
            if not isinstance(key, str):
                raise CsvSqlPlanError(
                    f"Invalid {context}: expected string keys, got {type(key).__name__}."
                )
            normalized_mapping[key] = payload
        return normalized_mapping
    raise CsvSqlPlanError(
        f"Invalid {context}: expected object mapping, got {type(value).__name__}."
    )


def _expect_sequence(value: object, context: str) -> Sequence[object]:
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        return value
    raise CsvSqlPlanError(f"Invalid {context}: expected list, got {type(value).__name__}.")


def _validate_keys(mapping: Mapping[str, object], allowed: set[str], context: str) -> None:
    unknown_keys = sorted(mapping.keys() - allowed)
    if unknown_keys:
        allowed_rows = ", ".join(sorted(allowed))
        raise CsvSqlPlanError(
            f"Unknown keys in {context}: {', '.join(unknown_keys)}. Allowed keys: {allowed_rows}."
        )


def _parse_version(root_mapping: Mapping[str, object]) -> int:
    raw_version = root_mapping.get("version")
    if not isinstance(raw_version, int) or isinstance(raw_version, bool):
        raise CsvSqlPlanError("Load plan field 'version' must be an integer. Set version: 1.")
    if raw_version != SUPPORTED_PLAN_VERSION:
        raise CsvSqlPlanError(f"Unsupported load plan version {raw_version}. Use version: 1.")
    return raw_version


def _parse_defaults(
    root_mapping: Mapping[str, object], default_batch_size: int
) -> LoadPlanDefaults:
    raw_defaults = root_mapping.get("defaults")
    if raw_defaults is None:
        return LoadPlanDefaults(batch_size=default_batch_size)
    defaults_mapping = _expect_mapping(raw_defaults, "load plan defaults")
    _validate_keys(defaults_mapping, _DEFAULT_KEYS, "load plan defaults")
    context = "load plan defaults"
    return LoadPlanDefaults(
        database=_optional_string(defaults_mapping, "database", context),
        batch_size=_optional_batch_size(defaults_mapping, context, default_batch_size),
        create_table=_optional_bool(defaults_mapping, "create_table", context, False),
    )


def _parse_loads(
    root_mapping: Mapping[str, object],
    defaults: LoadPlanDefaults,
    base_dir: Path,
) -> tuple[LoadOptions, ...]:
    raw_loads = root_mapping.get("loads")
    if raw_loads is None:
        raise CsvSqlPlanError(
            "Load plan missing required field 'loads'. Add a non-empty list of loads."
        )
    load_rows = _expect_sequence(raw_loads, "load plan loads")
    if len(load_rows) == 0:
        raise CsvSqlPlanError("Load plan field 'loads' must include at least one load.")
    return tuple(
        _parse_load(load_value, index, defaults, base_dir)
        for index, load_value in enumerate(load_rows)
    )


def _parse_load(
    load_value: object,
    load_index: int,
    defaults: LoadPlanDefaults,
    base_dir: Path,
) -> LoadOptions:
    context = f"load plan entry #{load_index + 1}"
    load_mapping = _expect_mapping(load_value, context)
    _validate_keys(load_mapping, _LOAD_KEYS, context)
    source = _required_string(load_mapping, "source", context)
    table = _required_string(load_mapping, "table", context)
    database = _optional_string(load_mapping, "database", context) or defaults.database
    if database is None:
        raise CsvSqlPlanError(
            f"Invalid {context}: no 'database' set. Add one to the load or to defaults."
        )
    invalid_path = _optional_string(load_mapping, "invalid_path", context)
    return LoadOptions(
        source=_resolve_path(source, base_dir),
        database=_resolve_path(database, base_dir),
        table=table,
        batch_size=_optional_batch_size(load_mapping, context, defaults.batch_size),
        create_table=_optional_bool(load_mapping, "create_table", context, defaults.create_table),
        invalid_path=_resolve_path(invalid_path, base_dir) if invalid_path else None,
    )


def _required_string(mapping: Mapping[str, object], key: str, context: str) -> str:
    value = _optional_string(mapping, key, context)
    if value is None:
        raise CsvSqlPlanError(f"Invalid {context}: missing required field '{key}'.")
    return value


def _optional_string(mapping: Mapping[str, object], key: str, context: str) -> str | None:
    value = mapping.get(key)
    if value is None:
        return None
    if not isinstance(value, str) or not value.strip():
        raise CsvSqlPlanError(f"Invalid {context}: field '{key}' must be a non-empty string.")
    return value


def _optional_batch_size(mapping: Mapping[str, object], context: str, default: int) -> int:
    value = mapping.get("batch_size")
    if value is None:
        return default
    if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
        raise CsvSqlPlanError(
            f"Invalid {context}: field 'batch_size' must be a positive integer."
        )
    return value


def _optional_bool(mapping: Mapping[str, object], key: str, context: str, default: bool) -> bool:
    value = mapping.get(key)
    if value is None:
        return default
    if not isinstance(value, bool):
        raise CsvSqlPlanError(f"Invalid {context}: field '{key}' must be true or false.")
    return value


def _resolve_path(raw_path: str, base_dir: Path) -> str:
    path = Path(raw_path).expanduser()
    if not path.is_absolute():
        path = base_dir / path
    return str(path)
