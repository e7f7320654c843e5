from __future__ import annotations

import json
import logging
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.rules import (
    CellRule,
    Expectation,
    ExpectKind,
    FieldRule,
    HeaderColumn,
    ItemOverride,
    LookupRule,
    Marker,
    MatchMode,
    ReferenceField,
    ReferenceItem,
    ReferenceItemRule,
    RuleSet,
    SectionRule,
    SheetPolicy,
)
from ..reference.csv_loader import load_reference_csv

"""Configuration loading.

Two kinds of YAML document are read here, both validated against a JSON
Schema before use:

- ``config/check.yml``: where uploads live and which rule set applies
- rule-set files: one brand's sections, cells, lookups and reference items

Rule sets are turned into the frozen dataclasses of ``cbd_check.models.rules``.
A rule set that references a CSV file has it loaded here, so missing reference
data fails once at load time rather than once per uploaded file.
"""

__all__ = [
    "ConfigError",
    "CheckConfig",
    "load_config",
    "load_ruleset",
    "parse_ruleset",
    "list_bundled_rulesets",
    "apply_sheet_override",
]

logger = logging.getLogger(__name__)

_package_root = Path(__file__).parent.parent
SCHEMA_DIR = _package_root / "config" / "schemas"
CONFIG_SCHEMA_PATH = SCHEMA_DIR / "check.schema.json"
RULESET_SCHEMA_PATH = SCHEMA_DIR / "ruleset.schema.json"
BUNDLED_RULESETS_DIR = _package_root / "rulesets"

DEFAULT_DECIMALS = 3


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class CheckConfig:
    source_directory: str
    ruleset: str
    report_directory: str | None = None
    sheet: str | None = None
    logs_directory: str | None = None


def _validate(data: Any, schema_path: Path, what: str) -> None:
    """Validate ``data`` against the JSON schema at ``schema_path``.

    Raises:
        ConfigError: schema file missing or malformed, or ``data`` violates it
    """
    if not schema_path.exists():
        raise ConfigError(f"{what} schema not found: {schema_path}")
    try:
        schema = json.loads(schema_path.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        where = "/".join(str(p) for p in e.absolute_path)
        suffix = f" (at {where})" if where else ""
        raise ConfigError(f"{what} validation failed: {e.message}{suffix}") from e


def _read_yaml(path: Path, what: str) -> Any:
    if not path.exists():
        raise ConfigError(f"{what} file not found: {path}")
    try:
        return yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e


def load_config(path: Path) -> CheckConfig:
    data = _read_yaml(path, "config")
    _validate(data, CONFIG_SCHEMA_PATH, "config")
    return CheckConfig(
        source_directory=data["source_directory"],
        ruleset=data["ruleset"],
        report_directory=data.get("report_directory"),
        sheet=data.get("sheet"),
        logs_directory=data.get("logs_directory"),
    )


# --- rule sets -------------------------------------------------------------


def _percent(value: Any) -> float:
    """``"5%"`` -> 0.05; plain numbers are already fractions.

    A bare number of 1 or more is rejected: ``percentage: 5`` would mean 500%
    and fail every row, so whole percentages must carry the ``%`` sign.
    """
    if isinstance(value, str):
        return float(value.strip().rstrip("%").strip()) / 100
    if value >= 1:
        raise ValueError(f"bare percentage {value} is ambiguous; write '{value}%' or a fraction")
    return float(value)


def _marker(raw: Any, default_mode: MatchMode = MatchMode.CONTAINS) -> Marker:
    if isinstance(raw, str):
        return Marker(raw, default_mode)
    return Marker(
        text=raw["text"],
        mode=MatchMode(raw.get("mode", default_mode.value)),
        column=raw.get("column"),
    )


def _expectation(raw: dict[str, Any]) -> Expectation:
    decimals = raw.get("decimals", DEFAULT_DECIMALS)
    display = raw.get("display")
    if "text" in raw:
        return Expectation.text(raw["text"], display=display)
    if "number" in raw:
        return Expectation.number(float(raw["number"]), decimals=decimals, display=display)
    if "percentage" in raw:
        return Expectation.percentage(_percent(raw["percentage"]), decimals=decimals, display=display)
    if "boolean" in raw:
        return Expectation.boolean(raw["boolean"])
    if "range" in raw:
        low, high = raw["range"]
        percent = raw.get("percent", any(isinstance(b, str) for b in raw["range"]))
        if percent:
            low, high = _percent(low), _percent(high)
        return Expectation.range(float(low), float(high), percent=percent)
    return Expectation.present()


def _field(raw: dict[str, Any]) -> FieldRule:
    return FieldRule(
        label=raw["label"],
        expect=_expectation(raw["expect"]),
        column=raw.get("column"),
        header=raw.get("header"),
        epsilon=raw.get("epsilon"),
    )


def _fields(raw: list[dict[str, Any]] | None) -> tuple[FieldRule, ...]:
    return tuple(_field(f) for f in raw or ())


def _section(raw: dict[str, Any]) -> SectionRule:
    start = raw.get("start")
    return SectionRule(
        name=raw["name"],
        start=_marker(start) if start is not None else None,
        end=_marker(raw["end"]),
        fields=_fields(raw.get("fields")),
        column=raw.get("column", "A"),
        label_column=raw.get("label_column"),
        count_labelled_rows=raw.get("count_labelled_rows", False),
        items=tuple(
            ItemOverride(
                name=i["name"],
                fields=_fields(i["fields"]),
                mode=MatchMode(i.get("mode", MatchMode.EXACT.value)),
                exclude_from_section=i.get("exclude_from_section", False),
            )
            for i in raw.get("items") or ()
        ),
    )


def _cell(raw: dict[str, Any]) -> CellRule:
    return CellRule(
        label=raw["label"],
        address=raw["address"],
        expect=_expectation(raw["expect"]),
        epsilon=raw.get("epsilon"),
    )


def _lookup(raw: dict[str, Any]) -> LookupRule:
    after = raw.get("after")
    return LookupRule(
        label=raw["label"],
        find=_marker(raw["find"], MatchMode.EXACT),
        fields=_fields(raw["fields"]),
        after=_marker(after) if after is not None else None,
    )


def _reference(raw: dict[str, Any], base_dir: Path) -> ReferenceItemRule:
    field_names = raw["fields"]
    description_field = raw.get("description_field", field_names[0])
    if description_field not in field_names:
        raise ConfigError(f"reference description field '{description_field}' is not one of {field_names}")
    checks = []
    for c in raw["checks"]:
        if c["reference"] not in field_names:
            raise ConfigError(f"reference check '{c['label']}' names unknown field '{c['reference']}'")
        checks.append(
            ReferenceField(
                label=c["label"],
                column=c["column"],
                reference=c["reference"],
                kind=ExpectKind(c.get("kind", ExpectKind.TEXT.value)),
                decimals=c.get("decimals", DEFAULT_DECIMALS),
                epsilon=c.get("epsilon"),
            )
        )
    csv_path = Path(raw["file"])
    if not csv_path.is_absolute():
        csv_path = base_dir / csv_path
    rows = load_reference_csv(csv_path, field_names)
    return ReferenceItemRule(
        label_column=raw["label_column"],
        items=tuple(ReferenceItem(i["name"], tuple(i.get("keywords") or ())) for i in raw["items"]),
        fields=tuple(checks),
        rows=tuple(rows),
        description_field=description_field,
    )


def parse_ruleset(data: dict[str, Any], base_dir: Path | None = None) -> RuleSet:
    """Validate a rule-set document and build the ``RuleSet``.

    ``base_dir`` resolves a relative reference CSV path.

    Raises:
        ConfigError: schema violation or inconsistent rules
        ReferenceDataError: the reference CSV cannot be loaded
    """
    _validate(data, RULESET_SCHEMA_PATH, "rule set")
    header_row = data.get("header_row")
    try:
        reference = data.get("reference")
        return RuleSet(
            name=data["name"],
            description=data.get("description", ""),
            sheets=SheetPolicy(data.get("sheets", SheetPolicy.FIRST.value)),
            sheet_name=data.get("sheet_name"),
            header_row_index=header_row - 1 if header_row is not None else None,
            header_columns=tuple(
                HeaderColumn(h["key"], tuple(h["labels"]), h["default"])
                for h in data.get("header_columns") or ()
            ),
            sections=tuple(_section(s) for s in data.get("sections") or ()),
            cells=tuple(_cell(c) for c in data.get("cells") or ()),
            lookups=tuple(_lookup(lk) for lk in data.get("lookups") or ()),
            reference=_reference(reference, base_dir or Path.cwd()) if reference is not None else None,
        )
    except ValueError as e:
        raise ConfigError(f"invalid rule set: {e}") from e


def _ruleset_path(ref: str | Path) -> Path:
    path = Path(ref)
    if path.suffix in (".yml", ".yaml") or path.exists():
        return path
    return BUNDLED_RULESETS_DIR / f"{ref}.yml"


def load_ruleset(ref: str | Path) -> RuleSet:
    """Load a rule set by bundled name (``"mammut"``) or YAML file path."""
    path = _ruleset_path(ref)
    if not path.exists():
        known = ", ".join(list_bundled_rulesets())
        raise ConfigError(f"rule set not found: {ref} (bundled: {known})")
    data = _read_yaml(path, "rule set")
    rule_set = parse_ruleset(data, base_dir=path.parent)
    logger.debug(
        "rule set %s: sections=%d cells=%d lookups=%d reference=%s",
        rule_set.name,
        len(rule_set.sections),
        len(rule_set.cells),
        len(rule_set.lookups),
        rule_set.reference is not None,
    )
    return rule_set


def list_bundled_rulesets() -> list[str]:
    return sorted(p.stem for p in BUNDLED_RULESETS_DIR.glob("*.yml"))


def apply_sheet_override(rule_set: RuleSet, sheet: str | None) -> RuleSet:
    """Replace the sheet policy: ``first``/``last``/``all`` or a sheet name."""
    if not sheet:
        return rule_set
    try:
        policy = SheetPolicy(sheet.lower())
    except ValueError:
        return replace(rule_set, sheets=SheetPolicy.NAMED, sheet_name=sheet)
    if policy is SheetPolicy.NAMED:
        raise ConfigError("sheet override 'named' needs a sheet name")
    return replace(rule_set, sheets=policy, sheet_name=None)
