"""Typed contracts for formula scaling.

Synopsis:
Normalizes formula snapshots and scaling configuration payloads into immutable
typed records consumed by the scaling pipeline, and defines the derived result
records returned to the workbench UI.

Glossary:
- Formula row: One weighted ingredient line in base unit grams.
- Group marker: Embedded sub-formula that is never scaled by this package.
- Scaling request: Full Normalize/Yield configuration built from UI state.
- Scaling result: Derived preview; never persisted on its own.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Any, Iterable, Mapping

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}
_NO_ROUNDING_VALUES = {"none", "off", "exact"}


# --- Float parser ---
# Purpose: Convert loose numeric payload values into safe floats.
# Inputs: Arbitrary value and fallback default.
# Outputs: Parsed float value.
def _to_float(value: Any, default: float = 0.0) -> float:
    parsed = _to_optional_float(value)
    return float(default) if parsed is None else parsed


# --- Optional float parser ---
# Purpose: Convert loose payload values into floats, keeping "missing" distinct.
# Inputs: Arbitrary value.
# Outputs: Float or None when value is empty/invalid/non-finite.
def _to_optional_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        if isinstance(value, str):
            cleaned = value.replace(",", "").strip()
            if cleaned == "":
                return None
            parsed = float(cleaned)
        else:
            parsed = float(value)
    except (TypeError, ValueError):
        return None
    if parsed != parsed or parsed in (float("inf"), float("-inf")):
        return None
    return parsed


# --- Bool parser ---
# Purpose: Read checkbox-style flags from JSON or form payloads.
# Inputs: Arbitrary value and fallback default.
# Outputs: Boolean.
def _to_bool(value: Any, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    lowered = str(value).strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    return default


# --- Numeric clamp ---
# Purpose: Constrain float values into minimum/maximum bounds.
# Inputs: Candidate float and bounds.
# Outputs: Clamped float.
def _clamp(value: float, minimum: float, maximum: float | None = None) -> float:
    if value < minimum:
        return minimum
    if maximum is not None and value > maximum:
        return maximum
    return value


# --- Text normalizer ---
# Purpose: Normalize arbitrary values into trimmed text.
# Inputs: Arbitrary value and fallback.
# Outputs: String (fallback when blank).
def _text(value: Any, default: str = "") -> str:
    if value is None:
        return default
    return str(value).strip() or default


# --- Key picker ---
# Purpose: Read the first present key, so snake_case and camelCase both work.
def _pick(mapping: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in mapping:
            return mapping.get(key)
    return default


def _mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _parse_step(value: Any, default: float | None) -> float | None:
    # None (JSON null) or a "none" keyword disables rounding.
    if value is None:
        return None
    if isinstance(value, str) and value.strip().lower() in _NO_ROUNDING_VALUES:
        return None
    step = _to_optional_float(value)
    if step is None or step <= 0:
        return default
    return step


class _CoercibleEnum(str, Enum):
    """String enum that also accepts the legacy spellings the UI sends."""

    @classmethod
    def _aliases(cls) -> dict[str, str]:
        return {}

    @classmethod
    def coerce(cls, value: Any, default: "_CoercibleEnum") -> "_CoercibleEnum":
        if isinstance(value, cls):
            return value
        raw = _text(value)
        if not raw:
            return default
        for member in cls:
            if member.value == raw or member.value.lower() == raw.lower():
                return member
        alias = cls._aliases().get(raw.lower())
        if alias:
            return cls(alias)
        return default


class TargetMode(_CoercibleEnum):
    PERCENTAGE = "percentage"
    ABSOLUTE_AMOUNT = "absoluteAmount"
    BATCH_VALUE = "batchValue"
    YIELD = "yield"

    @classmethod
    def _aliases(cls) -> dict[str, str]:
        return {
            "amount": "absoluteAmount",
            "absolute_amount": "absoluteAmount",
            "batch": "batchValue",
            "batch_value": "batchValue",
        }


class Scope(_CoercibleEnum):
    ALL_UNLOCKED = "allUnlocked"
    SELECTED_ROWS = "selectedRows"

    @classmethod
    def _aliases(cls) -> dict[str, str]:
        return {
            "all": "allUnlocked",
            "all_unlocked": "allUnlocked",
            "selected": "selectedRows",
            "selected_rows": "selectedRows",
        }


class BalancingMode(_CoercibleEnum):
    AUTO = "auto"
    MANUAL = "manual"


class RoundingMode(_CoercibleEnum):
    HALF_UP = "halfUp"
    DOWN = "down"
    BANKERS = "bankers"

    @classmethod
    def _aliases(cls) -> dict[str, str]:
        return {
            "half_up": "halfUp",
            "floor": "down",
            "half_even": "bankers",
            "halfeven": "bankers",
        }


# --- Ingredient reference ---
# Purpose: Carry the master-data fields the engine reads from an ingredient.
# Inputs: Ingredient payload mapping.
# Outputs: Immutable ingredient reference, or None when absent.
@dataclass(frozen=True)
class IngredientRef:
    name: str
    cost_per_unit: float | None = None
    ingredient_id: str | None = None

    @property
    def is_valid(self) -> bool:
        return bool(self.name) and self.cost_per_unit is not None

    @classmethod
    def from_payload(cls, payload: Any) -> "IngredientRef | None":
        if not isinstance(payload, Mapping):
            return None
        return cls(
            name=_text(payload.get("name")),
            cost_per_unit=_to_optional_float(
                _pick(payload, "cost_per_unit", "costPerUnit", "cost_per_kg", "costPerKg")
            ),
            ingredient_id=_text(payload.get("id")) or None,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.ingredient_id,
            "name": self.name,
            "cost_per_unit": self.cost_per_unit,
        }


# --- Formula row ---
# Purpose: Represent one normalized ingredient line of a formula.
# Inputs: Row payload mapping.
# Outputs: Immutable row instance.
@dataclass(frozen=True)
class FormulaRow:
    id: str
    quantity: float
    ingredient: IngredientRef | None = None
    concentration: float = 0.0
    unit: str = "g"
    is_locked: bool = False
    has_compliance_override: bool = False
    max_percentage: float | None = None
    notes: str = ""

    @property
    def has_valid_ingredient(self) -> bool:
        return self.ingredient is not None and self.ingredient.is_valid

    @property
    def name(self) -> str:
        if self.ingredient and self.ingredient.name:
            return self.ingredient.name
        return "Unknown"

    @property
    def cost_per_unit(self) -> float:
        if self.ingredient and self.ingredient.cost_per_unit is not None:
            return self.ingredient.cost_per_unit
        return 0.0

    def with_quantity(self, quantity: float, concentration: float) -> "FormulaRow":
        return replace(self, quantity=quantity, concentration=concentration)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "FormulaRow":
        max_pct = _to_optional_float(_pick(payload, "max_percentage", "maxPercentage"))
        return cls(
            id=_text(payload.get("id")),
            quantity=_clamp(_to_float(payload.get("quantity"), 0.0), 0.0),
            ingredient=IngredientRef.from_payload(payload.get("ingredient")),
            concentration=_to_float(payload.get("concentration"), 0.0),
            unit=_text(payload.get("unit"), "g"),
            is_locked=_to_bool(_pick(payload, "is_locked", "isLocked")),
            has_compliance_override=_to_bool(
                _pick(
                    payload,
                    "has_compliance_override",
                    "hasComplianceOverride",
                    "complianceOverride",
                )
            ),
            max_percentage=None if max_pct is None else _clamp(max_pct, 0.0),
            notes=_text(payload.get("notes")),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "quantity": self.quantity,
            "ingredient": self.ingredient.to_dict() if self.ingredient else None,
            "concentration": self.concentration,
            "unit": self.unit,
            "is_locked": self.is_locked,
            "has_compliance_override": self.has_compliance_override,
            "max_percentage": self.max_percentage,
            "notes": self.notes,
        }


# --- Group marker ---
# Purpose: Hold an embedded sub-formula opaquely so it survives projection.
# The payload is stored as received and serialized back unchanged.
@dataclass(frozen=True)
class GroupMarker:
    id: str
    payload: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "GroupMarker":
        return cls(
            id=_text(payload.get("id")),
            payload=MappingProxyType(copy.deepcopy(dict(payload))),
        )

    def to_dict(self) -> dict:
        return copy.deepcopy(dict(self.payload))


FormulaItem = FormulaRow | GroupMarker


def _is_group_payload(payload: Mapping[str, Any]) -> bool:
    return _text(payload.get("type")) == "formulaGroup"


# --- Formula snapshot ---
# Purpose: Immutable formula value read from the store and produced on commit.
# Inputs: Formula payload mapping with ordered rows and group markers.
# Outputs: Immutable formula instance.
@dataclass(frozen=True)
class Formula:
    id: str
    name: str
    items: tuple[FormulaItem, ...] = ()
    batch_size: float | None = None
    batch_unit: str = "g"
    revision: int = 0

    @property
    def scalable_rows(self) -> tuple[FormulaRow, ...]:
        return tuple(item for item in self.items if isinstance(item, FormulaRow))

    @property
    def invalid_rows(self) -> tuple[FormulaRow, ...]:
        return tuple(row for row in self.scalable_rows if not row.has_valid_ingredient)

    def row_by_id(self) -> dict[str, FormulaRow]:
        return {row.id: row for row in self.scalable_rows}

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "Formula":
        raw_items = _pick(payload, "items", "ingredients", default=[])
        item_list: Iterable[Any] = raw_items if isinstance(raw_items, list) else []
        items: list[FormulaItem] = []
        seen_ids: set[str] = set()
        for raw in item_list:
            if not isinstance(raw, Mapping):
                continue
            item = GroupMarker.from_payload(raw) if _is_group_payload(raw) else FormulaRow.from_payload(raw)
            # Rows without an id, or repeating one, cannot be tracked across
            # recomputation; the first occurrence wins.
            if item.id and item.id not in seen_ids:
                seen_ids.add(item.id)
                items.append(item)
        batch_size = _to_optional_float(_pick(payload, "batch_size", "batchSize"))
        revision = _to_optional_float(payload.get("revision"))
        return cls(
            id=_text(payload.get("id")),
            name=_text(payload.get("name"), "Untitled formula"),
            items=tuple(items),
            batch_size=batch_size if batch_size is not None and batch_size > 0 else None,
            batch_unit=_text(_pick(payload, "batch_unit", "batchUnit"), "g"),
            revision=int(revision) if revision is not None and revision >= 0 else 0,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "items": [item.to_dict() for item in self.items],
            "batch_size": self.batch_size,
            "batch_unit": self.batch_unit,
            "revision": self.revision,
        }


@dataclass(frozen=True)
class AnchorPolicy:
    treat_locked_as_anchor: bool = True
    treat_compliance_override_as_anchor: bool = True


@dataclass(frozen=True)
class BalancingPolicy:
    mode: BalancingMode = BalancingMode.AUTO
    row_id: str | None = None


# --- Rounding policy ---
# Purpose: Granularity and mode for per-row rounding; step None disables it.
@dataclass(frozen=True)
class RoundingPolicy:
    step: float | None = 0.01
    mode: RoundingMode = RoundingMode.HALF_UP

    def __post_init__(self):
        if self.step is not None and not self.step > 0:
            raise ValueError("Rounding step must be positive")


# --- Scaling request ---
# Purpose: Aggregate the full Normalize/Yield configuration.
# Inputs: Raw request payload plus optional workflow defaults.
# Outputs: Immutable scaling request instance.
@dataclass(frozen=True)
class ScalingRequest:
    mode: TargetMode = TargetMode.PERCENTAGE
    target_value: float = 0.0
    target_unit: str = "g"
    scope: Scope = Scope.ALL_UNLOCKED
    selected_ids: frozenset[str] = frozenset()
    anchor_policy: AnchorPolicy = field(default_factory=AnchorPolicy)
    balancing: BalancingPolicy = field(default_factory=BalancingPolicy)
    rounding: RoundingPolicy = field(default_factory=RoundingPolicy)
    loss_factor_percent: float = 0.0
    batch_value: float | None = None

    @classmethod
    def from_payload(
        cls,
        payload: Mapping[str, Any] | None,
        defaults: Mapping[str, Any] | None = None,
    ) -> "ScalingRequest":
        data = _mapping(payload)
        base = _mapping(defaults)

        unit = _text(_pick(data, "target_unit", "targetUnit"), _text(base.get("target_unit"), "g"))
        if unit.lower() == "l":
            unit = "L"
        else:
            unit = unit.lower()
        if unit not in {"g", "kg", "L"}:
            unit = "g"

        selected_raw = _pick(data, "selected_ids", "selectedIds", "selected_rows", "selectedRows", default=[])
        selected = frozenset(
            _text(value)
            for value in (selected_raw if isinstance(selected_raw, (list, tuple, set, frozenset)) else [])
            if _text(value)
        )

        anchors = _mapping(_pick(data, "anchor_policy", "anchorPolicy", "anchors"))
        anchor_policy = AnchorPolicy(
            treat_locked_as_anchor=_to_bool(
                _pick(anchors, "treat_locked_as_anchor", "treatLockedAsAnchor"),
                _to_bool(base.get("treat_locked_as_anchor"), True),
            ),
            treat_compliance_override_as_anchor=_to_bool(
                _pick(
                    anchors,
                    "treat_compliance_override_as_anchor",
                    "treatComplianceOverrideAsAnchor",
                ),
                _to_bool(base.get("treat_compliance_override_as_anchor"), True),
            ),
        )

        balancing_raw = _mapping(data.get("balancing"))
        balancing = BalancingPolicy(
            mode=BalancingMode.coerce(balancing_raw.get("mode"), BalancingMode.AUTO),
            row_id=_text(_pick(balancing_raw, "row_id", "rowId")) or None,
        )

        rounding_raw = _mapping(data.get("rounding"))
        default_step = _parse_step(base.get("rounding_step", 0.01), 0.01)
        step_raw = rounding_raw.get("step", default_step)
        step = _parse_step(step_raw, default_step)
        rounding = RoundingPolicy(
            step=step,
            mode=RoundingMode.coerce(
                rounding_raw.get("mode"),
                RoundingMode.coerce(base.get("rounding_mode"), RoundingMode.HALF_UP),
            ),
        )

        batch_value = _to_optional_float(_pick(data, "batch_value", "batchValue"))

        return cls(
            mode=TargetMode.coerce(
                _pick(data, "mode", "target_mode", "targetMode"),
                TargetMode.coerce(base.get("mode"), TargetMode.PERCENTAGE),
            ),
            target_value=_clamp(_to_float(_pick(data, "target_value", "targetValue"), 0.0), 0.0),
            target_unit=unit,
            scope=Scope.coerce(data.get("scope"), Scope.coerce(base.get("scope"), Scope.ALL_UNLOCKED)),
            selected_ids=selected,
            anchor_policy=anchor_policy,
            balancing=balancing,
            rounding=rounding,
            loss_factor_percent=_clamp(
                _to_float(_pick(data, "loss_factor_percent", "lossFactorPercent", "loss_factor"), 0.0),
                0.0,
                100.0,
            ),
            batch_value=batch_value if batch_value is not None and batch_value > 0 else None,
        )

    def to_dict(self) -> dict:
        return {
            "mode": self.mode.value,
            "target_value": self.target_value,
            "target_unit": self.target_unit,
            "scope": self.scope.value,
            "selected_ids": sorted(self.selected_ids),
            "anchor_policy": {
                "treat_locked_as_anchor": self.anchor_policy.treat_locked_as_anchor,
                "treat_compliance_override_as_anchor": self.anchor_policy.treat_compliance_override_as_anchor,
            },
            "balancing": {"mode": self.balancing.mode.value, "row_id": self.balancing.row_id},
            "rounding": {"step": self.rounding.step, "mode": self.rounding.mode.value},
            "loss_factor_percent": self.loss_factor_percent,
            "batch_value": self.batch_value,
        }


@dataclass(frozen=True)
class RowChange:
    row_id: str
    ingredient_name: str
    old_quantity: float
    new_quantity: float
    delta: float
    new_percentage: float
    is_anchor: bool = False
    compliance_warning: str | None = None

    def to_dict(self) -> dict:
        return {
            "row_id": self.row_id,
            "ingredient_name": self.ingredient_name,
            "old_quantity": self.old_quantity,
            "new_quantity": self.new_quantity,
            "delta": self.delta,
            "new_percentage": self.new_percentage,
            "is_anchor": self.is_anchor,
            "compliance_warning": self.compliance_warning,
        }


@dataclass(frozen=True)
class Totals:
    amount: float = 0.0
    cost: float = 0.0

    def to_dict(self) -> dict:
        return {"amount": self.amount, "cost": self.cost}


# --- Scaling result ---
# Purpose: Carry one full preview computation for rendering and commit.
@dataclass(frozen=True)
class ScalingResult:
    formula_id: str
    source_revision: int
    mode: TargetMode
    target_total: float
    scale_factor: float
    row_changes: tuple[RowChange, ...]
    current_totals: Totals
    new_totals: Totals
    warnings: tuple[str, ...] = ()
    residual: float = 0.0
    balancing_row_id: str | None = None
    normalizable_count: int = 0
    data_quality_errors: tuple[str, ...] = ()
    can_commit: bool = False
    batch_size: float | None = None

    @property
    def blocked(self) -> bool:
        return bool(self.data_quality_errors)

    def change_for(self, row_id: str) -> RowChange | None:
        for change in self.row_changes:
            if change.row_id == row_id:
                return change
        return None

    def to_dict(self) -> dict:
        return {
            "formula_id": self.formula_id,
            "source_revision": self.source_revision,
            "mode": self.mode.value,
            "target_total": self.target_total,
            "scale_factor": self.scale_factor,
            "row_changes": [change.to_dict() for change in self.row_changes],
            "current_totals": self.current_totals.to_dict(),
            "new_totals": self.new_totals.to_dict(),
            "warnings": list(self.warnings),
            "residual": self.residual,
            "balancing_row_id": self.balancing_row_id,
            "normalizable_count": self.normalizable_count,
            "data_quality_errors": list(self.data_quality_errors),
            "blocked": self.blocked,
            "can_commit": self.can_commit,
        }


__all__ = [
    "AnchorPolicy",
    "BalancingMode",
    "BalancingPolicy",
    "Formula",
    "FormulaItem",
    "FormulaRow",
    "GroupMarker",
    "IngredientRef",
    "RoundingMode",
    "RoundingPolicy",
    "RowChange",
    "ScalingRequest",
    "ScalingResult",
    "Scope",
    "TargetMode",
    "Totals",
    "_clamp",
    "_to_float",
]
