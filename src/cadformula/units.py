"""Unit table: unit suffixes, their quantity kinds and base-unit factors.

The formula engine only asks three questions of a unit table:

- ``parse_number(text)``: the value of a numeric literal
- ``find_unit_kind(suffix)``: which quantity kind a suffix belongs to
- ``parse_quantity_to_base_unit(text, kind)``: the value of ``"2.5cm"``
  in the kind's base unit

The default table is bundled as ``units.yaml`` and loaded once per process.
"""

from __future__ import annotations

import importlib.resources
import logging
import math
import re
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ValidationError, model_validator

from cadformula.formulas.errors import UnitTableError

logger = logging.getLogger(__name__)

_NUMBER_RE = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_QUANTITY_RE = re.compile(r"(?P<number>[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)(?P<unit>[A-Za-z_]\w*)")


# ────────────────────────────────────────────────────────────────
# Schema
# ────────────────────────────────────────────────────────────────


class QuantitySpec(BaseModel):
    base: str
    units: dict[str, float]

    @model_validator(mode="after")
    def _base_is_unity(self) -> QuantitySpec:
        if self.units.get(self.base) != 1:
            raise ValueError(f"base unit {self.base!r} must be listed with factor 1")
        for suffix, factor in self.units.items():
            if not math.isfinite(factor) or factor <= 0:
                raise ValueError(f"unit {suffix!r} must have a positive finite factor, got {factor}")
        return self


class UnitTableSpec(BaseModel):
    kinds: dict[str, QuantitySpec]

    @model_validator(mode="after")
    def _suffixes_are_unique(self) -> UnitTableSpec:
        owners: dict[str, str] = {}
        for kind, spec in self.kinds.items():
            for suffix in spec.units:
                if suffix in owners:
                    raise ValueError(f"unit {suffix!r} is defined for both {owners[suffix]!r} and {kind!r}")
                owners[suffix] = kind
        return self


# ────────────────────────────────────────────────────────────────
# Table
# ────────────────────────────────────────────────────────────────


class UnitTable:
    """Lookup of unit suffixes to quantity kinds and base-unit factors."""

    def __init__(self, spec: UnitTableSpec) -> None:
        self.spec = spec
        self._kind_of: dict[str, str] = {}
        self._factor_of: dict[str, float] = {}
        for kind, quantity in spec.kinds.items():
            for suffix, factor in quantity.units.items():
                self._kind_of[suffix] = kind
                self._factor_of[suffix] = factor

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> UnitTable:
        """Build a table from already-parsed data.

        Raises:
            UnitTableError: If the data does not describe a valid table.
        """
        try:
            return cls(UnitTableSpec.model_validate(data))
        except ValidationError as exc:
            raise UnitTableError(f"Invalid unit table: {exc}") from exc

    @classmethod
    def from_yaml(cls, path: Path) -> UnitTable:
        """Load a table from a YAML file shaped like the bundled ``units.yaml``."""
        try:
            data = yaml.safe_load(path.read_text()) or {}
        except (OSError, yaml.YAMLError) as exc:
            raise UnitTableError(f"Cannot read unit table {str(path)!r}: {exc}") from exc
        return cls.from_mapping(data)

    @property
    def kinds(self) -> list[str]:
        return list(self.spec.kinds)

    def base_unit(self, kind: str) -> str | None:
        quantity = self.spec.kinds.get(kind)
        return quantity.base if quantity is not None else None

    def parse_number(self, text: str) -> float | None:
        """Parse a plain numeric literal, or return None if *text* is not one."""
        if not _NUMBER_RE.fullmatch(text):
            return None
        return float(text)

    def find_unit_kind(self, suffix: str) -> str | None:
        """Return the quantity kind of a unit suffix, or None if unknown."""
        return self._kind_of.get(suffix)

    def parse_quantity_to_base_unit(self, text: str, kind: str) -> float | None:
        """Convert ``"<number><suffix>"`` to the base unit of *kind*.

        Returns None when *text* is malformed or its suffix is not a unit of
        *kind*.
        """
        match = _QUANTITY_RE.fullmatch(text)
        if match is None:
            return None
        suffix = match.group("unit")
        if self._kind_of.get(suffix) != kind:
            return None
        return float(match.group("number")) * self._factor_of[suffix]


@lru_cache(maxsize=1)
def default_unit_table() -> UnitTable:
    """Return the bundled unit table, loaded on first use."""
    text = importlib.resources.files("cadformula").joinpath("units.yaml").read_text()
    table = UnitTable.from_mapping(yaml.safe_load(text) or {})
    logger.debug("Loaded default unit table with kinds %s", table.kinds)
    return table
