from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Mapping, Optional

SETTINGS_KEYS = ("costSettings", "sizeOverrides", "sizeCostingEnabled", "darkMode")


def parse_cost(value: Any) -> float:
    """Form input -> non-negative unit cost. Anything unparseable is 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        out = float(str(value).strip())
    except ValueError:
        return 0.0
    if out != out or out < 0:
        return 0.0
    return out


def _clean_costs(raw: Optional[Mapping[str, Any]]) -> Dict[str, float]:
    return {str(k): parse_cost(v) for k, v in (raw or {}).items()}


def _clean_overrides(raw: Optional[Mapping[str, Any]]) -> Dict[str, Dict[str, float]]:
    out: Dict[str, Dict[str, float]] = {}
    for product, variants in (raw or {}).items():
        if not isinstance(variants, Mapping):
            continue
        inner = {str(v): parse_cost(c) for v, c in variants.items()}
        if inner:
            out[str(product)] = inner
    return out


@dataclass(frozen=True)
class SettingsStore:
    """Per-user cost settings, size overrides and display flags.

    Instances are values: every edit returns a new store so callers can
    persist exactly what they computed with.
    """

    cost_settings: Dict[str, float] = field(default_factory=dict)
    size_overrides: Dict[str, Dict[str, float]] = field(default_factory=dict)
    size_costing_enabled: bool = False
    dark_mode: bool = True

    def cost_for(self, key: str) -> Optional[float]:
        return self.cost_settings.get(key)

    def overrides_for(self, product_name: str) -> Dict[str, float]:
        return dict(self.size_overrides.get(product_name) or {})

    def with_cost(self, key: str, value: Any) -> "SettingsStore":
        costs = dict(self.cost_settings)
        costs[key] = parse_cost(value)
        return replace(self, cost_settings=costs)

    def with_size_override(self, product_name: str, variant: str, value: Any) -> "SettingsStore":
        # a blank or zero entry means "use the unified price"
        cost = parse_cost(value)
        if cost == 0:
            return self.without_size_override(product_name, variant)
        overrides = {k: dict(v) for k, v in self.size_overrides.items()}
        overrides.setdefault(product_name, {})[variant] = cost
        return replace(self, size_overrides=overrides)

    def without_size_override(self, product_name: str, variant: str) -> "SettingsStore":
        if variant not in (self.size_overrides.get(product_name) or {}):
            return self
        overrides = {k: dict(v) for k, v in self.size_overrides.items()}
        del overrides[product_name][variant]
        if not overrides[product_name]:
            del overrides[product_name]
        return replace(self, size_overrides=overrides)

    def without_product_overrides(self, product_name: str) -> "SettingsStore":
        if product_name not in self.size_overrides:
            return self
        overrides = {k: dict(v) for k, v in self.size_overrides.items() if k != product_name}
        return replace(self, size_overrides=overrides)

    def with_size_costing(self, enabled: bool) -> "SettingsStore":
        return replace(self, size_costing_enabled=bool(enabled))

    def with_dark_mode(self, enabled: bool) -> "SettingsStore":
        return replace(self, dark_mode=bool(enabled))

    def updated(self, partial: Mapping[str, Any]) -> "SettingsStore":
        """Apply a partial settings document (persisted key names)."""
        merged = self.to_dict()
        merged.update({k: v for k, v in partial.items() if k in SETTINGS_KEYS})
        return SettingsStore.from_dict(merged)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "costSettings": dict(self.cost_settings),
            "sizeOverrides": {k: dict(v) for k, v in self.size_overrides.items()},
            "sizeCostingEnabled": self.size_costing_enabled,
            "darkMode": self.dark_mode,
        }

    @classmethod
    def from_dict(cls, raw: Optional[Mapping[str, Any]]) -> "SettingsStore":
        raw = raw or {}
        dark_mode = raw.get("darkMode")
        return cls(
            cost_settings=_clean_costs(raw.get("costSettings")),
            size_overrides=_clean_overrides(raw.get("sizeOverrides")),
            size_costing_enabled=bool(raw.get("sizeCostingEnabled") or False),
            dark_mode=True if dark_mode is None else bool(dark_mode),
        )
