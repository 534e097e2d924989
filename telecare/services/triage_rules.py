"""Keyword triage tiers backing the deterministic fallback verdict."""
from __future__ import annotations

import copy
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

import yaml

from telecare.services.questionnaires import EMERGENCY_SYMPTOMS

CONFIG_PATH = Path(__file__).parent.parent / "config" / "triage_rules.yaml"


@dataclass(frozen=True)
class TriageTier:
    name: str
    markers: Tuple[str, ...]
    verdict: Dict[str, Any] = field(default_factory=dict)

    def matches(self, labels: Iterable[str]) -> bool:
        return any(marker in label for label in labels for marker in self.markers)


@dataclass(frozen=True)
class TriageRules:
    tiers: Tuple[TriageTier, ...]
    default: TriageTier

    def classify(self, symptoms: Iterable[str]) -> TriageTier:
        """First matching tier wins; no match falls through to the default tier."""
        labels = [s.lower() for s in symptoms if isinstance(s, str)]
        for tier in self.tiers:
            if tier.matches(labels):
                return tier
        return self.default

    def verdict_for(self, symptoms: Iterable[str]) -> Dict[str, Any]:
        # callers get their own copy; the cached rules stay untouched
        return copy.deepcopy(self.classify(symptoms).verdict)


def _tier_from_config(raw: Dict[str, Any]) -> TriageTier:
    markers: List[str] = [str(m).strip().lower() for m in raw.get("markers") or [] if str(m).strip()]
    if raw.get("include_emergency_symptoms"):
        markers.extend(p for p in EMERGENCY_SYMPTOMS if p not in markers)
    verdict = raw.get("verdict")
    if not isinstance(verdict, dict):
        raise ValueError(f"triage tier {raw.get('name')!r} has no verdict")
    return TriageTier(name=str(raw.get("name") or ""), markers=tuple(markers), verdict=verdict)


def parse_rules(data: Dict[str, Any]) -> TriageRules:
    tiers = tuple(_tier_from_config(t) for t in data.get("tiers") or [])
    default_raw = data.get("default")
    if not isinstance(default_raw, dict):
        raise ValueError("triage rules need a default tier")
    return TriageRules(tiers=tiers, default=_tier_from_config(default_raw))


def load_rules(path: Optional[Path] = None) -> TriageRules:
    with open(path or CONFIG_PATH, "r", encoding="utf-8") as f:
        return parse_rules(yaml.safe_load(f) or {})


@lru_cache(maxsize=1)
def default_rules() -> TriageRules:
    return load_rules()
