# chartint/competition/policy.py
"""
Competition policy between special-frame pattern groups.

When several high-level frames are plausible at once, the clearer one should
dominate instead of all of them stacking. The policy says which score keys
belong to which method, how each method's strength signal is read, and how
hard the winner suppresses the rest.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from chartint.utils import as_number, clamp01, is_number, string_list


class CompetitionMethod(str, Enum):
    FOLLOW = "follow"
    TRANSFORMATIONS = "transformations"
    ONE_ELEMENT = "one_element"
    TEN_GOD = "ten_god"


ALL_METHODS: Tuple[str, ...] = tuple(m.value for m in CompetitionMethod)

TEN_GOD_PATTERN_KEYS: Tuple[str, ...] = (
    "pattern.JEONG_GWAN",
    "pattern.PYEON_GWAN",
    "pattern.JEONG_JAE",
    "pattern.PYEON_JAE",
    "pattern.SIK_SHIN",
    "pattern.SANG_GWAN",
    "pattern.JEONG_IN",
    "pattern.PYEON_IN",
    "pattern.BI_GYEON",
    "pattern.GEOB_JAE",
)

# Allowed selector strings per method. ten_god also takes a fixed number.
SIGNAL_SELECTORS: Dict[str, Tuple[str, ...]] = {
    "follow": ("auto", "jonggyeok", "potential", "raw"),
    "transformations": ("auto", "huaqi", "effective", "raw"),
    "one_element": ("auto", "zhuanwang", "raw"),
    "ten_god": ("month_quality", "auto"),
}

SignalSelector = Union[str, float]


@dataclass(frozen=True)
class KeyGroupSpec:
    """Which score keys a method owns: includes first, then exclusions."""
    keys: Tuple[str, ...] = ()
    prefixes: Tuple[str, ...] = ()
    exclude_keys: Tuple[str, ...] = ()
    exclude_prefixes: Tuple[str, ...] = ()

    def merged(self, raw: Any) -> "KeyGroupSpec":
        """List fields present in `raw` replace ours; absent or malformed ones inherit."""
        if not isinstance(raw, Mapping):
            return self
        updates = {}
        for name in ("keys", "prefixes", "exclude_keys", "exclude_prefixes"):
            values = string_list(raw.get(name))
            if values is not None:
                updates[name] = tuple(values)
        return replace(self, **updates)

    def select(self, scores: Mapping[str, float]) -> List[str]:
        """Matching keys with a non-zero finite score, in score-map order."""
        included = {k for k in self.keys if k in scores}
        if self.prefixes:
            for k in scores:
                if k.startswith(self.prefixes):
                    included.add(k)
        included.difference_update(self.exclude_keys)
        if self.exclude_prefixes:
            included = {k for k in included if not k.startswith(self.exclude_prefixes)}

        return [
            k for k in scores
            if k in included and is_number(scores[k]) and scores[k] != 0
        ]

    def to_dict(self) -> Dict[str, List[str]]:
        return {
            "keys": list(self.keys),
            "prefixes": list(self.prefixes),
            "exclude_keys": list(self.exclude_keys),
            "exclude_prefixes": list(self.exclude_prefixes),
        }


DEFAULT_GROUPS: Dict[str, KeyGroupSpec] = {
    "follow": KeyGroupSpec(prefixes=("pattern.CONG_",)),
    "transformations": KeyGroupSpec(keys=("pattern.HUA_QI",)),
    "one_element": KeyGroupSpec(keys=("pattern.ZHUAN_WANG",)),
    "ten_god": KeyGroupSpec(keys=TEN_GOD_PATTERN_KEYS),
}

DEFAULT_SIGNALS: Dict[str, SignalSelector] = {
    "follow": "auto",
    "transformations": "auto",
    "one_element": "auto",
    "ten_god": "month_quality",
}


@dataclass(frozen=True)
class CompetitionPolicy:
    enabled: bool = False
    methods: Tuple[str, ...] = ("follow", "transformations", "one_element")
    power: float = 2.0
    min_keep: float = 0.2
    renormalize: bool = True
    groups: Mapping[str, KeyGroupSpec] = field(default_factory=lambda: dict(DEFAULT_GROUPS))
    signals: Mapping[str, SignalSelector] = field(default_factory=lambda: dict(DEFAULT_SIGNALS))

    @property
    def effective_power(self) -> float:
        return max(0.01, as_number(self.power, 2.0))

    @property
    def effective_min_keep(self) -> float:
        return clamp01(as_number(self.min_keep, 0.2))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "methods": list(self.methods),
            "power": self.power,
            "min_keep": self.min_keep,
            "renormalize": self.renormalize,
            "groups": {m: g.to_dict() for m, g in self.groups.items()},
            "signals": dict(self.signals),
        }


DEFAULT_COMPETITION = CompetitionPolicy()


# =============================================================================
# DEFAULT-MERGE
# =============================================================================

def normalize_methods(raw: Any, fallback: Tuple[str, ...]) -> Tuple[str, ...]:
    """Known method names only, in the given order, without duplicates."""
    names = string_list(raw)
    if names is None:
        names = list(fallback)
    out: List[str] = []
    for name in names:
        if name in ALL_METHODS and name not in out:
            out.append(name)
    return tuple(out)


def merge_groups(base: Mapping[str, KeyGroupSpec], raw: Any) -> Dict[str, KeyGroupSpec]:
    out = {m: base.get(m, DEFAULT_GROUPS[m]) for m in ALL_METHODS}
    if not isinstance(raw, Mapping):
        return out
    for m in ALL_METHODS:
        if m in raw:
            out[m] = out[m].merged(raw[m])
    return out


def _merge_selector(method: str, current: SignalSelector, raw: Any) -> SignalSelector:
    if method == "ten_god" and is_number(raw):
        return clamp01(raw)
    if isinstance(raw, str) and raw in SIGNAL_SELECTORS[method]:
        return raw
    return current


def merge_signals(base: Mapping[str, SignalSelector], raw: Any) -> Dict[str, SignalSelector]:
    out = {m: base.get(m, DEFAULT_SIGNALS[m]) for m in ALL_METHODS}
    if not isinstance(raw, Mapping):
        return out
    for m in ALL_METHODS:
        if m in raw:
            out[m] = _merge_selector(m, out[m], raw[m])
    return out


def merge_competition(base: CompetitionPolicy, raw: Any) -> CompetitionPolicy:
    """
    Overlay one loose config object onto a policy.

    Scalars replace when well-typed; groups and signals merge per method.
    Anything malformed keeps the inherited value.
    """
    if not isinstance(raw, Mapping):
        return base

    enabled = raw.get("enabled")
    renormalize = raw.get("renormalize")
    return CompetitionPolicy(
        enabled=enabled if isinstance(enabled, bool) else base.enabled,
        methods=normalize_methods(raw["methods"], base.methods) if "methods" in raw else base.methods,
        power=as_number(raw.get("power"), base.power),
        min_keep=as_number(raw.get("min_keep"), base.min_keep),
        renormalize=renormalize if isinstance(renormalize, bool) else base.renormalize,
        groups=merge_groups(base.groups, raw.get("groups")),
        signals=merge_signals(base.signals, raw.get("signals")),
    )


def build_competition_policy(*layers: Any, base: Optional[CompetitionPolicy] = None) -> CompetitionPolicy:
    """Fold config layers in order over the defaults."""
    policy = base or DEFAULT_COMPETITION
    for layer in layers:
        policy = merge_competition(policy, layer)
    return policy
