# chartint/competition/resolver.py
"""
Competition resolver.

Turns per-method strength signals into shares and score multipliers, applies
them to the methods' score keys, then (optionally) rescales so the total
|score| mass over the affected keys is exactly what it was before.

    weight_i     = signal_i ** power          (all zero -> uniform)
    share_i      = weight_i / sum(weight)
    multiplier_i = min_keep + (1 - min_keep) * share_i / max(share)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, MutableMapping, Optional, Sequence

from chartint.competition.policy import ALL_METHODS, CompetitionPolicy, KeyGroupSpec, normalize_methods
from chartint.competition.signals import DEFAULT_SIGNAL_READERS, SignalReader, safe_signal
from chartint.facts import FactBase
from chartint.utils import abs_sum, is_number

logger = logging.getLogger(__name__)

# Below this, post-multiply mass is treated as zero and not rescaled.
NEGLIGIBLE_MASS = 1e-12


@dataclass
class CompetitionShares:
    """Pure outcome of the share/multiplier step."""
    weights: Dict[str, float]
    shares: Dict[str, float]
    multipliers: Dict[str, float]
    uniform: bool


def compete(
    names: Sequence[str],
    signals: Mapping[str, float],
    power: float = 2.0,
    min_keep: float = 0.2,
) -> CompetitionShares:
    """
    Shares and multipliers for the given methods.

    Args:
        names: participating methods, in order
        signals: signal per method in [0, 1] (missing -> 0)
        power: exponent applied to signals (floored at 0.01)
        min_keep: multiplier floor for the weakest method, in [0, 1]

    Returns:
        CompetitionShares; shares sum to 1 and the top-share method gets multiplier 1.
    """
    power = max(0.01, power)
    min_keep = min(1.0, max(0.0, min_keep))

    weights: Dict[str, float] = {}
    for n in names:
        s = signals.get(n, 0.0)
        s = s if is_number(s) and s > 0 else 0.0
        weights[n] = s ** power if s > 0 else 0.0

    total = sum(weights.values())
    uniform = not (total > 0)
    if uniform:
        weights = {n: 1.0 for n in names}
        total = float(len(names)) or 1.0

    shares = {n: w / total for n, w in weights.items()}
    top = max(shares.values()) if shares else 0.0

    multipliers: Dict[str, float] = {}
    for n, sh in shares.items():
        rel = sh / top if top > 0 else 1.0
        multipliers[n] = min_keep + (1.0 - min_keep) * rel

    return CompetitionShares(weights=weights, shares=shares, multipliers=multipliers, uniform=uniform)


def renormalize_scale(total_before: float, total_after: float) -> float:
    if total_after <= NEGLIGIBLE_MASS:
        return 1.0
    return total_before / total_after


@dataclass
class CompetitionReport:
    """Explainable record of one competition run."""
    enabled: bool
    methods: List[str]
    active_methods: List[str]
    power: float
    min_keep: float
    renormalize: bool
    scale: float
    groups: Dict[str, Dict[str, List[str]]]
    signal_selectors: Dict[str, Any]
    method_keys: Dict[str, List[str]]
    signals: Dict[str, float]
    shares: Dict[str, float]
    multipliers: Dict[str, float]
    winner: Optional[Dict[str, Any]]
    total_before: float
    total_after: float
    method_totals: Dict[str, Dict[str, float]] = field(default_factory=dict)
    affected: Dict[str, Dict[str, float]] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "methods": list(self.methods),
            "active_methods": list(self.active_methods),
            "power": self.power,
            "min_keep": self.min_keep,
            "renormalize": self.renormalize,
            "scale": self.scale,
            "groups": self.groups,
            "signal_selectors": self.signal_selectors,
            "method_keys": self.method_keys,
            "signals": self.signals,
            "shares": self.shares,
            "multipliers": self.multipliers,
            "winner": self.winner,
            "total_before": self.total_before,
            "total_after": self.total_after,
            "method_totals": self.method_totals,
            "affected": self.affected,
        }


class CompetitionResolver:
    """
    Applies a CompetitionPolicy to a score map in place.

    Signal readers are injectable per method; anything not supplied uses the
    built-in fact-base selectors.
    """

    def __init__(self, signal_readers: Optional[Mapping[str, SignalReader]] = None):
        self.signal_readers: Dict[str, SignalReader] = dict(DEFAULT_SIGNAL_READERS)
        if signal_readers:
            self.signal_readers.update(signal_readers)

    def method_key_sets(
        self,
        scores: Mapping[str, float],
        methods: Sequence[str],
        groups: Mapping[str, KeyGroupSpec],
    ) -> Dict[str, List[str]]:
        """
        Keys per method. A key claimed by an earlier method is not
        re-claimed by a later one, so each affected key is scaled once.
        """
        claimed = set()
        out: Dict[str, List[str]] = {}
        for m in methods:
            keys = [k for k in groups[m].select(scores) if k not in claimed]
            claimed.update(keys)
            out[m] = keys
        return out

    def apply(
        self,
        scores: MutableMapping[str, float],
        facts: FactBase,
        policy: CompetitionPolicy,
    ) -> Optional[CompetitionReport]:
        """
        Run the competition. Returns None (and leaves scores untouched) when
        the policy is disabled or fewer than two methods have scored keys.
        """
        if policy.enabled is not True:
            return None

        power = policy.effective_power
        min_keep = policy.effective_min_keep
        renormalize = policy.renormalize is not False

        methods = list(normalize_methods(list(policy.methods), ()))
        if len(methods) < 2:
            logger.debug("Competition skipped: %d valid method(s)", len(methods))
            return None

        groups = {m: policy.groups.get(m, KeyGroupSpec()) for m in ALL_METHODS}
        key_sets = self.method_key_sets(scores, methods, groups)

        items = []
        for m in methods:
            keys = key_sets[m]
            before = abs_sum(scores, keys)
            if before <= 0 or not keys:
                continue
            reader = self.signal_readers.get(m)
            selector = policy.signals.get(m, "auto")
            signal = safe_signal(reader, facts, selector, m) if reader else 0.0
            items.append((m, keys, before, signal))

        if len(items) < 2:
            logger.debug("Competition skipped: %d method(s) with non-zero scores", len(items))
            return None

        total_before = sum(it[2] for it in items)
        if not total_before > 0:
            return None

        comp = compete([it[0] for it in items], {it[0]: it[3] for it in items}, power, min_keep)

        winner_method = None
        winner_share = -1.0
        for m, _, _, _ in items:
            if comp.shares[m] > winner_share:
                winner_share = comp.shares[m]
                winner_method = m

        before_map: Dict[str, float] = {}
        affected_keys: List[str] = []
        for m, keys, _, _ in items:
            mul = comp.multipliers[m]
            for k in keys:
                v = scores.get(k)
                if not is_number(v) or v == 0:
                    continue
                affected_keys.append(k)
                before_map[k] = v
                scores[k] = v * mul

        scale = 1.0
        if renormalize:
            scale = renormalize_scale(total_before, abs_sum(scores, affected_keys))
            if scale != 1.0:
                for k in affected_keys:
                    scores[k] = scores[k] * scale

        total_after = abs_sum(scores, affected_keys)
        signals = {m: s for m, _, _, s in items}

        winner = None
        for m, keys, _, s in items:
            if m == winner_method:
                winner = {
                    "method": m,
                    "share": comp.shares[m],
                    "signal": s,
                    "multiplier": comp.multipliers[m],
                    "keys": list(keys),
                }

        logger.debug(
            "Competition: winner=%s shares=%s scale=%.6f", winner_method, comp.shares, scale
        )

        return CompetitionReport(
            enabled=True,
            methods=methods,
            active_methods=[it[0] for it in items],
            power=power,
            min_keep=min_keep,
            renormalize=renormalize,
            scale=scale,
            groups={m: groups[m].to_dict() for m in ALL_METHODS},
            signal_selectors={m: policy.signals.get(m) for m in ALL_METHODS},
            method_keys={m: list(keys) for m, keys, _, _ in items},
            signals=signals,
            shares=dict(comp.shares),
            multipliers=dict(comp.multipliers),
            winner=winner,
            total_before=total_before,
            total_after=total_after,
            method_totals={
                m: {"before": before, "after": abs_sum(scores, keys)}
                for m, keys, before, _ in items
            },
            affected={k: {"before": before_map[k], "after": scores[k]} for k in affected_keys},
        )
