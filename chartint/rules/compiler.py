# chartint/rules/compiler.py
"""
JSON spec -> RuleSet compiler.

A spec is a compact meta-description; macros expand repetitive rule
boilerplate so that adding a new pattern bonus or hit is a data entry
rather than a copy-pasted rule.

Spec shape (all fields optional):
    {
      "id": "...", "version": "...",
      "rules":  [ <rule>, ... ],
      "macros": [ {"kind": "<macro>", ...}, ... ],
      "policy": { ... }            # read by the policy builders, ignored here
    }

Macros:
- custom_rules      {"rules": [...]}
- var_equals_bonus  {"var", "values", "key_template", "bonus"?, "multiplier_var"?, "id_prefix"?, "when"?}
- catalog           {"base", "names", "key_prefix"?, "id_prefix"?}
- branch_presence   {"defs": [{"id"?, "name", "target_var", "based_on"?, "category"?, "score"?}]}

Compilation happens once per configuration, never per subject.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional

from chartint.rules import Rule, RuleSet
from chartint.utils import is_number, string_list

logger = logging.getLogger(__name__)


def _v(path: str) -> Dict[str, str]:
    return {"var": path}


def _and_all(*parts: Any) -> Any:
    xs = [p for p in parts if p is not None]
    if not xs:
        return None
    if len(xs) == 1:
        return xs[0]
    return {"op": "and", "args": xs}


def _tags(m: Mapping[str, Any]):
    tags = string_list(m.get("tags"))
    return tuple(tags) if tags else ()


def _explain(m: Mapping[str, Any], **fmt: Any) -> Optional[str]:
    tpl = m.get("explain_template")
    if not isinstance(tpl, str):
        return None
    try:
        return tpl.format(**fmt)
    except (KeyError, IndexError, ValueError):
        return tpl


# =============================================================================
# MACROS
# =============================================================================

def _macro_custom_rules(m: Mapping[str, Any]) -> List[Rule]:
    rules = m.get("rules")
    if not isinstance(rules, list):
        return []
    return [Rule.from_dict(r) for r in rules if isinstance(r, Mapping) and r.get("id")]


def _macro_var_equals_bonus(m: Mapping[str, Any]) -> List[Rule]:
    var = m.get("var")
    values = m.get("values")
    key_template = m.get("key_template")
    if not isinstance(var, str) or not isinstance(values, list) or not isinstance(key_template, str):
        return []

    bonus = m.get("bonus") if is_number(m.get("bonus")) else 1.0
    mul_var = m.get("multiplier_var")
    score_expr: Any = {"op": "mul", "args": [bonus, _v(mul_var)]} if isinstance(mul_var, str) else bonus
    id_prefix = m.get("id_prefix") if isinstance(m.get("id_prefix"), str) else f"EQ_{var}"

    out: List[Rule] = []
    for value in values:
        if not isinstance(value, (str, int, float)) or isinstance(value, bool):
            continue
        out.append(Rule(
            id=f"{id_prefix}_{value}",
            when=_and_all(m.get("when"), {"op": "eq", "args": [_v(var), value]}),
            score={key_template.format(value=value): score_expr},
            explain=_explain(m, value=value),
            tags=_tags(m),
        ))
    return out


def _macro_catalog(m: Mapping[str, Any]) -> List[Rule]:
    base = m.get("base")
    names = string_list(m.get("names"))
    if not isinstance(base, str) or not names:
        return []
    key_prefix = m.get("key_prefix") if isinstance(m.get("key_prefix"), str) else "hit."
    id_prefix = m.get("id_prefix") if isinstance(m.get("id_prefix"), str) else "CAT"

    out: List[Rule] = []
    for name in names:
        arr = _v(f"{base}.{name}")
        out.append(Rule(
            id=f"{id_prefix}_{name}",
            when={"op": "gt", "args": [{"op": "len", "args": [arr]}, 0]},
            score={f"{key_prefix}{name}": {"op": "len", "args": [arr]}},
            emit=arr,
            explain=_explain(m, name=name),
            tags=_tags(m),
        ))
    return out


def _macro_branch_presence(m: Mapping[str, Any]) -> List[Rule]:
    defs = m.get("defs")
    if not isinstance(defs, list):
        return []

    out: List[Rule] = []
    for d in defs:
        if not isinstance(d, Mapping):
            continue
        name, target_var = d.get("name"), d.get("target_var")
        if not isinstance(name, str) or not isinstance(target_var, str):
            continue
        out.append(Rule(
            id=d["id"] if isinstance(d.get("id"), str) else f"PRESENCE_{name}",
            when={"op": "in", "args": [_v(target_var), _v("chart.branches")]},
            score={f"hit.{name}": d["score"] if is_number(d.get("score")) else 1},
            emit={
                "name": name,
                "category": d.get("category") if isinstance(d.get("category"), str) else None,
                "based_on": d.get("based_on") if isinstance(d.get("based_on"), str) else "OTHER",
                "target_branch": _v(target_var),
            },
            explain=d.get("explain") if isinstance(d.get("explain"), str) else None,
            tags=_tags(d),
        ))
    return out


MACROS: Dict[str, Callable[[Mapping[str, Any]], List[Rule]]] = {
    "custom_rules": _macro_custom_rules,
    "var_equals_bonus": _macro_var_equals_bonus,
    "catalog": _macro_catalog,
    "branch_presence": _macro_branch_presence,
}


# =============================================================================
# ENTRY POINT
# =============================================================================

def _compile_one(spec: Mapping[str, Any]) -> List[Rule]:
    rules: List[Rule] = []

    raw_rules = spec.get("rules")
    if isinstance(raw_rules, list):
        rules.extend(Rule.from_dict(r) for r in raw_rules if isinstance(r, Mapping) and r.get("id"))

    macros = spec.get("macros")
    if isinstance(macros, list):
        for m in macros:
            if not isinstance(m, Mapping):
                continue
            fn = MACROS.get(m.get("kind"))
            if fn is None:
                logger.debug("Skipping unknown macro kind: %r", m.get("kind"))
                continue
            rules.extend(fn(m))

    return rules


def compile_rule_spec(spec: Any) -> Optional[RuleSet]:
    """
    Compile a spec object (or a list of them, concatenated in order).

    Returns None when the spec is malformed or yields no rules, so callers
    fall back to their built-in rule set.
    """
    specs = spec if isinstance(spec, list) else [spec]
    specs = [s for s in specs if isinstance(s, Mapping)]
    if not specs:
        return None

    rules: List[Rule] = []
    for s in specs:
        rules.extend(_compile_one(s))
    if not rules:
        return None

    head = specs[0]
    return RuleSet(
        id=str(head.get("id", "compiled")),
        version=str(head.get("version", "0")),
        rules=tuple(rules),
        description=head.get("description") if isinstance(head.get("description"), str) else None,
    )


def spec_policies(spec: Any, section: str) -> List[Mapping[str, Any]]:
    """`policy.<section>` objects carried by a spec (or list of specs), in order."""
    specs = spec if isinstance(spec, list) else [spec]
    out: List[Mapping[str, Any]] = []
    for s in specs:
        if not isinstance(s, Mapping):
            continue
        policy = s.get("policy")
        if isinstance(policy, Mapping) and isinstance(policy.get(section), Mapping):
            out.append(policy[section])
    return out
