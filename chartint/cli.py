# chartint/cli.py

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import List, Optional

from chartint.config import LOG_LEVEL, configure_logging, load_engine_config
from chartint.engine import ChartClassifier
from chartint.models import ChartClassification

logger = logging.getLogger(__name__)


def print_verdict(res: ChartClassification) -> None:
    """
    Human-readable verdict from the machine-readable output.
    Keeps it short enough to skim in a terminal.
    """
    print("\n" + "=" * 60)

    if res.patterns is not None:
        p = res.patterns
        print(f"PATTERN: {p.best or 'none'}")
        top = [f"{r.key}={r.score:.3f}" for r in p.ranking[:3]]
        if top:
            print(f"Top-3: {', '.join(top)}")
        if p.competition:
            winner = (p.competition.get("winner") or {}).get("method")
            print(f"Competition winner: {winner} (scale={p.competition.get('scale', 1.0):.4f})")
        for err in p.trace.errors:
            print(f"! {err['stage']}: {err['error']}")

    if res.hits is not None:
        h = res.hits
        active = [d for d in h.detections if d.active]
        print(f"\nHITS: {len(h.detections)} detected, {len(active)} active")
        for d in h.detections:
            why = f" ({', '.join(d.reasons)})" if d.reasons else ""
            print(f"- {d.name}: {d.label} q={d.quality_weight:.3f}{why}")
        for err in h.trace.errors:
            print(f"! {err['stage']}: {err['error']}")

    print(f"\nconfig_id: {res.config_id}")
    print("=" * 60 + "\n")


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Rank chart patterns and score hit quality from a facts JSON file.")
    parser.add_argument("facts_path", help="Path to a facts JSON file")
    parser.add_argument("--config", default=None, help="Engine config JSON (default: CHARTINT_CONFIG_PATH)")
    parser.add_argument("--only", choices=["patterns", "hits"], default=None, help="Run a single stage")
    parser.add_argument("--compact", action="store_true", help="Print compact JSON")
    parser.add_argument("--log-level", default=LOG_LEVEL, help="Logging level, e.g. DEBUG or INFO")

    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    try:
        with open(args.facts_path, "r", encoding="utf-8") as f:
            facts = json.load(f)
    except (OSError, ValueError) as e:
        logger.error("Could not read facts %s: %s", args.facts_path, e)
        return 2
    if not isinstance(facts, dict):
        logger.error("Facts file %s is not a JSON object", args.facts_path)
        return 2

    engine = ChartClassifier(config=load_engine_config(args.config))
    res = engine.classify(facts, only=args.only)

    print_verdict(res)
    out = res.model_dump(exclude_none=True)
    if args.compact:
        print(json.dumps(out, separators=(",", ":"), ensure_ascii=False))
    else:
        print(json.dumps(out, indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
