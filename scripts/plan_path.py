"""Search level orderings for the best DPR progression.

Usage examples:
    python -m scripts.plan_path --preset martial_dpr
    python -m scripts.plan_path --preset rogue_hybrid --weapon rapier --objective tier_average
    python -m scripts.plan_path --config-json '{"constraints":{"max_classes":1},"weapon_id":"longbow"}'
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import Any

from dpr_planner.engine.errors import OptimizationError
from dpr_planner.logging_config import setup_logging
from dpr_planner.optimizer import (
    LevelPath,
    PathConstraints,
    PathOptimizationConfig,
    PathOptimizer,
    constraint_presets,
)
from scripts._common import (
    _add_common_args,
    _add_json_pair,
    _json_safe,
    _load_json_arg,
    _parse_int_like,
)


def _constraints_from_dict(data: dict[str, Any], base: PathConstraints) -> PathConstraints:
    return PathConstraints(
        max_classes=_parse_int_like(data.get("max_classes", base.max_classes)),
        must_hit_milestones=[str(v) for v in data.get("must_hit_milestones", base.must_hit_milestones)],
        allowed_classes=[str(v) for v in data.get("allowed_classes", base.allowed_classes)],
        forbidden_combos=[
            tuple(str(c) for c in combo)
            for combo in data.get("forbidden_combos", base.forbidden_combos)
        ],
    )


def _path_config_from_dict(
    data: dict[str, Any],
    *,
    preset: str | None = None,
) -> PathOptimizationConfig:
    presets = constraint_presets()
    if preset is not None and preset not in presets:
        raise ValueError(f"Unknown preset: {preset!r}")
    base = presets[preset] if preset else PathConstraints()
    kwargs: dict[str, Any] = {
        "constraints": _constraints_from_dict(data.get("constraints") or {}, base),
    }
    for key in ("beam_width", "max_paths", "target_ac", "max_level"):
        if key in data:
            kwargs[key] = _parse_int_like(data[key])
    for key in ("objective", "race", "weapon_id"):
        if key in data:
            kwargs[key] = str(data[key])
    if "base_ability_scores" in data:
        kwargs["base_ability_scores"] = {
            str(k).upper(): _parse_int_like(v) for k, v in data["base_ability_scores"].items()
        }
    if "custom_level_weights" in data:
        kwargs["custom_level_weights"] = {
            _parse_int_like(k): float(v) for k, v in data["custom_level_weights"].items()
        }
    return PathOptimizationConfig(**kwargs)


def _render_text_result(paths: list[LevelPath]) -> str:
    lines: list[str] = []
    for path in paths:
        lines.append(
            f"{path.id}: {path.name}  final {path.final_dpr:.2f} DPR, "
            f"average {path.average_dpr:.2f}, score {path.score:.2f}"
        )
        order = " ".join(entry.class_id[:3] for entry in path.levels)
        lines.append(f"  order: {order}")
        feats = [f"L{e.level} {e.feat_id}" for e in path.levels if e.feat_id]
        if feats:
            lines.append(f"  feats: {', '.join(feats)}")
        for ms in path.milestones:
            status = f"L{ms.level_achieved}" if ms.achieved else "missed"
            lines.append(f"  milestone {ms.name} (by L{ms.deadline_level}): {status}")
    return "\n".join(lines)


def main() -> None:
    parser = argparse.ArgumentParser(description="Plan a multiclass level path")
    _add_json_pair(parser, "config", "PathOptimizationConfig", required=False)
    parser.add_argument("--preset", help="Constraint preset: martial_dpr, spellsword, rogue_hybrid.")
    parser.add_argument("--objective", help="l20_dpr, tier_average, or custom.")
    parser.add_argument("--weapon", help="Weapon id the paths are built around.")
    parser.add_argument("--beam-width", type=int)
    parser.add_argument("--max-paths", type=int)
    _add_common_args(parser)
    args = parser.parse_args()
    setup_logging(args.log_level)

    payload = _load_json_arg(args.config_json, args.config_file)
    if args.objective:
        payload["objective"] = args.objective
    if args.weapon:
        payload["weapon_id"] = args.weapon
    if args.beam_width is not None:
        payload["beam_width"] = args.beam_width
    if args.max_paths is not None:
        payload["max_paths"] = args.max_paths
    config = _path_config_from_dict(payload, preset=args.preset)

    try:
        paths = PathOptimizer().optimize(config)
    except OptimizationError as exc:
        print(f"error: {exc}", file=sys.stderr)
        sys.exit(1)

    if args.json:
        print(json.dumps(_json_safe(paths), indent=2))
        return
    print(_render_text_result(paths))


if __name__ == "__main__":
    main()
