"""Find the best three-round action sequence for a build.

Usage examples:
    python -m scripts.optimize_combat --build-file build.json
    python -m scripts.optimize_combat --build-file build.json --config-json '{"target_ac":18,"allow_nova_damage":true}'
"""

from __future__ import annotations

import argparse
import json
from typing import Any

from dpr_planner.logging_config import setup_logging
from dpr_planner.optimizer import (
    CombatOptimizationConfig,
    CombatOptimizationResult,
    CombatRoundOptimizer,
)
from scripts._common import (
    _add_common_args,
    _add_json_pair,
    _json_safe,
    _load_build,
    _load_json_arg,
    _parse_int_like,
)


_INT_FIELDS = ("target_ac", "number_of_targets", "rounds_to_optimize", "target_save_bonus", "max_alternatives")
_BOOL_FIELDS = (
    "allow_nova_damage",
    "prioritize_control",
    "prioritize_survivability",
    "include_reactions",
)
_STR_FIELDS = ("target_type", "advantage_state", "resource_strategy")


def _combat_config_from_dict(data: dict[str, Any]) -> CombatOptimizationConfig:
    unknown = sorted(set(data) - set(_INT_FIELDS + _BOOL_FIELDS + _STR_FIELDS))
    if unknown:
        raise ValueError(f"Unknown combat config field(s): {', '.join(unknown)}")
    kwargs: dict[str, Any] = {}
    for key in _INT_FIELDS:
        if key in data:
            kwargs[key] = _parse_int_like(data[key])
    for key in _BOOL_FIELDS:
        if key in data:
            kwargs[key] = bool(data[key])
    for key in _STR_FIELDS:
        if key in data:
            kwargs[key] = str(data[key])
    return CombatOptimizationConfig(**kwargs)


def _render_text_result(result: CombatOptimizationResult) -> str:
    lines = [
        f"strategy: {result.strategy_name}",
        f"total damage: {result.total_damage:.2f}",
        f"resource value: {result.resource_value:g} (efficiency {result.resource_efficiency:.2f})",
    ]
    for plan in result.rounds:
        lines.append(f"round {plan.round_number}: {plan.expected_damage:.2f} damage")
        for action in plan.actions:
            spent = f" [{', '.join(action.resources_consumed)}]" if action.resources_consumed else ""
            lines.append(
                f"  - {action.timing:<8} {action.name:<22} {action.expected_damage:>6.2f}{spent}"
            )
        if plan.concentration_spell:
            lines.append(f"  concentrating on: {plan.concentration_spell}")
    if result.alternatives:
        lines.append("alternatives:")
        for alt in result.alternatives:
            lines.append(f"  - {alt.name}: {alt.total_damage:.2f} (efficiency {alt.resource_efficiency:.2f})")
    return "\n".join(lines)


def main() -> None:
    parser = argparse.ArgumentParser(description="Optimize a three-round combat sequence")
    _add_json_pair(parser, "build", "BuildConfiguration", required=True)
    _add_json_pair(parser, "config", "CombatOptimizationConfig", required=False)
    _add_common_args(parser)
    args = parser.parse_args()
    setup_logging(args.log_level)

    build = _load_build(args.build_json, args.build_file)
    config = _combat_config_from_dict(_load_json_arg(args.config_json, args.config_file))
    result = CombatRoundOptimizer().find_optimal_sequence(build, config)

    if args.json:
        print(json.dumps(_json_safe(result), indent=2))
        return
    print(_render_text_result(result))


if __name__ == "__main__":
    main()
