"""Print a build's DPR curve across an AC range.

Usage examples:
    python -m scripts.dpr_curve --build-file build.json
    python -m scripts.dpr_curve --build-file build.json --config-json '{"ac_min":12,"ac_max":20}'
    python -m scripts.dpr_curve --build-file build.json --json
"""

from __future__ import annotations

import argparse
import json

from dpr_planner.engine.buff_selection import explain_buff_selection, select_optimal_buffs
from dpr_planner.engine.magic_items import attunement_status
from dpr_planner.engine.simulator import generate_dpr_curves
from dpr_planner.engine.ui_model import build_rating, describe_dpr
from dpr_planner.logging_config import setup_logging
from dpr_planner.models.build import BuildConfiguration
from dpr_planner.models.constants import TYPICAL_AC
from dpr_planner.models.dpr import DPRResult
from dpr_planner.rules.catalog import default_catalog
from scripts._common import (
    _add_common_args,
    _add_json_pair,
    _dpr_config_from_dict,
    _json_safe,
    _load_build,
    _load_json_arg,
)


def _render_text_result(result: DPRResult, build: BuildConfiguration) -> str:
    level = build.current_level
    lines = [
        f"build: {build.name} ({build.id}), level {level}",
        f"average DPR at AC {TYPICAL_AC}: {result.average_dpr:.2f} "
        f"[{build_rating(result.average_dpr, level)}]",
        f"  {describe_dpr(result.average_dpr, level)}",
        "rounds: " + ", ".join(f"{dpr:.2f}" for dpr in result.round_breakdown),
        "",
        "  AC   normal    adv  disadv   hit%",
    ]
    adv = {p.ac: p.dpr for p in result.advantage_curve}
    dis = {p.ac: p.dpr for p in result.disadvantage_curve}
    for point in result.normal_curve:
        lines.append(
            f"  {point.ac:>2}  {point.dpr:>7.2f} {adv.get(point.ac, 0.0):>7.2f} "
            f"{dis.get(point.ac, 0.0):>7.2f} {point.hit_chance * 100:>5.0f}"
        )
    warning = attunement_status(build).warning
    if warning:
        lines.append(f"warning: {warning}")
    if result.power_attack_breakpoints:
        use = [bp.ac for bp in result.power_attack_breakpoints if bp.use_power_attack]
        if use:
            lines.append(f"power attack pays at AC {min(use)}-{max(use)}")
        else:
            lines.append("power attack never pays in this range")
    return "\n".join(lines)


def main() -> None:
    parser = argparse.ArgumentParser(description="Print a DPR curve for a build")
    _add_json_pair(parser, "build", "BuildConfiguration", required=True)
    _add_json_pair(parser, "config", "DPRConfiguration", required=False)
    parser.add_argument(
        "--auto-buffs",
        action="store_true",
        help="Replace the build's buffs with the highest-priority buffs it can cast.",
    )
    _add_common_args(parser)
    args = parser.parse_args()
    setup_logging(args.log_level)

    build = _load_build(args.build_json, args.build_file)
    catalog = default_catalog()
    if args.auto_buffs:
        selection = select_optimal_buffs(build, catalog)
        build = selection.apply_to(build)
        if not args.json:
            print(f"auto buffs: {explain_buff_selection(selection, catalog) or 'none'}")
    config = _dpr_config_from_dict(_load_json_arg(args.config_json, args.config_file), build.id)
    result = generate_dpr_curves(build, config, catalog)

    if args.json:
        print(json.dumps(_json_safe(result), indent=2))
        return
    print(_render_text_result(result, build))


if __name__ == "__main__":
    main()
