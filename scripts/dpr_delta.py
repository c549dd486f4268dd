"""Compute the DPR delta of toggling one buff or feat on a build.

Usage examples:
    python -m scripts.dpr_delta --build-file build.json --buff bless
    python -m scripts.dpr_delta --build-file build.json --feat great_weapon_master --level 4
    python -m scripts.dpr_delta --build-file base.json --modified-file variant.json --target-ac 18
"""

from __future__ import annotations

import argparse
import asyncio
import json
from dataclasses import asdict

from dpr_planner.engine.delta_engine import DeltaEngine, DeltaRecord
from dpr_planner.engine.dpr_worker import DPRWorker
from dpr_planner.engine.engine_config import EngineConfig
from dpr_planner.engine.ui_model import classify_delta
from dpr_planner.logging_config import setup_logging
from dpr_planner.models.build import BuildConfiguration
from dpr_planner.models.dpr import DPRConfiguration
from scripts._common import (
    _add_common_args,
    _add_json_pair,
    _dpr_config_from_dict,
    _json_safe,
    _load_build,
    _load_json_arg,
)


async def _compute_delta(
    base: BuildConfiguration,
    config: DPRConfiguration,
    *,
    target_ac: int,
    buff_id: str | None = None,
    feat_id: str | None = None,
    level: int | None = None,
    modified: BuildConfiguration | None = None,
) -> tuple[str, DeltaRecord | None]:
    if modified is not None and (buff_id is not None or feat_id is not None):
        raise ValueError("A modified build cannot be combined with --buff or --feat")
    engine_config = EngineConfig(default_target_ac=target_ac, debounce_ms=0)
    async with DPRWorker(max_workers=engine_config.max_workers) as worker:
        engine = DeltaEngine(worker, config=engine_config)
        try:
            if buff_id is not None:
                delta_id = f"buff-{buff_id}"
                engine.calculate_buff_delta(base, buff_id, config)
            elif feat_id is not None:
                if level is None:
                    raise ValueError("--feat requires --level")
                delta_id = f"feat-{feat_id}"
                engine.calculate_feat_delta(base, level, feat_id, config)
            else:
                if modified is None:
                    raise ValueError("Provide --buff, --feat, or a modified build")
                delta_id = f"build-{modified.id}"
                engine.calculate_delta(delta_id, base, modified, config)
            return delta_id, await engine.wait_settled(delta_id)
        finally:
            await engine.aclose()


def main() -> None:
    parser = argparse.ArgumentParser(description="Compute a single-toggle DPR delta")
    _add_json_pair(parser, "build", "base BuildConfiguration", required=True)
    _add_json_pair(parser, "modified", "modified BuildConfiguration", required=False)
    _add_json_pair(parser, "config", "DPRConfiguration", required=False)
    toggle = parser.add_mutually_exclusive_group()
    toggle.add_argument("--buff", help="Buff id to toggle.")
    toggle.add_argument("--feat", help="Feat id to take at --level.")
    parser.add_argument("--level", type=int, help="Timeline level for --feat.")
    parser.add_argument("--target-ac", type=int, default=16, help="AC to read the delta at.")
    _add_common_args(parser)
    args = parser.parse_args()
    setup_logging(args.log_level)

    base = _load_build(args.build_json, args.build_file)
    modified = None
    if args.modified_json is not None or args.modified_file is not None:
        modified = _load_build(args.modified_json, args.modified_file)
    if modified is not None and (args.buff or args.feat):
        parser.error("--modified-file/--modified-json cannot be combined with --buff or --feat")
    config = _dpr_config_from_dict(_load_json_arg(args.config_json, args.config_file), base.id)

    delta_id, record = asyncio.run(
        _compute_delta(
            base,
            config,
            target_ac=args.target_ac,
            buff_id=args.buff,
            feat_id=args.feat,
            level=args.level,
            modified=modified,
        )
    )

    if args.json:
        payload = {"delta_id": delta_id, "record": asdict(record) if record else None}
        print(json.dumps(_json_safe(payload), indent=2))
        return
    if record is None:
        print(f"{delta_id}: no result")
    elif record.error:
        print(f"{delta_id}: error: {record.error}")
    else:
        print(f"{delta_id}: {record.value:+.2f} DPR at AC {args.target_ac} ({classify_delta(record.value)})")


if __name__ == "__main__":
    main()
