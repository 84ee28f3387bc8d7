#!/usr/bin/env python3
"""Per-stimulus fixation overlays and dilated binary fixation maps.

Typical usage:
  python scripts/run_fixation_maps.py \
    --input /content/gaze_export.csv \
    --image_dir /content/stimuli \
    --swap_set default \
    --outdir outputs_fixation_maps

Outputs:
  <outdir>/fixations.csv            pixel fixations per participant/stimulus
  <outdir>/maps/<key>.npy           binary map (H x W, uint8) after dilation
  <outdir>/maps/<key>.png           grayscale map (unless --no_plots)
  <outdir>/overlays/<key>.png       fixation scatter over the stimulus (unless --no_plots)
  <outdir>/quality_report.csv
  <outdir>/warnings.csv
  <outdir>/run_config.json
"""

import argparse
import json
import os
import sys
from pathlib import Path

import numpy as np
import pandas as pd

# Ensure repo root is on sys.path so `import src.*` works when running from scripts/
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from src.aggregate import fixations_frame, get_group, participants
from src.config import load_stimulus_config
from src.pipeline import load_gaze_csv, quality_report, run_fixation_maps
from src.registry import read_image_sizes
from src.render import plot_fixation_overlay, save_spatial_map_png
from src.report import warnings_frame


def key_stem(key) -> str:
    if isinstance(key, tuple):
        return "__".join(str(k) for k in key)
    return str(key)


def main():
    ap = argparse.ArgumentParser(description="Fixation overlays and dilated binary fixation maps per stimulus")
    ap.add_argument("--input", required=True, help="Gaze export CSV (participant, media name, normalized fixation x/y)")
    ap.add_argument("--image_dir", required=True, help="Directory with the stimulus images")
    ap.add_argument("--outdir", default="outputs_fixation_maps")
    ap.add_argument("--config", default=None, help="Stimulus config JSON (default: configs/stimuli_default.json)")
    ap.add_argument("--swap_set", default=None, help="Name of the swap-set block to use (required when the config defines several)")
    ap.add_argument("--radius", type=int, default=None, help="Dilation radius in pixels (default: from config, 15)")
    ap.add_argument("--pooled", action="store_true", help="Pool fixations of all participants per stimulus")
    ap.add_argument("--participant", default=None, help="Only export groups of this participant (per-participant mode)")
    ap.add_argument("--columns_map", default=None, help="Path to JSON mapping of required columns to candidate names (default: configs/columns_default.json)")
    ap.add_argument("--no_plots", action="store_true", help="Skip PNG rendering (only write csv/npy outputs)")
    args = ap.parse_args()

    if args.pooled and args.participant:
        raise SystemExit("--participant cannot be combined with --pooled")

    outdir = Path(args.outdir)
    outdir.mkdir(parents=True, exist_ok=True)

    warnings = []
    cfg = load_stimulus_config(args.config, swap_set=args.swap_set, dilation_radius=args.radius, warnings=warnings)

    df, clean = load_gaze_csv(args.input, columns_map_path=args.columns_map)
    sizes = read_image_sizes(args.image_dir, extension=cfg.accepted_extension, warnings=warnings)
    if not sizes:
        raise SystemExit(f"No {cfg.accepted_extension} images found under {args.image_dir}")

    result = run_fixation_maps(clean, sizes, cfg, pooled=args.pooled, warnings=warnings)

    groups = result.groups
    if args.participant is not None:
        if args.participant not in participants(groups):
            raise SystemExit(f"Unknown participant {args.participant!r}; available: {participants(groups)}")
        groups = {k: g for k, g in groups.items() if k[0] == args.participant}

    fixations_frame(groups).to_csv(outdir / "fixations.csv", index=False)

    for key in groups:
        spatial_map = result.maps.get(key)
        if spatial_map is None:
            continue
        stem = key_stem(key)
        (outdir / "maps").mkdir(parents=True, exist_ok=True)
        np.save(outdir / "maps" / f"{stem}.npy", spatial_map)

        if args.no_plots:
            continue

        group = get_group(groups, key)
        geom = result.registry[group.stimulus_id]
        img = Path(args.image_dir) / f"{group.stimulus_id}{cfg.accepted_extension}"
        plot_fixation_overlay(group, geom, str(outdir / "overlays" / f"{stem}.png"),
                              image_path=str(img) if img.exists() else None, title=stem)
        save_spatial_map_png(spatial_map, str(outdir / "maps" / f"{stem}.png"), title=stem)

    pd.DataFrame([quality_report(df, clean)]).to_csv(outdir / "quality_report.csv", index=False)
    warnings_frame(result.warnings).to_csv(outdir / "warnings.csv", index=False)

    with open(outdir / "run_config.json", "w", encoding="utf-8") as f:
        json.dump(
            {
                "input": args.input,
                "image_dir": args.image_dir,
                "pooled": bool(args.pooled),
                "participant": args.participant,
                "accepted_extension": cfg.accepted_extension,
                "excluded_extensions": list(cfg.excluded_extensions),
                "dilation_radius": cfg.dilation_radius,
                "swap_set": cfg.swap_set_name,
                "swapped_stimuli": sorted(cfg.swap_set),
                "groups": len(groups),
                "maps": sum(1 for k in groups if k in result.maps),
                "warnings": len(result.warnings),
            },
            f,
            ensure_ascii=False,
            indent=2,
        )

    print("Saved:")
    print(" -", str(outdir / "fixations.csv"))
    print(" - maps under:", str(outdir / "maps"))
    if result.warnings:
        print(f"WARNING: {len(result.warnings)} warnings. See: {outdir / 'warnings.csv'}")


if __name__ == "__main__":
    main()
