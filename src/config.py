"""Stimulus configuration: accepted image format, dilation radius and swap sets.

configs/stimuli_default.json layout:

    {
      "accepted_extension": ".jpg",
      "excluded_extensions": [".png"],
      "dilation_radius": 15,
      "swap_sets": {"<name>": ["<stimulus_id>", ...], ...}
    }

Swap sets are listed per stimulus pool. When several blocks are defined they
are never merged: the run names the one it uses. Ids that appear in some blocks
but not in others are reported, since divergent blocks for the same pool are
usually a copy/paste mistake.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, FrozenSet, List, Optional, Tuple

from .registry import ConfigurationError, validate_swap_set
from .report import SWAP_SET_CONFLICT, RunWarning, add_warning


@dataclass(frozen=True)
class StimulusConfig:
    accepted_extension: str = '.jpg'
    excluded_extensions: Tuple[str, ...] = ('.png',)
    dilation_radius: int = 15
    swap_set_name: Optional[str] = None
    swap_set: FrozenSet[str] = field(default_factory=frozenset)


def default_config_path() -> str:
    return str(Path(__file__).resolve().parents[1] / 'configs' / 'stimuli_default.json')


def _normalize_ext(ext, what: str) -> str:
    if not isinstance(ext, str) or not ext.startswith('.') or len(ext) < 2:
        raise ConfigurationError(f"{what} must look like '.jpg', got {ext!r}")
    return ext.lower()


def swap_set_conflicts(swap_sets: Dict[str, List[str]]) -> Dict[str, List[str]]:
    """stimulus_id -> names of the blocks that list it, for ids not listed by every block."""
    if len(swap_sets) < 2:
        return {}
    members = {name: set(ids) for name, ids in swap_sets.items()}
    all_ids = set().union(*members.values())
    out = {}
    for sid in sorted(all_ids):
        in_blocks = sorted(name for name, ids in members.items() if sid in ids)
        if len(in_blocks) != len(members):
            out[sid] = in_blocks
    return out


def load_stimulus_config(
    path: Optional[str] = None,
    swap_set: Optional[str] = None,
    dilation_radius: Optional[int] = None,
    warnings: Optional[List[RunWarning]] = None,
) -> StimulusConfig:
    """Load and validate the stimulus config. `dilation_radius` overrides the file value."""
    if path is None:
        path = default_config_path()
    try:
        with open(path, 'r', encoding='utf-8') as f:
            d = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in {path}: {e}")
    if not isinstance(d, dict):
        raise ConfigurationError(f"{path}: top-level JSON must be an object")

    accepted = _normalize_ext(d.get('accepted_extension', '.jpg'), 'accepted_extension')
    excluded_raw = d.get('excluded_extensions', ['.png'])
    if isinstance(excluded_raw, str):
        excluded_raw = [excluded_raw]
    excluded = tuple(_normalize_ext(e, 'excluded_extensions entry') for e in excluded_raw)
    if accepted in excluded:
        raise ConfigurationError(f"accepted_extension {accepted!r} is also listed in excluded_extensions")

    radius = d.get('dilation_radius', 15) if dilation_radius is None else dilation_radius
    if isinstance(radius, bool) or not isinstance(radius, int) or radius < 0:
        raise ConfigurationError(f"dilation_radius must be a non-negative integer, got {radius!r}")

    blocks = d.get('swap_sets', {}) or {}
    if not isinstance(blocks, dict):
        raise ConfigurationError('swap_sets must map a block name to a list of stimulus ids')
    validated = {}
    for name, ids in blocks.items():
        if not isinstance(ids, list):
            raise ConfigurationError(f"swap_sets[{name!r}] must be a list of stimulus ids")
        validated[str(name)] = validate_swap_set(ids)

    for sid, in_blocks in swap_set_conflicts({k: sorted(v) for k, v in validated.items()}).items():
        add_warning(warnings, SWAP_SET_CONFLICT, sid,
                    f"stimulus {sid!r} is swapped only in blocks {in_blocks} of {sorted(validated)}")

    if swap_set is None:
        if len(validated) > 1:
            raise ConfigurationError(
                f"{path} defines several swap sets {sorted(validated)}; choose one explicitly"
            )
        swap_set = next(iter(validated), None)
    elif swap_set not in validated:
        raise ConfigurationError(f"Unknown swap set {swap_set!r}; available: {sorted(validated)}")

    return StimulusConfig(
        accepted_extension=accepted,
        excluded_extensions=excluded,
        dilation_radius=int(radius),
        swap_set_name=swap_set,
        swap_set=validated.get(swap_set, frozenset()) if swap_set is not None else frozenset(),
    )
