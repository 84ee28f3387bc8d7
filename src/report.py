"""Structured, non-fatal run warnings.

Warnings are collected into a caller-owned list so that they can be asserted on
in tests and exported next to the outputs (warnings.csv). Each one is also
echoed to stderr with the usual `[WARN]` prefix.
"""

import sys
from dataclasses import asdict, dataclass
from typing import List, Optional

import pandas as pd


MISSING_RESOLUTION = 'MissingResolution'
UNREGISTERED_STIMULUS = 'UnregisteredStimulus'
DECODE_FAILURE = 'DecodeFailure'
DUPLICATE_STIMULUS = 'DuplicateStimulus'
NO_FIXATIONS = 'NoFixations'
UNUSED_SWAP_ENTRY = 'UnusedSwapEntry'
SWAP_SET_CONFLICT = 'SwapSetConflict'


@dataclass(frozen=True)
class RunWarning:
    kind: str
    stimulus_id: str
    message: str


def add_warning(
    warnings: Optional[List[RunWarning]],
    kind: str,
    stimulus_id: str,
    message: str,
    echo: bool = True,
) -> RunWarning:
    w = RunWarning(kind, str(stimulus_id), message)
    if warnings is not None:
        warnings.append(w)
    if echo:
        print('[WARN]', f'{kind}: {message}', file=sys.stderr)
    return w


def warnings_of_kind(warnings: List[RunWarning], kind: str) -> List[RunWarning]:
    return [w for w in warnings if w.kind == kind]


def warnings_frame(warnings: List[RunWarning]) -> pd.DataFrame:
    return pd.DataFrame([asdict(w) for w in warnings], columns=['kind', 'stimulus_id', 'message'])
