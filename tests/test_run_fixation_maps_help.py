# Smoke test: CLI flags parse. The full run needs a gaze export and images.

import os
import subprocess
import sys


def test_run_fixation_maps_help():
    repo_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    cmd = [sys.executable, os.path.join(repo_root, 'scripts', 'run_fixation_maps.py'), '--help']
    out = subprocess.check_output(cmd, text=True)
    assert '--image_dir' in out
    assert '--swap_set' in out
    assert '--pooled' in out
