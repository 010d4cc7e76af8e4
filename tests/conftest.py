"""Pytest configuration: put src on the path; load shared fixtures."""

import sys
from pathlib import Path

_src_dir = Path(__file__).resolve().parent.parent / "src"
if str(_src_dir) not in sys.path:
    sys.path.insert(0, str(_src_dir))

pytest_plugins = ["job_metrics.pytest_fixtures"]
