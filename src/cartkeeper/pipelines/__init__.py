"""Pipeline entry points for CartKeeper.

Currently exposed:

- :func:`run_script`: replay a scripted register session on a virtual clock,
  implemented in ``session_replay.py``.
"""

from __future__ import annotations

from .session_replay import ReplayResult, StepOutcome, run_script

__all__ = ["ReplayResult", "StepOutcome", "run_script"]
