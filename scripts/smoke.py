# scripts/smoke.py
"""
Smoke Test Script for the CartKeeper checkpoint history.

Usage
-----
1. Replay the bundled sample session:
    $ uv run python scripts/smoke.py

2. Replay a custom session script:
    $ uv run python scripts/smoke.py --file my_session.json
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from cartkeeper.core.contracts.session import SessionScript
from cartkeeper.pipelines.session_replay import run_script

# --------------------------------------------------------------------------- #
# Environment Setup
# --------------------------------------------------------------------------- #
env_path = Path(".env")
if env_path.exists():
    load_dotenv(env_path)
    print("✅ Loaded .env file")

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)

DEFAULT_SCRIPT = Path(__file__).resolve().parent.parent / "samples" / "session.json"


def main() -> int:
    parser = argparse.ArgumentParser(description="Replay a CartKeeper session script.")
    parser.add_argument("--file", type=Path, default=DEFAULT_SCRIPT, help="Session script (JSON)")
    args = parser.parse_args()

    with open(args.file, encoding="utf-8") as f:
        script = SessionScript.model_validate(json.load(f))

    result = run_script(script)
    svc = result["service"]

    print(f"\n=== {result['name']} ===")
    for out in result["outcomes"]:
        flag = "✓" if out.applied else "·"
        print(f"  {flag} [{out.clock_ms:>6.0f} ms] {out.op:<15} {out.detail}")

    print(f"\nCheckpoints: {len(svc.get_all_saved_states())} (cursor {svc.history_cursor()})")
    for i, snap in enumerate(svc.get_all_saved_states()):
        print(f"  {'>' if i == svc.history_cursor() else ' '} {i}: {snap.label}")

    totals = result["editor"].totals()
    print(f"\nLive cart total: {totals.total:.2f} ({totals.item_count} units)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
