"""
ASGI Entry Point for the CartKeeper API.

This module exposes the `app` object required by ASGI servers (Uvicorn/Gunicorn).
It proactively loads environment variables from `.env` so the settings module
sees them before the application factory runs.

Usage
-----
Run via the module entry point:
    $ python -m cartkeeper.api.server

Or via uvicorn directly:
    $ uvicorn cartkeeper.api.server:app --reload
"""

from pathlib import Path

import uvicorn
from dotenv import load_dotenv

# --------------------------------------------------------------------------- #
# Environment Setup
# --------------------------------------------------------------------------- #

# Load environment variables from .env BEFORE importing the application factory.
load_dotenv(dotenv_path=Path(".env"))

from cartkeeper.api.app import create_app  # noqa: E402
from cartkeeper.core.settings import load_settings  # noqa: E402

# Factory invocation
app = create_app()


def main() -> None:
    """Run the API server locally for development."""
    cfg = load_settings()
    print(f"{'[ CartKeeper ]':=^60}")
    print(f"{'environment':<24} : {cfg.environment}")
    print(f"{'history limit':<24} : {cfg.history_limit}")
    print(f"{'auto-save':<24} : {'on' if cfg.autosave_enabled else 'off'}")
    print(f"{'auto-save threshold':<24} : {cfg.autosave_threshold_ms} ms")
    print(f"{'='*60}\n")

    uvicorn.run(
        "cartkeeper.api.server:app",
        host="0.0.0.0",
        port=8000,
        reload=cfg.is_dev,
        log_level=cfg.log_level.lower(),
    )


if __name__ == "__main__":
    main()
