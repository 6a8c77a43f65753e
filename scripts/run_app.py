#!/usr/bin/env python
"""
Launch the Streamlit pricing console.

The console opens its own store connection from HVAC_DATABASE_URL, so the
schema is migrated on first page load; run scripts/seed_db.py beforehand
for a demo catalog.

Usage:
    python scripts/run_app.py [--port 8501] [--headless] [--database-url URL]
"""
import argparse
import os
import subprocess
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent.parent
UI_PATH = PROJECT_ROOT / 'src' / 'hvac_pricing' / 'ui' / 'app_streamlit.py'


def build_command(port: int, headless: bool) -> list[str]:
    cmd = [sys.executable, '-m', 'streamlit', 'run', str(UI_PATH), '--server.port', str(port)]
    if headless:
        cmd += ['--server.headless', 'true']
    return cmd


def build_env(database_url: str | None) -> dict[str, str]:
    env = os.environ.copy()
    env['PYTHONPATH'] = os.pathsep.join(filter(None, [str(PROJECT_ROOT / 'src'), env.get('PYTHONPATH')]))
    if database_url:
        env['HVAC_DATABASE_URL'] = database_url
    return env


def main():
    parser = argparse.ArgumentParser(description="Run the HVAC pricing console")
    parser.add_argument('--port', type=int, default=8501)
    parser.add_argument('--headless', action='store_true', help="Do not open a browser")
    parser.add_argument('--database-url', help="Overrides HVAC_DATABASE_URL")
    args = parser.parse_args()

    if not UI_PATH.exists():
        sys.exit(f"ERROR: console not found at {UI_PATH}")

    cmd = build_command(args.port, args.headless)
    print(f"Pricing console on http://localhost:{args.port}")

    try:
        subprocess.run(cmd, cwd=str(PROJECT_ROOT), env=build_env(args.database_url), check=False)
    except KeyboardInterrupt:
        print("\nConsole stopped.")


if __name__ == "__main__":
    main()
