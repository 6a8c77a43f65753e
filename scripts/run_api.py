#!/usr/bin/env python
"""
Run the HVAC pricing API under uvicorn.

Usage:
    python scripts/run_api.py [port]
"""
import os
import subprocess
import sys
from pathlib import Path


def main():
    project_root = Path(__file__).parent.parent
    port = sys.argv[1] if len(sys.argv) > 1 else "8000"

    env = os.environ.copy()
    env["PYTHONPATH"] = os.pathsep.join(filter(None, [str(project_root / 'src'), env.get("PYTHONPATH")]))
    log_level = env.get("HVAC_LOG_LEVEL", "info").lower()

    cmd = [
        sys.executable, "-m", "uvicorn",
        "hvac_pricing.api.main:app",
        "--host", "0.0.0.0",
        "--port", port,
        "--log-level", log_level,
        "--reload",
    ]
    print(f"Starting HVAC Pricing API on port {port}...")
    try:
        subprocess.run(cmd, cwd=str(project_root), env=env)
    except KeyboardInterrupt:
        print("\nAPI stopped.")


if __name__ == "__main__":
    main()
