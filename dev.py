#!/usr/bin/env python3
"""
Development startup script.
Creates a virtualenv, installs the package and launches the API server.

Usage: python dev.py
"""

import os
import subprocess
import sys
from pathlib import Path

ROOT = Path(__file__).parent
BACKEND = ROOT / "backend"


def run(cmd, cwd=None, check=True):
    """Run a command and return the result."""
    print(f"\n> {cmd}")
    return subprocess.run(cmd, shell=True, cwd=cwd, check=check)


def check_credentials():
    """The server refuses to start without a text-generation key."""
    env_file = BACKEND / ".env"
    if os.environ.get("ANTHROPIC_API_KEY") or os.environ.get("GEMINI_API_KEY"):
        return
    if env_file.exists() and "API_KEY=" in env_file.read_text(encoding="utf-8"):
        return
    print("Set ANTHROPIC_API_KEY (or TEXT_PROVIDER=gemini and GEMINI_API_KEY)")
    print(f"in the environment or in {env_file} before starting.")
    sys.exit(1)


def setup_backend():
    """Create the virtualenv and install the package with test extras."""
    print("\n=== Setting up backend ===")

    venv_path = ROOT / "venv"
    if not venv_path.exists():
        print("Creating virtual environment...")
        run(f'"{sys.executable}" -m venv venv', cwd=ROOT)

    if sys.platform == "win32":
        python = venv_path / "Scripts" / "python"
    else:
        python = venv_path / "bin" / "python"

    print("Installing dependencies...")
    run(f'"{python}" -m pip install -e ".[test]"', cwd=ROOT)
    return python


def main():
    print("=" * 50)
    print("EcoOps - Development Server")
    print("=" * 50)

    check_credentials()
    python = setup_backend()

    print("\nBackend:  http://localhost:8000")
    print("API Docs: http://localhost:8000/docs")
    print("\nPress Ctrl+C to stop\n")

    try:
        run(f'"{python}" -m uvicorn ecoops.main:app --reload', cwd=BACKEND)
    except KeyboardInterrupt:
        print("\n\nShutting down...")


if __name__ == "__main__":
    main()
