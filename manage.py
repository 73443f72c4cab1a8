#!/usr/bin/env python
"""
AdLedger command-line utility for administrative tasks
(count resync, spend reconciliation, sample data).
"""

import os
import sys
from pathlib import Path

if __name__ == "__main__":
    # ===============================================================================
    # LOAD ENVIRONMENT VARIABLES FROM .env FILE 🔐
    # ===============================================================================
    env_path = Path(__file__).resolve().parent / ".env"
    if env_path.exists():
        from dotenv import load_dotenv

        load_dotenv(env_path)

    os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings.dev")

    try:
        from django.core.management import execute_from_command_line
    except ImportError as exc:
        raise ImportError(
            "Couldn't import Django. Is it installed and available on your "
            "PYTHONPATH? Run `pip install -e .` from the repository root."
        ) from exc

    execute_from_command_line(sys.argv)
