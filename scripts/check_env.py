"""CLI helper to validate required environment variables.

Usage::

    python -m scripts.check_env

It imports :mod:`skillmap.core.config` and reports any validation errors in a
readable format, exiting with status code 1 when something is missing.
"""

from __future__ import annotations

import sys

from pydantic import ValidationError

try:
    from skillmap.core.config import settings
except ValidationError:
    # ``skillmap.core.config`` already printed the details.
    print("Environment validation failed - see details above.", file=sys.stderr)
    sys.exit(1)
else:
    print("Environment variables OK.")
    for name, value in settings.model_dump().items():
        if "key" in name.lower() or "password" in name.lower():
            print(f"- {name}: <hidden>")
        else:
            print(f"- {name}: {value}")
