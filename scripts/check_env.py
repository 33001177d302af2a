"""CLI helper to validate required environment variables.

Usage::

    python -m scripts.check_env

It imports :mod:`caseprep.core.config` and reports any validation errors in a
readable format, exiting with status code 1 when something is missing. Keys
that the payment and feedback paths need at runtime are reported as warnings.
"""

from __future__ import annotations

import sys

from pydantic import ValidationError

RUNTIME_KEYS = ("OPENAI_API_KEY", "STRIPE_SECRET_KEY", "STRIPE_WEBHOOK_SECRET", "SUPABASE_SERVICE_ROLE_KEY")
SECRET_MARKERS = ("key", "password", "secret")

try:
    from caseprep.core.config import settings
except ValidationError:
    # ``caseprep.core.config`` already prints a detailed error summary.
    print("Environment validation failed - see details above.", file=sys.stderr)
    sys.exit(1)
else:
    print("Environment variables OK.")
    values = settings.model_dump()
    for name, value in values.items():
        if any(marker in name.lower() for marker in SECRET_MARKERS):
            print(f"- {name}: {'<hidden>' if value else '<unset>'}")
        else:
            print(f"- {name}: {value}")

    missing = [name for name in RUNTIME_KEYS if not values.get(name)]
    if settings.USE_LOCAL_MODEL and "OPENAI_API_KEY" in missing:
        missing.remove("OPENAI_API_KEY")
    for name in missing:
        print(f"WARNING: {name} is not set.", file=sys.stderr)
    if not settings.CREDIT_PACKAGES:
        print("WARNING: CREDIT_PACKAGES is empty, checkout will refuse every pack.", file=sys.stderr)
