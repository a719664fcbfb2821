"""
Dev bootstrap script — create tables and a tenant with an API key.

Usage:
    python -m scripts.bootstrap_dev

This will:
  1. Create any missing tables (users, applications, api_keys, analytics_events)
  2. Register a dev user with the application "Dev Application"
  3. Print the API key to use as `x-api-key`

Re-running is safe: the same dev user is updated and the key is rotated.
"""

import asyncio
import sys

# Ensure the project root is on the path
sys.path.insert(0, ".")

from pulse.auth.identity import VerifiedIdentity
from pulse.core.database import Base, engine
from pulse.core.store import store
from pulse.models import api_key, application, event, user  # noqa: F401  (register tables)
from pulse.services.tenancy import register_tenant

DEV_IDENTITY = VerifiedIdentity(
    subject_id="dev-google-subject",
    email="dev@localhost",
    name="Dev User",
)


async def main() -> None:
    # ── Create tables ───────────────────────────────────────
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    # ── Register tenant ─────────────────────────────────────
    result = await register_tenant(store, DEV_IDENTITY, "Dev Application", "localhost")
    application_row = result["application"]

    # ── Print results ───────────────────────────────────────
    print()
    print("=" * 60)
    print("  Dev Bootstrap Complete")
    print("=" * 60)
    print()
    print(f"  User ID:        {result['user_id']}")
    print(f"  Application:    {application_row['name']}")
    print(f"  Application ID: {application_row['id']}")
    print()
    print(f"  API Key:        {result['api_key']}")
    print()
    print("  ⚠  Re-running this script rotates the key.")
    print("=" * 60)
    print()

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
