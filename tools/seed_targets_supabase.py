# tools/seed_targets_supabase.py
"""
Seed / upsert the built-in target set into Supabase.

  1) From backend root, run:
     $ export SUPABASE_URL="https://xxxx.supabase.co"
     $ export SUPABASE_SERVICE_ROLE_KEY="YOUR_SERVICE_ROLE_KEY"
     $ python tools/seed_targets_supabase.py

Expected tables:
  target_sets      id (text pk), name, universe, geography
  target_variables target_set_id (fk), key, label, position (int),
                   categories (jsonb: [{key, label, share}]),
                   unique (target_set_id, key)

Uses the service role key so RLS does not block seeding.
"""

from __future__ import annotations

import os
import sys
from typing import Any, Dict, List

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from config.supabase_env import load_supabase_env
from config.target_seed import SEED_TARGET_SET
from services.target_service import TARGET_SETS_TABLE, TARGET_VARIABLES_TABLE
from services.weighting_types import TargetSet


def target_set_row(target_set: TargetSet) -> Dict[str, Any]:
    return {
        "id": target_set.id,
        "name": target_set.name,
        "universe": target_set.universe,
        "geography": target_set.geography,
    }


def variable_rows(target_set: TargetSet) -> List[Dict[str, Any]]:
    return [
        {
            "target_set_id": target_set.id,
            "key": variable.key,
            "label": variable.label,
            "position": position,
            "categories": [
                {"key": c.key, "label": c.label, "share": c.share}
                for c in variable.categories
            ],
        }
        for position, variable in enumerate(target_set.variables)
    ]


def seed(client, target_set: TargetSet = SEED_TARGET_SET) -> int:
    """Upserts one target set and its variables. Returns the variable count."""
    client.table(TARGET_SETS_TABLE).upsert(target_set_row(target_set), on_conflict="id").execute()

    rows = variable_rows(target_set)
    if rows:
        try:
            client.table(TARGET_VARIABLES_TABLE).upsert(rows, on_conflict="target_set_id,key").execute()
        except Exception as e:
            msg = str(e)
            if "does not exist" in msg and ("column" in msg or "relation" in msg):
                raise RuntimeError(
                    f"Supabase schema mismatch while upserting into public.{TARGET_VARIABLES_TABLE}.\n"
                    f"Error: {msg}\n"
                    f"Ensure the table exists with target_set_id, key, label, position, categories (jsonb)."
                ) from e
            raise
    return len(rows)


def main() -> int:
    try:
        from dotenv import load_dotenv  # type: ignore

        load_dotenv(os.path.join(PROJECT_ROOT, ".env"))
    except ImportError:
        pass

    env = load_supabase_env()
    if not env.url or not env.service_role_key:
        print("Missing SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY in environment.", file=sys.stderr)
        return 1

    from supabase import create_client

    client = create_client(env.url, env.service_role_key)
    count = seed(client)
    print(f"Seed complete. Upserted target set {SEED_TARGET_SET.id} with {count} variables.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
