"""
Supabase client + REST upsert helper

Goals:
- Never crash the app at import time: without credentials the service runs
  on the built-in seed target set and keeps runs in memory only.
- Provide a supabase-py Client for reads (target sets).
- Provide a REST upsert used for result snapshots, with a manual
  PATCH-then-INSERT fallback when the table lacks a unique constraint.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import requests

from config.supabase_env import load_supabase_env

logger = logging.getLogger("weighting-backend")

# ----------------------------------------------------
# Load environment variables (local dev only)
# ----------------------------------------------------
try:
    from dotenv import load_dotenv  # type: ignore

    load_dotenv()
except ImportError:
    pass

_ENV = load_supabase_env()

SUPABASE_URL: str = _ENV.url or ""
SUPABASE_KEY: str = _ENV.key or ""

REQUEST_TIMEOUT_SECONDS = 20

# ----------------------------------------------------
# supabase-py client (optional)
# ----------------------------------------------------
SUPABASE_CLIENT_INIT_ERROR: Optional[str] = None
supabase = None  # type: ignore
if SUPABASE_URL and SUPABASE_KEY:
    try:
        from supabase import create_client  # type: ignore

        supabase = create_client(SUPABASE_URL, SUPABASE_KEY)
    except Exception as e:
        SUPABASE_CLIENT_INIT_ERROR = str(e)
        logger.warning(f"Supabase client unavailable (seed-only mode): {e}")
        supabase = None  # type: ignore

_session = requests.Session()


def is_supabase_configured() -> bool:
    return bool(SUPABASE_URL and SUPABASE_KEY)


def get_supabase():
    """Returns the shared supabase-py client, or None in seed-only mode."""
    return supabase


def _ensure_config() -> None:
    if not SUPABASE_URL:
        raise RuntimeError("SUPABASE_URL is missing. Set it in .env or the deployment environment.")
    if not SUPABASE_KEY:
        raise RuntimeError(
            "No Supabase API key found. Set SUPABASE_SERVICE_ROLE_KEY (recommended) or SUPABASE_ANON_KEY."
        )


def _table_url(table: str) -> str:
    _ensure_config()
    return f"{SUPABASE_URL.rstrip('/')}/rest/v1/{table}"


def _headers(*, prefer: Optional[str] = None) -> Dict[str, str]:
    _ensure_config()
    h = {
        "apikey": SUPABASE_KEY,
        "Authorization": f"Bearer {SUPABASE_KEY}",
        "Content-Type": "application/json",
    }
    if prefer:
        h["Prefer"] = prefer
    return h


def _error_code(resp: requests.Response) -> Optional[str]:
    try:
        body = resp.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        return body.get("code")
    return None


def _as_rows(resp: requests.Response) -> List[Dict[str, Any]]:
    try:
        data = resp.json()
    except ValueError:
        return []
    if isinstance(data, list):
        return data
    return [data]


def _raise_for_status(resp: requests.Response, action: str) -> None:
    if resp.status_code == 401:
        raise RuntimeError("Unauthorized: Supabase key invalid or missing.")
    if resp.status_code >= 400:
        raise RuntimeError(f"Supabase {action} failed [{resp.status_code}]: {resp.text}")


def supabase_insert(table: str, records: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    if not records:
        raise ValueError("supabase_insert: 'records' must be a non-empty list")

    resp = _session.post(
        _table_url(table),
        headers=_headers(prefer="return=representation"),
        json=records,
        timeout=REQUEST_TIMEOUT_SECONDS,
    )
    _raise_for_status(resp, "INSERT")
    return _as_rows(resp)


def _patch(table: str, where: Dict[str, str], payload: Dict[str, Any]) -> List[Dict[str, Any]]:
    resp = _session.patch(
        _table_url(table),
        headers=_headers(prefer="return=representation"),
        params=where,
        json=payload,
        timeout=REQUEST_TIMEOUT_SECONDS,
    )
    _raise_for_status(resp, "PATCH")
    return _as_rows(resp)


def supabase_upsert(table: str, records: List[Dict[str, Any]], conflict_col: str) -> List[Dict[str, Any]]:
    """
    Insert-or-update rows keyed by conflict_col.

    Primary path: POST ?on_conflict=<col> with merge-duplicates.
    Fallback (Postgres 42P10, no unique constraint on the column):
    PATCH each row by key, INSERT the ones nothing matched.
    """
    if not records:
        raise ValueError("supabase_upsert: 'records' must be a non-empty list")

    resp = _session.post(
        _table_url(table),
        headers=_headers(prefer="resolution=merge-duplicates,return=representation"),
        params={"on_conflict": conflict_col},
        json=records,
        timeout=REQUEST_TIMEOUT_SECONDS,
    )
    if resp.status_code < 400:
        return _as_rows(resp)

    # 42P10 = no unique or exclusion constraint matching the ON CONFLICT column
    if _error_code(resp) != "42P10":
        _raise_for_status(resp, "UPSERT")

    out: List[Dict[str, Any]] = []
    for rec in records:
        if conflict_col not in rec:
            raise RuntimeError(f"supabase_upsert fallback: record missing '{conflict_col}'")
        updated = _patch(table, {conflict_col: f"eq.{rec[conflict_col]}"}, rec)
        out.extend(updated or supabase_insert(table, [rec]))
    return out
