import os
from dataclasses import dataclass


@dataclass(frozen=True)
class SupabaseEnv:
    url: str | None
    anon_key: str | None
    service_role_key: str | None

    @property
    def key(self) -> str | None:
        # Server-side writes need the service role key; reads work with anon.
        return self.service_role_key or self.anon_key

    @property
    def configured(self) -> bool:
        return bool(self.url and self.key)


def load_supabase_env() -> SupabaseEnv:
    url = (os.getenv("SUPABASE_URL") or os.getenv("SUPABASE_PROJECT_URL") or "").strip() or None
    anon_key = (os.getenv("SUPABASE_ANON_KEY") or "").strip() or None
    service_role_key = (os.getenv("SUPABASE_SERVICE_ROLE_KEY") or "").strip() or None

    return SupabaseEnv(url=url, anon_key=anon_key, service_role_key=service_role_key)
