from fastapi import APIRouter

from config.supabase_env import load_supabase_env
from utils import supabase_client

router = APIRouter()


@router.get("/__supabase")
def supabase_health():
    env = load_supabase_env()

    if env.service_role_key:
        key_in_use = "service_role"
    elif env.anon_key:
        key_in_use = "anon"
    else:
        key_in_use = "none"

    client_created = supabase_client.get_supabase() is not None

    return {
        "configured": env.configured,
        "url_set": bool(env.url),
        "url_preview": f"{env.url[:35]}..." if env.url else None,
        "service_role_set": bool(env.service_role_key),
        "anon_set": bool(env.anon_key),
        "key_in_use": key_in_use,
        "client_created": client_created,
        "client_init_error": supabase_client.SUPABASE_CLIENT_INIT_ERROR,
        "target_storage": "supabase" if client_created else "seed",
    }
