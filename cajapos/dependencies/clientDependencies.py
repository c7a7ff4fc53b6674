from typing import Annotated, AsyncIterator
from fastapi import Depends
from cajapos.database.client import SupabaseClient, create_client


async def get_supabase_client() -> AsyncIterator[SupabaseClient]:
    """Genera un cliente de Supabase por request (se cierra al terminar)."""
    client = create_client()
    try:
        yield client
    finally:
        await client.aclose()

# Cliente del backend para endpoints de diagnóstico
client_dependency = Annotated[SupabaseClient, Depends(get_supabase_client)]
