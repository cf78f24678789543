from typing import Optional
from supabase import create_client, acreate_client, Client, AsyncClient
from functools import lru_cache
import logging

from app.core.config import settings

logger = logging.getLogger(__name__)

class SupabaseClient:
    def __init__(self):
        self._anon_client: Optional[Client] = None
        self._service_client: Optional[Client] = None
        self._realtime_client: Optional[AsyncClient] = None

    @property
    def anon(self) -> Client:
        if self._anon_client is None:
            self._anon_client = create_client(settings.SUPABASE_URL, settings.SUPABASE_ANON_KEY)
        return self._anon_client

    @property
    def service(self) -> Client:
        if self._service_client is None:
            self._service_client = create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_ROLE_KEY)
        return self._service_client

    async def realtime(self) -> AsyncClient:
        """
        Async client used for realtime channels.
        The sync clients cannot hold a websocket, so channels live here.
        """
        if self._realtime_client is None:
            self._realtime_client = await acreate_client(
                settings.SUPABASE_URL,
                settings.SUPABASE_SERVICE_ROLE_KEY
            )
            logger.info("Supabase realtime client created")
        return self._realtime_client

    def table(self, name: str):
        """Query builder on the service-role client; callers scope rows by user_id."""
        return self.service.table(name)


@lru_cache()
def get_supabase() -> SupabaseClient:
    return SupabaseClient()

supabase = get_supabase()
