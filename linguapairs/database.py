from supabase import create_client, Client, ClientOptions
from linguapairs.config import get_settings
from typing import Optional
import logging

logger = logging.getLogger(__name__)


class SupabaseClient:
    """Supabase client wrapper shared by controllers and auth routes"""

    def __init__(self):
        self.settings = get_settings()
        self._service_client: Optional[Client] = None

    @property
    def service_client(self) -> Client:
        """Service-role client used for data access; visibility is checked in code"""
        if self._service_client is None:
            self._service_client = create_client(
                self.settings.supabase_url,
                self.settings.supabase_service_role_key,
                options=ClientOptions(auto_refresh_token=False, persist_session=False),
            )
        return self._service_client

    def auth_client(self) -> Client:
        """Fresh anon client for one auth flow, so sessions never leak between requests"""
        return create_client(
            self.settings.supabase_url,
            self.settings.supabase_anon_key,
            options=ClientOptions(auto_refresh_token=False, persist_session=False),
        )

    async def test_connection(self) -> bool:
        """Test database connection"""
        try:
            self.service_client.table("languages").select("id").limit(1).execute()
            logger.info("Supabase connection successful")
            return True
        except Exception as e:
            logger.error(f"Supabase connection failed: {e}")
            return False


# Global database instance
db = SupabaseClient()


def get_db() -> SupabaseClient:
    """Dependency to get the database wrapper"""
    return db


async def init_db():
    """Initialize database connection"""
    logger.info("Initializing database connection...")
    success = await db.test_connection()
    if success:
        logger.info("Database initialized successfully")
    else:
        logger.error("Database initialization failed")
    return success
