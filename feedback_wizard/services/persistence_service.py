"""Storage backends for submitted survey records"""
import asyncio
import httpx
from typing import Any, Dict, Optional
import logging

from feedback_wizard.config import Settings
from feedback_wizard.models.submission import PersistError

logger = logging.getLogger(__name__)


class PersistenceService:
    """Durably records one flat survey record per call"""

    async def save(self, record: Dict[str, Any]) -> None:
        """
        Store the record.

        Raises:
            PersistError: On transport failure or any rejected write
        """
        raise NotImplementedError


class SheetWebhookPersistence(PersistenceService):
    """
    Posts the record to a spreadsheet webhook (e.g. an Apps Script web app).

    The webhook answers `{"status": "success"}` on success, or another status
    with an optional `message`.
    """

    def __init__(self, url: str, timeout: float = 30.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.url = url
        self.timeout = timeout
        self._transport = transport

    async def save(self, record: Dict[str, Any]) -> None:
        if not self.url:
            raise PersistError("Persistence webhook URL is not configured")

        try:
            # Apps Script replies with a redirect to the script output
            async with httpx.AsyncClient(
                timeout=self.timeout,
                transport=self._transport,
                follow_redirects=True
            ) as client:
                response = await client.post(
                    self.url,
                    headers={"Content-Type": "application/json"},
                    json=record
                )
        except httpx.TimeoutException:
            logger.warning(f"Persistence webhook timed out after {self.timeout}s")
            raise PersistError("The storage service timed out")
        except httpx.HTTPError as e:
            logger.error(f"Persistence webhook request failed: {e}")
            raise PersistError(str(e) or "Could not reach the storage service")

        try:
            result = response.json()
        except ValueError:
            logger.error(f"Persistence webhook returned non-JSON body: {response.status_code}")
            raise PersistError(f"Unexpected response from storage service ({response.status_code})")

        if not isinstance(result, dict) or result.get("status") != "success":
            message = result.get("message") if isinstance(result, dict) else None
            logger.error(f"Persistence webhook rejected record: {result}")
            raise PersistError(message or "Failed to save data to Google Sheet")


class SupabasePersistence(PersistenceService):
    """Inserts the record as one row of a Supabase table"""

    def __init__(self, url: str, key: str, table: str, client=None):
        self.url = url
        self.key = key
        self.table = table
        self._client = client

    def _get_client(self):
        if self._client is None:
            if not self.url or not self.key:
                raise PersistError("Supabase is not configured")
            from supabase import create_client
            self._client = create_client(self.url, self.key)
        return self._client

    def _insert(self, record: Dict[str, Any]) -> None:
        result = self._get_client().table(self.table).insert(record).execute()
        if not result.data:
            raise PersistError(f"Insert into {self.table} returned no rows")

    async def save(self, record: Dict[str, Any]) -> None:
        try:
            # supabase-py is synchronous
            await asyncio.to_thread(self._insert, record)
        except PersistError:
            raise
        except Exception as e:
            logger.error(f"Supabase insert into {self.table} failed: {e}")
            raise PersistError(str(e) or "Failed to save data")


def build_persistence_service(settings: Settings) -> PersistenceService:
    if settings.persistence_backend == "supabase":
        return SupabasePersistence(
            settings.supabase_url,
            settings.supabase_service_role_key,
            settings.feedback_table,
        )
    return SheetWebhookPersistence(settings.persistence_webhook_url, timeout=settings.persist_timeout)
