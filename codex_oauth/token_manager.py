"""
Credential lifecycle: loading, age-based refresh and imports
"""
import asyncio
import datetime
import logging
import os
from pathlib import Path
from typing import Optional, Union

from settings import REFRESH_MAX_AGE_DAYS
from .errors import CredentialUnusable, TokenRefreshError
from .jwt_utils import extract_account_id
from .models import CredentialRecord, utc_now
from .storage import CredentialStore
from .token_exchange import refresh_tokens

logger = logging.getLogger(__name__)


class CredentialManager:
    """Hands out usable credentials, refreshing them when they get old

    Refresh is triggered when the record is older than ``max_age_days`` or
    explicitly through ``force_refresh`` after an upstream 401.
    """

    def __init__(self, store: CredentialStore, max_age_days: int = REFRESH_MAX_AGE_DAYS):
        self.store = store
        self.max_age = datetime.timedelta(days=max_age_days)
        self._lock = asyncio.Lock()

    def load(self) -> CredentialRecord:
        """Read the stored record

        Raises:
            CredentialUnusable: no record, or one without access token and API key
        """
        record = self.store.read()
        if not CredentialStore.is_usable(record):
            raise CredentialUnusable()
        return record

    def needs_refresh(self, record: CredentialRecord, now: Optional[datetime.datetime] = None) -> bool:
        if not record.refresh_token or not record.access_token:
            return False
        age = record.age(now)
        return age is None or age > self.max_age

    async def get_credentials(self) -> CredentialRecord:
        """Load credentials, refreshing first when they are past the age limit

        A failed age-based refresh is logged and the existing record is
        returned; the 401 path decides whether it is still accepted.
        """
        record = self.load()
        if self.needs_refresh(record):
            logger.info("Stored tokens are older than %s days, refreshing", self.max_age.days)
            try:
                record = await self.force_refresh(record)
            except TokenRefreshError as e:
                logger.warning(f"Token refresh failed, using stored tokens: {e}")
        return record

    async def force_refresh(self, record: Optional[CredentialRecord] = None) -> CredentialRecord:
        """Run the refresh grant and persist the result

        Raises:
            CredentialUnusable: nothing stored to refresh
            TokenRefreshError: the refresh grant failed
        """
        async with self._lock:
            current = self.store.read() or record
            if current is None:
                raise CredentialUnusable()
            # Another request refreshed while we waited for the lock
            if record is not None and current.access_token and current.access_token != record.access_token:
                return current

            tokens = await refresh_tokens(current.refresh_token or "")
            refreshed = CredentialRecord(
                access_token=tokens.access_token,
                refresh_token=tokens.refresh_token,
                id_token=tokens.id_token or current.id_token,
                api_key=current.api_key,
                account_id=(
                    extract_account_id(tokens.id_token)
                    or extract_account_id(tokens.access_token)
                    or current.account_id
                ),
                saved_at=utc_now(),
            )
            if not self.store.write(refreshed):
                raise TokenRefreshError(f"Refreshed tokens could not be saved to {self.store.path}")
            return refreshed


def import_credentials(source: Union[str, Path], target: CredentialStore) -> CredentialRecord:
    """Copy an existing auth file into the configured credential location

    The source goes through the same normalization as a regular read. When it
    carries no API key, ``OPENAI_API_KEY`` from the environment is used.

    Raises:
        CredentialUnusable: the source has neither access token nor API key
        OSError: the target could not be written
    """
    record = CredentialStore(source).read() or CredentialRecord()
    if not record.api_key:
        env_key = os.getenv("OPENAI_API_KEY", "").strip()
        if env_key:
            record.api_key = env_key

    if not record.is_usable():
        raise CredentialUnusable(f"No usable credentials found in {source}")

    if not target.write(record):
        raise OSError(f"Could not write credentials to {target.path}")
    logger.info(f"Imported credentials from {source} into {target.path}")
    return record
