"""Credential file storage"""

import datetime
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional, Union

from .jwt_utils import parse_jwt_claims
from .models import CredentialRecord, format_timestamp, utc_now


logger = logging.getLogger(__name__)


class CredentialStore:
    """Reads and atomically writes the credential file

    The file is shared between CLI runs and the server process. Every write
    goes to a temporary file in the same directory that is renamed over the
    target, so a concurrent reader sees either the old or the new file.
    """

    def __init__(self, path: Union[str, Path]):
        """Initialize credential storage

        Args:
            path: Location of the auth file (e.g. ~/.codex/auth.json)
        """
        self.path = Path(path).expanduser()

    def _ensure_directory(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def write(self, record: CredentialRecord) -> bool:
        """Persist a record with owner-only permissions

        A missing ``saved_at`` is stamped with the current time.

        Returns:
            True if the file was replaced
        """
        if record.saved_at is None:
            record.saved_at = utc_now()

        payload = json.dumps(record.to_dict(), indent=2)
        tmp_name = None
        try:
            self._ensure_directory()
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=str(self.path.parent)
            )
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
            os.chmod(tmp_name, 0o600)
            os.replace(tmp_name, self.path)
            tmp_name = None
            logger.debug(f"Saved credentials to {self.path}")
            return True

        except OSError as e:
            logger.error(f"Failed to save credentials to {self.path}: {e}")
            return False

        finally:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)

    def read_raw(self) -> Optional[Dict[str, Any]]:
        if not self.path.exists():
            logger.debug(f"No credential file at {self.path}")
            return None

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError, OSError) as e:
            logger.error(f"Failed to read credentials from {self.path}: {e}")
            return None

        if not isinstance(data, dict):
            logger.error(f"Credential file {self.path} does not contain a JSON object")
            return None
        return data

    def read(self) -> Optional[CredentialRecord]:
        """Load and normalize the stored record

        Returns:
            The record, or None when the file is absent or unparsable
        """
        data = self.read_raw()
        if data is None:
            return None
        return CredentialRecord.from_dict(data)

    @staticmethod
    def is_usable(record: Optional[CredentialRecord]) -> bool:
        return record is not None and record.is_usable()

    def clear(self) -> bool:
        """Delete the credential file

        Returns:
            True if no file remains
        """
        try:
            if self.path.exists():
                self.path.unlink()
                logger.info(f"Removed credentials at {self.path}")
            return True
        except OSError as e:
            logger.error(f"Failed to remove credentials: {e}")
            return False

    def get_status(self) -> Dict[str, Any]:
        """Summarize the stored credentials without exposing secrets"""
        record = self.read()
        if record is None:
            return {
                "path": str(self.path),
                "has_credentials": False,
                "usable": False,
                "mode": None,
                "account_id": None,
                "last_refresh": None,
                "expires_at": None,
            }

        expires_at = None
        exp = parse_jwt_claims(record.access_token).get("exp")
        if isinstance(exp, (int, float)):
            try:
                expires_at = format_timestamp(
                    datetime.datetime.fromtimestamp(float(exp), datetime.timezone.utc)
                )
            except (OverflowError, OSError, ValueError):
                expires_at = None

        return {
            "path": str(self.path),
            "has_credentials": True,
            "usable": record.is_usable(),
            "mode": "api_key" if record.api_key else ("chatgpt" if record.access_token else None),
            "account_id": record.account_id,
            "last_refresh": format_timestamp(record.saved_at) if record.saved_at else None,
            "expires_at": expires_at,
        }
