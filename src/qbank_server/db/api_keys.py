"""
API Key Store

Persistence behind the public API access gate: issuing hashed keys,
verifying presented keys, logging usage and reporting the daily quota.
"""

from __future__ import annotations

import hashlib
import secrets
from datetime import date, datetime, timedelta, timezone
from typing import List, NamedTuple, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from .models import ApiKey, ApiUsageLog
from .question_store import wrap_store_errors


class VerifiedApiKey(NamedTuple):
    """What the gate learns about a valid key. Never carries the raw key."""
    key_id: int
    owner_id: str
    daily_limit: int


class IssuedApiKey(NamedTuple):
    """Returned once at creation; `key` is not retrievable afterwards."""
    key_id: int
    key: str
    name: str
    key_prefix: str


class UsageStatus(NamedTuple):
    """Status of an API key's request usage for the current day."""
    requests_today: int
    remaining: int
    limit: int
    is_limited: bool
    reset_time: datetime


def generate_api_key() -> str:
    return f"{settings.api_key_prefix}{secrets.token_hex(32)}"


def hash_api_key(key: str) -> str:
    return hashlib.sha256(key.encode("utf-8")).hexdigest()


def display_prefix(key: str) -> str:
    return key[:15] + "..."


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _day_window(today: date) -> tuple[datetime, datetime]:
    start = datetime.combine(today, datetime.min.time())
    return start, start + timedelta(days=1)


class ApiKeyStore:
    """
    API key persistence using PostgreSQL.

    Keys are stored as SHA-256 hashes. Usage is one log row per request;
    the daily quota is the count of today's rows (UTC).
    """

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize with an async database session.

        Parameters
        ----------
        session : AsyncSession
            SQLAlchemy async session for database operations.
        """
        self._session = session

    async def commit(self) -> None:
        await self._session.commit()

    # ------------------------------------------------------------------
    # Key lifecycle
    # ------------------------------------------------------------------

    @wrap_store_errors
    async def create_key(
        self,
        owner_id: str,
        name: str,
        rate_limit: Optional[int] = None,
    ) -> IssuedApiKey:
        raw_key = generate_api_key()
        record = ApiKey(
            owner_id=owner_id,
            key_hash=hash_api_key(raw_key),
            key_prefix=display_prefix(raw_key),
            name=name,
            is_active=True,
            rate_limit=rate_limit or settings.default_api_key_rate_limit,
        )
        self._session.add(record)
        await self._session.flush()

        return IssuedApiKey(
            key_id=record.id,
            key=raw_key,
            name=record.name,
            key_prefix=record.key_prefix,
        )

    @wrap_store_errors
    async def list_keys(self, owner_id: str) -> List[ApiKey]:
        result = await self._session.execute(
            select(ApiKey)
            .where(ApiKey.owner_id == owner_id)
            .order_by(ApiKey.created_at.desc())
        )
        return list(result.scalars().all())

    @wrap_store_errors
    async def get_owned_key(self, owner_id: str, key_id: int) -> Optional[ApiKey]:
        result = await self._session.execute(
            select(ApiKey).where(ApiKey.id == key_id, ApiKey.owner_id == owner_id)
        )
        return result.scalar_one_or_none()

    @wrap_store_errors
    async def revoke(self, owner_id: str, key_id: int) -> bool:
        result = await self._session.execute(
            delete(ApiKey).where(ApiKey.id == key_id, ApiKey.owner_id == owner_id)
        )
        return bool(result.rowcount)

    @wrap_store_errors
    async def toggle_active(self, owner_id: str, key_id: int) -> Optional[bool]:
        """
        Flip `is_active`. Returns the new state, or None if the key does not
        belong to `owner_id`.
        """
        result = await self._session.execute(
            update(ApiKey)
            .where(ApiKey.id == key_id, ApiKey.owner_id == owner_id)
            .values(is_active=~ApiKey.is_active)
            .returning(ApiKey.is_active)
        )
        row = result.first()
        return bool(row[0]) if row is not None else None

    # ------------------------------------------------------------------
    # Gate operations
    # ------------------------------------------------------------------

    @wrap_store_errors
    async def verify(self, raw_key: str) -> Optional[VerifiedApiKey]:
        """
        Resolve a presented key. Returns None for unknown, inactive or
        expired keys.
        """
        result = await self._session.execute(
            select(ApiKey).where(ApiKey.key_hash == hash_api_key(raw_key))
        )
        record = result.scalar_one_or_none()

        if record is None or not record.is_active:
            return None
        if record.expires_at is not None and record.expires_at < _utcnow():
            return None

        return VerifiedApiKey(
            key_id=record.id,
            owner_id=record.owner_id,
            daily_limit=record.rate_limit,
        )

    @wrap_store_errors
    async def usage_today(self, key_id: int, daily_limit: int) -> UsageStatus:
        """
        Count today's requests for a key.

        Parameters
        ----------
        key_id : int
            API key primary key.
        daily_limit : int
            The key's configured requests-per-day.

        Returns
        -------
        UsageStatus
            Current usage status including remaining requests.
        """
        today = datetime.now(timezone.utc).date()
        start, end = _day_window(today)

        result = await self._session.execute(
            select(func.count())
            .select_from(ApiUsageLog)
            .where(
                ApiUsageLog.api_key_id == key_id,
                ApiUsageLog.timestamp >= start,
                ApiUsageLog.timestamp < end,
            )
        )
        requests_today = result.scalar() or 0

        # Reset time is midnight UTC of the next day
        tomorrow = datetime.combine(
            today + timedelta(days=1),
            datetime.min.time(),
            tzinfo=timezone.utc,
        )

        return UsageStatus(
            requests_today=requests_today,
            remaining=max(0, daily_limit - requests_today),
            limit=daily_limit,
            is_limited=requests_today >= daily_limit,
            reset_time=tomorrow,
        )

    @wrap_store_errors
    async def record_usage(
        self,
        key: VerifiedApiKey,
        endpoint: str,
        method: str,
        status_code: int = 200,
    ) -> None:
        """
        Append a usage log row and bump the key's `last_used_at`.
        """
        now = _utcnow()
        self._session.add(
            ApiUsageLog(
                api_key_id=key.key_id,
                owner_id=key.owner_id,
                endpoint=endpoint,
                method=method,
                status_code=status_code,
                timestamp=now,
            )
        )
        await self._session.execute(
            update(ApiKey).where(ApiKey.id == key.key_id).values(last_used_at=now)
        )
        await self._session.flush()
