"""Idempotency service for handling duplicate requests."""

import hashlib
import json
import logging
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..core.exceptions import PROBLEM_BASE_URI, ProblemDetailsException
from ..models.idempotency import IdempotencyRecord

logger = logging.getLogger(__name__)


class IdempotencyMismatchError(ProblemDetailsException):
    """Exception when idempotency key is reused with different request body."""

    def __init__(self, idempotency_key: str, method: str):
        super().__init__(
            status_code=422,
            title="Idempotency Key Mismatch",
            detail=f"Idempotency key '{idempotency_key}' was already used for '{method}' with a different request body",
            type_uri=f"{PROBLEM_BASE_URI}/idempotency-key-mismatch",
            extensions={
                "code": "IDEMPOTENCY_KEY_MISMATCH",
                "retryable": False,
                "idempotency_key": idempotency_key,
                "method": method,
            },
        )


class IdempotencyService:
    """Service for handling idempotent operations.

    Records are keyed by (idempotency key, scope, method). The scope is the
    caller, so two agencies may use the same key without colliding.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    def _compute_request_hash(self, request_body: dict[str, Any]) -> str:
        """Compute SHA-256 hash of normalized request body."""
        normalized = json.dumps(request_body, sort_keys=True, separators=(',', ':'), default=str)
        return hashlib.sha256(normalized.encode('utf-8')).hexdigest()

    async def check_idempotency(
        self,
        idempotency_key: str,
        scope: str,
        method: str,
        request_body: dict[str, Any],
    ) -> tuple[int, dict[str, Any]] | None:
        """
        Check if request is idempotent and return cached response if available.

        Args:
            idempotency_key: Client supplied key
            scope: Caller the key belongs to
            method: Operation name
            request_body: Request body to hash and compare

        Returns:
            Tuple of (status_code, response_body) if a cached response exists,
            None if this is a new request

        Raises:
            IdempotencyMismatchError: If key exists with different request body
        """
        request_hash = self._compute_request_hash(request_body)

        stmt = select(IdempotencyRecord).where(
            IdempotencyRecord.idempotency_key == idempotency_key,
            IdempotencyRecord.scope == scope,
            IdempotencyRecord.method == method,
            IdempotencyRecord.expires_at > datetime.utcnow()
        )
        existing_record = (await self.db.execute(stmt)).scalar_one_or_none()

        if existing_record is None:
            return None

        if existing_record.request_body_hash != request_hash:
            logger.warning(
                "Idempotency key mismatch",
                extra={
                    "idempotency_key": idempotency_key,
                    "scope": scope,
                    "method": method,
                    "existing_hash": existing_record.request_body_hash[:8],
                    "new_hash": request_hash[:8]
                }
            )
            raise IdempotencyMismatchError(idempotency_key, method)

        logger.info(
            "Returning cached idempotent response",
            extra={
                "idempotency_key": idempotency_key,
                "scope": scope,
                "method": method,
                "status_code": existing_record.response_status_code,
                "created_at": existing_record.created_at.isoformat()
            }
        )

        return existing_record.response_status_code, json.loads(existing_record.response_body)

    async def store_response(
        self,
        idempotency_key: str,
        scope: str,
        method: str,
        request_body: dict[str, Any],
        status_code: int,
        response_body: dict[str, Any],
    ) -> None:
        """Store the response of an idempotent operation for later replays."""
        request_hash = self._compute_request_hash(request_body)
        expires_at = datetime.utcnow() + timedelta(hours=settings.idempotency_ttl_hours)

        record = IdempotencyRecord(
            idempotency_key=idempotency_key,
            scope=scope,
            method=method,
            request_body_hash=request_hash,
            response_status_code=status_code,
            response_body=json.dumps(response_body, sort_keys=True, separators=(',', ':')),
            expires_at=expires_at
        )

        try:
            self.db.add(record)
            await self.db.commit()

            logger.info(
                "Stored idempotency record",
                extra={
                    "idempotency_key": idempotency_key,
                    "scope": scope,
                    "method": method,
                    "status_code": status_code,
                    "expires_at": expires_at.isoformat()
                }
            )

        except IntegrityError as e:
            # A concurrent request stored the same key first
            await self.db.rollback()
            logger.info(
                "Idempotency record already exists (race condition)",
                extra={
                    "idempotency_key": idempotency_key,
                    "scope": scope,
                    "method": method,
                    "error": str(e)
                }
            )

    async def cleanup_expired_records(self) -> int:
        """
        Delete expired idempotency records.

        Returns:
            Number of records deleted
        """
        stmt = delete(IdempotencyRecord).where(IdempotencyRecord.expires_at <= datetime.utcnow())

        result = await self.db.execute(stmt)
        deleted_count = result.rowcount
        await self.db.commit()

        if deleted_count > 0:
            logger.info(
                "Cleaned up expired idempotency records",
                extra={"deleted_count": deleted_count}
            )

        return deleted_count
