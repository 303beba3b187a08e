"""API key lifecycle: issue, authenticate, revoke, delete, usage statistics.

Keys look like ``sk_<8 hex>_<64 hex>``. The ``sk_<8 hex>`` part is the
display-safe prefix; only an HMAC-SHA256 of the full key under
``settings.api_key_salt`` is stored, so the plaintext is shown exactly once.

Lifecycle: active -> revoked (``is_active=False``, irreversible) or
expired -> deleted. Deleting a key that is still usable is refused.
"""

import hashlib
import hmac
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy.orm import Session

from ..core.auth import AuthContext
from ..core.config import settings
from ..exceptions import AuthenticationError, PreconditionFailedError
from ..models import ApiKey
from ..repositories import ApiKeyRepository, ProjectRepository
from ..schemas.api_key import ApiKeyCreate, ApiKeyResponse, UsageEntry, UsageStatsResponse
from ..schemas.common import Page, PaginationMeta
from . import audit_service
from .permission_service import require_owner, require_scope
from .usage_broadcast import usage_broadcaster, usage_event

logger = logging.getLogger(__name__)

KEY_PREFIX = "sk_"
PREFIX_HEX_LENGTH = 8
SECRET_HEX_LENGTH = 64
CREATION_WARNING = "Store this key now. It will not be shown again."


def generate_key() -> tuple[str, str]:
    """Return ``(full_key, prefix)``."""
    prefix = KEY_PREFIX + secrets.token_hex(PREFIX_HEX_LENGTH // 2)
    return f"{prefix}_{secrets.token_hex(SECRET_HEX_LENGTH // 2)}", prefix


def hash_key(raw_key: str) -> str:
    return hmac.new(settings.api_key_salt.encode(), raw_key.encode(), hashlib.sha256).hexdigest()


def mask_key(prefix: str) -> str:
    return f"{prefix}_{'*' * 8}"


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def is_expired(key: ApiKey, now: Optional[datetime] = None) -> bool:
    expires_at = as_utc(key.expires_at)
    return expires_at is not None and expires_at <= (now or datetime.now(timezone.utc))


def is_usable(key: ApiKey, now: Optional[datetime] = None) -> bool:
    return bool(key.is_active) and not is_expired(key, now)


def to_response(key: ApiKey) -> ApiKeyResponse:
    return ApiKeyResponse(
        id=key.id,
        name=key.name,
        prefix=key.prefix,
        masked_key=mask_key(key.prefix),
        project_id=key.project_id,
        expires_at=key.expires_at,
        is_active=key.is_active,
        is_expired=is_expired(key),
        usage_count=key.usage_count or 0,
        last_used_at=key.last_used_at,
        created_at=key.created_at,
    )


class ApiKeyService:
    """Issues and validates API keys for one request's session."""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ApiKeyRepository(db)

    def create_key(self, data: ApiKeyCreate, auth: AuthContext) -> tuple[ApiKey, str]:
        """Issue a key. Returns the row and the plaintext, which is not recoverable later."""
        if data.project_id is not None:
            project = ProjectRepository(self.db).get_by_id(data.project_id)
            require_owner(auth, project.user_id, "project")
        # A project-scoped key may only mint keys for its own project.
        if auth.project_scope is not None:
            require_scope(auth, data.project_id)

        expires_at = as_utc(data.expires_at)
        if data.expires_in_days is not None:
            expires_at = datetime.now(timezone.utc) + timedelta(days=data.expires_in_days)

        raw_key, prefix = generate_key()
        key = self.repo.add(ApiKey(
            user_id=auth.user_id,
            project_id=data.project_id,
            name=data.name.strip(),
            prefix=prefix,
            key_hash=hash_key(raw_key),
            expires_at=expires_at,
            is_active=True,
            usage_count=0,
        ))
        self.db.commit()
        self.db.refresh(key)

        logger.info("API key created", extra={"key_id": key.id, "prefix": prefix, "project_id": key.project_id})
        audit_service.log(self.db, auth.user_id, "create", "api_key", key.id,
                          {"prefix": prefix, "project_id": key.project_id})
        return key, raw_key

    def list_keys(self, auth: AuthContext, page: int, limit: int) -> Page[ApiKeyResponse]:
        items, total = self.repo.paginate(self.repo.query_for_user(auth.user_id), page, limit)
        return Page[ApiKeyResponse](
            data=[to_response(k) for k in items],
            pagination=PaginationMeta.build(page, limit, total),
        )

    def get_key(self, key_id: int, auth: AuthContext) -> ApiKey:
        key = self.repo.get_by_id(key_id)
        require_owner(auth, key.user_id, "API key")
        return key

    def revoke_key(self, key_id: int, auth: AuthContext) -> ApiKey:
        """Deactivate a key. Usage history is kept. Revoking twice is harmless."""
        key = self.get_key(key_id, auth)
        if key.is_active:
            key.is_active = False
            self.db.commit()
            self.db.refresh(key)
            logger.info("API key revoked", extra={"key_id": key.id})
            audit_service.log(self.db, auth.user_id, "revoke", "api_key", key.id)
        return key

    def delete_key(self, key_id: int, auth: AuthContext) -> None:
        """Hard-delete a key that is revoked or expired.

        Raises:
            PreconditionFailedError: the key is still active and unexpired.
        """
        key = self.get_key(key_id, auth)
        if is_usable(key):
            raise PreconditionFailedError(
                "Revoke the API key or wait for it to expire before deleting it",
                details={"key_id": key.id},
            )
        self.repo.delete(key)
        self.db.commit()
        logger.info("API key deleted", extra={"key_id": key_id})
        audit_service.log(self.db, auth.user_id, "delete", "api_key", key_id)

    def usage_stats(self, key_id: int, auth: AuthContext) -> UsageStatsResponse:
        key = self.get_key(key_id, auth)
        recent = self.repo.recent_usage(key.id, settings.recent_usage_limit)
        return UsageStatsResponse(
            key_id=key.id,
            usage_count=key.usage_count or 0,
            last_used_at=key.last_used_at,
            recent_uses=[UsageEntry.model_validate(entry) for entry in recent],
        )

    def authenticate(
        self,
        raw_key: str,
        method: str,
        endpoint: str,
        ip_address: Optional[str] = None,
    ) -> ApiKey:
        """Validate *raw_key*, record the use and publish a usage event.

        Raises:
            AuthenticationError: unknown, revoked or expired key.
        """
        if not raw_key.startswith(KEY_PREFIX):
            raise AuthenticationError("Invalid API key")

        key = self.repo.get_by_hash(hash_key(raw_key))
        if key is None:
            raise AuthenticationError("Invalid API key")
        if not key.is_active:
            raise AuthenticationError("API key has been revoked")
        now = datetime.now(timezone.utc)
        if is_expired(key, now):
            raise AuthenticationError("API key has expired")

        self.repo.record_usage(key, now, method, endpoint, ip_address)
        self.db.commit()
        self.db.refresh(key)

        usage_broadcaster.publish(key.id, usage_event(key.id, key.usage_count, as_utc(key.last_used_at)))
        logger.debug("API key used", extra={"key_id": key.id, "usage_count": key.usage_count})
        return key
