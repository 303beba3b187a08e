"""ApiKey repository: lookups by hash, atomic usage counters, usage log."""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Query

from ..models import ApiKey, ApiKeyUsage
from .base import BaseRepository


class ApiKeyRepository(BaseRepository[ApiKey]):
    model_class = ApiKey
    resource_name = "API key"

    def get_by_hash(self, key_hash: str) -> Optional[ApiKey]:
        return self.db.query(ApiKey).filter(ApiKey.key_hash == key_hash).first()

    def query_for_user(self, user_id: str) -> Query:
        return (
            self.db.query(ApiKey)
            .filter(ApiKey.user_id == user_id)
            .order_by(ApiKey.created_at.desc(), ApiKey.id.desc())
        )

    def record_usage(
        self,
        key: ApiKey,
        used_at: datetime,
        method: str,
        endpoint: str,
        ip_address: Optional[str],
    ) -> None:
        """Increment the counter in SQL and append a usage row.

        The increment is a single UPDATE so concurrent requests never lose a count.
        """
        self.db.query(ApiKey).filter(ApiKey.id == key.id).update(
            {ApiKey.usage_count: ApiKey.usage_count + 1, ApiKey.last_used_at: used_at},
            synchronize_session=False,
        )
        self.db.add(ApiKeyUsage(
            api_key_id=key.id,
            used_at=used_at,
            method=method,
            endpoint=endpoint[:500],
            ip_address=ip_address,
        ))

    def recent_usage(self, key_id: int, limit: int) -> list[ApiKeyUsage]:
        return (
            self.db.query(ApiKeyUsage)
            .filter(ApiKeyUsage.api_key_id == key_id)
            .order_by(ApiKeyUsage.used_at.desc(), ApiKeyUsage.id.desc())
            .limit(limit)
            .all()
        )
