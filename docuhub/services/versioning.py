"""Versioning engine shared by documents and API specs.

Every content-affecting update goes through ``apply_update``: the live
row's pre-update state is written as a new snapshot row *before* the new
values are applied, so the prior state is always recoverable. Restoring a
snapshot is itself an update, which means the state you restored *from*
is kept as a version too.

The engine flushes but never commits; the calling service commits once so
the snapshot and the update land in the same transaction.
"""

import copy
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

import sqlalchemy.exc
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..exceptions import ConflictError, VersionNotFoundError

logger = logging.getLogger(__name__)

CURRENT_LABEL = "current"


@dataclass(frozen=True)
class VersionPolicy:
    """How one entity type is versioned.

    Attributes:
        version_model:   Snapshot model (e.g. DocumentVersion).
        parent_column:   FK column on the snapshot model pointing at the entity.
        snapshot_fields: Entity attributes copied into each snapshot.
        retention:       Snapshots kept per entity; ``None`` or 0 keeps all.
    """

    version_model: type
    parent_column: str
    snapshot_fields: tuple[str, ...]
    retention: Optional[int] = None


@dataclass
class VersionEntry:
    """One row of a version listing. Rank 0 is the live state."""

    rank: int
    label: str
    version_id: Optional[int]
    version_number: Optional[int]
    fields: dict[str, Any]
    created_at: Optional[datetime] = None
    created_by: Optional[str] = None
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def is_current(self) -> bool:
        return self.version_id is None


class VersioningEngine:
    """Applies versioned updates for a single entity type."""

    def __init__(self, db: Session, policy: VersionPolicy):
        self.db = db
        self.policy = policy
        self._model = policy.version_model
        self._parent_col = getattr(policy.version_model, policy.parent_column)

    def apply_update(self, entity, new_fields: dict[str, Any], actor_id: Optional[str], **extras):
        """Snapshot *entity*, then apply *new_fields* to it.

        Args:
            entity:     Live row, already authorised for mutation.
            new_fields: Attribute values to set on the live row.
            actor_id:   User making the change; stored as ``created_by``.
            **extras:   Additional snapshot columns (``change_summary``,
                        ``created_by_username``).

        Returns:
            The inserted snapshot row.

        Raises:
            ConflictError: another writer claimed the same version number.
        """
        self._lock(entity)
        number = self._next_version_number(entity)

        snapshot = {name: copy.deepcopy(getattr(entity, name)) for name in self.policy.snapshot_fields}
        version = self._model(
            **{self.policy.parent_column: entity.id},
            version_number=number,
            created_by=actor_id,
            **snapshot,
            **extras,
        )
        self.db.add(version)

        for name, value in new_fields.items():
            setattr(entity, name, value)
        entity.updated_at = datetime.now(timezone.utc)

        try:
            self.db.flush()
        except sqlalchemy.exc.IntegrityError as e:
            self.db.rollback()
            logger.warning(
                "Version number collision",
                extra={"entity_id": entity.id, "version_number": number},
            )
            raise ConflictError(
                "Concurrent update detected, please retry",
                details={"entity_id": entity.id, "version_number": number},
            ) from e

        pruned = self._prune(entity)
        logger.debug(
            "Versioned update",
            extra={"model": self._model.__tablename__, "entity_id": entity.id,
                   "version_number": number, "pruned": pruned},
        )
        return version

    def restore_version(self, entity, version_id: int, actor_id: Optional[str], **extras):
        """Overwrite *entity* with a stored snapshot, archiving the live state first.

        Raises:
            VersionNotFoundError: the version does not belong to *entity*.
        """
        version = self.get_version(entity, version_id)
        restored = {name: copy.deepcopy(getattr(version, name)) for name in self.policy.snapshot_fields}
        self.apply_update(entity, restored, actor_id, **extras)
        return version

    def get_version(self, entity, version_id: int):
        version = (
            self.db.query(self._model)
            .filter(self._model.id == version_id, self._parent_col == entity.id)
            .first()
        )
        if version is None:
            raise VersionNotFoundError(version_id, entity.id)
        return version

    def stored_versions(self, entity) -> list:
        return (
            self.db.query(self._model)
            .filter(self._parent_col == entity.id)
            .order_by(self._model.version_number.desc())
            .all()
        )

    def list_versions(self, entity, extra_columns: tuple[str, ...] = ()) -> list[VersionEntry]:
        """The live state as rank 0, then stored snapshots newest first."""
        entries = [
            VersionEntry(
                rank=0,
                label=CURRENT_LABEL,
                version_id=None,
                version_number=None,
                fields={name: getattr(entity, name) for name in self.policy.snapshot_fields},
                created_at=entity.updated_at or entity.created_at,
                created_by=getattr(entity, "user_id", None),
            )
        ]
        for rank, version in enumerate(self.stored_versions(entity), start=1):
            entries.append(
                VersionEntry(
                    rank=rank,
                    label=f"v{version.version_number}",
                    version_id=version.id,
                    version_number=version.version_number,
                    fields={name: getattr(version, name) for name in self.policy.snapshot_fields},
                    created_at=version.created_at,
                    created_by=version.created_by,
                    extra={name: getattr(version, name) for name in extra_columns},
                )
            )
        return entries

    # --- internals ---

    def _lock(self, entity) -> None:
        """Row-lock the parent so version numbers are allocated one writer at a time.

        SQLite ignores FOR UPDATE; the unique constraint still catches collisions.
        """
        model = type(entity)
        self.db.query(model.id).filter(model.id == entity.id).with_for_update().first()

    def _next_version_number(self, entity) -> int:
        current = (
            self.db.query(func.max(self._model.version_number))
            .filter(self._parent_col == entity.id)
            .scalar()
        )
        return (current or 0) + 1

    def _prune(self, entity) -> int:
        """Delete the oldest snapshots beyond the retention limit."""
        if not self.policy.retention:
            return 0
        stale = (
            self.db.query(self._model)
            .filter(self._parent_col == entity.id)
            .order_by(self._model.version_number.desc())
            .offset(self.policy.retention)
            .all()
        )
        for version in stale:
            self.db.delete(version)
        if stale:
            self.db.flush()
        return len(stale)
