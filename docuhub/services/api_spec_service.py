"""API spec service: CRUD, structural operation edits, history and AI enhancement.

Every change to ``spec_content`` is a versioned update with a change
summary; history is capped by ``settings.api_spec_version_retention``.
A structural edit that leaves the spec unchanged (deleting an operation
that is not there) writes no version.
"""

import logging
from typing import Any, Callable, Mapping, Optional

from sqlalchemy.orm import Session

from ..core.auth import AuthContext
from ..core.config import settings
from ..exceptions import ForbiddenError, ValidationError
from ..models import ApiSpec, ApiSpecVersion
from ..repositories import ApiSpecRepository, ProjectRepository
from ..schemas.api_spec import (
    ApiSpecCreate,
    ApiSpecListItem,
    ApiSpecResponse,
    ApiSpecUpdate,
    OperationCreate,
    OperationUpdate,
)
from ..schemas.common import Page, PaginationMeta
from . import audit_service, spec_editor
from .permission_service import can_edit, require_owner, require_scope
from .versioning import VersionEntry, VersioningEngine, VersionPolicy

logger = logging.getLogger(__name__)

AUTO_SAVE_SUMMARY = "Version {n} - Auto-saved"
RESTORE_SUMMARY = "Before restore to v{n}"
ENHANCE_SUMMARY = "Before AI enhancement"


def api_spec_policy() -> VersionPolicy:
    return VersionPolicy(
        version_model=ApiSpecVersion,
        parent_column="api_spec_id",
        snapshot_fields=("spec_content",),
        retention=settings.api_spec_version_retention or None,
    )


def validate_spec_content(spec: Any) -> dict[str, Any]:
    """Minimal OpenAPI shape check: an object whose ``paths`` (if present) maps paths to objects."""
    if not isinstance(spec, Mapping):
        raise ValidationError("spec_content must be a JSON object", field="spec_content")
    paths = spec.get("paths")
    if paths is not None and not isinstance(paths, Mapping):
        raise ValidationError("spec_content.paths must be an object", field="spec_content.paths")
    for path, item in (paths or {}).items():
        if not isinstance(item, Mapping):
            raise ValidationError(f"Path item {path} must be an object", field=f"spec_content.paths.{path}")
    return dict(spec)


class ApiSpecService:

    def __init__(self, db: Session):
        self.db = db
        self.repo = ApiSpecRepository(db)
        self.project_repo = ProjectRepository(db)
        self.versions = VersioningEngine(db, api_spec_policy())

    # --- mapping ---

    @staticmethod
    def to_response(spec: ApiSpec, auth: AuthContext) -> ApiSpecResponse:
        response = ApiSpecResponse.model_validate(spec)
        response.can_edit = can_edit(auth, spec.user_id, spec.project_id)
        return response

    @staticmethod
    def to_list_item(spec: ApiSpec, auth: AuthContext) -> ApiSpecListItem:
        return ApiSpecListItem(
            id=spec.id,
            name=spec.name,
            description=spec.description,
            project_id=spec.project_id,
            source_type=spec.source_type,
            endpoints_count=len((spec.spec_content or {}).get("paths") or {}),
            created_at=spec.created_at,
            updated_at=spec.updated_at,
            can_edit=can_edit(auth, spec.user_id, spec.project_id),
        )

    # --- access ---

    def _check_project(self, project_id: Optional[int], auth: AuthContext) -> None:
        if project_id is None:
            require_scope(auth, None)
            return
        project = self.project_repo.get_by_id(project_id)
        require_owner(auth, project.user_id, "project")
        require_scope(auth, project.id)

    def get_owned(self, spec_id: int, auth: AuthContext) -> ApiSpec:
        spec = self.repo.get_by_id(spec_id)
        require_owner(auth, spec.user_id, "API spec")
        require_scope(auth, spec.project_id)
        return spec

    # --- CRUD ---

    def create_spec(self, data: ApiSpecCreate, auth: AuthContext) -> ApiSpec:
        self._check_project(data.project_id, auth)
        spec = self.repo.add(ApiSpec(
            user_id=auth.user_id,
            project_id=data.project_id,
            name=data.name.strip(),
            description=data.description or "",
            spec_content=validate_spec_content(data.spec_content),
            source_type=data.source_type,
            source_code=data.source_code,
        ))
        self.db.commit()
        self.db.refresh(spec)
        logger.info("API spec created", extra={"api_spec_id": spec.id, "source_type": spec.source_type})
        audit_service.log(self.db, auth.user_id, "create", "api_spec", spec.id, {"name": spec.name})
        return spec

    def list_specs(
        self,
        auth: AuthContext,
        page: int,
        limit: int,
        project_id: Optional[int] = None,
        search: Optional[str] = None,
    ) -> Page[ApiSpecListItem]:
        if auth.project_scope is not None:
            if project_id is not None and project_id != auth.project_scope:
                raise ForbiddenError("API key is not valid for this project")
            project_id = auth.project_scope
        query = self.repo.query_for_user(auth.user_id, project_id=project_id, search=search)
        items, total = self.repo.paginate(query, page, limit)
        return Page[ApiSpecListItem](
            data=[self.to_list_item(s, auth) for s in items],
            pagination=PaginationMeta.build(page, limit, total),
        )

    def update_spec(self, spec_id: int, data: ApiSpecUpdate, auth: AuthContext) -> ApiSpec:
        spec = self.get_owned(spec_id, auth)
        changes = data.model_dump(exclude_unset=True)

        if "project_id" in changes and changes["project_id"] != spec.project_id:
            self._check_project(changes["project_id"], auth)
        if changes.get("name") is not None:
            changes["name"] = changes["name"].strip()
        else:
            changes.pop("name", None)
        new_content = changes.pop("spec_content", None)

        for name, value in changes.items():
            setattr(spec, name, value)
        if new_content is not None:
            self._save_content(spec, validate_spec_content(new_content), auth, summary=None)

        self.db.commit()
        self.db.refresh(spec)
        audit_service.log(self.db, auth.user_id, "update", "api_spec", spec.id,
                          {"fields": sorted(changes) + (["spec_content"] if new_content is not None else [])})
        return spec

    def delete_spec(self, spec_id: int, auth: AuthContext) -> None:
        spec = self.get_owned(spec_id, auth)
        self.repo.delete(spec)
        self.db.commit()
        logger.info("API spec deleted", extra={"api_spec_id": spec_id})
        audit_service.log(self.db, auth.user_id, "delete", "api_spec", spec_id)

    def preview(self, spec_id: int, auth: AuthContext) -> dict[str, Any]:
        return spec_editor.summarize_operations(self.get_owned(spec_id, auth).spec_content or {})

    # --- structural edits ---

    def add_operation(self, spec_id: int, body: OperationCreate, auth: AuthContext) -> ApiSpec:
        return self._edit(
            spec_id, auth,
            lambda content: spec_editor.add_operation(content, body.path, body.method, body.operation),
            f"Added {body.method.upper()} {body.path}",
        )

    def edit_operation(self, spec_id: int, body: OperationUpdate, auth: AuthContext) -> ApiSpec:
        target = f"{(body.new_method or body.method).upper()} {body.new_path or body.path}"
        return self._edit(
            spec_id, auth,
            lambda content: spec_editor.edit_operation(
                content, body.path, body.method, body.operation,
                new_path=body.new_path, new_method=body.new_method,
            ),
            f"Edited {target}",
        )

    def delete_operation(self, spec_id: int, path: str, method: str, auth: AuthContext) -> ApiSpec:
        return self._edit(
            spec_id, auth,
            lambda content: spec_editor.delete_operation(content, path, method),
            f"Deleted {method.upper()} {path}",
        )

    def _edit(
        self,
        spec_id: int,
        auth: AuthContext,
        transform: Callable[[dict], dict],
        summary: str,
    ) -> ApiSpec:
        spec = self.get_owned(spec_id, auth)
        updated = transform(spec.spec_content or {})
        if self._save_content(spec, updated, auth, summary=summary):
            self.db.commit()
            self.db.refresh(spec)
            audit_service.log(self.db, auth.user_id, "edit_operation", "api_spec", spec.id, {"summary": summary})
        return spec

    def _save_content(self, spec: ApiSpec, content: dict, auth: AuthContext, summary: Optional[str]) -> bool:
        """Versioned write of ``spec_content``. Returns False when nothing changed."""
        if content == spec.spec_content:
            return False
        version = self.versions.apply_update(spec, {"spec_content": content}, auth.user_id)
        version.change_summary = summary or AUTO_SAVE_SUMMARY.format(n=version.version_number)
        return True

    # --- history ---

    def list_versions(self, spec_id: int, auth: AuthContext) -> list[VersionEntry]:
        spec = self.get_owned(spec_id, auth)
        return self.versions.list_versions(spec, extra_columns=("change_summary",))

    def get_version(self, spec_id: int, version_id: int, auth: AuthContext) -> ApiSpecVersion:
        spec = self.get_owned(spec_id, auth)
        return self.versions.get_version(spec, version_id)

    def restore_version(self, spec_id: int, version_id: int, auth: AuthContext) -> ApiSpec:
        spec = self.get_owned(spec_id, auth)
        target = self.versions.get_version(spec, version_id)
        self.versions.restore_version(
            spec, version_id, auth.user_id,
            change_summary=RESTORE_SUMMARY.format(n=target.version_number),
        )
        self.db.commit()
        self.db.refresh(spec)
        logger.info("API spec restored", extra={"api_spec_id": spec.id, "version_id": version_id})
        audit_service.log(self.db, auth.user_id, "restore", "api_spec", spec.id, {"version_id": version_id})
        return spec

    # --- AI ---

    def enhance(self, spec_id: int, auth: AuthContext, enhancer) -> ApiSpec:
        """Replace the spec with an AI-enhanced copy. Upstream failures leave it untouched."""
        spec = self.get_owned(spec_id, auth)
        enhanced = validate_spec_content(enhancer.enhance_spec(spec.spec_content or {}))
        if self._save_content(spec, enhanced, auth, summary=ENHANCE_SUMMARY):
            self.db.commit()
            self.db.refresh(spec)
            audit_service.log(self.db, auth.user_id, "enhance", "api_spec", spec.id)
        return spec
