"""Source-control endpoints: connect an account, list repositories, analyze one into an API spec."""

from typing import List, Literal

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..core.auth import AuthContext, require_auth, require_editor
from ..database import get_db
from ..schemas.source_control import (
    AnalyzeRequest,
    AnalyzeResponse,
    ConnectionStatus,
    ConnectRequest,
    RepoResponse,
)
from ..services.api_spec_service import ApiSpecService
from ..services.source_control_service import SourceControlService

router = APIRouter(prefix="/api/source-control", tags=["source-control"])

Provider = Literal["github", "bitbucket"]


def get_source_control_service(db: Session = Depends(get_db)) -> SourceControlService:
    """Overridable in tests to inject fake providers."""
    return SourceControlService(db)


@router.post("/{provider}/connect", response_model=ConnectionStatus)
def connect(
    provider: Provider,
    body: ConnectRequest,
    service: SourceControlService = Depends(get_source_control_service),
    auth: AuthContext = Depends(require_editor),
):
    """Verify the token with the provider and store it encrypted."""
    return service.connect(provider, body.access_token, body.username, auth)


@router.get("/{provider}/status", response_model=ConnectionStatus)
def status(
    provider: Provider,
    service: SourceControlService = Depends(get_source_control_service),
    auth: AuthContext = Depends(require_auth),
):
    return service.status(provider, auth)


@router.delete("/{provider}", status_code=204)
def disconnect(
    provider: Provider,
    service: SourceControlService = Depends(get_source_control_service),
    auth: AuthContext = Depends(require_auth),
):
    service.disconnect(provider, auth)


@router.get("/{provider}/repos", response_model=List[RepoResponse])
def list_repos(
    provider: Provider,
    service: SourceControlService = Depends(get_source_control_service),
    auth: AuthContext = Depends(require_auth),
):
    return service.list_repos(provider, auth)


@router.post("/{provider}/repos/{owner}/{repo}/analyze", response_model=AnalyzeResponse, status_code=201)
def analyze_repo(
    provider: Provider,
    owner: str,
    repo: str,
    body: AnalyzeRequest,
    service: SourceControlService = Depends(get_source_control_service),
    auth: AuthContext = Depends(require_editor),
):
    """Scan a repository for ``@swagger`` comments (or, failing that, route declarations) and store the spec."""
    spec, result = service.analyze(
        provider, owner, repo, auth,
        branch=body.branch, project_id=body.project_id, name=body.name,
    )
    return AnalyzeResponse(
        api_spec=ApiSpecService.to_response(spec, auth),
        branch=result.branch,
        files_scanned=result.files_scanned,
        frameworks=result.frameworks,
        source_type=result.source_type,
        paths_count=result.paths_count,
        schemas_count=result.schemas_count,
    )
