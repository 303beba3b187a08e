"""Connected accounts and repository analysis for one request's session."""

import logging
from typing import Callable, Optional

from sqlalchemy.orm import Session

from ..core.auth import AuthContext
from ..exceptions import NotFoundError
from ..models import ApiSpec, SourceControlAccount
from ..repositories import ProjectRepository
from ..schemas.source_control import ConnectionStatus, RepoResponse
from . import audit_service
from .permission_service import require_owner, require_scope
from .source_control import AnalysisResult, SourceControlProvider, provider_class
from .token_cipher import TokenCipher

logger = logging.getLogger(__name__)

ProviderFactory = Callable[[str, str, Optional[str]], SourceControlProvider]


def default_provider_factory(provider: str, token: str, username: Optional[str]) -> SourceControlProvider:
    return provider_class(provider)(token, username=username)


class SourceControlService:
    """Tokens are verified against the provider before they are stored."""

    def __init__(self, db: Session, factory: Optional[ProviderFactory] = None,
                 cipher: Optional[TokenCipher] = None):
        self.db = db
        self.factory = factory or default_provider_factory
        self.cipher = cipher or TokenCipher()

    def _account(self, provider: str, auth: AuthContext) -> Optional[SourceControlAccount]:
        provider_class(provider)  # rejects unknown providers
        return (
            self.db.query(SourceControlAccount)
            .filter(SourceControlAccount.user_id == auth.user_id, SourceControlAccount.provider == provider)
            .first()
        )

    def _client(self, provider: str, auth: AuthContext) -> SourceControlProvider:
        account = self._account(provider, auth)
        if account is None:
            raise NotFoundError(f"{provider} connection", auth.user_id)
        token = self.cipher.decrypt(account.access_token_encrypted)
        return self.factory(provider, token, account.username)

    def connect(self, provider: str, token: str, username: Optional[str], auth: AuthContext) -> ConnectionStatus:
        """Verify *token* with the provider, then store it encrypted (replacing any previous one)."""
        client = self.factory(provider, token, username)
        login = client.current_user() or username

        account = self._account(provider, auth)
        if account is None:
            account = SourceControlAccount(user_id=auth.user_id, provider=provider)
            self.db.add(account)
        account.username = username or login
        account.access_token_encrypted = self.cipher.encrypt(token)
        self.db.commit()
        self.db.refresh(account)

        logger.info("Source control connected", extra={"provider": provider, "user_id": auth.user_id})
        audit_service.log(self.db, auth.user_id, "connect", "source_control", provider, {"username": login})
        return self.status(provider, auth)

    def status(self, provider: str, auth: AuthContext) -> ConnectionStatus:
        account = self._account(provider, auth)
        if account is None:
            return ConnectionStatus(provider=provider, connected=False)
        return ConnectionStatus(
            provider=provider, connected=True, username=account.username, connected_at=account.created_at
        )

    def disconnect(self, provider: str, auth: AuthContext) -> None:
        account = self._account(provider, auth)
        if account is None:
            raise NotFoundError(f"{provider} connection", auth.user_id)
        self.db.delete(account)
        self.db.commit()
        audit_service.log(self.db, auth.user_id, "disconnect", "source_control", provider)

    def list_repos(self, provider: str, auth: AuthContext) -> list[RepoResponse]:
        return [RepoResponse(**repo) for repo in self._client(provider, auth).list_repos()]

    def analyze(
        self,
        provider: str,
        owner: str,
        repo: str,
        auth: AuthContext,
        branch: Optional[str] = None,
        project_id: Optional[int] = None,
        name: Optional[str] = None,
    ) -> tuple[ApiSpec, AnalysisResult]:
        """Analyze a repository and store the result as a new API spec."""
        if project_id is not None:
            project = ProjectRepository(self.db).get_by_id(project_id)
            require_owner(auth, project.user_id, "project")
        require_scope(auth, project_id)

        result = self._client(provider, auth).analyze_repo(owner, repo, branch)
        spec = ApiSpec(
            user_id=auth.user_id,
            project_id=project_id,
            name=(name or f"{owner}/{repo}").strip(),
            description=f"Generated from {provider} {owner}/{repo}@{result.branch}",
            spec_content=result.spec,
            source_type=result.source_type,
            source_code=result.source_code,
        )
        self.db.add(spec)
        self.db.commit()
        self.db.refresh(spec)

        logger.info(
            "Repository analyzed",
            extra={"provider": provider, "repo": f"{owner}/{repo}", "api_spec_id": spec.id,
                   "paths": result.paths_count},
        )
        audit_service.log(self.db, auth.user_id, "analyze", "api_spec", spec.id,
                          {"provider": provider, "repo": f"{owner}/{repo}", "branch": result.branch})
        return spec, result
