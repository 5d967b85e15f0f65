"""GitHub tracker client: reads the raw records a matrix is built from."""

from __future__ import annotations

import asyncio
from typing import Any, Iterable

import httpx
import structlog

from tracematrix_core.errors import (
    ConfigurationError,
    NotFoundError,
    PermissionDeniedError,
    RequestValidationError,
    UpstreamError,
)
from tracematrix_core.models import RequirementKind
from tracematrix_core.records import (
    CategoryRecord,
    ImplementationRecord,
    IssueRecord,
    MilestoneRecord,
    TrackerSnapshot,
)
from tracematrix_core.settings import Settings

logger = structlog.get_logger()

DEFAULT_API_URL = "https://api.github.com"
MAX_PER_PAGE = 100
STATES = ("open", "closed", "all")


class GitHubTrackerClient:
    """GitHub REST client for issues, milestones, pull requests, and labels.

    Every listing reads a single page of at most ``per_page`` records.
    HTTP failures are translated once, in :meth:`_request`, into the
    :class:`~tracematrix_core.errors.TraceabilityError` hierarchy.
    """

    def __init__(
        self,
        owner: str,
        repo: str,
        token: str | None = None,
        base_url: str = DEFAULT_API_URL,
        timeout_seconds: float = 30.0,
        per_page: int = MAX_PER_PAGE,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the tracker client.

        Args:
            owner: Repository owner (user or organization)
            repo: Repository name
            token: Optional API token; anonymous reads are rate limited
            base_url: API root, for GitHub Enterprise installs
            timeout_seconds: Per-request timeout
            per_page: Page size for every listing (1-100)
            transport: Optional httpx transport, used by tests
        """
        if not owner or not repo:
            raise ConfigurationError("Repository owner and name are required")
        if not 1 <= per_page <= MAX_PER_PAGE:
            raise RequestValidationError(
                f"per_page must be between 1 and {MAX_PER_PAGE}, got {per_page}"
            )
        self.owner = owner
        self.repo = repo
        self.token = token
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.per_page = per_page
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @classmethod
    def from_settings(cls, settings: Settings, per_page: int = MAX_PER_PAGE) -> "GitHubTrackerClient":
        """Create a client from environment settings."""
        owner, repo = settings.require_repository()
        return cls(
            owner=owner,
            repo=repo,
            token=settings.GITHUB_TOKEN or None,
            base_url=settings.GITHUB_API_URL,
            timeout_seconds=settings.GITHUB_TIMEOUT_SECONDS,
            per_page=per_page,
        )

    @property
    def repository(self) -> str:
        return f"{self.owner}/{self.repo}"

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout_seconds,
                transport=self._transport,
            )
        return self._client

    def _get_headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def _request(
        self,
        method: str,
        url: str,
        resource: str,
        **kwargs: Any,
    ) -> httpx.Response:
        """Make a request and translate failures into tracker errors."""
        client = self._get_client()
        try:
            response = await client.request(method, url, headers=self._get_headers(), **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            logger.warning(
                "Tracker request failed",
                resource=resource,
                repository=self.repository,
                status=status,
            )
            if status == 404:
                raise NotFoundError(resource, self.repository) from exc
            if status in (401, 403):
                raise PermissionDeniedError(resource, self.repository, status) from exc
            raise UpstreamError(
                f"GitHub API error while reading {resource} from {self.repository}: "
                f"HTTP {status}",
                status_code=status,
            ) from exc
        except httpx.RequestError as exc:
            logger.warning(
                "Tracker unreachable",
                resource=resource,
                repository=self.repository,
                error=str(exc),
            )
            raise UpstreamError(
                f"Could not reach GitHub API while reading {resource} "
                f"from {self.repository}: {exc}"
            ) from exc
        return response

    async def _list(self, path: str, resource: str, **params: Any) -> list[dict[str, Any]]:
        response = await self._request(
            "GET",
            f"/repos/{self.owner}/{self.repo}/{path}",
            resource,
            params={"per_page": self.per_page, **params},
        )
        data = response.json()
        if not isinstance(data, list):
            raise UpstreamError(
                f"Unexpected response while reading {resource} from {self.repository}"
            )
        return data

    async def list_issues(self, state: str = "all") -> list[IssueRecord]:
        """List issues; pull requests returned by the issues endpoint are dropped."""
        data = await self._list("issues", "issues", state=state)
        return [IssueRecord.from_api(item) for item in data if "pull_request" not in item]

    async def list_milestones(self, state: str = "all") -> list[MilestoneRecord]:
        """List milestones."""
        data = await self._list("milestones", "milestones", state=state)
        return [MilestoneRecord.from_api(item) for item in data]

    async def list_pull_requests(self, state: str = "all") -> list[ImplementationRecord]:
        """List pull requests."""
        data = await self._list("pulls", "pull requests", state=state)
        return [ImplementationRecord.from_api(item) for item in data]

    async def list_labels(self) -> list[CategoryRecord]:
        """List labels."""
        data = await self._list("labels", "labels")
        return [CategoryRecord.from_api(item) for item in data]

    async def fetch_snapshot(
        self,
        kinds: Iterable[RequirementKind | str],
        status: str = "all",
    ) -> TrackerSnapshot:
        """Read every requested source concurrently.

        Sources not in ``kinds`` are not requested and come back empty.
        """
        if status not in STATES:
            raise RequestValidationError(
                f"Invalid status filter: {status!r} (expected one of {', '.join(STATES)})"
            )
        wanted = frozenset(RequirementKind(kind) for kind in kinds)

        async def _empty() -> list[Any]:
            return []

        issues, milestones, implementations, categories = await asyncio.gather(
            self.list_issues(status) if RequirementKind.ISSUE in wanted else _empty(),
            self.list_milestones(status) if RequirementKind.MILESTONE in wanted else _empty(),
            self.list_pull_requests(status)
            if RequirementKind.IMPLEMENTATION in wanted
            else _empty(),
            self.list_labels() if RequirementKind.CATEGORY in wanted else _empty(),
        )

        logger.info(
            "Fetched tracker snapshot",
            repository=self.repository,
            issues=len(issues),
            milestones=len(milestones),
            pull_requests=len(implementations),
            labels=len(categories),
        )

        return TrackerSnapshot(
            issues=tuple(issues),
            milestones=tuple(milestones),
            implementations=tuple(implementations),
            categories=tuple(categories),
            repository=self.repository,
            fetched_kinds=wanted,
        )

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "GitHubTrackerClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()
