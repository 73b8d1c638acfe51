"""GitHub content and API client."""

import asyncio

import aiohttp
from structlog.stdlib import BoundLogger

from blobmirror.config.models import GitHubConfig
from blobmirror.domain.errors import UpstreamFetchError


class GitHubClient:
    """Fetches raw file content and repository metadata from GitHub.

    A single aiohttp session is shared by all requests; call ``close()``
    on shutdown. Every request is bounded by ``request_timeout``.
    """

    def __init__(
        self,
        config: GitHubConfig,
        logger: BoundLogger,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._config = config
        self._logger = logger
        self._session = session
        self._owns_session = session is None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._config.request_timeout),
                headers={"User-Agent": self._config.user_agent},
            )
        return self._session

    async def close(self) -> None:
        """Close the HTTP session if this client created it."""
        if self._session is not None and self._owns_session:
            await self._session.close()
            self._session = None

    def raw_url(self, user: str, repo: str, path: str) -> str:
        """Return the raw-content URL of a file."""
        return f"{self._config.raw_base_url.rstrip('/')}/{user}/{repo}/{path}"

    async def fetch_raw_content(self, user: str, repo: str, path: str) -> bytes:
        """Download a file from the raw-content host.

        Raises:
            UpstreamFetchError: On network errors, timeouts or non-2xx status.
        """
        return await self._get_bytes(self.raw_url(user, repo, path))

    async def fetch_text(self, url: str) -> str:
        """Download ``url`` and decode it as UTF-8.

        Raises:
            UpstreamFetchError: If the download fails or the file is not
                valid UTF-8.
        """
        data = await self._get_bytes(url)
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise UpstreamFetchError("The file is not valid UTF-8") from e

    async def lookup_repo_id(self, user: str, repo: str) -> int:
        """Resolve a repository's numeric ID through the REST API.

        Raises:
            UpstreamFetchError: If the lookup fails or the response has no ID.
        """
        url = f"{self._config.api_base_url.rstrip('/')}/repos/{user}/{repo}"
        try:
            async with self._get_session().get(
                url, headers={"Accept": "application/vnd.github+json"}
            ) as response:
                if response.status == 404:
                    raise UpstreamFetchError(f"Repository {user}/{repo} not found")
                response.raise_for_status()
                body = await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self._logger.warning("Repository lookup failed", url=url, error=str(e))
            raise UpstreamFetchError("Failed to lookup repo") from e
        except ValueError as e:
            raise UpstreamFetchError("GitHub API is not working correctly") from e

        repo_id = body.get("id") if isinstance(body, dict) else None
        if not isinstance(repo_id, int):
            raise UpstreamFetchError("GitHub API is not working correctly")
        return repo_id

    async def _get_bytes(self, url: str) -> bytes:
        try:
            async with self._get_session().get(url) as response:
                response.raise_for_status()
                return await response.read()
        except aiohttp.ClientResponseError as e:
            self._logger.warning(
                "Download failed", url=url, status=e.status, error=e.message
            )
            raise UpstreamFetchError(f"Failed to fetch file (HTTP {e.status})") from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self._logger.warning("Download failed", url=url, error=str(e))
            raise UpstreamFetchError("Failed to fetch file") from e
