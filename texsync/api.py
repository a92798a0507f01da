"""GitHub client resolving and fetching the upstream texture repository."""

from __future__ import annotations

import logging
import random
import time
from typing import Any, BinaryIO
from urllib.parse import quote

import httpx

from .config import config
from .exceptions import (
    AuthError,
    DownloadError,
    InvalidResponseError,
    NotFoundError,
    RateLimitError,
    RemoteError,
    UnreachableError,
)
from .models import RemoteFileEntry

logger = logging.getLogger(__name__)

USER_AGENT = "texsync"


class GitHubClient:
    """Client for the GitHub REST API and raw content host.

    Resolves the head revision of the configured branch, enumerates the
    sparse path at a revision and streams file content pinned to that
    revision.
    """

    def __init__(
        self,
        repo_owner: str | None = None,
        repo_name: str | None = None,
        sparse_path: str | None = None,
        branch: str | None = None,
        token: str | None = None,
        api_url: str | None = None,
        raw_url: str | None = None,
        max_retries: int | None = None,
        retry_delay: float = 1.0,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize GitHub client.

        Args:
            repo_owner: Repository owner (uses config if not provided)
            repo_name: Repository name (uses config if not provided)
            sparse_path: Path inside the repository to mirror
            branch: Branch whose head is resolved as the latest revision
            token: Optional GitHub token
            api_url: GitHub API base URL
            raw_url: Raw content base URL
            max_retries: Maximum number of retry attempts (default: 3)
            retry_delay: Initial delay between retries in seconds (default: 1.0)
            timeout: Request timeout in seconds (default: 30.0)
            transport: Optional httpx transport (used by tests)
        """
        self.repo_owner = repo_owner or config.repo_owner
        self.repo_name = repo_name or config.repo_name
        self.sparse_path = (sparse_path or config.sparse_path).strip("/")
        self.branch = branch or config.branch
        self.token = token if token is not None else config.github_token
        self.api_url = (api_url or config.api_url).rstrip("/")
        self.raw_url = (raw_url or config.raw_url).rstrip("/")
        self.max_retries = (
            max_retries if max_retries is not None else config.max_retries
        )
        self.retry_delay = retry_delay
        self.timeout = timeout if timeout is not None else config.timeout
        self._transport = transport
        self._client: httpx.Client | None = None

    def _get_client(self) -> httpx.Client:
        """Get or create the httpx client."""
        if self._client is None or self._client.is_closed:
            headers = {"User-Agent": USER_AGENT}
            if self.token:
                headers["Authorization"] = f"Bearer {self.token}"
            self._client = httpx.Client(
                headers=headers,
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    def close(self) -> None:
        """Close the client and release connections."""
        if self._client is not None and not self._client.is_closed:
            self._client.close()
            self._client = None

    def __enter__(self) -> GitHubClient:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    @property
    def _repo_api(self) -> str:
        return f"{self.api_url}/repos/{self.repo_owner}/{self.repo_name}"

    # =========================
    # Request handling
    # =========================

    def _should_retry(self, exception: Exception, attempt: int) -> bool:
        """Determine if a request should be retried.

        Args:
            exception: The exception that occurred
            attempt: Current attempt number (0-based)

        Returns:
            True if the request should be retried, False otherwise
        """
        if attempt >= self.max_retries:
            return False

        # Network errors, server errors and rate limits are transient
        return isinstance(exception, UnreachableError)

    def _calculate_retry_delay(self, attempt: int) -> float:
        """Calculate delay before next retry using exponential backoff.

        Args:
            attempt: Current attempt number (0-based)

        Returns:
            Delay in seconds
        """
        base_delay = self.retry_delay * (2**attempt)
        # Add jitter: +/- 25% of base delay
        jitter = base_delay * 0.25 * (2 * random.random() - 1)
        return base_delay + jitter

    def _map_http_error(self, response: httpx.Response) -> RemoteError:
        """Translate an HTTP error response into a texsync exception.

        Args:
            response: The failed response

        Returns:
            Exception describing the failure
        """
        status_code = response.status_code

        if status_code == 401:
            return AuthError("GitHub rejected the credentials (401 Unauthorized)")
        if status_code in (403, 429):
            if (
                status_code == 429
                or response.headers.get("X-RateLimit-Remaining") == "0"
            ):
                return RateLimitError(
                    "GitHub API rate limit exceeded - set TEXSYNC_GITHUB_TOKEN "
                    "or try again later"
                )
            return AuthError("Access to the repository is forbidden (403)")
        if status_code == 404:
            return NotFoundError(
                f"Not found upstream: {response.request.url.path}"
            )

        error_msg = f"GitHub request failed with status {status_code}"
        try:
            if response.content:
                data = response.json()
                if isinstance(data, dict) and data.get("message"):
                    error_msg = f"{error_msg}: {data['message']}"
        except ValueError:
            pass

        if 500 <= status_code < 600:
            return UnreachableError(error_msg)
        return RemoteError(error_msg)

    def _retry_after(self, response: httpx.Response, attempt: int) -> float:
        retry_after = response.headers.get("Retry-After")
        if retry_after and retry_after.isdigit():
            return float(retry_after)
        return self._calculate_retry_delay(attempt)

    def _request(self, method: str, url: str, **kwargs: Any) -> Any:
        """Make an API request with retry logic.

        Args:
            method: HTTP method
            url: Absolute URL
            **kwargs: Additional arguments passed to httpx

        Returns:
            Response JSON data

        Raises:
            RemoteError: If the request fails after all retries
        """
        last_exception: Exception | None = None
        client = self._get_client()
        headers = {"Accept": "application/vnd.github+json"}

        for attempt in range(self.max_retries + 1):
            try:
                response = client.request(method, url, headers=headers, **kwargs)
            except httpx.RequestError as e:
                error = UnreachableError(f"Network error: {e}")
                last_exception = error
                if self._should_retry(error, attempt):
                    delay = self._calculate_retry_delay(attempt)
                    logger.debug(
                        "Retrying %s %s in %.2fs after: %s", method, url, delay, e
                    )
                    time.sleep(delay)
                    continue
                raise error from e

            if response.is_error:
                error = self._map_http_error(response)
                last_exception = error
                if self._should_retry(error, attempt):
                    delay = self._retry_after(response, attempt)
                    logger.debug(
                        "Retrying %s %s in %.2fs after: %s", method, url, delay, error
                    )
                    time.sleep(delay)
                    continue
                raise error

            try:
                return response.json()
            except ValueError as e:
                raise InvalidResponseError(
                    f"Invalid JSON response from {url}"
                ) from e

        # If we get here, we've exhausted all retries
        if last_exception:
            raise last_exception
        raise UnreachableError("Request failed after all retry attempts")

    # =========================
    # Revision and tree listing
    # =========================

    def resolve_latest(self) -> str:
        """Resolve the head commit SHA of the configured branch.

        Returns:
            Commit SHA

        Raises:
            UnreachableError: If GitHub cannot be reached
            NotFoundError: If the repository or branch does not exist
            InvalidResponseError: If the response lacks a commit SHA
        """
        data = self._request("GET", f"{self._repo_api}/commits/{self.branch}")
        sha = data.get("sha") if isinstance(data, dict) else None
        if not isinstance(sha, str) or not sha:
            raise InvalidResponseError("Commit response does not contain a SHA")
        logger.debug(f"Resolved {self.branch} to {sha}")
        return sha

    def _fetch_tree(self, tree_sha: str, recursive: bool = False) -> dict:
        params = {"recursive": "1"} if recursive else None
        data = self._request(
            "GET", f"{self._repo_api}/git/trees/{tree_sha}", params=params
        )
        if not isinstance(data, dict) or not isinstance(data.get("tree"), list):
            raise InvalidResponseError(f"Malformed tree response for {tree_sha}")
        return data

    def _get_subtree_sha(self, root_sha: str, path: str) -> str:
        """Walk down from a root tree to the tree at ``path``.

        Args:
            root_sha: Commit or tree SHA to start from
            path: Slash separated directory path

        Returns:
            Tree SHA of the directory

        Raises:
            NotFoundError: If a path component does not exist
        """
        current_sha = root_sha
        for part in path.split("/"):
            tree = self._fetch_tree(current_sha)
            for entry in tree["tree"]:
                if entry.get("path") == part and entry.get("type") == "tree":
                    current_sha = entry["sha"]
                    break
            else:
                raise NotFoundError(
                    f"Path component '{part}' not found in repository"
                )
        return current_sha

    def _collect_tree_files(
        self, tree_sha: str, base_path: str, files: dict[str, str]
    ) -> None:
        """Collect every blob below a tree, handling truncated listings."""
        tree = self._fetch_tree(tree_sha, recursive=True)

        if tree.get("truncated"):
            logger.debug(
                "Tree listing for '%s' truncated, descending manually",
                base_path or "/",
            )
            tree = self._fetch_tree(tree_sha)
            for entry in tree["tree"]:
                entry_path = _join(base_path, entry["path"])
                if entry.get("type") == "blob":
                    files[entry_path] = entry["sha"]
                elif entry.get("type") == "tree":
                    self._collect_tree_files(entry["sha"], entry_path, files)
            return

        for entry in tree["tree"]:
            if entry.get("type") == "blob":
                files[_join(base_path, entry["path"])] = entry["sha"]

    def list_entries(self, revision: str) -> list[RemoteFileEntry]:
        """Enumerate the sparse path at a revision.

        Args:
            revision: Commit SHA returned by resolve_latest()

        Returns:
            Remote files sorted by path

        Raises:
            UnreachableError: If GitHub cannot be reached
            NotFoundError: If the sparse path does not exist at the revision
            InvalidResponseError: If a tree listing is malformed
        """
        start = time.time()
        subtree_sha = self._get_subtree_sha(revision, self.sparse_path)

        files: dict[str, str] = {}
        try:
            self._collect_tree_files(subtree_sha, "", files)
        except (KeyError, TypeError) as e:
            raise InvalidResponseError(f"Malformed tree entry: {e}") from e

        logger.debug(
            "Listed %d remote file(s) in %.2fs", len(files), time.time() - start
        )
        return [
            RemoteFileEntry(path=path, content_hash=sha)
            for path, sha in sorted(files.items())
        ]

    # =========================
    # Download Operations
    # =========================

    def raw_file_url(self, path: str, revision: str) -> str:
        """Build the raw content URL of a file pinned to a revision."""
        full_path = f"{self.sparse_path}/{path}"
        return (
            f"{self.raw_url}/{self.repo_owner}/{self.repo_name}/"
            f"{revision}/{quote(full_path, safe='/')}"
        )

    def download_file(self, path: str, revision: str, dest: BinaryIO) -> int:
        """Stream a file's content into an open binary destination.

        Args:
            path: Path relative to the sparse root
            revision: Commit SHA the content is pinned to
            dest: Writable binary file object

        Returns:
            Number of bytes written

        Raises:
            NotFoundError: If the file does not exist at the revision
            UnreachableError: On network failure
            DownloadError: On any other HTTP failure
        """
        url = self.raw_file_url(path, revision)
        client = self._get_client()
        bytes_written = 0

        try:
            with client.stream("GET", url) as response:
                if response.is_error:
                    response.read()
                    error = self._map_http_error(response)
                    if isinstance(error, (NotFoundError, UnreachableError)):
                        raise error
                    raise DownloadError(f"Download of {path} failed: {error}")

                for chunk in response.iter_bytes(chunk_size=64 * 1024):
                    if chunk:
                        dest.write(chunk)
                        bytes_written += len(chunk)
        except httpx.RequestError as e:
            raise UnreachableError(f"Network error during download: {e}") from e

        return bytes_written


def _join(base_path: str, name: str) -> str:
    return f"{base_path}/{name}" if base_path else name
