"""Unit tests for GitHubClient."""

import io

import httpx
import pytest

from texsync.api import GitHubClient
from texsync.exceptions import (
    AuthError,
    DownloadError,
    InvalidResponseError,
    NotFoundError,
    RateLimitError,
    UnreachableError,
)
from texsync.models import RemoteFileEntry

REPO = "/repos/owner/repo"


def make_client(handler, **kwargs):
    """Create a client whose requests are answered by ``handler``."""
    options = dict(
        repo_owner="owner",
        repo_name="repo",
        sparse_path="textures/SLUS-21770",
        branch="main",
        token="",
        api_url="https://api.test",
        raw_url="https://raw.test",
        max_retries=2,
        retry_delay=0,
    )
    options.update(kwargs)
    return GitHubClient(transport=httpx.MockTransport(handler), **options)


def tree_data(entries, truncated=False):
    return {"tree": entries, "truncated": truncated}


def blob(path, sha):
    return {"path": path, "type": "blob", "sha": sha}


def subtree(path, sha):
    return {"path": path, "type": "tree", "sha": sha}


class RepoHandler:
    """Answers commit and tree requests from a route table."""

    def __init__(self, trees, recursive_trees):
        self.trees = trees
        self.recursive_trees = recursive_trees
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path == f"{REPO}/commits/main":
            return httpx.Response(200, json={"sha": "c1"})
        prefix = f"{REPO}/git/trees/"
        if path.startswith(prefix):
            sha = path[len(prefix):]
            table = (
                self.recursive_trees
                if request.url.params.get("recursive") == "1"
                else self.trees
            )
            if sha in table:
                return httpx.Response(200, json=table[sha])
        return httpx.Response(404, json={"message": "Not Found"})


ROOT_TREES = {
    "c1": tree_data([subtree("textures", "t1"), blob("README.md", "r")]),
    "t1": tree_data([subtree("SLUS-21770", "t2")]),
}


class TestResolveLatest:
    """Tests for resolve_latest."""

    def test_returns_commit_sha(self):
        client = make_client(RepoHandler({}, {}))
        assert client.resolve_latest() == "c1"

    def test_sends_token(self):
        handler = RepoHandler({}, {})
        client = make_client(handler, token="secret")

        client.resolve_latest()

        request = handler.requests[0]
        assert request.headers["Authorization"] == "Bearer secret"
        assert request.headers["User-Agent"] == "texsync"

    def test_missing_sha(self):
        client = make_client(lambda request: httpx.Response(200, json={}))
        with pytest.raises(InvalidResponseError):
            client.resolve_latest()

    def test_invalid_json(self):
        client = make_client(lambda request: httpx.Response(200, text="<html>"))
        with pytest.raises(InvalidResponseError):
            client.resolve_latest()


class TestListEntries:
    """Tests for list_entries."""

    def test_lists_sparse_path(self):
        """Test that only blobs below the sparse path are returned."""
        handler = RepoHandler(
            ROOT_TREES,
            {
                "t2": tree_data(
                    [
                        blob("team/b.png", "h2"),
                        subtree("team", "t3"),
                        blob("a.png", "h1"),
                    ]
                )
            },
        )
        client = make_client(handler)

        entries = client.list_entries("c1")

        assert entries == [
            RemoteFileEntry(path="a.png", content_hash="h1"),
            RemoteFileEntry(path="team/b.png", content_hash="h2"),
        ]

    def test_truncated_listing_descends_manually(self):
        trees = dict(ROOT_TREES)
        trees["t2"] = tree_data([blob("a.png", "h1"), subtree("team", "t3")])
        handler = RepoHandler(
            trees,
            {
                "t2": tree_data([blob("a.png", "h1")], truncated=True),
                "t3": tree_data([blob("b.png", "h2")]),
            },
        )
        client = make_client(handler)

        entries = client.list_entries("c1")

        assert [e.path for e in entries] == ["a.png", "team/b.png"]

    def test_missing_sparse_path(self):
        handler = RepoHandler({"c1": tree_data([blob("README.md", "r")])}, {})
        client = make_client(handler)

        with pytest.raises(NotFoundError, match="textures"):
            client.list_entries("c1")

    def test_malformed_tree(self):
        client = make_client(lambda request: httpx.Response(200, json={"sha": "x"}))
        with pytest.raises(InvalidResponseError):
            client.list_entries("c1")


class TestErrorHandling:
    """Tests for HTTP error mapping and retries."""

    def test_unauthorized(self):
        client = make_client(lambda request: httpx.Response(401))
        with pytest.raises(AuthError):
            client.resolve_latest()

    def test_forbidden(self):
        client = make_client(lambda request: httpx.Response(403))
        with pytest.raises(AuthError):
            client.resolve_latest()

    def test_not_found_is_not_retried(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(404)

        with pytest.raises(NotFoundError):
            make_client(handler).resolve_latest()
        assert len(calls) == 1

    def test_rate_limit_is_retried(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(403, headers={"X-RateLimit-Remaining": "0"})

        with pytest.raises(RateLimitError):
            make_client(handler).resolve_latest()
        assert len(calls) == 3

    def test_server_error_then_success(self):
        responses = [httpx.Response(502), httpx.Response(200, json={"sha": "c9"})]

        client = make_client(lambda request: responses.pop(0))

        assert client.resolve_latest() == "c9"

    def test_server_error_exhausts_retries(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(500, json={"message": "boom"})

        with pytest.raises(UnreachableError, match="boom"):
            make_client(handler).resolve_latest()
        assert len(calls) == 3

    def test_network_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(UnreachableError):
            make_client(handler, max_retries=0).resolve_latest()


class TestDownloadFile:
    """Tests for raw file downloads."""

    def test_url_is_pinned_to_revision(self):
        client = make_client(lambda request: httpx.Response(200))
        url = client.raw_file_url("team/home helmet.png", "c1")
        assert url == (
            "https://raw.test/owner/repo/c1/"
            "textures/SLUS-21770/team/home%20helmet.png"
        )

    def test_streams_content(self):
        requested = []

        def handler(request):
            requested.append(request.url.path)
            return httpx.Response(200, content=b"texture-bytes")

        dest = io.BytesIO()
        size = make_client(handler).download_file("team/a.png", "c1", dest)

        assert size == len(b"texture-bytes")
        assert dest.getvalue() == b"texture-bytes"
        assert requested == ["/owner/repo/c1/textures/SLUS-21770/team/a.png"]

    def test_not_found(self):
        client = make_client(lambda request: httpx.Response(404))
        with pytest.raises(NotFoundError):
            client.download_file("a.png", "c1", io.BytesIO())

    def test_server_error(self):
        client = make_client(lambda request: httpx.Response(503))
        with pytest.raises(UnreachableError):
            client.download_file("a.png", "c1", io.BytesIO())

    def test_other_error(self):
        client = make_client(lambda request: httpx.Response(403))
        with pytest.raises(DownloadError):
            client.download_file("a.png", "c1", io.BytesIO())

    def test_close(self):
        client = make_client(lambda request: httpx.Response(200, json={"sha": "c"}))
        client.resolve_latest()
        client.close()
        assert client._client is None
