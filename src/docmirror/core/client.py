import logging
import threading
from typing import Any
from urllib.parse import quote

import requests

from ..config import Config
from ..errors import NotFoundError, RemoteError

logger = logging.getLogger(__name__)

_CONNECT_TIMEOUT = 10
_PAGE_SIZE = 100


class GithubClient:
    """Thin GitHub REST v3 client covering what the synchronizer reads.

    Sessions are thread-local so the client can be shared by the ref and
    page worker pools.  Every request carries a ``(connect, read)``
    timeout; timeouts and transport errors are raised as ``RemoteError``.
    """

    def __init__(self, config: Config):
        self.config = config
        self._thread_local = threading.local()
        self.api_url = config.api_url.rstrip("/")

    @property
    def session(self) -> requests.Session:
        """The current thread's session."""
        return self._get_session()

    def _get_session(self) -> requests.Session:
        """Get or create a thread-local requests.Session."""
        if not hasattr(self._thread_local, "session"):
            self._thread_local.session = self._create_session()
        return self._thread_local.session

    def _create_session(self) -> requests.Session:
        session = requests.Session()
        session.headers["Accept"] = "application/vnd.github+json"
        session.headers["X-GitHub-Api-Version"] = "2022-11-28"
        if self.config.token:
            session.headers["Authorization"] = f"Bearer {self.config.token}"
        return session

    def _request(self, url: str, params: dict | None = None) -> requests.Response:
        """
        GET *url* and return the response.

        Raises:
            NotFoundError: On HTTP 404.
            RemoteError: On any other HTTP error, timeout or transport
                failure.
        """
        try:
            response = self._get_session().get(
                url,
                params=params,
                timeout=(_CONNECT_TIMEOUT, self.config.timeout),
            )
        except requests.Timeout as exc:
            raise RemoteError(f"Timed out requesting {url}: {exc}") from exc
        except requests.RequestException as exc:
            raise RemoteError(f"Request to {url} failed: {exc}") from exc

        if response.status_code == 404:
            raise NotFoundError(f"Not found: {url}", status_code=404)
        try:
            response.raise_for_status()
        except requests.HTTPError as exc:
            raise RemoteError(
                f"GitHub returned {response.status_code} for {url}",
                status_code=response.status_code,
            ) from exc
        return response

    def _get_json(self, path: str, params: dict | None = None) -> Any:
        return self._request(f"{self.api_url}{path}", params).json()

    def _get_paginated(self, path: str) -> list[dict]:
        """Follow ``Link: rel="next"`` headers and concatenate the pages."""
        items: list[dict] = []
        url: str | None = f"{self.api_url}{path}"
        params: dict | None = {"per_page": _PAGE_SIZE}
        while url:
            response = self._request(url, params)
            items.extend(response.json())
            url = response.links.get("next", {}).get("url")
            # The next link already carries the query string
            params = None
        return items

    @staticmethod
    def _repo_path(owner: str, repo: str) -> str:
        return f"/repos/{quote(owner, safe='')}/{quote(repo, safe='')}"

    def list_tags(self, owner: str, repo: str) -> list[dict]:
        """
        List all tags of a repository, in the order GitHub reports them.

        Each item has at least ``name`` and ``commit.sha``.
        """
        return self._get_paginated(f"{self._repo_path(owner, repo)}/tags")

    def list_branches(self, owner: str, repo: str) -> list[dict]:
        """
        List all branches of a repository.

        Each item has at least ``name`` and ``commit.sha``.
        """
        return self._get_paginated(f"{self._repo_path(owner, repo)}/branches")

    def get_branch(self, owner: str, repo: str, branch: str) -> dict:
        """
        Get a single branch, including its head ``commit.sha``.
        """
        return self._get_json(
            f"{self._repo_path(owner, repo)}/branches/{quote(branch)}"
        )

    def get_contents(self, owner: str, repo: str, path: str, ref: str) -> Any:
        """
        Get the contents API entry for *path* at *ref*.

        Returns a dict for files and a list for directories.
        """
        clean = path.strip("/")
        return self._get_json(
            f"{self._repo_path(owner, repo)}/contents/{quote(clean)}",
            params={"ref": ref},
        )

    def repo_content(self, owner: str, repo: str) -> "RepoContent":
        return RepoContent(self, owner, repo)


class RepoContent:
    """File access to one repository: ``exists()`` and ``show()``."""

    def __init__(self, client: GithubClient, owner: str, repo: str):
        self.client = client
        self.owner = owner
        self.repo = repo

    def exists(self, path: str, ref: str) -> bool:
        """
        Return True if *path* (file or directory) exists at *ref*.

        A failed lookup (timeout, server error) counts as absent and is
        logged.
        """
        try:
            self.client.get_contents(self.owner, self.repo, path, ref)
        except NotFoundError:
            return False
        except RemoteError as exc:
            logger.warning(
                "Could not check %s@%s in %s/%s: %s",
                path,
                ref,
                self.owner,
                self.repo,
                exc,
            )
            return False
        return True

    def show(self, path: str, ref: str) -> dict:
        """
        Fetch a file entry: ``{"path", "name", "content", "encoding", ...}``
        where ``content`` is base64 encoded.

        Raises:
            NotFoundError: If the file does not exist or is a directory.
            RemoteError: On any other failure.
        """
        data = self.client.get_contents(self.owner, self.repo, path, ref)
        if not isinstance(data, dict) or data.get("type", "file") != "file":
            raise NotFoundError(f"{path}@{ref} is not a file")
        return data
