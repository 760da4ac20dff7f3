"""GitHub access shared by the differ and the ref synchronizer."""

from .client import GithubClient, RepoContent

__all__ = ["GithubClient", "RepoContent"]
