from datetime import datetime
from typing import Optional, Protocol

from common.schemas import CommitRecord, CommitWindow, RepoHistory, TrackerCheckpoint
from domain.versioning.decimal_version import BumpTier


class CommitSource(Protocol):
    def list_commits_since(
        self, repo: str, branch: str, since: datetime, stop_sha: str = ""
    ) -> CommitWindow: ...

    def list_all_commits(self, repo: str, branch: str) -> list[CommitRecord]: ...

    def fetch_diff(self, repo: str, sha: str) -> str: ...

    def fetch_version_marker(self, repo: str, sha: str, fallback: int) -> int: ...

    def fetch_tip_version_marker(self, repo: str, branch: str) -> int: ...


class ChatClient(Protocol):
    def complete(self, system: str, user: str) -> str: ...


class Classifier(Protocol):
    def decide(self, message: str, diff: str) -> BumpTier: ...


class LedgerIO(Protocol):
    def checkpoint(
        self, repo: str, allow_reset: bool = False
    ) -> Optional[TrackerCheckpoint]: ...

    def list_files(self, repo: str) -> list[str]: ...

    def write(self, repo: str, history: RepoHistory, stamp: Optional[str] = None) -> str: ...

    def supersede(self, repo: str) -> list[str]: ...
