import base64
import binascii
import logging
import re
from datetime import datetime, timezone
from typing import Any, Optional

import httpx
from pydantic import BaseModel, StrictStr, ValidationError

from common.constants import (
    ACCEPT_DIFF,
    ACCEPT_JSON,
    DIFF_UNAVAILABLE,
    GITHUB_API_URL,
    GITHUB_RAW_URL,
    MARKER_FILE,
    MARKER_PATTERN,
    MAX_PAGES_ALL,
    MAX_PAGES_SINCE,
    PAGE_SIZE,
)
from common.schemas import CommitRecord, CommitWindow
from core.versions import USER_AGENT

MARKER_RE = re.compile(MARKER_PATTERN)


# ---------- Host payload (decoded strictly, malformed entries skipped) ----------


class _HostAuthor(BaseModel):
    name: Optional[StrictStr] = None
    date: Optional[StrictStr] = None


class _HostCommit(BaseModel):
    message: Optional[StrictStr] = None
    author: Optional[_HostAuthor] = None


class HostCommitItem(BaseModel):
    sha: StrictStr
    html_url: Optional[StrictStr] = None
    commit: _HostCommit

    def to_record(self) -> CommitRecord:
        author = self.commit.author or _HostAuthor()
        return CommitRecord(
            sha=self.sha,
            author=author.name or "",
            authored_date=author.date or "",
            message=self.commit.message or "",
            host_url=self.html_url or "",
        )


def normalize_commit_items(raw: Any) -> list[CommitRecord]:
    if not isinstance(raw, list):
        return []

    records = []
    for item in raw:
        try:
            records.append(HostCommitItem.model_validate(item).to_record())
        except ValidationError as e:
            logging.debug(f"Skipping malformed commit entry: {e.errors()[:1]}")
    return records


def extract_marker(text: str) -> Optional[int]:
    match = MARKER_RE.search(text)
    if not match:
        return None
    return int(match.group(1))


def format_since(since: datetime) -> str:
    if since.tzinfo is None:
        since = since.replace(tzinfo=timezone.utc)
    return since.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def build_http_client(token: Optional[str], timeout: float) -> httpx.Client:
    headers = {"User-Agent": USER_AGENT, "Accept": ACCEPT_JSON}
    if token:
        headers["Authorization"] = f"Bearer {token}"
    else:
        logging.warning(
            "No GITHUB_TOKEN found in environment. API requests may be severely rate-limited."
        )
    return httpx.Client(headers=headers, timeout=timeout, follow_redirects=True)


class GitHubCommitSource:
    """
    Reads commits, diffs and the version marker of one owner's repositories.
    Commit lists come back newest first, as the host returns them.
    """

    def __init__(
        self,
        owner: str,
        http: httpx.Client,
        api_url: str = GITHUB_API_URL,
        raw_url: str = GITHUB_RAW_URL,
        marker_file: str = MARKER_FILE,
    ):
        self.owner = owner
        self.http = http
        self.api_url = api_url.rstrip("/")
        self.raw_url = raw_url.rstrip("/")
        self.marker_file = marker_file

    def _tag(self, repo: str) -> str:
        return f"[{self.owner}/{repo}]"

    def _commits_url(self, repo: str) -> str:
        return f"{self.api_url}/repos/{self.owner}/{repo}/commits"

    def _paginate(
        self,
        repo: str,
        params: dict[str, Any],
        max_pages: int,
        stop_sha: str = "",
    ) -> CommitWindow:
        """
        Walks the commit list until stop_sha, the last page, an error or the cap.
        Commits come back newest first.
        """
        gathered: list[CommitRecord] = []
        url = self._commits_url(repo)
        page = 1

        while True:
            query = {**params, "per_page": PAGE_SIZE, "page": page}
            try:
                resp = self.http.get(url, params=query)
            except httpx.HTTPError as e:
                logging.error(f"{self._tag(repo)} Commit list request failed: {e}")
                return CommitWindow(commits=gathered, halted_on_error=True)

            if not resp.is_success:
                logging.error(f"[{resp.status_code}] {resp.url}")
                logging.error(f"Error response: {resp.text}")
                return CommitWindow(commits=gathered, halted_on_error=True)

            try:
                page_items = normalize_commit_items(resp.json())
            except ValueError:
                logging.error(f"{self._tag(repo)} Commit list page {page} is not JSON")
                return CommitWindow(commits=gathered, halted_on_error=True)

            if not page_items:
                return CommitWindow(commits=gathered)

            if stop_sha:
                shas = [c.sha for c in page_items]
                if stop_sha in shas:
                    gathered.extend(page_items[: shas.index(stop_sha) + 1])
                    return CommitWindow(commits=gathered, stop_found=True)

            gathered.extend(page_items)

            if not resp.links.get("next", {}).get("url"):
                return CommitWindow(commits=gathered)

            page += 1
            if page > max_pages:
                logging.warning(
                    f"{self._tag(repo)} Stopping pagination after {max_pages} pages. "
                    "Consider narrowing the window."
                )
                return CommitWindow(commits=gathered)

    def list_commits_since(
        self, repo: str, branch: str, since: datetime, stop_sha: str = ""
    ) -> CommitWindow:
        params = {"sha": branch, "since": format_since(since)}
        window = self._paginate(repo, params, MAX_PAGES_SINCE, stop_sha)

        if stop_sha and not window.stop_found and not window.halted_on_error:
            logging.warning(
                f"{self._tag(repo)} Stop commit {stop_sha} not reached in "
                f"{len(window.commits)} fetched commit(s); returning the whole window."
            )
        return window

    def list_all_commits(self, repo: str, branch: str) -> list[CommitRecord]:
        window = self._paginate(repo, {"sha": branch}, MAX_PAGES_ALL)
        if window.halted_on_error:
            logging.warning(
                f"{self._tag(repo)} Commit list cut short after {len(window.commits)} commit(s)."
            )
        return window.commits

    def fetch_diff(self, repo: str, sha: str) -> str:
        url = f"{self._commits_url(repo)}/{sha}"
        try:
            resp = self.http.get(url, headers={"Accept": ACCEPT_DIFF})
        except httpx.HTTPError as e:
            logging.warning(f"{self._tag(repo)} Diff request for {sha} failed: {e}")
            return DIFF_UNAVAILABLE

        if not resp.is_success:
            logging.warning(f"[{resp.status_code}] {url}")
            return DIFF_UNAVAILABLE

        if not resp.text.strip():
            return DIFF_UNAVAILABLE
        return resp.text

    def fetch_version_marker(self, repo: str, sha: str, fallback: int) -> int:
        url = f"{self.raw_url}/{self.owner}/{repo}/{sha}/{self.marker_file}"
        try:
            resp = self.http.get(url)
        except httpx.HTTPError as e:
            logging.warning(
                f"{self._tag(repo)} Marker request for {sha} failed, using {fallback}: {e}"
            )
            return fallback

        if not resp.is_success:
            # 404 is routine: the file did not exist at that commit.
            logging.debug(f"[{resp.status_code}] {url}, using marker {fallback}")
            return fallback

        marker = extract_marker(resp.text)
        if marker is None:
            logging.debug(f"{self._tag(repo)} No marker at {sha}, using {fallback}")
            return fallback
        return marker

    def fetch_tip_version_marker(self, repo: str, branch: str) -> int:
        """
        Marker at the branch tip via the contents API; 0 when absent.
        """
        url = f"{self.api_url}/repos/{self.owner}/{repo}/contents/{self.marker_file}"
        try:
            resp = self.http.get(url, params={"ref": branch})
        except httpx.HTTPError as e:
            logging.warning(f"{self._tag(repo)} Marker file request failed: {e}")
            return 0

        if not resp.is_success:
            logging.warning(f"[{resp.status_code}] {url}")
            return 0

        try:
            body = resp.json()
            content = base64.b64decode(body["content"]).decode("utf-8")
        except (ValueError, KeyError, TypeError, binascii.Error):
            return 0

        marker = extract_marker(content)
        return marker or 0

    def close(self) -> None:
        self.http.close()
