from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from common.constants import COMMITS_PER_FILE, SINCE_DAYS

# ---------- Ledger ----------


class CommitRecord(BaseModel):
    """
    One commit as stored in a ledger file.
    Field aliases are the on-disk JSON keys read by the blog generator.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    sha: str
    author: str = ""
    authored_date: str = Field("", alias="date")  # ISO-8601 from the host
    message: str = ""
    host_url: str = Field("", alias="url")
    diff_text: str = Field("", alias="diff")
    assigned_version: Optional[str] = Field(None, alias="version")

    def with_diff(self, diff_text: str) -> "CommitRecord":
        return self.model_copy(update={"diff_text": diff_text})

    def with_version(self, version: str) -> "CommitRecord":
        """
        Returns a copy carrying the assigned version.
        A version is assigned once; reassigning is a bug in the caller.
        """
        if self.assigned_version is not None:
            raise ValueError(
                f"Commit {self.sha} already has version {self.assigned_version}"
            )
        return self.model_copy(update={"assigned_version": version})


class RepoHistory(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    repo: str
    created_at: str = Field(alias="createdAt")
    commits: list[CommitRecord] = Field(default_factory=list)
    # Set once by the downstream blog generator after summarizing this file.
    blogged: bool = False

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=2)


class TrackerCheckpoint(BaseModel):
    filename: str
    sha: str
    authored_date: str
    version: str


class CommitWindow(BaseModel):
    """
    Commits fetched since a point in time, newest first.
    `halted_on_error` means the host failed mid-walk and the window is partial.
    """

    commits: list[CommitRecord] = Field(default_factory=list)
    stop_found: bool = False
    halted_on_error: bool = False


# ---------- Job requests ----------


class TrackRequest(BaseModel):
    owner: str
    repo: str
    branch: str = "main"
    since_days: int = Field(SINCE_DAYS, ge=1)
    allow_resync: bool = False
    allow_reset: bool = False
    out_dir: Optional[str] = None


class ReplayRequest(BaseModel):
    owner: str
    repo: str
    branch: str = "main"
    commits_per_file: int = Field(COMMITS_PER_FILE, ge=1)
    force: bool = False
    out_dir: Optional[str] = None
