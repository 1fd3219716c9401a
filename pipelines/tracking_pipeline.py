import logging
import time
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from common.constants import SINCE_BUFFER_HOURS
from common.errors import CheckpointMissError
from common.schemas import CommitRecord, RepoHistory, TrackRequest
from core.ports import Classifier, CommitSource, LedgerIO
from core.versions import CLASSIFIER_PROMPT_VERSION
from domain.versioning.assignment import assign_version, chronological
from domain.versioning.decimal_version import (
    format_version,
    parse_version,
    set_to_major_floor,
)
from infra.ledger.stamps import now_utc, parse_iso, stamp_from_datetime


class TrackingState(str, Enum):
    IDLE = "idle"
    LOADING_CHECKPOINT = "loading_checkpoint"
    FETCHING = "fetching"
    CLASSIFYING = "classifying_and_bumping"
    PERSISTED = "persisted"


class TrackingResult(BaseModel):
    repo: str
    base_version: str
    final_version: str
    new_commits: int = 0
    written: Optional[str] = None  # ledger file name, None for a no-op run
    history: Optional[RepoHistory] = None


class TrackingSummary(BaseModel):
    results: dict[str, TrackingResult] = Field(default_factory=dict)
    failures: dict[str, str] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failures


def _t():
    return time.perf_counter()


def compute_since(
    last_commit_date: Optional[str], since_days: int, now: Optional[datetime] = None
) -> datetime:
    now = now or now_utc()
    last = parse_iso(last_commit_date)
    if last is None:
        return now - timedelta(days=since_days)
    # Overlap the window; commits up to the checkpoint are cut by SHA.
    return last - timedelta(hours=SINCE_BUFFER_HOURS)


def take_new_commits(
    commits: list[CommitRecord], last_sha: str, repo: str, allow_resync: bool
) -> list[CommitRecord]:
    """
    Everything after the checkpoint commit in an oldest-first list.
    """
    if not last_sha or not commits:
        return commits

    shas = [c.sha for c in commits]
    if last_sha in shas:
        return commits[shas.index(last_sha) + 1 :]

    if not allow_resync:
        raise CheckpointMissError(repo, last_sha, len(commits))

    logging.warning(
        f"[{repo}] lastSha not found in fetched window. The window may be too small "
        "or history was rewritten. Treating all fetched commits as new (--allow-resync)."
    )
    return commits


def run_tracking(
    req: TrackRequest,
    source: CommitSource,
    classifier: Classifier,
    ledger: LedgerIO,
    now: Optional[datetime] = None,
) -> TrackingResult:
    """
    Incremental run for one repository: only commits since the last checkpoint.
    Writes one new ledger file, or nothing when there is nothing new.
    """
    tag = f"[{req.owner}/{req.repo}]"
    now = now or now_utc()
    t0 = _t()

    def enter(state: TrackingState) -> None:
        logging.debug(f"{tag} state={state.value}")

    enter(TrackingState.LOADING_CHECKPOINT)
    checkpoint = ledger.checkpoint(req.repo, allow_reset=req.allow_reset)
    last_sha = checkpoint.sha if checkpoint else ""
    since = compute_since(
        checkpoint.authored_date if checkpoint else None, req.since_days, now
    )

    tip_major = source.fetch_tip_version_marker(req.repo, req.branch)
    if checkpoint:
        current = parse_version(checkpoint.version)
    else:
        current = set_to_major_floor(tip_major)
    base = format_version(current)

    logging.info(
        f"{tag} lastFile={checkpoint.filename if checkpoint else '(none)'} "
        f"lastSha={last_sha or '(none)'} since={since.isoformat()} base={base} "
        f"prompt={CLASSIFIER_PROMPT_VERSION}"
    )

    enter(TrackingState.FETCHING)
    window = source.list_commits_since(req.repo, req.branch, since, last_sha)
    fetched = chronological(window.commits)
    logging.info(f"{tag} fetched={len(fetched)} ({_t() - t0:.3f}s)")

    if window.halted_on_error and not window.stop_found:
        # Without the checkpoint commit the partial window cannot be cut safely.
        logging.warning(
            f"{tag} Commit list fetch failed after {len(fetched)} commit(s). "
            "Nothing written; the next run resumes from the same checkpoint."
        )
        enter(TrackingState.IDLE)
        return TrackingResult(repo=req.repo, base_version=base, final_version=base)

    new_commits = take_new_commits(fetched, last_sha, req.repo, req.allow_resync)

    if not new_commits:
        logging.info(f"{tag} No new commits detected.")
        enter(TrackingState.IDLE)
        return TrackingResult(repo=req.repo, base_version=base, final_version=base)

    enter(TrackingState.CLASSIFYING)
    out_commits: list[CommitRecord] = []
    for commit in new_commits:
        marker = source.fetch_version_marker(req.repo, commit.sha, tip_major)
        diff = source.fetch_diff(req.repo, commit.sha)

        assignment = assign_version(current, commit.message, diff, marker, classifier)
        logging.info(
            f"{tag} {commit.sha[:7]} {format_version(current)} -> {assignment.stored} "
            f"({assignment.reason})"
        )
        current = assignment.version
        out_commits.append(commit.with_diff(diff).with_version(assignment.stored))

    history = RepoHistory(
        repo=req.repo, created_at=now.isoformat(), commits=out_commits
    )
    written = ledger.write(req.repo, history, stamp_from_datetime(now))
    enter(TrackingState.PERSISTED)

    logging.info(f"{tag} Tracking done in {_t() - t0:.3f}s")
    enter(TrackingState.IDLE)
    return TrackingResult(
        repo=req.repo,
        base_version=base,
        final_version=out_commits[-1].assigned_version,
        new_commits=len(out_commits),
        written=written,
        history=history,
    )


def run_tracking_for_repos(
    reqs: list[TrackRequest],
    source: CommitSource,
    classifier: Classifier,
    ledger: LedgerIO,
) -> TrackingSummary:
    """
    Tracks repositories one after another.
    A failing repository is logged and reported; the others still run.
    """
    summary = TrackingSummary()
    for req in reqs:
        try:
            summary.results[req.repo] = run_tracking(req, source, classifier, ledger)
        except Exception as e:
            logging.exception(f"[{req.owner}/{req.repo}] Tracking failed")
            summary.failures[req.repo] = str(e)
    return summary
