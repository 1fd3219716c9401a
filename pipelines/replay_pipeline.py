import logging
import time

from pydantic import BaseModel, Field

from common.errors import LedgerConflictError
from common.schemas import RepoHistory, ReplayRequest
from core.ports import Classifier, CommitSource, LedgerIO
from core.versions import CLASSIFIER_PROMPT_VERSION
from domain.versioning.assignment import assign_version, chronological
from domain.versioning.decimal_version import ZERO, format_version
from infra.ledger.ledger_repo import ChunkWriter

LOG_MESSAGE_WIDTH = 120


class ReplayResult(BaseModel):
    repo: str
    commits: int = 0
    final_version: str = format_version(ZERO)
    files: list[str] = Field(default_factory=list)
    superseded: list[str] = Field(default_factory=list)
    histories: list[RepoHistory] = Field(default_factory=list)


def _t():
    return time.perf_counter()


def _one_line(message: str) -> str:
    line = " ".join(message.split())
    if len(line) <= LOG_MESSAGE_WIDTH:
        return line
    return line[: LOG_MESSAGE_WIDTH - 3] + "..."


def run_replay(
    req: ReplayRequest,
    source: CommitSource,
    classifier: Classifier,
    ledger: LedgerIO,
) -> ReplayResult:
    """
    Rebuilds the whole ledger of a repository from its first commit, from 0.0.
    The marker is read at every commit's own snapshot, so syncs land where
    they happened. Chunks are flushed as they fill, so partial work survives.
    """
    tag = f"[{req.owner}/{req.repo}]"
    t0 = _t()

    existing = ledger.list_files(req.repo)
    if existing and not req.force:
        raise LedgerConflictError(
            f"{tag} {len(existing)} ledger file(s) already exist. "
            "Re-run with --force to move them aside and replay."
        )

    logging.info(
        f"{tag} Rebuild starting (branch={req.branch}, prompt={CLASSIFIER_PROMPT_VERSION})"
    )
    logging.info(f"{tag} Step 1/3: Fetching full commit list...")
    newest_first = source.list_all_commits(req.repo, req.branch)
    logging.info(f"{tag} Step 1/3: Received {len(newest_first)} commit(s).")

    if not newest_first:
        logging.info(f"{tag} No commits found. Nothing to rebuild.")
        return ReplayResult(repo=req.repo)

    superseded = ledger.supersede(req.repo) if existing else []

    logging.info(f"{tag} Step 2/3: Reversing list so we replay from oldest to newest...")
    items = chronological(newest_first)

    writer = ChunkWriter(ledger, req.repo, req.commits_per_file)
    current = ZERO
    last_seen_major = 0
    total = len(items)
    progress_every = max(1, total // 200)

    logging.info(f"{tag} Step 3/3: Replaying {total} commit(s) with versioning...")
    for i, commit in enumerate(items):
        idx = i + 1
        pct = f"{idx / total * 100:.1f}"
        if i % progress_every == 0:
            logging.info(
                f"{tag} Progress: {idx}/{total} ({pct}%) currentVersion={format_version(current)}"
            )
        logging.debug(
            f"{tag} Checking commit {idx}/{total} sha={commit.sha} "
            f"date={commit.authored_date or '(no-date)'} msg=\"{_one_line(commit.message)}\""
        )

        diff = source.fetch_diff(req.repo, commit.sha)
        marker = source.fetch_version_marker(req.repo, commit.sha, last_seen_major)
        if marker > 0 and marker != last_seen_major:
            logging.info(f"{tag} Marker major changed: {last_seen_major} -> {marker}")
            last_seen_major = marker

        assignment = assign_version(current, commit.message, diff, marker, classifier)
        logging.debug(
            f"{tag} {format_version(current)} -> {assignment.stored} ({assignment.reason})"
        )
        current = assignment.version
        writer.add(commit.with_diff(diff).with_version(assignment.stored))

    if writer.pending:
        logging.info(f"{tag} Final flush ({len(writer.pending)} remaining commit(s))...")
        writer.flush()

    final_version = writer.histories[-1].commits[-1].assigned_version
    logging.info(
        f"{tag} Rebuild complete. files={len(writer.filenames)} commits={total} "
        f"finalVersion={final_version} ({_t() - t0:.3f}s)"
    )
    return ReplayResult(
        repo=req.repo,
        commits=total,
        final_version=final_version,
        files=writer.filenames,
        superseded=superseded,
        histories=writer.histories,
    )
