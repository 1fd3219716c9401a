import logging
import re
import shutil
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from common.constants import LEDGER_EXT, LEDGER_TAG, SUPERSEDED_DIR
from common.errors import LedgerCorruptError
from common.schemas import CommitRecord, RepoHistory, TrackerCheckpoint
from core.ports import LedgerIO
from infra.ledger.stamps import (
    next_free_stamp,
    now_utc,
    stamp_from_datetime,
    stamp_from_iso,
    stamp_of,
)


class FileLedgerIO:
    """
    Ledger of one owner's repositories as timestamped JSON files.
    File names sort chronologically; the last one holds the checkpoint.
    Files are never rewritten, except for the one-time blogged flag.
    """

    tag = LEDGER_TAG

    def __init__(self, out_dir: str | Path, owner: str):
        self.out_dir = Path(out_dir).resolve()
        self.owner = owner

    def _pattern(self, repo: str) -> re.Pattern:
        return re.compile(
            rf"^\d{{8}}-\d{{6}}-{re.escape(self.tag)}-"
            rf"{re.escape(self.owner)}-{re.escape(repo)}{re.escape(LEDGER_EXT)}$"
        )

    def filename(self, repo: str, stamp: str) -> str:
        return f"{stamp}-{self.tag}-{self.owner}-{repo}{LEDGER_EXT}"

    def _load(self, path: Path) -> RepoHistory:
        try:
            return RepoHistory.model_validate_json(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, ValidationError) as e:
            raise LedgerCorruptError(str(path), str(e)) from e

    def list_files(self, repo: str) -> list[str]:
        """
        Return ledger file names of the repo, oldest first.
        """
        if not self.out_dir.is_dir():
            return []
        pattern = self._pattern(repo)
        return sorted(
            p.name for p in self.out_dir.iterdir() if p.is_file() and pattern.match(p.name)
        )

    def find_latest(
        self, repo: str, allow_reset: bool = False
    ) -> Optional[tuple[str, RepoHistory]]:
        files = self.list_files(repo)
        if not files:
            return None

        latest = files[-1]
        try:
            return latest, self._load(self.out_dir / latest)
        except LedgerCorruptError as e:
            if not allow_reset:
                raise
            logging.warning(f"{e}. Treating as no checkpoint (--allow-reset).")
            return None

    def checkpoint(
        self, repo: str, allow_reset: bool = False
    ) -> Optional[TrackerCheckpoint]:
        latest = self.find_latest(repo, allow_reset)
        if latest is None:
            return None

        filename, history = latest
        if not history.commits:
            return None

        last = history.commits[-1]
        return TrackerCheckpoint(
            filename=filename,
            sha=last.sha,
            authored_date=last.authored_date,
            version=last.assigned_version or "",
        )

    def read_all(self, repo: str) -> list[RepoHistory]:
        return [self._load(self.out_dir / name) for name in self.list_files(repo)]

    def write(self, repo: str, history: RepoHistory, stamp: Optional[str] = None) -> str:
        """
        Write a new ledger file and return its name.
        The stamp is moved forward until it sorts after every existing file.
        """
        self.out_dir.mkdir(parents=True, exist_ok=True)

        files = self.list_files(repo)
        floor = stamp_of(files[-1]) if files else None
        stamp = next_free_stamp(stamp or stamp_from_datetime(now_utc()), floor)

        name = self.filename(repo, stamp)
        with open(self.out_dir / name, "x", encoding="utf-8") as f:
            f.write(history.to_json())

        logging.info(
            f"[{self.owner}/{repo}] Wrote {len(history.commits)} commits to {name}"
        )
        return name

    def mark_blogged(self, repo: str, filename: str) -> bool:
        """
        Set the one-time blogged flag. Returns False when it was already set.
        """
        if not self._pattern(repo).match(filename):
            raise ValueError(f"{filename} is not a ledger file of {self.owner}/{repo}")

        path = self.out_dir / filename
        history = self._load(path)
        if history.blogged:
            return False

        history.blogged = True
        path.write_text(history.to_json(), encoding="utf-8")
        return True

    def supersede(self, repo: str) -> list[str]:
        """
        Move every ledger file of the repo aside, under superseded/<stamp>/.
        """
        files = self.list_files(repo)
        if not files:
            return []

        target = self.out_dir / SUPERSEDED_DIR / stamp_from_datetime(now_utc())
        target.mkdir(parents=True, exist_ok=True)
        for name in files:
            shutil.move(str(self.out_dir / name), str(target / name))

        logging.info(f"[{self.owner}/{repo}] Moved {len(files)} ledger file(s) to {target}")
        return files


class ChunkWriter:
    """
    Buffers replayed commits and flushes a ledger file every `size` commits.
    Each flush is stamped from its last commit date, kept strictly increasing.
    """

    def __init__(self, ledger: LedgerIO, repo: str, size: int):
        if size < 1:
            raise ValueError("Chunk size must be at least 1")
        self.ledger = ledger
        self.repo = repo
        self.size = size
        self.pending: list[CommitRecord] = []
        self.last_stamp: Optional[str] = None
        self.histories: list[RepoHistory] = []
        self.filenames: list[str] = []

    def add(self, commit: CommitRecord) -> None:
        self.pending.append(commit)
        if len(self.pending) >= self.size:
            logging.info(
                f"[{self.repo}] Chunk reached {self.size} commit(s). Flushing to disk..."
            )
            self.flush()

    def flush(self) -> Optional[str]:
        if not self.pending:
            return None

        created_at = self.pending[-1].authored_date or now_utc().isoformat()
        stamp = next_free_stamp(stamp_from_iso(created_at), self.last_stamp)

        history = RepoHistory(repo=self.repo, created_at=created_at, commits=self.pending)
        name = self.ledger.write(self.repo, history, stamp)

        self.last_stamp = stamp_of(name)
        self.histories.append(history)
        self.filenames.append(name)
        self.pending = []
        return name
