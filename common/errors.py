class TrackerError(Exception):
    """Base class for errors raised by the commit tracker."""


class LedgerCorruptError(TrackerError):
    """
    The latest ledger file of a repository could not be decoded.
    Starting over would renumber the history, so it needs --allow-reset.
    """

    def __init__(self, path: str, reason: str):
        super().__init__(f"Ledger file {path} is unreadable: {reason}")
        self.path = path


class LedgerConflictError(TrackerError):
    """Replay was asked to write into a directory that already holds a ledger."""


class CheckpointMissError(TrackerError):
    """
    The checkpoint SHA was not found in the fetched window.
    Usually means history was rewritten upstream, or the window was too small.
    """

    def __init__(self, repo: str, sha: str, fetched: int):
        super().__init__(
            f"Checkpoint {sha} for {repo} not found among {fetched} fetched commit(s). "
            "Re-run with --allow-resync to treat the whole window as new."
        )
        self.repo = repo
        self.sha = sha


class ClassifierError(TrackerError):
    pass
