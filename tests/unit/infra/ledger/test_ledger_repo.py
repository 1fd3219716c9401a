import json

import pytest

from common.errors import LedgerCorruptError
from common.schemas import CommitRecord, RepoHistory
from infra.ledger.ledger_repo import ChunkWriter, FileLedgerIO
from infra.ledger.stamps import next_free_stamp, parse_iso, stamp_from_iso


def _commit(sha: str, version: str, date: str = "2024-05-01T10:00:00Z") -> CommitRecord:
    return CommitRecord(sha=sha, authored_date=date, message=f"msg {sha}", assigned_version=version)


def _history(*commits: CommitRecord) -> RepoHistory:
    return RepoHistory(repo="widgets", created_at="2024-05-01T12:00:00+00:00", commits=list(commits))


def test_empty_directory_has_no_checkpoint(tmp_path):
    ledger = FileLedgerIO(tmp_path / "missing", "acme")
    assert ledger.list_files("widgets") == []
    assert ledger.checkpoint("widgets") is None


def test_write_uses_on_disk_keys(tmp_path):
    ledger = FileLedgerIO(tmp_path, "acme")

    name = ledger.write("widgets", _history(_commit("a1", "1.1")), "20240501-120000")

    assert name == "20240501-120000-GithubTracker-acme-widgets.json"
    data = json.loads((tmp_path / name).read_text(encoding="utf-8"))
    assert set(data) == {"repo", "createdAt", "commits", "blogged"}
    assert data["blogged"] is False
    assert data["commits"][0] == {
        "sha": "a1",
        "author": "",
        "date": "2024-05-01T10:00:00Z",
        "message": "msg a1",
        "url": "",
        "diff": "",
        "version": "1.1",
    }


def test_checkpoint_is_last_commit_of_latest_file(tmp_path):
    ledger = FileLedgerIO(tmp_path, "acme")
    ledger.write("widgets", _history(_commit("a1", "1.1")), "20240501-120000")
    ledger.write(
        "widgets",
        _history(_commit("b1", "1.2", "2024-05-02T09:00:00Z"), _commit("b2", "1.3", "2024-05-02T10:00:00Z")),
        "20240502-120000",
    )
    # other repos and stray files are ignored
    ledger.write("gadgets", _history(_commit("z9", "9.9")), "20240601-000000")
    (tmp_path / "20240701-000000-GithubTracker-acme-widgets.json.bak").write_text("{}")

    checkpoint = ledger.checkpoint("widgets")

    assert checkpoint.filename == "20240502-120000-GithubTracker-acme-widgets.json"
    assert checkpoint.sha == "b2"
    assert checkpoint.version == "1.3"
    assert checkpoint.authored_date == "2024-05-02T10:00:00Z"


def test_corrupt_latest_file_fails_loudly(tmp_path):
    ledger = FileLedgerIO(tmp_path, "acme")
    ledger.write("widgets", _history(_commit("a1", "1.1")), "20240501-120000")
    (tmp_path / "20240502-120000-GithubTracker-acme-widgets.json").write_text("{not json")

    with pytest.raises(LedgerCorruptError):
        ledger.checkpoint("widgets")

    assert ledger.checkpoint("widgets", allow_reset=True) is None


def test_write_never_sorts_before_existing_files(tmp_path):
    ledger = FileLedgerIO(tmp_path, "acme")
    first = ledger.write("widgets", _history(_commit("a1", "1.1")), "20240501-120000")

    same = ledger.write("widgets", _history(_commit("a2", "1.2")), "20240501-120000")
    older = ledger.write("widgets", _history(_commit("a3", "1.3")), "20230101-000000")

    assert same == "20240501-120001-GithubTracker-acme-widgets.json"
    assert older == "20240501-120002-GithubTracker-acme-widgets.json"
    assert ledger.list_files("widgets") == [first, same, older]
    assert ledger.checkpoint("widgets").sha == "a3"


def test_mark_blogged_once(tmp_path):
    ledger = FileLedgerIO(tmp_path, "acme")
    name = ledger.write("widgets", _history(_commit("a1", "1.1")), "20240501-120000")

    assert ledger.mark_blogged("widgets", name) is True
    assert ledger.mark_blogged("widgets", name) is False
    assert ledger.read_all("widgets")[0].blogged is True

    with pytest.raises(ValueError):
        ledger.mark_blogged("widgets", "../elsewhere.json")


def test_supersede_moves_files_aside(tmp_path):
    ledger = FileLedgerIO(tmp_path, "acme")
    name = ledger.write("widgets", _history(_commit("a1", "1.1")), "20240501-120000")

    moved = ledger.supersede("widgets")

    assert moved == [name]
    assert ledger.list_files("widgets") == []
    assert len(list((tmp_path / "superseded").glob(f"*/{name}"))) == 1
    assert ledger.supersede("widgets") == []


def test_chunk_writer_flushes_every_n(tmp_path):
    ledger = FileLedgerIO(tmp_path, "acme")
    writer = ChunkWriter(ledger, "widgets", size=2)

    for i in range(5):
        writer.add(_commit(f"c{i}", f"0.{i}", f"2024-05-0{i + 1}T08:00:00Z"))
    assert len(writer.filenames) == 2
    assert len(writer.pending) == 1

    writer.flush()

    assert [len(h.commits) for h in writer.histories] == [2, 2, 1]
    assert [name[:15] for name in writer.filenames] == [
        "20240502-080000",
        "20240504-080000",
        "20240505-080000",
    ]
    assert writer.histories[0].created_at == "2024-05-02T08:00:00Z"
    assert writer.flush() is None


def test_chunk_writer_keeps_stamps_increasing(tmp_path):
    ledger = FileLedgerIO(tmp_path, "acme")
    writer = ChunkWriter(ledger, "widgets", size=1)

    writer.add(_commit("c1", "0.1", "2024-05-01T08:00:00Z"))
    writer.add(_commit("c2", "0.2", "2024-05-01T08:00:00Z"))
    writer.add(_commit("c3", "0.3", "2024-04-01T08:00:00Z"))

    assert [name[:15] for name in writer.filenames] == [
        "20240501-080000",
        "20240501-080001",
        "20240501-080002",
    ]


def test_stamps():
    assert stamp_from_iso("2024-05-01T10:00:00Z") == "20240501-100000"
    assert stamp_from_iso("2024-05-01T12:00:00+02:00") == "20240501-100000"
    assert parse_iso("yesterday") is None
    assert parse_iso("2024-05-01T10:00:00").tzinfo is not None
    assert next_free_stamp("20240501-100000", None) == "20240501-100000"
    assert next_free_stamp("20240501-100000", "20240501-235959") == "20240502-000000"
