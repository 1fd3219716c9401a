from click.testing import CliRunner

import main
from domain.classifier.tier_classifier import TierClassifier
from infra.factory import ClientFactory, TrackerClients
from infra.ledger.ledger_repo import FileLedgerIO
from tests.unit.pipelines.fakes import FakeCommitSource, make_commit


def _patch_clients(monkeypatch, tmp_path, source):
    def create_all(owner, settings, out_dir=None):
        return TrackerClients(
            source=source, classifier=TierClassifier(), ledger=FileLedgerIO(out_dir, owner)
        )

    monkeypatch.setattr(ClientFactory, "create_all", staticmethod(create_all))


def test_track_then_show(tmp_path, monkeypatch):
    source = FakeCommitSource(
        {"widgets": [make_commit("a1", "!fix: one"), make_commit("a2", "!feat: two")]}
    )
    _patch_clients(monkeypatch, tmp_path, source)
    runner = CliRunner()

    result = runner.invoke(
        main.cli, ["track", "--owner", "acme", "--repo", "widgets", "--out-dir", str(tmp_path)]
    )

    assert result.exit_code == 0, result.output
    assert "widgets: 2 new commit(s), 0.0 -> 0.0101" in result.output
    assert source.closed

    shown = runner.invoke(
        main.cli, ["show", "--owner", "acme", "--repo", "widgets", "--out-dir", str(tmp_path)]
    )
    assert shown.exit_code == 0, shown.output
    assert "widgets: 0.0101 at a2" in shown.output

    listed = runner.invoke(
        main.cli,
        ["show", "--owner", "acme", "--repo", "widgets", "--out-dir", str(tmp_path), "--all"],
    )
    assert "0.0001\ta1" in listed.output
    assert "0.0101\ta2" in listed.output


def test_track_exits_non_zero_when_a_repo_fails(tmp_path, monkeypatch):
    source = FakeCommitSource({"gadgets": [make_commit("b1", "!fix")]})
    source.broken = {"widgets"}
    _patch_clients(monkeypatch, tmp_path, source)

    result = CliRunner().invoke(
        main.cli,
        [
            "track", "--owner", "acme",
            "--repo", "widgets", "--repo", "gadgets",
            "--out-dir", str(tmp_path),
        ],
    )

    assert result.exit_code == 1
    assert "gadgets: 1 new commit(s)" in result.output


def test_replay_conflict_is_reported(tmp_path, monkeypatch):
    source = FakeCommitSource({"widgets": [make_commit("a1", "!refactor")]})
    _patch_clients(monkeypatch, tmp_path, source)
    runner = CliRunner()
    args = ["replay", "--owner", "acme", "--repo", "widgets", "--out-dir", str(tmp_path)]

    first = runner.invoke(main.cli, args)
    assert first.exit_code == 0, first.output
    assert "final version 0.1" in first.output

    second = runner.invoke(main.cli, args)
    assert second.exit_code != 0
    assert "--force" in second.output

    forced = runner.invoke(main.cli, args + ["--force"])
    assert forced.exit_code == 0, forced.output


def test_mark_blogged(tmp_path, monkeypatch):
    source = FakeCommitSource({"widgets": [make_commit("a1", "!fix")]})
    _patch_clients(monkeypatch, tmp_path, source)
    runner = CliRunner()
    runner.invoke(main.cli, ["track", "--owner", "acme", "--repo", "widgets", "--out-dir", str(tmp_path)])
    filename = FileLedgerIO(tmp_path, "acme").list_files("widgets")[0]
    args = ["mark-blogged", "--owner", "acme", "--repo", "widgets", "--out-dir", str(tmp_path), filename]

    assert runner.invoke(main.cli, args).output.strip() == "marked"
    assert runner.invoke(main.cli, args).output.strip() == "already marked"


def test_show_without_ledger(tmp_path):
    result = CliRunner().invoke(
        main.cli, ["show", "--owner", "acme", "--repo", "widgets", "--out-dir", str(tmp_path)]
    )
    assert result.exit_code == 0
    assert "no checkpoint" in result.output
