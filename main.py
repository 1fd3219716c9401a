"""CLI entrypoint for the commit tracker."""

import logging
from typing import Optional

import click

from common.errors import TrackerError
from common.logging import setup_logging
from common.schemas import ReplayRequest, TrackRequest
from common.settings import load_settings
from core.versions import APP_VERSION
from infra.factory import ClientFactory
from pipelines.jobs_queue import enqueue_replay, enqueue_tracking, get_job_queue
from pipelines.replay_pipeline import run_replay
from pipelines.tracking_pipeline import run_tracking_for_repos

owner_option = click.option("--owner", required=True, help="Repository owner on GitHub")
branch_option = click.option("--branch", default="main", show_default=True)
out_dir_option = click.option(
    "--out-dir",
    default=None,
    help="Ledger directory (defaults to LEDGER_DIR or ./commitsTracker)",
)


@click.group()
@click.version_option(APP_VERSION, prog_name="commit-tracker")
@click.option("--verbose", is_flag=True, help="Log every commit decision")
def cli(verbose: bool) -> None:
    """commit-tracker - decimal versions for every commit of a repository."""
    setup_logging(logging.DEBUG if verbose else logging.INFO)


@cli.command()
@owner_option
@click.option("--repo", "repos", multiple=True, required=True, help="Repeat for several repos")
@branch_option
@click.option("--since-days", default=7, show_default=True, type=click.IntRange(min=1))
@out_dir_option
@click.option(
    "--allow-resync",
    is_flag=True,
    help="Treat the whole fetched window as new when the checkpoint commit is missing",
)
@click.option(
    "--allow-reset",
    is_flag=True,
    help="Start over when the latest ledger file is unreadable",
)
def track(
    owner: str,
    repos: tuple[str, ...],
    branch: str,
    since_days: int,
    out_dir: Optional[str],
    allow_resync: bool,
    allow_reset: bool,
) -> None:
    """Version the commits pushed since the last run."""
    settings = load_settings()
    clients = ClientFactory.create_all(owner, settings, out_dir)
    reqs = [
        TrackRequest(
            owner=owner,
            repo=repo,
            branch=branch,
            since_days=since_days,
            allow_resync=allow_resync,
            allow_reset=allow_reset,
            out_dir=out_dir,
        )
        for repo in repos
    ]
    try:
        summary = run_tracking_for_repos(
            reqs, clients.source, clients.classifier, clients.ledger
        )
    finally:
        clients.close()

    for repo, result in summary.results.items():
        if result.written:
            click.echo(
                f"{repo}: {result.new_commits} new commit(s), "
                f"{result.base_version} -> {result.final_version} ({result.written})"
            )
        else:
            click.echo(f"{repo}: no new commits ({result.base_version})")
    for repo, error in summary.failures.items():
        click.echo(f"{repo}: FAILED - {error}", err=True)

    if not summary.ok:
        raise SystemExit(1)


@cli.command()
@owner_option
@click.option("--repo", required=True)
@branch_option
@click.option("--chunk-size", default=250, show_default=True, type=click.IntRange(min=1))
@out_dir_option
@click.option("--force", is_flag=True, help="Move an existing ledger aside first")
def replay(
    owner: str,
    repo: str,
    branch: str,
    chunk_size: int,
    out_dir: Optional[str],
    force: bool,
) -> None:
    """Rebuild the whole ledger from the first commit."""
    settings = load_settings()
    clients = ClientFactory.create_all(owner, settings, out_dir)
    req = ReplayRequest(
        owner=owner,
        repo=repo,
        branch=branch,
        commits_per_file=chunk_size,
        force=force,
        out_dir=out_dir,
    )
    try:
        result = run_replay(req, clients.source, clients.classifier, clients.ledger)
    except TrackerError as e:
        raise click.ClickException(str(e))
    finally:
        clients.close()

    click.echo(
        f"{repo}: replayed {result.commits} commit(s) into {len(result.files)} file(s), "
        f"final version {result.final_version}"
    )


@cli.command()
@owner_option
@click.option("--repo", required=True)
@out_dir_option
@click.option("--all", "show_all", is_flag=True, help="List every ledger entry")
def show(owner: str, repo: str, out_dir: Optional[str], show_all: bool) -> None:
    """Print the checkpoint (or the full ledger) of a repository."""
    ledger = ClientFactory.create_ledger_io(owner, load_settings(), out_dir)
    try:
        if show_all:
            for history in ledger.read_all(repo):
                for commit in history.commits:
                    first_line = commit.message.splitlines()[0] if commit.message else ""
                    click.echo(
                        f"{commit.assigned_version}\t{commit.sha[:7]}\t"
                        f"{commit.authored_date}\t{first_line}"
                    )
            return

        checkpoint = ledger.checkpoint(repo)
    except TrackerError as e:
        raise click.ClickException(str(e))

    if checkpoint is None:
        click.echo(f"{repo}: no checkpoint")
        return
    click.echo(
        f"{repo}: {checkpoint.version} at {checkpoint.sha} "
        f"({checkpoint.authored_date}) in {checkpoint.filename}"
    )


@cli.command("mark-blogged")
@owner_option
@click.option("--repo", required=True)
@out_dir_option
@click.argument("filename")
def mark_blogged(owner: str, repo: str, out_dir: Optional[str], filename: str) -> None:
    """Flag a ledger file as summarized by the blog generator."""
    ledger = ClientFactory.create_ledger_io(owner, load_settings(), out_dir)
    try:
        changed = ledger.mark_blogged(repo, filename)
    except (TrackerError, ValueError) as e:
        raise click.ClickException(str(e))
    click.echo("marked" if changed else "already marked")


@cli.command()
@owner_option
@click.option("--repo", "repos", multiple=True, required=True)
@branch_option
@click.option("--since-days", default=7, show_default=True, type=click.IntRange(min=1))
@out_dir_option
@click.option("--replay", "as_replay", is_flag=True, help="Enqueue replays instead")
@click.option("--force", is_flag=True, help="With --replay, move existing ledgers aside")
def enqueue(
    owner: str,
    repos: tuple[str, ...],
    branch: str,
    since_days: int,
    out_dir: Optional[str],
    as_replay: bool,
    force: bool,
) -> None:
    """Queue one job per repository for the rq worker."""
    queue = get_job_queue()
    if as_replay:
        for repo in repos:
            req = ReplayRequest(
                owner=owner, repo=repo, branch=branch, force=force, out_dir=out_dir
            )
            click.echo(enqueue_replay(req, queue))
        return

    reqs = [
        TrackRequest(
            owner=owner, repo=repo, branch=branch, since_days=since_days, out_dir=out_dir
        )
        for repo in repos
    ]
    for job_id in enqueue_tracking(reqs, queue):
        click.echo(job_id)


if __name__ == "__main__":
    cli()
