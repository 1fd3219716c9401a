import logging
from typing import Optional

from redis import Redis
from rq import Queue

from common.constants import JOB_TIMEOUT, QUEUE_TRACKER
from common.schemas import ReplayRequest, TrackRequest
from common.settings import load_settings
from infra.factory import ClientFactory
from pipelines.replay_pipeline import run_replay
from pipelines.tracking_pipeline import run_tracking


def get_job_queue(redis_url: Optional[str] = None) -> Queue:
    redis_url = redis_url or load_settings().redis_url
    if not redis_url:
        raise ValueError("REDIS_URL is not set")
    return Queue(name=QUEUE_TRACKER, connection=Redis.from_url(redis_url))


def run_tracking_job(params: dict) -> dict:
    """
    rq entry point. Each job builds its own clients, so repositories
    never share state when workers run them in parallel.
    """
    req = TrackRequest(**params)
    settings = load_settings()
    clients = ClientFactory.create_all(req.owner, settings, req.out_dir)
    try:
        result = run_tracking(req, clients.source, clients.classifier, clients.ledger)
    except Exception:
        logging.error(f"Failed to track {req.owner}/{req.repo}")
        raise
    finally:
        clients.close()
    return result.model_dump(exclude={"history"})


def run_replay_job(params: dict) -> dict:
    req = ReplayRequest(**params)
    settings = load_settings()
    clients = ClientFactory.create_all(req.owner, settings, req.out_dir)
    try:
        result = run_replay(req, clients.source, clients.classifier, clients.ledger)
    finally:
        clients.close()
    return result.model_dump(exclude={"histories"})


def enqueue_tracking(reqs: list[TrackRequest], queue: Queue) -> list[str]:
    """
    One job per repository. Returns the rq job ids.
    """
    job_ids = []
    for req in reqs:
        job = queue.enqueue(run_tracking_job, req.model_dump(), job_timeout=JOB_TIMEOUT)
        logging.info(f"Enqueued tracking of {req.owner}/{req.repo} as job {job.id}")
        job_ids.append(job.id)
    return job_ids


def enqueue_replay(req: ReplayRequest, queue: Queue) -> str:
    # Replays walk every commit; no timeout.
    job = queue.enqueue(run_replay_job, req.model_dump(), job_timeout=-1)
    logging.info(f"Enqueued replay of {req.owner}/{req.repo} as job {job.id}")
    return job.id
