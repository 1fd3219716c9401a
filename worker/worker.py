"""
RQ worker for tracking and replay jobs.

SimpleWorker runs jobs in-process, so it also works where forking is unavailable.
Run with: python -m worker.worker
"""

import logging

from rq.worker import SimpleWorker

from common.logging import setup_logging
from pipelines.jobs_queue import get_job_queue

if __name__ == "__main__":
    setup_logging()
    job_queue = get_job_queue()
    worker = SimpleWorker([job_queue], connection=job_queue.connection)
    logging.info(f"Starting RQ worker for queue: {job_queue.name}")
    worker.work()
