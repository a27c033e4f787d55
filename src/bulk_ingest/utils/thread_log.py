import logging
import threading

logger = logging.getLogger("bulk_ingest.worker")


def log_start(stage_name, task):
    thread_name = threading.current_thread().name
    logger.debug("[%s][%s] START %s", thread_name, stage_name, getattr(task, "content_id", task))


def log_end(stage_name, task, status="done", elapsed=None):
    thread_name = threading.current_thread().name
    if elapsed is None:
        logger.debug("[%s][%s] %s %s", thread_name, stage_name, status.upper(), getattr(task, "content_id", task))
    else:
        logger.debug("[%s][%s] %s %s in %.4fs", thread_name, stage_name, status.upper(),
                     getattr(task, "content_id", task), elapsed)
