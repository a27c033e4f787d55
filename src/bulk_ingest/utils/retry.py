import time
from typing import Any, Callable


def call_with_retry(func: Callable[[Any], Any], task: Any, max_attempts: int = 1, backoff: float = 0.2,
                    sleep: Callable[[float], None] = time.sleep) -> Any:
    """
    Call func(task) with retry/backoff. Increments task.attempts on each try.

    - func: callable that accepts the task and returns a result (or raises)
    - task: object with an integer ``attempts`` attribute
    - Raises the last exception once attempts are exhausted.
    """
    max_attempts = max(1, int(max_attempts))
    last_exc = None
    for attempt in range(max_attempts):
        task.attempts = attempt + 1
        try:
            return func(task)
        except Exception as e:
            last_exc = e
            if attempt + 1 < max_attempts:
                # exponential backoff between attempts, none after the last one
                sleep(backoff * (2 ** attempt))
    raise last_exc
