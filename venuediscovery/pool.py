"""
Bounded-parallelism batch executor.

Used for fanning out previews across venues and detail-page fetches within
one venue. A fixed number of worker threads pull the next index from a shared
cursor until the input is exhausted; each result is written to the slot of
its input index, so output order always matches input order.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional, Sequence, TypeVar

T = TypeVar("T")
R = TypeVar("R")

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 5


def run_bounded(
    items: Sequence[T],
    fn: Callable[[T], R],
    limit: int = DEFAULT_LIMIT,
    on_error: Optional[Callable[[T, Exception], None]] = None,
    on_complete: Optional[Callable[[int, T], None]] = None,
    cancel: Optional[threading.Event] = None,
) -> list[Optional[R]]:
    """
    Apply `fn` to every item with at most `limit` calls in flight.

    A failing item leaves None in its slot and is passed to `on_error`; it
    never stops the other workers. `on_complete(done, item)` runs after each
    item, success or failure, with the number of items finished so far.
    Setting `cancel` stops workers from starting new items.
    """
    if limit < 1:
        raise ValueError("limit must be >= 1")

    total = len(items)
    results: list[Optional[R]] = [None] * total
    if total == 0:
        return results

    lock = threading.Lock()
    cursor = 0
    done = 0

    def worker() -> None:
        nonlocal cursor, done
        while True:
            if cancel is not None and cancel.is_set():
                return
            with lock:
                index = cursor
                cursor += 1
            if index >= total:
                return

            item = items[index]
            try:
                results[index] = fn(item)
            except Exception as exc:
                if on_error is not None:
                    try:
                        on_error(item, exc)
                    except Exception:
                        logger.exception("Error callback failed for %r", item)
                else:
                    logger.warning("Item %r failed: %s", item, exc)

            with lock:
                done += 1
                finished = done
            if on_complete is not None:
                try:
                    on_complete(finished, item)
                except Exception:
                    logger.exception("Completion callback failed")

    workers = min(limit, total)
    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = [pool.submit(worker) for _ in range(workers)]
        for future in futures:
            future.result()

    return results
