"""
Runs many independent identifications / deisotoping jobs in parallel.

Progress is reported through a queue as (kind, value) messages, the same
messages the single-job functions send to their progress callbacks:
'log', 'progress_set', 'error' and a final 'done'.
"""
import logging
import multiprocessing
import os
from typing import Sequence

from ..config import IsotopeGrouperParams, SimilarityParams
from ..core.types import LibraryEntry, PeakListRow, Spectrum
from ..workers.tasks import run_deisotope_task, run_identification_task
from ..workers.worker_init import init_worker

logger = logging.getLogger(__name__)


def _run_pool(task, jobs: list, stop_event, task_queue, processes: int | None, label: str) -> list:
    results = []
    task_queue.put(('progress_set', 0))
    try:
        with multiprocessing.Pool(processes=processes or os.cpu_count(),
                                  initializer=init_worker, initargs=(stop_event,)) as pool:
            for i, result in enumerate(pool.imap_unordered(task, jobs)):
                if stop_event is not None and stop_event.is_set():
                    task_queue.put(('log', f"{label} cancelled.\n"))
                    break
                if result:
                    success, payload = result
                    if success:
                        results.append(payload)
                    else:
                        task_queue.put(('log', payload))
                task_queue.put(('progress_set', i + 1))

        if stop_event is None or not stop_event.is_set():
            task_queue.put(('done', f"{label} complete. {len(results)} of {len(jobs)} jobs succeeded."))
        else:
            task_queue.put(('done', f"{label} stopped."))
    except Exception as e:
        logger.exception("%s failed", label)
        task_queue.put(('error', f"A multiprocessing error occurred: {e}"))
        task_queue.put(('done', None))
    return results


def run_batch_identification(
    queries: Sequence[tuple[str, Spectrum]],
    library: Sequence[LibraryEntry],
    params: SimilarityParams,
    task_queue,
    stop_event=None,
    processes: int | None = None,
) -> list:
    """
    Searches every (name, peaks) query against the library.

    The stop event must be shareable with worker processes (for example a
    multiprocessing.Manager().Event()).

    Returns:
        A list of (query_name, hits) tuples for the queries that completed,
        in completion order.
    """
    params.validate()
    jobs = [(name, tuple(peaks), list(library), params) for name, peaks in queries]
    return _run_pool(run_identification_task, jobs, stop_event, task_queue, processes, "Library search")


def run_batch_deisotoping(
    peak_lists: Sequence[tuple[str, Sequence[PeakListRow]]],
    params: IsotopeGrouperParams,
    task_queue,
    stop_event=None,
    processes: int | None = None,
) -> list:
    """
    Deisotopes every (name, rows) peak list.

    Returns:
        The DeisotopedPeakLists of the jobs that completed, in completion order.
    """
    params.validate()
    jobs = [(name, list(rows), params) for name, rows in peak_lists]
    return _run_pool(run_deisotope_task, jobs, stop_event, task_queue, processes, "Isotope grouping")
