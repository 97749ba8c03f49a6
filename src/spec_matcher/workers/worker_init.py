# Stop event of the current pool worker, polled by the library search and
# isotope grouping tasks. None outside a pool.
_stop_event_worker = None


def init_worker(stop_event):
    """
    multiprocessing.Pool initializer. Hands the batch's stop event (a
    multiprocessing.Manager().Event() or None) to the worker process so that
    run_identification_task and run_deisotope_task can stop early.
    """
    global _stop_event_worker
    _stop_event_worker = stop_event
