from typing import Any


def is_cancelled(stop_event: Any) -> bool:
    """
    Polls a cancellation signal. Accepts a threading/multiprocessing Event,
    a zero-argument callable returning a bool, or None (never cancelled).
    """
    if stop_event is None:
        return False
    if hasattr(stop_event, "is_set"):
        return stop_event.is_set()
    return bool(stop_event())
