"""
Top-level task functions for running many identifications or deisotoping
jobs in a multiprocessing.Pool. Each task is one independent invocation of
the core and reports back a (success, payload_or_message) tuple.
"""
import logging
from typing import Any

from ..logic.identification import identify_spectrum
from ..logic.deisotoping import deisotope_peak_list
from ..core.exceptions import SpecMatcherError
from . import worker_init

logger = logging.getLogger(__name__)


def _stop_requested() -> bool:
    stop_event = worker_init._stop_event_worker
    return stop_event is not None and stop_event.is_set()


def run_identification_task(args: tuple[Any, ...]) -> tuple[bool, Any] | None:
    """
    Searches one query spectrum against a spectral library.

    Args:
        args: A tuple of (query_name, query_peaks, library_entries, params).

    Returns:
        (True, (query_name, hits)) on success, (False, message) on
        cancellation or error, None if the pool was stopped before the task
        started.
    """
    if _stop_requested():
        return None
    query_name = args[0] if args else "?"
    try:
        query_name, query_peaks, library, params = args
        hits = identify_spectrum(query_peaks, library, params, stop_event=worker_init._stop_event_worker)
        if hits is None:
            return (False, f"--- CANCELLED library search for {query_name} ---\n")
        return (True, (query_name, hits))

    except SpecMatcherError as e:
        return (False, f"--- Invalid input for {query_name}: {e} ---\n")
    except Exception as e:
        logger.exception("Library search for %s failed", query_name)
        return (False, f"--- Critical error for {query_name}: {e} ---\n")


def run_deisotope_task(args: tuple[Any, ...]) -> tuple[bool, Any] | None:
    """
    Deisotopes one peak list.

    Args:
        args: A tuple of (peak_list_name, rows, params).

    Returns:
        (True, DeisotopedPeakList) on success, (False, message) on
        cancellation or error, None if the pool was stopped before the task
        started.
    """
    if _stop_requested():
        return None
    name = args[0] if args else "?"
    try:
        name, rows, params = args
        result = deisotope_peak_list(name, rows, params, stop_event=worker_init._stop_event_worker)
        if result is None:
            return (False, f"--- CANCELLED isotope grouping of {name} ---\n")
        return (True, result)

    except SpecMatcherError as e:
        return (False, f"--- Invalid input for {name}: {e} ---\n")
    except Exception as e:
        logger.exception("Isotope grouping of %s failed", name)
        return (False, f"--- Critical error for {name}: {e} ---\n")
