"""
This module aligns two spectra signal by signal within an m/z tolerance.

The alignment is the shared input of every similarity function: a list of
AlignedPair rows, one per input peak or matched pair of peaks.
"""
from typing import List, Sequence

import numpy as np

from ..config import ToleranceLike, Weights, resolve_tolerance
from .types import AlignedPair, Peak, Spectrum


def _sort_by_mz(peaks: Spectrum) -> List[Peak]:
    # sorted() is stable, so peaks sharing an m/z keep their input order.
    return sorted(peaks, key=lambda p: p.mz)


def _is_closer_match(delta: float, best_delta: float) -> bool:
    """
    Tie-break rule for the aligner: a candidate replaces the current best
    only when it is strictly closer. Equal distances keep the query peak
    encountered first in ascending m/z order.
    """
    return delta < best_delta


def align_peaks(library: Spectrum, query: Spectrum, tolerance: ToleranceLike) -> List[AlignedPair]:
    """
    Matches library and query peaks one-to-one within a tolerance.

    Library peaks are processed in ascending m/z order and each takes the
    nearest query peak that is still free. Library peaks without a partner
    yield (library, None) rows; the remaining query peaks are appended as
    (None, query) rows in ascending m/z order.

    Args:
        library: The reference spectrum.
        query: The measured spectrum.
        tolerance: An MzTolerance, an absolute tolerance in Da, or any
            ``within(library_mz, query_mz) -> bool`` function.

    Returns:
        The alignment. Every input peak appears in exactly one pair.
    """
    within = resolve_tolerance(tolerance)
    library_sorted = _sort_by_mz(library)
    query_sorted = _sort_by_mz(query)
    query_used = np.zeros(len(query_sorted), dtype=bool)

    aligned = []
    for lib_peak in library_sorted:
        best_index = -1
        best_delta = np.inf
        for q_index, q_peak in enumerate(query_sorted):
            if query_used[q_index] or not within(lib_peak.mz, q_peak.mz):
                continue
            delta = abs(lib_peak.mz - q_peak.mz)
            if _is_closer_match(delta, best_delta):
                best_index, best_delta = q_index, delta

        if best_index >= 0:
            query_used[best_index] = True
            aligned.append(AlignedPair(lib_peak, query_sorted[best_index]))
        else:
            aligned.append(AlignedPair(lib_peak, None))

    for q_index in np.flatnonzero(~query_used):
        aligned.append(AlignedPair(None, query_sorted[q_index]))

    return aligned


def calc_overlap(aligned: Sequence[AlignedPair]) -> int:
    """Number of pairs in which both a library and a query peak are present."""
    return sum(1 for pair in aligned if pair.is_matched)


def remove_unaligned(aligned: Sequence[AlignedPair]) -> List[AlignedPair]:
    return [pair for pair in aligned if pair.is_matched]


def sort_by_min_mz(aligned: Sequence[AlignedPair]) -> List[AlignedPair]:
    """Sorts pairs by the smaller m/z of their two sides (stable)."""
    return sorted(aligned, key=lambda pair: pair.min_mz)


def to_intensity_matrix_weighted(aligned: Sequence[AlignedPair], weights: Weights) -> np.ndarray:
    """
    Converts an alignment into an (n, 2) matrix of weighted signals.

    Column 0 is the library, column 1 the query. Each present peak contributes
    mz**mz_weight * intensity**intensity_weight; a missing side is 0.
    """
    matrix = np.zeros((len(aligned), 2), dtype=np.float64)
    for row, pair in enumerate(aligned):
        for col, peak in enumerate((pair.library, pair.query)):
            if peak is not None:
                matrix[row, col] = (peak.mz ** weights.mz_weight) * (peak.intensity ** weights.intensity_weight)
    return matrix
