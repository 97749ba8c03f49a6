"""
This module provides the spectral identification entry points: scoring one
query spectrum against one library spectrum, or against a whole list of
library entries.
"""
import logging
from typing import List, Optional, Sequence

from ..config import SimilarityParams, ToleranceLike, Weights
from ..core.cancel import is_cancelled
from ..core.similarity import get_similarity_function
from ..core.types import LibraryEntry, LibraryHit, SimilarityResult, Spectrum

logger = logging.getLogger(__name__)


def align_and_score(
    library: Spectrum,
    query: Spectrum,
    tolerance: ToleranceLike,
    min_match: int,
    min_cosine: float,
    weights: Weights,
    function: str = "composite_cosine",
) -> Optional[SimilarityResult]:
    """
    Aligns a library and a query spectrum and scores the alignment.

    Args:
        library: The reference spectrum.
        query: The measured spectrum.
        tolerance: An MzTolerance, an absolute tolerance in Da, or a
            ``within(a, b) -> bool`` function.
        min_match: Minimum number of matched signals.
        min_cosine: Minimum score for a result to be returned.
        weights: m/z and intensity exponents of the weighted cosine.
        function: Name of the similarity function (see SIMILARITY_FUNCTIONS).

    Returns:
        The SimilarityResult, or None if the spectra do not match.
    """
    params = SimilarityParams(
        tolerance=tolerance, min_match=min_match, min_cosine=min_cosine,
        weights=weights, function=function,
    )
    params.validate()
    similarity_function = get_similarity_function(params.function)
    return similarity_function.get_similarity(
        library, query, params.tolerance, params.min_match, params.min_cosine, params.weights
    )


def identify_spectrum(
    query: Spectrum,
    library: Sequence[LibraryEntry],
    params: SimilarityParams,
    stop_event=None,
    progress_callback=None,
) -> Optional[List[LibraryHit]]:
    """
    Scores a query spectrum against every library entry.

    Returns:
        The matching entries sorted by descending score (entries with equal
        scores keep their library order), or None if cancelled.
    """
    progress_callback = progress_callback or (lambda *args: None)
    params.validate()
    similarity_function = get_similarity_function(params.function)
    progress_per_entry = (100 / len(library)) if library else 0

    hits = []
    for entry in library:
        if is_cancelled(stop_event):
            logger.info("Library search cancelled after %d hits.", len(hits))
            progress_callback('log', "Library search cancelled.\n")
            return None

        similarity = similarity_function.get_similarity(
            entry.peaks, query, params.tolerance, params.min_match, params.min_cosine, params.weights
        )
        if similarity is not None:
            hits.append(LibraryHit(entry=entry, similarity=similarity))
        progress_callback('progress_add', progress_per_entry)

    hits.sort(key=lambda hit: hit.score, reverse=True)
    logger.info("%d of %d library entries matched the query.", len(hits), len(library))
    progress_callback('log', f"Found {len(hits)} matching library entries.\n")
    return hits
