"""
Spectral similarity functions.

Every function aligns the two spectra with the same aligner, enforces a
minimum number of matched signals, computes its own score and only returns a
SimilarityResult when that score reaches the minimum cosine. A score below the
thresholds is an expected outcome and is reported as ``None``.
"""
import logging
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

import numpy as np
from scipy.spatial import distance

from ..config import ToleranceLike, Weights
from .alignment import (align_peaks, calc_overlap, remove_unaligned,
                        sort_by_min_mz, to_intensity_matrix_weighted)
from .exceptions import ConfigurationError
from .types import AlignedPair, SimilarityResult, Spectrum, validate_peaks

logger = logging.getLogger(__name__)


def cosine_similarity(matrix: np.ndarray) -> float:
    """
    Cosine between the library (column 0) and query (column 1) vectors.

    Returns 0.0 when either vector is all zeros.
    """
    library, query = matrix[:, 0], matrix[:, 1]
    if not library.any() or not query.any():
        return 0.0
    return float(np.clip(1.0 - distance.cosine(library, query), 0.0, 1.0))


def _neighbour_ratio_agreement(previous: AlignedPair, current: AlignedPair) -> float:
    """
    Agreement of the intensity ratio of two adjacent matched signals in the
    library and in the query, in [0, 1]. An undefined ratio (zero intensity
    in a denominator) contributes 0.
    """
    if previous.library.intensity == 0 or previous.query.intensity == 0:
        return 0.0
    ratio_library = current.library.intensity / previous.library.intensity
    ratio_query = current.query.intensity / previous.query.intensity
    larger = max(ratio_library, ratio_query)
    if larger == 0:
        return 0.0
    return min(ratio_library, ratio_query) / larger


def calc_relative_neighbour_factor(aligned: Sequence[AlignedPair]) -> float:
    """
    Mean neighbour ratio agreement over all adjacent matched signals (sorted
    by m/z). Ranges from 0 to 1; a single matched signal has no neighbours
    and gives 0.

    Normalized by the number of adjacent pairs (overlap - 1) rather than by
    the overlap itself, so that identical spectra reach a factor of 1.
    """
    filtered = sort_by_min_mz(remove_unaligned(aligned))
    neighbours = len(filtered) - 1
    if neighbours < 1:
        return 0.0

    factor = 0.0
    for i in range(1, len(filtered)):
        factor += _neighbour_ratio_agreement(filtered[i - 1], filtered[i])
    return factor / neighbours


class SpectralSimilarityFunction(ABC):
    """
    Base class of all similarity functions.

    Subclasses only implement ``calc_score``; alignment, validation and the
    thresholds are shared.
    """
    name: str = ""

    def get_similarity(
        self,
        library: Spectrum,
        query: Spectrum,
        tolerance: ToleranceLike,
        min_match: int,
        min_cosine: float,
        weights: Weights,
    ) -> Optional[SimilarityResult]:
        """
        Aligns and scores two spectra.

        Returns:
            A SimilarityResult, or None when fewer than ``min_match`` (or zero)
            signals match or the score is below ``min_cosine``.

        Raises:
            ConfigurationError: For a negative ``min_match``.
            MalformedInputError: For negative or NaN m/z values or invalid intensities.
        """
        if min_match < 0:
            raise ConfigurationError(f"Minimum matched signals must be >= 0, got {min_match}.")
        validate_peaks(library, "library spectrum")
        validate_peaks(query, "query spectrum")

        aligned = align_peaks(library, query, tolerance)
        overlap = calc_overlap(aligned)
        if overlap == 0 or overlap < min_match:
            return None

        score = self.calc_score(aligned, len(query), weights)
        if score < min_cosine:
            return None

        return SimilarityResult(
            name=self.name,
            score=score,
            matched_count=overlap,
            library_peaks=tuple(library),
            query_peaks=tuple(query),
            alignment=tuple(aligned),
        )

    @abstractmethod
    def calc_score(self, aligned: List[AlignedPair], query_count: int, weights: Weights) -> float:
        """Scores an alignment with at least one matched pair."""


class WeightedCosineSimilarity(SpectralSimilarityFunction):
    """Plain weighted cosine over the aligned signals."""
    name = "Weighted cosine similarity"

    def calc_score(self, aligned, query_count, weights):
        return cosine_similarity(to_intensity_matrix_weighted(aligned, weights))


class CompositeCosineSimilarity(SpectralSimilarityFunction):
    """
    Composite dot-product identity score, similar to the NIST search for GC-MS
    spectra with many signals. It blends the weighted cosine with the
    agreement of intensity ratios between neighbouring signals, weighted by
    the number of query signals and matched signals respectively.
    """
    name = "Composite dot-product identity (similar to NIST search)"

    def calc_score(self, aligned, query_count, weights):
        overlap = calc_overlap(aligned)
        relative_factor = calc_relative_neighbour_factor(aligned)
        cosine = cosine_similarity(to_intensity_matrix_weighted(aligned, weights))
        composite = (query_count * cosine + overlap * relative_factor) / (query_count + overlap)
        logger.debug(
            "Composite score %.4f (cosine %.4f, neighbour factor %.4f, %d matched of %d query signals)",
            composite, cosine, relative_factor, overlap, query_count,
        )
        return composite


SIMILARITY_FUNCTIONS = {
    "composite_cosine": CompositeCosineSimilarity(),
    "weighted_cosine": WeightedCosineSimilarity(),
}


def get_similarity_function(name: str) -> SpectralSimilarityFunction:
    try:
        return SIMILARITY_FUNCTIONS[name]
    except KeyError:
        raise ConfigurationError(
            f"Unknown similarity function '{name}'. Choose one of {', '.join(SIMILARITY_FUNCTIONS)}."
        )
