import logging
from typing import List, Optional, Sequence

import numba
import numpy as np

from ..config import IsotopeGrouperParams
from .cancel import is_cancelled
from .constants import ISOTOPE_DISTANCE, REPRESENTATIVE_MOST_INTENSE
from .types import Feature, GroupedFeature, IsotopeCluster, validate_features

logger = logging.getLogger(__name__)


@numba.jit(nopython=True)
def _find_best_candidate_numba(
    mzs: np.ndarray,
    rts: np.ndarray,
    heights: np.ndarray,
    available: np.ndarray,
    main_mz: float,
    main_rt: float,
    mz_offset: float,
    mz_tolerance: float,
    rt_tolerance: float,
) -> int:
    """
    Returns the index of the tallest available feature located at
    main_mz + mz_offset (within mz_tolerance) and eluting within rt_tolerance
    of main_rt, or -1. Equal heights keep the lowest index.
    """
    best = -1
    for i in range(len(mzs)):
        if not available[i]:
            continue
        if abs((mzs[i] - mz_offset) - main_mz) <= mz_tolerance and abs(rts[i] - main_rt) < rt_tolerance:
            if best == -1 or heights[i] > heights[best]:
                best = i
    return best


def sort_by_descending_height(features: Sequence[Feature]) -> List[Feature]:
    # Stable: features of equal height keep their input order.
    return sorted(features, key=lambda f: f.height, reverse=True)


def _is_better_fit(score: int, charge: int, best_score: int, best_charge: int) -> bool:
    """
    Tie-break rule for charge selection: more fitted features win; an equal
    count goes to the smaller charge.
    """
    return score > best_score or (score == best_score and charge < best_charge)


def choose_representative(members: Sequence[Feature], policy: str) -> Feature:
    """
    Picks the representative of a cluster: the first tallest member, or the
    first member with the lowest m/z.
    """
    if policy == REPRESENTATIVE_MOST_INTENSE:
        return max(members, key=lambda f: f.height)
    return min(members, key=lambda f: f.mz)


class IsotopeGrouper:
    """
    Groups the features of one peak list into isotope patterns.

    Features are visited by descending height. Around each seed, an isotope
    pattern is fitted for every charge from 1 to max_charge; the charge that
    explains the most features wins. All features of a winning pattern are
    tombstoned so that no weaker seed can claim them again.

    An instance holds the working arrays of a single run and must not be
    shared between threads.
    """

    def __init__(self, params: IsotopeGrouperParams):
        params.validate()
        self.params = params
        self.charges = np.arange(1, params.max_charge + 1)
        self.processed_features = 0
        self.total_features = 0

    @property
    def finished_percentage(self) -> float:
        if self.total_features == 0:
            return 0.0
        return self.processed_features / self.total_features

    def run(self, features: Sequence[Feature], stop_event=None, progress_callback=None) -> Optional[List[GroupedFeature]]:
        """
        Runs the grouping.

        Args:
            features: The features of one acquisition.
            stop_event: Polled once per seed feature. See core.cancel.
            progress_callback: Optional ``callback(kind, value)`` hook.

        Returns:
            One entry per seed in processing order: an IsotopeCluster for every
            pattern of two or more features, the original Feature otherwise.
            None if the run was cancelled.
        """
        progress_callback = progress_callback or (lambda *args: None)
        validate_features(features)

        self._features = sort_by_descending_height(features)
        self._mzs = np.array([f.mz for f in self._features], dtype=np.float64)
        self._rts = np.array([f.rt for f in self._features], dtype=np.float64)
        self._heights = np.array([f.height for f in self._features], dtype=np.float64)
        # Tombstones: False once a feature has been consumed by a cluster.
        self._alive = np.ones(len(self._features), dtype=bool)

        self.total_features = len(self._features)
        self.processed_features = 0
        progress_per_feature = (100 / self.total_features) if self.total_features else 0
        grouped = []

        for seed in range(self.total_features):
            if is_cancelled(stop_event):
                logger.info("Isotope grouping cancelled after %d of %d features.",
                            self.processed_features, self.total_features)
                progress_callback('log', "Isotope grouping cancelled.\n")
                return None

            if not self._alive[seed]:
                self.processed_features += 1
                continue

            best_charge, best_fit = self._fit_best_charge(seed)
            # The seed is finalized either way; a weaker seed must not claim it later.
            self._alive[best_fit] = False

            if len(best_fit) == 1:
                grouped.append(self._features[seed])
            else:
                members = [self._features[i] for i in best_fit]
                representative = choose_representative(members, self.params.representative)
                grouped.append(IsotopeCluster(
                    charge=int(best_charge),
                    members=tuple(sorted(members, key=lambda f: f.mz)),
                    representative=representative,
                ))

            self.processed_features += 1
            progress_callback('progress_add', progress_per_feature)

        clusters = sum(1 for g in grouped if isinstance(g, IsotopeCluster))
        logger.info("Grouped %d features into %d isotope patterns and %d singletons.",
                    self.total_features, clusters, len(grouped) - clusters)
        return grouped

    def _fit_best_charge(self, seed: int) -> tuple[int, List[int]]:
        best_charge, best_score, best_fit = 0, -1, None
        for charge in self.charges:
            fitted = self._fit_pattern(seed, charge)
            if _is_better_fit(len(fitted), charge, best_score, best_charge):
                best_charge, best_score, best_fit = charge, len(fitted), fitted
        return best_charge, best_fit

    def _fit_pattern(self, seed: int, charge: int) -> List[int]:
        """
        Fits an isotope pattern of the given charge around the seed and
        returns the indices of the fitted features, seed first.
        """
        fitted = [seed]
        available = self._alive.copy()
        available[seed] = False

        if not self.params.monotonic_shape:
            self._fit_half_pattern(seed, charge, -1, fitted, available)
        self._fit_half_pattern(seed, charge, 1, fitted, available)
        return fitted

    def _fit_half_pattern(self, seed: int, charge: int, direction: int, fitted: List[int], available: np.ndarray):
        """
        Collects the n-th isotope (n = 1, 2, ...) before (direction -1) or
        after (direction +1) the seed until one is missing. All positions are
        measured from the seed's m/z and RT.
        """
        main_mz = self._mzs[seed]
        main_rt = self._rts[seed]
        n = 1
        while True:
            mz_offset = ISOTOPE_DISTANCE * direction * n / charge
            best = _find_best_candidate_numba(
                self._mzs, self._rts, self._heights, available,
                main_mz, main_rt, mz_offset,
                self.params.mz_tolerance, self.params.rt_tolerance,
            )
            if best < 0:
                break
            fitted.append(best)
            available[best] = False
            n += 1
