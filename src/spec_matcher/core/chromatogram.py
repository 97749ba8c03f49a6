"""
Greedy chromatogram building.

Peaks of consecutive scans are connected into chromatograms (extracted ion
traces). In every scan, each open chromatogram is paired with each peak close
to its last m/z; the pairs are ranked by MatchScore and assigned greedily so
that every chromatogram and every peak is used at most once.
"""
import logging
from typing import List, Optional, Sequence

import numpy as np

from ..config import ChromatogramBuilderParams
from .cancel import is_cancelled
from .types import Feature, Peak, Scan, validate_peaks

logger = logging.getLogger(__name__)


class ConnectedPeak:
    """A peak of a specific scan, waiting to be connected to a chromatogram."""

    def __init__(self, rt: float, peak: Peak):
        self.rt = rt
        self.peak = peak

    def __repr__(self):
        return f"ConnectedPeak(rt={self.rt}, mz={self.peak.mz}, intensity={self.peak.intensity})"


class Chromatogram:
    """A chromatogram under construction."""

    def __init__(self, first: ConnectedPeak):
        self.points: List[ConnectedPeak] = [first]

    @property
    def last_mz(self) -> float:
        return self.points[-1].peak.mz

    @property
    def time_span(self) -> float:
        return self.points[-1].rt - self.points[0].rt

    @property
    def height(self) -> float:
        return max(p.peak.intensity for p in self.points)

    def add(self, point: ConnectedPeak):
        self.points.append(point)

    def to_feature(self, feature_id: Optional[int] = None) -> Feature:
        """Mean m/z, apex retention time and apex height of the trace."""
        intensities = np.array([p.peak.intensity for p in self.points])
        apex = self.points[int(np.argmax(intensities))]
        mz = float(np.mean([p.peak.mz for p in self.points]))
        return Feature(mz=mz, rt=apex.rt, height=apex.peak.intensity, id=feature_id)


class MatchScore:
    """
    Goodness of fit between a chromatogram and a candidate peak: the absolute
    distance between the chromatogram's last m/z and the peak's m/z. Lower is
    better.

    Two different MatchScore objects never compare as equal, even when their
    scores are identical; see ``compare_to``.
    """

    def __init__(self, chromatogram: Chromatogram, connected_peak: ConnectedPeak):
        self.chromatogram = chromatogram
        self.connected_peak = connected_peak
        self.score = abs(chromatogram.last_mz - connected_peak.peak.mz)

    def compare_to(self, other: "MatchScore") -> int:
        """
        -1, 0 or 1 like a comparator, except that an equal score returns -1.
        Only an object compared with itself yields 0.
        """
        if other is self:
            return 0
        sign = int(np.sign(self.score - other.score))
        return sign if sign != 0 else -1

    def __lt__(self, other: "MatchScore") -> bool:
        return self.compare_to(other) < 0

    def __repr__(self):
        return f"MatchScore(score={self.score})"


def _rank_matches(open_chromatograms: Sequence[Chromatogram], candidates: Sequence[ConnectedPeak],
                  mz_tolerance: float) -> List[MatchScore]:
    scores = []
    for chromatogram in open_chromatograms:
        for candidate in candidates:
            match = MatchScore(chromatogram, candidate)
            if match.score <= mz_tolerance:
                scores.append(match)
    return sorted(scores)


def build_chromatograms(scans: Sequence[Scan], params: ChromatogramBuilderParams,
                        stop_event=None, progress_callback=None) -> Optional[List[Feature]]:
    """
    Connects the peaks of a sequence of scans into chromatograms.

    A chromatogram stays open while every following scan extends it; the
    first scan that does not extend it closes it. Peaks that could not be
    assigned open new chromatograms.

    Args:
        scans: The MS1 scans, in any order (they are processed by RT).
        params: Tolerance and the minimum time span / height of a result.
        stop_event: Polled once per scan. See core.cancel.
        progress_callback: Optional ``callback(kind, value)`` hook.

    Returns:
        One Feature per accepted chromatogram, ordered by m/z, with IDs
        numbered from 1. None if cancelled.
    """
    progress_callback = progress_callback or (lambda *args: None)
    params.validate()

    ordered_scans = sorted(scans, key=lambda s: s.rt)
    for scan in ordered_scans:
        validate_peaks(scan.peaks, f"scan at RT {scan.rt}")

    open_chromatograms: List[Chromatogram] = []
    finished: List[Chromatogram] = []
    progress_per_scan = (100 / len(ordered_scans)) if ordered_scans else 0

    for scan in ordered_scans:
        if is_cancelled(stop_event):
            logger.info("Chromatogram building cancelled at RT %s.", scan.rt)
            return None

        candidates = [ConnectedPeak(scan.rt, peak) for peak in scan.peaks]
        extended = []
        connected = set()
        for match in _rank_matches(open_chromatograms, candidates, params.mz_tolerance):
            if match.chromatogram in extended or match.connected_peak in connected:
                continue
            match.chromatogram.add(match.connected_peak)
            extended.append(match.chromatogram)
            connected.add(match.connected_peak)

        finished.extend(c for c in open_chromatograms if c not in extended)
        open_chromatograms = extended + [Chromatogram(c) for c in candidates if c not in connected]
        progress_callback('progress_add', progress_per_scan)

    finished.extend(open_chromatograms)
    accepted = [
        c for c in finished
        if c.time_span >= params.min_time_span and c.height >= params.min_height
    ]
    accepted.sort(key=lambda c: c.to_feature().mz)
    logger.info("Built %d chromatograms from %d scans (%d rejected).",
                len(accepted), len(ordered_scans), len(finished) - len(accepted))
    return [c.to_feature(feature_id=i) for i, c in enumerate(accepted, 1)]
