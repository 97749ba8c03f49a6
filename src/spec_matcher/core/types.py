import math
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np

from .exceptions import MalformedInputError


@dataclass(frozen=True)
class Peak:
    """
    A single centroided signal of a mass spectrum.

    Attributes:
        mz: The mass-to-charge ratio.
        intensity: The signal intensity (>= 0).
    """
    mz: float
    intensity: float


# A spectrum is any ordered sequence of peaks. No m/z ordering is assumed.
Spectrum = Sequence[Peak]


@dataclass(frozen=True, eq=False)
class Feature:
    """
    A chromatographic feature (a peak detected across retention time).

    Features are compared by identity: two features with the same values are
    still two different detections.

    Attributes:
        mz: The m/z of the feature.
        rt: The retention time at the apex.
        height: The apex height.
        id: Optional row identifier carried through deisotoping.
    """
    mz: float
    rt: float
    height: float
    id: Optional[int] = None


@dataclass(frozen=True)
class AlignedPair:
    """
    One row of a spectral alignment. Either side may be missing, never both.
    """
    library: Optional[Peak]
    query: Optional[Peak]

    def __post_init__(self):
        if self.library is None and self.query is None:
            raise ValueError("An aligned pair needs at least one peak.")

    @property
    def is_matched(self) -> bool:
        return self.library is not None and self.query is not None

    @property
    def min_mz(self) -> float:
        return min(p.mz for p in (self.library, self.query) if p is not None)


@dataclass(frozen=True)
class SimilarityResult:
    """
    The outcome of a successful spectral comparison.

    Attributes:
        name: The name of the similarity function that produced the score.
        score: The similarity score, nominally within [0, 1].
        matched_count: The number of aligned pairs with both sides present.
        library_peaks: The library spectrum as it was compared.
        query_peaks: The query spectrum as it was compared.
        alignment: The aligned pairs the score was derived from.
    """
    name: str
    score: float
    matched_count: int
    library_peaks: Tuple[Peak, ...]
    query_peaks: Tuple[Peak, ...]
    alignment: Tuple[AlignedPair, ...]


@dataclass(frozen=True, eq=False)
class IsotopeCluster:
    """
    A group of features assigned to the same isotope pattern.

    The representative is fixed when the cluster is created. The m/z, RT and
    height of a cluster are those of its representative, so a cluster can be
    handed to anything that expects a Feature.
    """
    charge: int
    members: Tuple[Feature, ...]
    representative: Feature

    @property
    def mz(self) -> float:
        return self.representative.mz

    @property
    def rt(self) -> float:
        return self.representative.rt

    @property
    def height(self) -> float:
        return self.representative.height

    @property
    def id(self) -> Optional[int]:
        return self.representative.id


# Output of the isotope grouper: finalized clusters and untouched singletons.
GroupedFeature = Union[IsotopeCluster, Feature]


@dataclass(frozen=True)
class PeakListRow:
    """A row of a peak list: a row ID plus the feature (or cluster) it holds."""
    id: int
    feature: GroupedFeature


@dataclass
class DeisotopedPeakList:
    """A peak list in which every isotope cluster has collapsed into one row."""
    name: str
    rows: List[PeakListRow] = field(default_factory=list)


@dataclass(frozen=True)
class LibraryEntry:
    """
    A reference spectrum and whatever metadata came with it.
    """
    name: str
    peaks: Tuple[Peak, ...]
    metadata: dict = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class LibraryHit:
    """A library entry that passed the similarity thresholds for a query."""
    entry: LibraryEntry
    similarity: SimilarityResult

    @property
    def score(self) -> float:
        return self.similarity.score


@dataclass(frozen=True)
class Scan:
    """A single MS1 scan used for chromatogram building."""
    rt: float
    peaks: Tuple[Peak, ...]


def peaks_from_arrays(mz: np.ndarray, intensity: np.ndarray) -> List[Peak]:
    """
    Builds a list of Peak records from parallel m/z and intensity arrays.
    """
    mz = np.asarray(mz, dtype=np.float64)
    intensity = np.asarray(intensity, dtype=np.float64)
    if mz.shape != intensity.shape:
        raise MalformedInputError(
            f"m/z and intensity arrays differ in shape: {mz.shape} vs {intensity.shape}."
        )
    return [Peak(float(m), float(i)) for m, i in zip(mz, intensity)]


def validate_peaks(peaks: Spectrum, label: str = "spectrum") -> None:
    """
    Fails fast on peaks that would make any score meaningless.

    Raises:
        MalformedInputError: For a negative or non-finite m/z, or a
            negative / non-finite intensity.
    """
    for i, peak in enumerate(peaks):
        if not math.isfinite(peak.mz) or peak.mz < 0:
            raise MalformedInputError(f"Peak {i} of the {label} has an invalid m/z: {peak.mz}.")
        if not math.isfinite(peak.intensity) or peak.intensity < 0:
            raise MalformedInputError(
                f"Peak {i} of the {label} has an invalid intensity: {peak.intensity}."
            )


def validate_features(features: Sequence[Feature]) -> None:
    """
    Same as validate_peaks, for chromatographic features.
    """
    for i, feature in enumerate(features):
        if not math.isfinite(feature.mz) or feature.mz < 0:
            raise MalformedInputError(f"Feature {i} has an invalid m/z: {feature.mz}.")
        if not math.isfinite(feature.rt):
            raise MalformedInputError(f"Feature {i} has an invalid retention time: {feature.rt}.")
        if not math.isfinite(feature.height) or feature.height < 0:
            raise MalformedInputError(f"Feature {i} has an invalid height: {feature.height}.")
