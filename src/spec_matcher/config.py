import math
import numbers
from dataclasses import dataclass, field
from typing import Callable, Union

from .core.constants import (PPM_FACTOR, REPRESENTATIVE_MOST_INTENSE,
                             REPRESENTATIVE_POLICIES, WEIGHT_PRESETS)
from .core.exceptions import ConfigurationError


def _is_integer(value) -> bool:
    return isinstance(value, numbers.Integral) and not isinstance(value, bool)


def _check_non_negative(name: str, value: float):
    if value is None or not math.isfinite(value) or value < 0:
        raise ConfigurationError(f"{name} must be a non-negative number, got {value!r}.")


@dataclass(frozen=True)
class MzTolerance:
    """
    An m/z tolerance given as an absolute window (Da) and/or a relative one
    (ppm). The larger of the two windows applies.
    """
    absolute: float = 0.0
    ppm: float = 0.0

    def __post_init__(self):
        _check_non_negative("Absolute m/z tolerance", self.absolute)
        _check_non_negative("ppm tolerance", self.ppm)

    def get_mz_tolerance(self, mz: float) -> float:
        return max(self.absolute, abs(mz) * self.ppm / PPM_FACTOR)

    def get_tolerance_range(self, mz: float) -> tuple[float, float]:
        tol = self.get_mz_tolerance(mz)
        return mz - tol, mz + tol

    def check_within(self, mz1: float, mz2: float) -> bool:
        low, high = self.get_tolerance_range(mz1)
        return low <= mz2 <= high

    def __call__(self, mz1: float, mz2: float) -> bool:
        return self.check_within(mz1, mz2)


ToleranceLike = Union[MzTolerance, float, Callable[[float, float], bool]]


def resolve_tolerance(tolerance: ToleranceLike) -> Callable[[float, float], bool]:
    """
    Turns any accepted tolerance description into a ``within(a, b) -> bool``
    function. A bare number is an absolute tolerance in Da.
    """
    if isinstance(tolerance, MzTolerance):
        return tolerance.check_within
    if isinstance(tolerance, numbers.Real) and not isinstance(tolerance, bool):
        return MzTolerance(absolute=float(tolerance)).check_within
    if callable(tolerance):
        return tolerance
    raise ConfigurationError(f"Unsupported tolerance: {tolerance!r}.")


@dataclass(frozen=True)
class Weights:
    """
    Exponents applied to m/z and intensity before the cosine is computed.
    """
    mz_weight: float = 0.0
    intensity_weight: float = 1.0

    def __post_init__(self):
        for name, value in (("m/z weight", self.mz_weight), ("Intensity weight", self.intensity_weight)):
            if value is None or not math.isfinite(value) or value < 0:
                raise ConfigurationError(f"{name} must be a finite, non-negative number, got {value!r}.")

    @classmethod
    def from_preset(cls, name: str) -> "Weights":
        try:
            mz_weight, intensity_weight = WEIGHT_PRESETS[name.upper()]
        except KeyError:
            raise ConfigurationError(
                f"Unknown weights preset '{name}'. Choose one of {', '.join(WEIGHT_PRESETS)}."
            )
        return cls(mz_weight=mz_weight, intensity_weight=intensity_weight)


@dataclass
class SimilarityParams:
    """
    Configuration for spectral similarity scoring.
    """
    tolerance: ToleranceLike
    min_match: int = 1
    min_cosine: float = 0.0
    weights: Weights = field(default_factory=Weights)
    function: str = "composite_cosine"

    def validate(self):
        resolve_tolerance(self.tolerance)
        if not _is_integer(self.min_match) or self.min_match < 0:
            raise ConfigurationError(f"Minimum matched signals must be an integer >= 0, got {self.min_match!r}.")
        if self.min_cosine is None or not math.isfinite(self.min_cosine):
            raise ConfigurationError(f"Minimum cosine must be a finite number, got {self.min_cosine!r}.")
        if not isinstance(self.weights, Weights):
            raise ConfigurationError(f"Weights must be a Weights instance, got {self.weights!r}.")


@dataclass
class IsotopeGrouperParams:
    """
    Configuration for the isotope pattern grouper.
    """
    max_charge: int
    mz_tolerance: float
    rt_tolerance: float
    monotonic_shape: bool = False
    representative: str = REPRESENTATIVE_MOST_INTENSE
    suffix: str = "deisotoped"

    def validate(self):
        if not _is_integer(self.max_charge) or self.max_charge <= 0:
            raise ConfigurationError(f"Maximum charge must be a positive integer, got {self.max_charge!r}.")
        _check_non_negative("m/z tolerance", self.mz_tolerance)
        _check_non_negative("RT tolerance", self.rt_tolerance)
        if self.representative not in REPRESENTATIVE_POLICIES:
            raise ConfigurationError(
                f"Unknown representative isotope policy '{self.representative}'. "
                f"Choose one of {', '.join(REPRESENTATIVE_POLICIES)}."
            )


@dataclass
class ChromatogramBuilderParams:
    """
    Configuration for greedy chromatogram building.
    """
    mz_tolerance: float
    min_time_span: float = 0.0
    min_height: float = 0.0

    def validate(self):
        _check_non_negative("m/z tolerance", self.mz_tolerance)
        _check_non_negative("Minimum time span", self.min_time_span)
        _check_non_negative("Minimum height", self.min_height)
