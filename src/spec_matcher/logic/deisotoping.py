"""
This module provides the isotope grouping entry points used on peak lists.
"""
import logging
from typing import List, Optional, Sequence

from ..config import IsotopeGrouperParams
from ..core.constants import REPRESENTATIVE_MOST_INTENSE
from ..core.isotopes import IsotopeGrouper
from ..core.types import (DeisotopedPeakList, Feature, GroupedFeature,
                          IsotopeCluster, PeakListRow)

logger = logging.getLogger(__name__)


def group_isotopes(
    features: Sequence[Feature],
    max_charge: int,
    mz_tolerance: float,
    rt_tolerance: float,
    monotonic_only: bool = False,
    representative: str = REPRESENTATIVE_MOST_INTENSE,
    stop_event=None,
    progress_callback=None,
) -> Optional[List[GroupedFeature]]:
    """
    Partitions features into isotope clusters and singletons.

    Args:
        features: The features of a single acquisition.
        max_charge: Charges 1..max_charge are tried.
        mz_tolerance: Absolute m/z tolerance around each expected isotope.
        rt_tolerance: Maximum RT distance of an isotope from the seed feature.
        monotonic_only: If True, isotopes are only searched above the seed m/z.
        representative: "most_intense" or "lowest_mz".
        stop_event: Polled once per seed feature.
        progress_callback: Optional ``callback(kind, value)`` hook.

    Returns:
        IsotopeClusters and untouched Features in processing order (descending
        height), or None if cancelled.

    Raises:
        ConfigurationError: For a charge below 1, a negative tolerance or an
            unknown representative policy.
        MalformedInputError: For NaN or negative feature values.
    """
    params = IsotopeGrouperParams(
        max_charge=max_charge,
        mz_tolerance=mz_tolerance,
        rt_tolerance=rt_tolerance,
        monotonic_shape=monotonic_only,
        representative=representative,
    )
    return IsotopeGrouper(params).run(features, stop_event=stop_event, progress_callback=progress_callback)


def deisotope_peak_list(
    name: str,
    rows: Sequence[PeakListRow],
    params: IsotopeGrouperParams,
    stop_event=None,
    progress_callback=None,
) -> Optional[DeisotopedPeakList]:
    """
    Builds a new peak list where every isotope pattern occupies one row.

    A cluster row keeps the ID of the row that held its representative
    feature; unclustered rows are copied unchanged.

    Returns:
        The deisotoped peak list named "<name> <suffix>", or None if cancelled.
    """
    row_by_feature = {}
    for row in rows:
        if not isinstance(row.feature, Feature):
            raise ValueError(f"Row {row.id} is already deisotoped.")
        row_by_feature[row.feature] = row

    grouped = IsotopeGrouper(params).run(
        [row.feature for row in rows], stop_event=stop_event, progress_callback=progress_callback
    )
    if grouped is None:
        return None

    deisotoped = DeisotopedPeakList(name=f"{name} {params.suffix}")
    for item in grouped:
        if isinstance(item, IsotopeCluster):
            old_id = row_by_feature[item.representative].id
            deisotoped.rows.append(PeakListRow(id=old_id, feature=item))
        else:
            deisotoped.rows.append(row_by_feature[item])

    logger.info("Deisotoped '%s': %d rows reduced to %d.", name, len(rows), len(deisotoped.rows))
    return deisotoped
