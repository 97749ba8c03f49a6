"""
This module serializes a spectrum and its metadata into a flat JSON document
for submission to GNPS-style spectral libraries.
"""
import json
from typing import Any, Optional

from ..core.constants import GNPS_JSON_KEYS, NOT_AVAILABLE, SOFTWARE_NAME
from ..core.types import Spectrum


def format_mz(mz: float) -> str:
    """Formats an m/z with at most six decimals and no trailing zeros."""
    text = f"{mz:.6f}".rstrip("0").rstrip(".")
    return text if text not in ("", "-0") else "0"


def normalize_metadata_value(value: Any) -> Any:
    """
    Maps a metadata value to a JSON scalar: missing or empty values become
    "N/A", a floating zero becomes the integer 0, ints and other floats are
    kept, anything else is stringified.
    """
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, float):
        return 0 if value == 0 else value
    if isinstance(value, int):
        return value
    if value is None or (isinstance(value, str) and not value):
        return NOT_AVAILABLE
    return str(value)


def generate_gnps_entry(
    peaks: Spectrum,
    metadata: dict,
    precursor_mz: Optional[float] = None,
    charge: Optional[int] = None,
    adduct: Optional[str] = None,
    rt: Optional[float] = None,
) -> dict:
    """
    Builds the library entry as a dictionary.

    Ion fields are only written when present; the peak list is written as
    [[mz_string, intensity], ...] in the given order.
    """
    entry = {GNPS_JSON_KEYS["software"]: SOFTWARE_NAME}
    if precursor_mz is not None:
        entry[GNPS_JSON_KEYS["mz"]] = precursor_mz
    if charge is not None:
        entry[GNPS_JSON_KEYS["charge"]] = charge
    if adduct is not None and adduct.strip():
        entry[GNPS_JSON_KEYS["ion_type"]] = adduct
    if rt is not None:
        entry[GNPS_JSON_KEYS["rt"]] = rt

    entry["peaks"] = [[format_mz(p.mz), p.intensity] for p in peaks]

    for key, value in metadata.items():
        entry[key] = normalize_metadata_value(value)
    return entry


def generate_gnps_json(peaks: Spectrum, metadata: dict, **ion_fields) -> str:
    """Same as generate_gnps_entry, serialized to a compact JSON string."""
    return json.dumps(generate_gnps_entry(peaks, metadata, **ion_fields), separators=(",", ":"))
