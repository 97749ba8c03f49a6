import os
import csv
import re

from pyteomics import mgf

from ..core.types import Feature, LibraryEntry, Peak, PeakListRow, peaks_from_arrays
from .gnps_json import generate_gnps_json


def create_unique_filename(filepath: str) -> str:
    """
    Checks if a file exists and appends a counter if it does, ensuring a
    unique filename.
    """
    if not os.path.exists(filepath):
        return filepath

    base, ext = os.path.splitext(filepath)
    counter = 1
    while os.path.exists(filepath):
        filepath = f"{base}_{counter}{ext}"
        counter += 1
    return filepath


def format_filename(template: str, values: dict) -> str:
    """
    Formats a filename template string using a dictionary of values and
    sanitizes the result to be a valid filename.
    """
    keys_in_template = re.findall(r'\{(.*?)\}', template)

    # Missing placeholders are rendered as empty strings rather than raising.
    for key in keys_in_template:
        values.setdefault(key, "")

    formatted_name = template.format(**values)
    return re.sub(r'[\\/*?:"<>|]', "_", formatted_name)


def _read_header(reader, filepath: str) -> list[str]:
    try:
        return [h.strip().lower() for h in next(reader)]
    except StopIteration:
        raise ValueError(f"File is empty: {filepath}")


def _column_index(header: list[str], name: str) -> int:
    try:
        return header.index(name)
    except ValueError:
        raise ValueError(f"File must contain a '{name}' column header.")


def read_peak_list_file(filepath: str) -> list[Peak]:
    """
    Reads a tab-delimited centroid spectrum with 'mz' and 'intensity' columns.
    """
    if not os.path.exists(filepath):
        raise FileNotFoundError(f"Peak list not found: {filepath}")

    with open(filepath, 'r', encoding='utf-8-sig') as f:
        reader = csv.reader(f, delimiter='\t')
        header = _read_header(reader, filepath)
        mz_idx = _column_index(header, "mz")
        intensity_idx = _column_index(header, "intensity")

        peaks = []
        # Line numbers start at 2 to account for the header.
        for i, row in enumerate(reader, 2):
            if not row:
                continue
            try:
                mz = float(row[mz_idx])
                intensity = float(row[intensity_idx])
                if intensity < 0:
                    raise ValueError("Intensity must be >= 0.")
                peaks.append(Peak(mz, intensity))
            except (ValueError, IndexError) as e:
                raise ValueError(f"Invalid data on line {i}: {e}")

    return peaks


def read_feature_list_file(filepath: str) -> list[PeakListRow]:
    """
    Reads a tab-delimited feature list with 'mz', 'rt' and 'height' columns
    and an optional 'id' column. Rows without an ID are numbered from 1.
    """
    if not os.path.exists(filepath):
        raise FileNotFoundError(f"Feature list not found: {filepath}")

    with open(filepath, 'r', encoding='utf-8-sig') as f:
        reader = csv.reader(f, delimiter='\t')
        header = _read_header(reader, filepath)
        mz_idx = _column_index(header, "mz")
        rt_idx = _column_index(header, "rt")
        height_idx = _column_index(header, "height")
        id_idx = header.index("id") if "id" in header else None

        rows = []
        for i, row in enumerate(reader, 2):
            if not row:
                continue
            try:
                row_id = int(row[id_idx]) if id_idx is not None else len(rows) + 1
                height = float(row[height_idx])
                if height < 0:
                    raise ValueError("Height must be >= 0.")
                feature = Feature(mz=float(row[mz_idx]), rt=float(row[rt_idx]), height=height, id=row_id)
                rows.append(PeakListRow(id=row_id, feature=feature))
            except (ValueError, IndexError) as e:
                raise ValueError(f"Invalid data on line {i}: {e}")

    if not rows:
        raise ValueError("Feature list is empty or contains no valid data rows.")

    return rows


def read_mgf_library(filepath: str) -> list[LibraryEntry]:
    """
    Reads every spectrum of an MGF file as a library entry named by its TITLE.
    """
    if not os.path.exists(filepath):
        raise FileNotFoundError(f"Library file not found: {filepath}")

    entries = []
    with mgf.read(filepath, use_index=False, convert_arrays=1) as reader:
        for i, spectrum in enumerate(reader, 1):
            params = dict(spectrum.get('params', {}))
            name = params.get('title') or f"Spectrum {i}"
            peaks = peaks_from_arrays(spectrum['m/z array'], spectrum['intensity array'])
            entries.append(LibraryEntry(name=name, peaks=tuple(peaks), metadata=params))
    return entries


def write_library_submission(entry: LibraryEntry, output_directory: str,
                             filename_template: str = "{name}.json", **ion_fields) -> str:
    """
    Writes a library entry as a GNPS submission JSON file and returns its path.
    An existing file is never overwritten.
    """
    filename = format_filename(filename_template, {"name": entry.name})
    filepath = create_unique_filename(os.path.join(output_directory, filename))
    os.makedirs(output_directory, exist_ok=True)
    with open(filepath, "w", encoding="utf-8") as f:
        f.write(generate_gnps_json(entry.peaks, entry.metadata, **ion_fields))
    return filepath
