# --- Isotope Constants ---
# Expected distance between isotopes. One neutron weighs 1.008665 Da, but part
# of that mass is consumed as binding energy, so without a chemical formula we
# assume ~1.0033 Da (the 13C - 12C difference) and rely on the m/z tolerance.
ISOTOPE_DISTANCE = 1.0033

# --- Tolerance ---
PPM_FACTOR = 1e6

# --- Similarity Weights ---
# (mz_weight, intensity_weight) pairs. Each aligned signal contributes
# mz**mz_weight * intensity**intensity_weight to the cosine vectors.
WEIGHT_PRESETS = {
    "NONE": (0.0, 1.0),
    "SQRT": (0.0, 0.5),
    "MASSBANK": (2.0, 0.5),  # mz^2 * I^0.5
    "NIST11": (1.3, 0.53),  # mz^1.3 * I^0.53
    "NIST_GC": (3.0, 0.6),  # mz^3 * I^0.6
}

# --- Isotope Grouper Representative Policies ---
REPRESENTATIVE_MOST_INTENSE = "most_intense"
REPRESENTATIVE_LOWEST_MZ = "lowest_mz"
REPRESENTATIVE_POLICIES = (REPRESENTATIVE_MOST_INTENSE, REPRESENTATIVE_LOWEST_MZ)

# --- Library Submission ---
SOFTWARE_NAME = "spec_matcher"
NOT_AVAILABLE = "N/A"
GNPS_JSON_KEYS = {
    "software": "SOFTWARE",
    "mz": "PEPMASS",
    "charge": "CHARGE",
    "ion_type": "ION_TYPE",
    "rt": "RTINSECONDS",
}
