"""Command line interface for spec_matcher."""
import argparse
import json
import logging
import sys

from .config import IsotopeGrouperParams, MzTolerance, SimilarityParams, Weights
from .core.constants import REPRESENTATIVE_POLICIES, WEIGHT_PRESETS
from .core.exceptions import SpecMatcherError
from .core.similarity import SIMILARITY_FUNCTIONS
from .core.types import IsotopeCluster
from .logic.deisotoping import deisotope_peak_list
from .logic.identification import identify_spectrum
from .utils.file_io import read_feature_list_file, read_mgf_library, read_peak_list_file

logger = logging.getLogger(__name__)

EXIT_CODE_USER_ERROR = 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Spectral library matching and isotope grouping.")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log debug messages.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    identify = subparsers.add_parser("identify", help="Search a query spectrum against an MGF library.")
    identify.add_argument("--query", required=True, help="Tab-delimited peak list with mz/intensity columns.")
    identify.add_argument("--library", required=True, help="MGF spectral library.")
    identify.add_argument("--mz-tolerance", type=float, default=0.01, help="Absolute m/z tolerance (Da).")
    identify.add_argument("--ppm", type=float, default=0.0, help="Relative m/z tolerance (ppm).")
    identify.add_argument("--min-match", type=int, default=3)
    identify.add_argument("--min-cosine", type=float, default=0.7)
    identify.add_argument("--weights", choices=sorted(WEIGHT_PRESETS), default="NONE")
    identify.add_argument("--function", choices=sorted(SIMILARITY_FUNCTIONS), default="composite_cosine")
    identify.add_argument("--top", type=int, default=10, help="Number of hits to report.")

    deisotope = subparsers.add_parser("deisotope", help="Group isotope patterns of a feature list.")
    deisotope.add_argument("--features", required=True, help="Tab-delimited feature list (mz, rt, height).")
    deisotope.add_argument("--max-charge", type=int, default=2)
    deisotope.add_argument("--mz-tolerance", type=float, default=0.01)
    deisotope.add_argument("--rt-tolerance", type=float, default=0.1)
    deisotope.add_argument("--monotonic", action="store_true", help="Only search isotopes above the seed m/z.")
    deisotope.add_argument("--representative", choices=REPRESENTATIVE_POLICIES, default=REPRESENTATIVE_POLICIES[0])
    return parser


def _identify(args) -> list:
    params = SimilarityParams(
        tolerance=MzTolerance(absolute=args.mz_tolerance, ppm=args.ppm),
        min_match=args.min_match,
        min_cosine=args.min_cosine,
        weights=Weights.from_preset(args.weights),
        function=args.function,
    )
    hits = identify_spectrum(read_peak_list_file(args.query), read_mgf_library(args.library), params)
    return [
        {"name": hit.entry.name, "score": round(hit.score, 4), "matched": hit.similarity.matched_count}
        for hit in hits[:args.top]
    ]


def _deisotope(args) -> list:
    params = IsotopeGrouperParams(
        max_charge=args.max_charge,
        mz_tolerance=args.mz_tolerance,
        rt_tolerance=args.rt_tolerance,
        monotonic_shape=args.monotonic,
        representative=args.representative,
    )
    peak_list = deisotope_peak_list(args.features, read_feature_list_file(args.features), params)
    output = []
    for row in peak_list.rows:
        item = {"id": row.id, "mz": row.feature.mz, "rt": row.feature.rt, "height": row.feature.height}
        if isinstance(row.feature, IsotopeCluster):
            item["charge"] = row.feature.charge
            item["isotopes"] = len(row.feature.members)
        output.append(item)
    return output


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        result = _identify(args) if args.command == "identify" else _deisotope(args)
    except (SpecMatcherError, ValueError, FileNotFoundError) as e:
        logger.error("%s", e)
        return EXIT_CODE_USER_ERROR

    json.dump(result, sys.stdout, indent=2)
    sys.stdout.write("\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
