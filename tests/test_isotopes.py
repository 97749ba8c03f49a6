import threading
import unittest

import numpy as np

from spec_matcher.config import IsotopeGrouperParams
from spec_matcher.core.constants import ISOTOPE_DISTANCE
from spec_matcher.core.exceptions import ConfigurationError, MalformedInputError
from spec_matcher.core.isotopes import IsotopeGrouper, choose_representative
from spec_matcher.core.types import Feature, IsotopeCluster
from spec_matcher.logic.deisotoping import group_isotopes


def _clusters(grouped):
    return [g for g in grouped if isinstance(g, IsotopeCluster)]


class TestIsotopeGrouper(unittest.TestCase):

    def setUp(self):
        self.mono = Feature(mz=500.0, rt=5.0, height=100)
        self.first = Feature(mz=500.5017, rt=5.0, height=40)
        self.second = Feature(mz=501.0033, rt=5.0, height=15)

    def test_doubly_charged_pattern(self):
        """
        Three features spaced by half the isotope distance form one cluster
        of charge 2, represented by the tallest member.
        """
        grouped = group_isotopes([self.second, self.first, self.mono], max_charge=2,
                                 mz_tolerance=0.01, rt_tolerance=0.1)

        self.assertEqual(len(grouped), 1)
        cluster = grouped[0]
        self.assertIsInstance(cluster, IsotopeCluster)
        self.assertEqual(cluster.charge, 2)
        self.assertEqual(cluster.members, (self.mono, self.first, self.second))
        self.assertIs(cluster.representative, self.mono)
        self.assertEqual(cluster.mz, 500.0)

    def test_lone_feature_is_returned_unchanged(self):
        lone = Feature(mz=300.0, rt=1.0, height=10)
        grouped = group_isotopes([lone], max_charge=3, mz_tolerance=0.01, rt_tolerance=0.1)
        self.assertEqual(len(grouped), 1)
        self.assertIs(grouped[0], lone)

    def test_rt_tolerance_separates_features(self):
        late = Feature(mz=501.0033, rt=6.0, height=50)
        grouped = group_isotopes([self.mono, late], max_charge=1, mz_tolerance=0.01, rt_tolerance=0.1)
        self.assertEqual(grouped, [self.mono, late])

    def test_empty_input(self):
        self.assertEqual(group_isotopes([], max_charge=2, mz_tolerance=0.01, rt_tolerance=0.1), [])

    def test_monotonic_shape_skips_lower_isotopes(self):
        apex = Feature(mz=501.0033, rt=5.0, height=100)
        lower = Feature(mz=500.0, rt=5.0, height=50)
        upper = Feature(mz=502.0066, rt=5.0, height=30)

        both = group_isotopes([apex, lower, upper], max_charge=1, mz_tolerance=0.01, rt_tolerance=0.1)
        self.assertEqual(len(both), 1)
        self.assertEqual(set(both[0].members), {apex, lower, upper})

        monotonic = group_isotopes([apex, lower, upper], max_charge=1, mz_tolerance=0.01,
                                   rt_tolerance=0.1, monotonic_only=True)
        self.assertEqual(len(monotonic), 2)
        self.assertEqual(monotonic[0].members, (apex, upper))
        self.assertIs(monotonic[1], lower)

    def test_tallest_candidate_is_chosen(self):
        small = Feature(mz=501.0033, rt=5.0, height=10)
        tall = Feature(mz=501.0053, rt=5.0, height=20)
        grouped = group_isotopes([self.mono, small, tall], max_charge=1, mz_tolerance=0.01, rt_tolerance=0.1)

        self.assertEqual(grouped[0].members, (self.mono, tall))
        self.assertIs(grouped[1], small)

    def test_charge_tie_prefers_smallest_charge(self):
        seed = Feature(mz=500.0, rt=5.0, height=100)
        half = Feature(mz=500.0 + ISOTOPE_DISTANCE / 2, rt=5.0, height=50)
        below = Feature(mz=500.0 - ISOTOPE_DISTANCE, rt=5.0, height=50)
        grouped = group_isotopes([seed, half, below], max_charge=2, mz_tolerance=0.001, rt_tolerance=0.1)

        self.assertEqual(grouped[0].charge, 1)
        self.assertEqual(set(grouped[0].members), {seed, below})
        self.assertIs(grouped[1], half)

    def test_representative_policies(self):
        apex = Feature(mz=501.0033, rt=5.0, height=100)
        lower = Feature(mz=500.0, rt=5.0, height=50)
        upper = Feature(mz=502.0066, rt=5.0, height=30)
        features = [apex, lower, upper]

        most_intense = group_isotopes(features, 1, 0.01, 0.1, representative="most_intense")[0]
        lowest_mz = group_isotopes(features, 1, 0.01, 0.1, representative="lowest_mz")[0]
        self.assertIs(most_intense.representative, apex)
        self.assertIs(lowest_mz.representative, lower)

    def test_choose_representative_ties_keep_first(self):
        a = Feature(mz=200.0, rt=1.0, height=10)
        b = Feature(mz=200.0, rt=1.0, height=10)
        self.assertIs(choose_representative([a, b], "most_intense"), a)
        self.assertIs(choose_representative([a, b], "lowest_mz"), a)

    def test_partition_of_random_features(self):
        rng = np.random.default_rng(5)
        features = [
            Feature(mz=float(m), rt=float(r), height=float(h))
            for m, r, h in zip(rng.uniform(500, 504, 150), rng.uniform(5.0, 5.3, 150), rng.uniform(1, 1000, 150))
        ]
        grouped = group_isotopes(features, max_charge=3, mz_tolerance=0.02, rt_tolerance=0.1)

        seen = []
        for item in grouped:
            if isinstance(item, IsotopeCluster):
                self.assertGreaterEqual(len(item.members), 2)
                self.assertIn(item.representative, item.members)
                seen.extend(item.members)
            else:
                seen.append(item)
        self.assertEqual(len(seen), len(features))
        self.assertEqual({id(f) for f in seen}, {id(f) for f in features})

    def test_output_follows_descending_height(self):
        rng = np.random.default_rng(9)
        features = [
            Feature(mz=float(m), rt=5.0, height=float(h))
            for m, h in zip(rng.uniform(300, 900, 40), rng.uniform(1, 1000, 40))
        ]
        grouped = group_isotopes(features, max_charge=2, mz_tolerance=0.001, rt_tolerance=0.1)
        heights = [g.height for g in grouped]
        self.assertEqual(heights, sorted(heights, reverse=True))

    def test_representatives_do_not_regroup(self):
        light = [Feature(mz=400.0 + n * ISOTOPE_DISTANCE, rt=2.0, height=100 - 30 * n) for n in range(3)]
        heavy = [Feature(mz=700.0 + n * ISOTOPE_DISTANCE / 2, rt=2.0, height=80 - 20 * n) for n in range(3)]
        grouped = group_isotopes(light + heavy, max_charge=2, mz_tolerance=0.005, rt_tolerance=0.1)
        self.assertEqual(len(_clusters(grouped)), 2)

        representatives = [g.representative if isinstance(g, IsotopeCluster) else g for g in grouped]
        regrouped = group_isotopes(representatives, max_charge=2, mz_tolerance=0.005, rt_tolerance=0.1)
        self.assertFalse(_clusters(regrouped))
        self.assertEqual(len(regrouped), len(representatives))


class TestIsotopeGrouperCancellation(unittest.TestCase):

    def test_preset_stop_event_returns_none(self):
        stop_event = threading.Event()
        stop_event.set()
        features = [Feature(mz=500.0, rt=5.0, height=100), Feature(mz=501.0033, rt=5.0, height=40)]
        self.assertIsNone(group_isotopes(features, 2, 0.01, 0.1, stop_event=stop_event))

    def test_callable_cancellation(self):
        features = [Feature(mz=500.0, rt=5.0, height=100)]
        self.assertIsNone(group_isotopes(features, 2, 0.01, 0.1, stop_event=lambda: True))

    def test_progress_is_complete_after_run(self):
        grouper = IsotopeGrouper(IsotopeGrouperParams(max_charge=2, mz_tolerance=0.01, rt_tolerance=0.1))
        grouper.run([Feature(mz=500.0, rt=5.0, height=100), Feature(mz=501.0033, rt=5.0, height=40)])
        self.assertEqual(grouper.finished_percentage, 1.0)


class TestIsotopeGrouperValidation(unittest.TestCase):

    def test_invalid_charge(self):
        with self.assertRaises(ConfigurationError):
            group_isotopes([], max_charge=0, mz_tolerance=0.01, rt_tolerance=0.1)

    def test_negative_tolerance(self):
        with self.assertRaises(ConfigurationError):
            group_isotopes([], max_charge=2, mz_tolerance=-0.01, rt_tolerance=0.1)
        with self.assertRaises(ConfigurationError):
            group_isotopes([], max_charge=2, mz_tolerance=0.01, rt_tolerance=-1)

    def test_unknown_representative(self):
        with self.assertRaisesRegex(ConfigurationError, "representative"):
            group_isotopes([], max_charge=2, mz_tolerance=0.01, rt_tolerance=0.1, representative="median")

    def test_malformed_feature(self):
        with self.assertRaisesRegex(MalformedInputError, "invalid m/z"):
            group_isotopes([Feature(mz=float("nan"), rt=1.0, height=1.0)], 2, 0.01, 0.1)
        with self.assertRaisesRegex(MalformedInputError, "invalid height"):
            group_isotopes([Feature(mz=100.0, rt=1.0, height=-1.0)], 2, 0.01, 0.1)
        with self.assertRaisesRegex(MalformedInputError, "invalid m/z"):
            group_isotopes([Feature(mz=-500.0, rt=1.0, height=1.0)], 2, 0.01, 0.1)


if __name__ == '__main__':
    unittest.main()
