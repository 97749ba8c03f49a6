import threading
import unittest

import numpy as np

from spec_matcher.config import MzTolerance, SimilarityParams, Weights
from spec_matcher.core.exceptions import ConfigurationError
from spec_matcher.core.similarity import WeightedCosineSimilarity
from spec_matcher.core.types import LibraryEntry, Peak
from spec_matcher.logic.identification import align_and_score, identify_spectrum


class TestAlignAndScore(unittest.TestCase):

    def setUp(self):
        self.library = [Peak(100.0, 50), Peak(101.0033, 20)]
        self.query = [Peak(100.0, 55), Peak(101.0, 18)]

    def test_scenario(self):
        result = align_and_score(self.library, self.query, 0.01, 1, 0.0, Weights())
        self.assertIsNotNone(result)
        self.assertEqual(result.matched_count, 2)
        self.assertGreater(result.score, 0.9)

    def test_numpy_min_match(self):
        result = align_and_score(self.library, self.query, 0.01, np.int64(2), 0.0, Weights.from_preset("NIST11"))
        self.assertEqual(result.matched_count, 2)

    def test_no_match_is_none(self):
        self.assertIsNone(align_and_score(self.library, [Peak(500.0, 1)], 0.01, 1, 0.0, Weights()))

    def test_weighted_cosine_function(self):
        result = align_and_score(self.library, self.query, MzTolerance(absolute=0.01), 1, 0.0,
                                 Weights(), function="weighted_cosine")
        self.assertEqual(result.name, WeightedCosineSimilarity.name)

    def test_configuration_errors(self):
        with self.assertRaises(ConfigurationError):
            align_and_score(self.library, self.query, -0.01, 1, 0.0, Weights())
        with self.assertRaises(ConfigurationError):
            align_and_score(self.library, self.query, 0.01, -2, 0.0, Weights())
        with self.assertRaises(ConfigurationError):
            align_and_score(self.library, self.query, 0.01, 1, 0.0, (1.0, 0.5))
        with self.assertRaises(ConfigurationError):
            Weights(mz_weight=-1.0)


class TestIdentifySpectrum(unittest.TestCase):

    def setUp(self):
        self.query = [Peak(100.0, 100), Peak(120.0, 50), Peak(150.0, 20)]
        self.library = [
            LibraryEntry(name="partial", peaks=(Peak(100.0, 100), Peak(120.0, 10), Peak(180.0, 70))),
            LibraryEntry(name="unrelated", peaks=(Peak(400.0, 10), Peak(410.0, 10))),
            LibraryEntry(name="exact", peaks=(Peak(100.001, 100), Peak(120.0, 50), Peak(150.0, 20))),
        ]
        self.params = SimilarityParams(tolerance=0.01, min_match=2, min_cosine=0.1)

    def test_hits_sorted_by_score(self):
        hits = identify_spectrum(self.query, self.library, self.params)
        self.assertEqual([hit.entry.name for hit in hits], ["exact", "partial"])
        self.assertGreater(hits[0].score, hits[1].score)
        self.assertEqual(hits[0].similarity.matched_count, 3)

    def test_progress_callback(self):
        messages = []
        identify_spectrum(self.query, self.library, self.params,
                          progress_callback=lambda kind, value: messages.append(kind))
        self.assertEqual(messages.count('progress_add'), len(self.library))
        self.assertEqual(messages[-1], 'log')

    def test_cancellation(self):
        stop_event = threading.Event()
        stop_event.set()
        self.assertIsNone(identify_spectrum(self.query, self.library, self.params, stop_event=stop_event))

    def test_unknown_function(self):
        self.params.function = "entropy"
        with self.assertRaises(ConfigurationError):
            identify_spectrum(self.query, self.library, self.params)


if __name__ == '__main__':
    unittest.main()
