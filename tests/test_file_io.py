import unittest
import os
import json
import tempfile
import shutil

from spec_matcher.core.types import LibraryEntry, Peak
from spec_matcher.utils.file_io import (
    create_unique_filename,
    format_filename,
    read_feature_list_file,
    read_mgf_library,
    read_peak_list_file,
    write_library_submission,
)

MGF_CONTENT = """BEGIN IONS
TITLE=Caffeine
PEPMASS=195.0877
CHARGE=1+
100.0 50.0
101.0033 20.0
END IONS
BEGIN IONS
PEPMASS=300.5
200.0 10.0
END IONS
"""


class TestFileIO(unittest.TestCase):
    def setUp(self):
        self.test_dir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.test_dir)

    def _write(self, name, content):
        filepath = os.path.join(self.test_dir, name)
        with open(filepath, "w") as f:
            f.write(content)
        return filepath

    def test_create_unique_filename_new_file(self):
        filepath = os.path.join(self.test_dir, "test.txt")
        self.assertEqual(create_unique_filename(filepath), filepath)

    def test_create_unique_filename_existing_file(self):
        filepath = self._write("test.txt", "")
        self.assertEqual(create_unique_filename(filepath), os.path.join(self.test_dir, "test_1.txt"))

    def test_format_filename_sanitization(self):
        template = "{name}|{date}.json"
        values = {"name": "invalid<name>", "date": "2023/10/27"}
        self.assertEqual(format_filename(template, values), "invalid_name__2023_10_27.json")

    def test_format_filename_missing_key(self):
        self.assertEqual(format_filename("{name}_{charge}.json", {"name": "x"}), "x_.json")

    def test_read_peak_list_file_valid(self):
        filepath = self._write("peaks.txt", "mz\tintensity\n100.0\t50\n101.0033\t20\n\n")
        self.assertEqual(read_peak_list_file(filepath), [Peak(100.0, 50.0), Peak(101.0033, 20.0)])

    def test_read_peak_list_file_not_found(self):
        with self.assertRaises(FileNotFoundError):
            read_peak_list_file("non_existent_file.txt")

    def test_read_peak_list_file_bad_header(self):
        filepath = self._write("peaks.txt", "mass\tintensity\n100.0\t1.0")
        with self.assertRaisesRegex(ValueError, "must contain a 'mz' column"):
            read_peak_list_file(filepath)

    def test_read_peak_list_file_bad_data(self):
        filepath = self._write("peaks.txt", "mz\tintensity\n100.0\t-5")
        with self.assertRaisesRegex(ValueError, "Invalid data on line 2"):
            read_peak_list_file(filepath)

    def test_read_feature_list_file_with_ids(self):
        filepath = self._write("features.txt", "ID\tMZ\tRT\tHeight\n7\t500.0\t5.0\t100\n9\t500.5017\t5.0\t40\n")
        rows = read_feature_list_file(filepath)
        self.assertEqual([row.id for row in rows], [7, 9])
        self.assertEqual(rows[1].feature.mz, 500.5017)
        self.assertEqual(rows[1].feature.id, 9)

    def test_read_feature_list_file_without_ids(self):
        filepath = self._write("features.txt", "mz\trt\theight\n500.0\t5.0\t100\n")
        rows = read_feature_list_file(filepath)
        self.assertEqual(rows[0].id, 1)

    def test_read_feature_list_file_empty(self):
        filepath = self._write("features.txt", "mz\trt\theight\n")
        with self.assertRaisesRegex(ValueError, "empty"):
            read_feature_list_file(filepath)

    def test_read_mgf_library(self):
        filepath = self._write("library.mgf", MGF_CONTENT)
        entries = read_mgf_library(filepath)

        self.assertEqual(len(entries), 2)
        self.assertEqual(entries[0].name, "Caffeine")
        self.assertEqual(entries[0].peaks, (Peak(100.0, 50.0), Peak(101.0033, 20.0)))
        self.assertEqual(entries[1].name, "Spectrum 2")

    def test_write_library_submission(self):
        entry = LibraryEntry(name="Caffeine", peaks=(Peak(100.0, 50.0),), metadata={"INSTRUMENT": ""})
        first = write_library_submission(entry, self.test_dir, charge=1)
        second = write_library_submission(entry, self.test_dir, charge=1)

        self.assertEqual(os.path.basename(first), "Caffeine.json")
        self.assertEqual(os.path.basename(second), "Caffeine_1.json")
        with open(first) as f:
            document = json.load(f)
        self.assertEqual(document["INSTRUMENT"], "N/A")
        self.assertEqual(document["peaks"], [["100", 50.0]])


if __name__ == '__main__':
    unittest.main()
