import os
import tempfile
import unittest
import uuid
from pathlib import Path, PureWindowsPath

from lanpush.utils.file_utils import (cleanup_partial_file, commit_partial_file, confined_destination,
                                      create_partial_file, generate_file_name, sanitize_file_name)


def assert_generated_name(test, name):
    test.assertTrue(name.startswith("received_"), name)
    test.assertTrue(name.endswith(".dat"), name)
    uuid.UUID(name[len("received_"):-len(".dat")])


class TestSanitizeFileName(unittest.TestCase):

    def test_plain_name_is_kept(self):
        self.assertEqual(sanitize_file_name("report.pdf"), "report.pdf")
        self.assertEqual(sanitize_file_name("résumé 2024.txt"), "résumé 2024.txt")

    def test_directory_components_are_dropped(self):
        self.assertEqual(sanitize_file_name("../../evil.txt"), "evil.txt")
        self.assertEqual(sanitize_file_name("..\\..\\evil.txt"), "evil.txt")
        self.assertEqual(sanitize_file_name("/etc/passwd"), "passwd")
        self.assertEqual(sanitize_file_name("C:\\Windows\\win.ini"), "win.ini")

    def test_drive_relative_names_are_reduced(self):
        self.assertEqual(sanitize_file_name("C:evil.txt"), "evil.txt")
        self.assertEqual(sanitize_file_name("D:\\x\\y.txt"), "y.txt")
        assert_generated_name(self, sanitize_file_name("C:"))

    def test_drive_relative_name_stays_in_windows_save_directory(self):
        save_dir = PureWindowsPath(r"D:\Users\me\ReceivedFiles")
        for declared in ("C:evil.txt", "D:\\x\\y.txt", "C:..\\evil.txt"):
            with self.subTest(name=declared):
                self.assertEqual((save_dir / sanitize_file_name(declared)).parent, save_dir)

    def test_unusable_names_get_generated_name(self):
        for bad in (None, "", "   ", ".", "..", "../", "a/..", "\x00"):
            with self.subTest(name=bad):
                assert_generated_name(self, sanitize_file_name(bad))

    def test_generated_names_are_unique(self):
        names = {generate_file_name() for _ in range(50)}
        self.assertEqual(len(names), 50)


class TestPartialFiles(unittest.TestCase):

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.dir = Path(self._tmp.name)

    def tearDown(self):
        self._tmp.cleanup()

    def test_commit_replaces_destination(self):
        destination = self.dir / "a.txt"
        destination.write_bytes(b"old")
        fd, partial = create_partial_file(self.dir)
        with os.fdopen(fd, "wb") as f:
            f.write(b"new")
        commit_partial_file(partial, destination)
        self.assertEqual(destination.read_bytes(), b"new")
        self.assertEqual([p.name for p in self.dir.iterdir()], ["a.txt"])

    def test_cleanup_removes_file_and_tolerates_missing(self):
        fd, partial = create_partial_file(self.dir)
        os.close(fd)
        cleanup_partial_file(partial)
        self.assertFalse(partial.exists())
        cleanup_partial_file(partial) # already gone
        cleanup_partial_file(None)

    def test_confined_destination(self):
        self.assertEqual(confined_destination(self.dir, "a.txt"), self.dir / "a.txt")
        for escaping in ("../a.txt", "..", "sub/a.txt"):
            with self.subTest(name=escaping):
                with self.assertRaises(ValueError):
                    confined_destination(self.dir, escaping)


if __name__ == '__main__':
    unittest.main()
