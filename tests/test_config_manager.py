import tempfile
import textwrap
import unittest
from pathlib import Path

from lanpush.utils.config_manager import ConfigManager


class TestConfigManager(unittest.TestCase):

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.config_path = Path(self._tmp.name) / "config.ini"

    def tearDown(self):
        self._tmp.cleanup()

    def write_config(self, text):
        self.config_path.write_text(textwrap.dedent(text), encoding="utf-8")

    def test_missing_file_means_defaults(self):
        config = ConfigManager(self.config_path)
        self.assertEqual(config.protocol, "http")
        self.assertEqual(config.port, 8080)
        self.assertIsNone(config.save_directory)
        self.assertEqual(config.log_level, "INFO")
        self.assertFalse(self.config_path.exists())

    def test_values_from_file(self):
        self.write_config("""
            [Network]
            protocol = Stream
            port = 9090

            [Preferences]
            save_directory = /srv/incoming
            log_level = debug
        """)
        config = ConfigManager(self.config_path)
        self.assertEqual(config.protocol, "stream")
        self.assertEqual(config.port, 9090)
        self.assertEqual(config.save_directory, "/srv/incoming")
        self.assertEqual(config.log_level, "DEBUG")

    def test_invalid_values_fall_back(self):
        self.write_config("""
            [Network]
            protocol = carrier-pigeon
            port = eighty
        """)
        config = ConfigManager(self.config_path)
        self.assertEqual(config.protocol, "http")
        self.assertEqual(config.port, 8080)

    def test_out_of_range_port(self):
        self.write_config("""
            [Network]
            port = 70000
        """)
        self.assertEqual(ConfigManager(self.config_path).port, 8080)

    def test_unparsable_file_uses_defaults(self):
        self.config_path.write_text("this is not an ini file\n", encoding="utf-8")
        config = ConfigManager(self.config_path)
        self.assertEqual(config.protocol, "http")
        self.assertEqual(config.port, 8080)


if __name__ == '__main__':
    unittest.main()
