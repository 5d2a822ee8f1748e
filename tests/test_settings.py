from __future__ import annotations

import os
from pathlib import Path
import sys
import tempfile
import unittest
from unittest.mock import patch

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from favicon32.settings import Settings, load_env_file, load_settings  # noqa: E402


class SettingsTests(unittest.TestCase):
    def test_defaults(self) -> None:
        self.assertEqual(Settings(colors=256, truecolor=False, verbose=False), load_settings({}))

    def test_values_from_environment(self) -> None:
        settings = load_settings({
            "FAVICON32_COLORS": "16",
            "FAVICON32_TRUECOLOR": "Yes",
            "FAVICON32_VERBOSE": "0",
        })

        self.assertEqual(16, settings.colors)
        self.assertTrue(settings.truecolor)
        self.assertFalse(settings.verbose)

    def test_invalid_colors(self) -> None:
        for value in ("0", "257", "many"):
            with self.subTest(value=value):
                with self.assertRaises(ValueError):
                    load_settings({"FAVICON32_COLORS": value})

    @patch.dict(os.environ, {"FAVICON32_COLORS": "8"})
    def test_env_file_does_not_override_environment(self) -> None:
        os.environ.pop("FAVICON32_VERBOSE", None)
        with tempfile.TemporaryDirectory() as tmp:
            env_file = Path(tmp) / ".env"
            env_file.write_text(
                "# local overrides\nFAVICON32_COLORS=32\n\nFAVICON32_VERBOSE=true\n",
                encoding="utf-8",
            )

            self.assertTrue(load_env_file(env_file))

        self.assertEqual("8", os.environ["FAVICON32_COLORS"])
        self.assertEqual("true", os.environ["FAVICON32_VERBOSE"])

    def test_missing_env_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            self.assertFalse(load_env_file(Path(tmp) / ".env"))


if __name__ == "__main__":
    unittest.main()
