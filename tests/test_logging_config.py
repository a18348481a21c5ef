import json
import tempfile
import unittest
from pathlib import Path

from loguru import logger

from agent_desk.logging_config import setup_logging


class SetupLoggingTests(unittest.TestCase):
    def tearDown(self) -> None:
        logger.remove()

    def test_describes_registered_consumers_and_skips_unknown(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = str(Path(tmp) / "logs" / "desk.log")
            descriptions = setup_logging(
                level="debug",
                consumers=[
                    {"type": "console", "level": "warning"},
                    {"type": "file", "path": path},
                    {"type": "carrier-pigeon"},
                ],
            )
            logger.remove()

        self.assertEqual(
            ["console (stderr, WARNING)", f"file ({path}, text, DEBUG)"],
            descriptions,
        )

    def test_string_entry_and_unknown_level_fall_back(self) -> None:
        descriptions = setup_logging(level="chatty", consumers=["console", {"type": "console", "level": "loud"}])
        self.assertEqual(["console (stderr, INFO)", "console (stderr, INFO)"], descriptions)

    def test_consumer_with_bad_options_is_skipped(self) -> None:
        descriptions = setup_logging(
            consumers=[
                {"type": "console", "stream": "printer"},
                {"type": "file", "colour": "blue"},
                {"type": "console", "stream": "stdout"},
            ]
        )
        self.assertEqual(["console (stdout, INFO)"], descriptions)

    def test_serialized_file_consumer_writes_json_lines(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "desk.jsonl"
            setup_logging(level="INFO", consumers=[{"type": "file", "path": str(path), "serialize": True}])
            logger.info("session selected")
            logger.remove()

            record = json.loads(path.read_text().splitlines()[0])

        self.assertEqual("session selected", record["record"]["message"])

    def test_module_levels_filter_noisy_modules(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "desk.log"
            setup_logging(
                level="DEBUG",
                consumers=[{"type": "file", "path": str(path), "modules": {__name__: "error"}}],
            )
            logger.info("routine tick")
            logger.error("real problem")
            logger.remove()

            content = path.read_text()

        self.assertNotIn("routine tick", content)
        self.assertIn("real problem", content)


if __name__ == "__main__":
    unittest.main()
