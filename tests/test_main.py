"""
Tests for the command line entry point.
"""

import json
import logging

import pytest

from constellation.main import main, build_parser


@pytest.fixture(autouse=True)
def reset_logger():
    """Remove handlers added by main between tests."""
    logger = logging.getLogger("Constellation")
    handlers = list(logger.handlers)
    level = logger.level
    yield
    logger.setLevel(level)
    for handler in list(logger.handlers):
        if handler not in handlers:
            logger.removeHandler(handler)


class TestMain:
    """Tests for the CLI commands."""

    def test_init_show_and_validate(self, temp_dir, capsys):
        """Test creating a timeline file, then inspecting it."""
        path = temp_dir / "doc.json"

        assert main(["init", str(path), "--label", "Start"]) == 0
        data = json.loads(path.read_text())
        root = data["states"][data["rootStateId"]]
        assert root["label"] == "Start"

        assert main(["show", str(path)]) == 0
        assert main(["validate", str(path)]) == 0

        output = capsys.readouterr().out
        assert "Start" in output
        assert "level=0" in output
        assert "OK:" in output

    def test_show_invalid_file(self, temp_dir):
        """Test a malformed timeline file fails with exit code 1."""
        path = temp_dir / "bad.json"
        path.write_text(json.dumps({"states": {}, "rootStateId": "R", "currentStateId": "R"}))

        assert main(["show", str(path)]) == 1

    def test_command_required(self):
        """Test a subcommand is mandatory."""
        with pytest.raises(SystemExit):
            build_parser().parse_args([])
