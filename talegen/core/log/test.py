"""Tests for the logging helpers."""

import logging
from io import StringIO
from unittest.mock import MagicMock

import pytest

from .lib import LOG_FORMAT, get_logger, resolve_level, setup_logging


class TestGetLogger:
    """Tests for get_logger."""

    @pytest.mark.unit
    def test_named(self) -> None:
        assert get_logger("talegen.cli") is logging.getLogger("talegen.cli")

    @pytest.mark.unit
    def test_package_logger_by_default(self) -> None:
        assert get_logger().name == "talegen"


class TestSetupLogging:
    """Tests for setup_logging."""

    @pytest.mark.unit
    def test_level_name_is_resolved(self, monkeypatch) -> None:
        basic_config = MagicMock()
        monkeypatch.setattr(logging, "basicConfig", basic_config)
        stream = StringIO()

        setup_logging(level="debug", stream=stream)

        basic_config.assert_called_once_with(
            level=logging.DEBUG, format=LOG_FORMAT, stream=stream
        )


class TestResolveLevel:
    """Tests for level name resolution."""

    @pytest.mark.unit
    def test_known_names(self) -> None:
        assert resolve_level("DEBUG") == logging.DEBUG
        assert resolve_level(" warning ") == logging.WARNING

    @pytest.mark.unit
    def test_int_passthrough(self) -> None:
        assert resolve_level(logging.ERROR) == logging.ERROR

    @pytest.mark.unit
    def test_unknown_name_defaults_to_info(self) -> None:
        assert resolve_level("chatty") == logging.INFO
