"""Tests for logging setup and the error hierarchy."""

import logging

import pytest


class TestSetupLogging:
    """Tests for setup_logging."""

    @pytest.fixture(autouse=True)
    def restore_logger(self):
        logger = logging.getLogger("pathtracer")
        handlers = list(logger.handlers)
        level = logger.level
        yield
        for handler in logger.handlers:
            handler.close()
        logger.handlers[:] = handlers
        logger.setLevel(level)

    def test_configures_package_logger(self):
        """Test level and a single console handler."""
        from pathtracer.logging_config import setup_logging

        logger = setup_logging(logging.DEBUG)
        assert logger.name == "pathtracer"
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1

    def test_repeated_setup_does_not_duplicate(self):
        """Test that handlers are replaced, not stacked."""
        from pathtracer.logging_config import setup_logging

        setup_logging()
        logger = setup_logging()
        assert len(logger.handlers) == 1

    def test_log_file(self, tmp_path):
        """Test that module loggers reach the log file."""
        from pathtracer.logging_config import setup_logging

        path = tmp_path / "render.log"
        setup_logging(logging.INFO, log_file=str(path))
        logging.getLogger("pathtracer.core.progressive").info("hello from a module")
        for handler in logging.getLogger("pathtracer").handlers:
            handler.flush()
        assert "hello from a module" in path.read_text(encoding="utf-8")


class TestErrors:
    """Tests for the exception hierarchy."""

    def test_scene_errors_are_value_errors(self):
        """Test that load errors can be caught as ValueError."""
        from pathtracer.errors import (
            MeshLoadError,
            PathTracerError,
            SceneConstructionError,
            TextureLoadError,
            TransformCycleError,
        )

        for error in (MeshLoadError, TextureLoadError, TransformCycleError):
            assert issubclass(error, PathTracerError)
            assert issubclass(error, ValueError)
        assert issubclass(MeshLoadError, SceneConstructionError)
