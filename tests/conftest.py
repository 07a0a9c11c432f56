"""Shared pytest fixtures for z-dep-audit tests."""

import logging
import sys

import pytest
import structlog

from z_dep_audit.testing import FakeAmbient, FakeLoader


@pytest.fixture(autouse=True, scope="session")
def _quiet_structlog():
    """Keep engine logs off stdout so CLI output can be parsed."""
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(logging.WARNING),
        logger_factory=structlog.PrintLoggerFactory(sys.stderr),
    )
    yield
    structlog.reset_defaults()


@pytest.fixture
def loader():
    return FakeLoader()


@pytest.fixture
def ambient():
    return FakeAmbient()


@pytest.fixture
def bin_dir(tmp_path):
    d = tmp_path / "bin"
    d.mkdir()
    return d
