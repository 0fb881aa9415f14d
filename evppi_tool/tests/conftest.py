"""Shared fixtures for the evppi_tool test suite."""

import logging

import pytest


@pytest.fixture
def package_log(caplog):
    """Capture INFO records of the evppi_tool logger, which does not propagate once configured."""
    logger = logging.getLogger("evppi_tool")
    caplog.set_level(logging.INFO, logger="evppi_tool")
    logger.addHandler(caplog.handler)
    yield caplog
    logger.removeHandler(caplog.handler)
