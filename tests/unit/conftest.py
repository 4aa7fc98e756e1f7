"""
Unit Test Fixtures.

Fixtures for unit tests. External boundaries (SMTP, Redis, the
database) are mocked; configuration is the real YAML from
config/settings/.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from asof.backend.core.config import get_app_config


# =============================================================================
# Database Mock Fixtures
# =============================================================================


@pytest.fixture
def mock_db_session() -> AsyncMock:
    """
    Mock database session for unit tests.

    Usage:
        def test_service(mock_db_session: AsyncMock):
            service = PostService(mock_db_session)
    """
    session = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.flush = AsyncMock()
    session.refresh = AsyncMock()
    session.execute = AsyncMock()
    session.add = MagicMock()
    session.delete = AsyncMock()
    return session


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture
def app_config():
    """The real, validated YAML configuration."""
    return get_app_config()


# =============================================================================
# Logging Mock Fixtures
# =============================================================================


@pytest.fixture
def mock_logger() -> MagicMock:
    """
    Mock logger for testing logging calls.

    Usage:
        def test_logging(mock_logger):
            with patch("module.logger", mock_logger):
                ...
                mock_logger.info.assert_called_once()
    """
    logger = MagicMock()
    logger.debug = MagicMock()
    logger.info = MagicMock()
    logger.warning = MagicMock()
    logger.error = MagicMock()
    logger.exception = MagicMock()
    return logger
