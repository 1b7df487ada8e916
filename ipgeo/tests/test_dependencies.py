"""Tests for dependency injection."""

import pytest
from unittest.mock import MagicMock, patch

from ipgeo import state
from ipgeo.errors import ServiceUnavailableError


class TestGetOptionalRedis:
    """Test get_optional_redis dependency."""

    def test_returns_client_when_connected(self):
        from ipgeo.dependencies import get_optional_redis

        mock_redis = MagicMock()
        with patch.object(state, "redis_client", mock_redis):
            assert get_optional_redis() is mock_redis

    def test_returns_none_for_memory_backend(self):
        from ipgeo.dependencies import get_optional_redis

        with patch.object(state, "redis_client", None):
            assert get_optional_redis() is None


class TestGetCoordinator:
    """Test get_coordinator dependency."""

    def test_returns_coordinator_when_initialized(self):
        from ipgeo.dependencies import get_coordinator

        mock_coordinator = MagicMock()
        with patch.object(state, "coordinator", mock_coordinator):
            assert get_coordinator() is mock_coordinator

    def test_raises_when_not_initialized(self):
        """Requests before startup get a 503 instead of an attribute error."""
        from ipgeo.dependencies import get_coordinator

        with patch.object(state, "coordinator", None):
            with pytest.raises(ServiceUnavailableError) as exc_info:
                get_coordinator()
            assert "not initialized" in exc_info.value.detail


class TestGetBatchOrchestrator:
    """Test get_batch_orchestrator dependency."""

    def test_returns_orchestrator_when_initialized(self):
        from ipgeo.dependencies import get_batch_orchestrator

        mock_batch = MagicMock()
        with patch.object(state, "batch_orchestrator", mock_batch):
            assert get_batch_orchestrator() is mock_batch

    def test_raises_when_not_initialized(self):
        from ipgeo.dependencies import get_batch_orchestrator

        with patch.object(state, "batch_orchestrator", None):
            with pytest.raises(ServiceUnavailableError):
                get_batch_orchestrator()


class TestTypeAliases:
    """Test that type aliases are properly defined."""

    def test_aliases_exist(self):
        from ipgeo.dependencies import BatchOrchestrator, Coordinator, OptionalRedis

        assert Coordinator is not None
        assert BatchOrchestrator is not None
        assert OptionalRedis is not None
