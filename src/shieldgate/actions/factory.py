"""Factory for creating the configured action source."""

import logging

from shieldgate.actions.mock_provider import MockActionProvider
from shieldgate.actions.provider import ActionProvider
from shieldgate.actions.yield_provider import YieldActionProvider
from shieldgate.gateway.config import ShieldGateSettings
from shieldgate.gateway.yield_api.client import YieldClient

logger = logging.getLogger(__name__)


class ActionProviderFactory:
    """Factory for creating action provider instances."""

    @staticmethod
    def create(settings: ShieldGateSettings) -> ActionProvider:
        """Create an action provider based on configuration.

        Args:
            settings: Gateway settings; ``use_mock_provider`` selects the fixture.

        Returns:
            Configured action provider instance.
        """
        if settings.use_mock_provider:
            logger.info("Creating action provider", extra={"provider": "mock"})
            return MockActionProvider()

        logger.info(
            "Creating action provider",
            extra={"provider": "yield", "base_url": settings.yield_base_url},
        )
        client = YieldClient(
            base_url=settings.yield_base_url,
            api_key=settings.yield_api_key,
            timeout_seconds=settings.upstream_timeout_seconds,
        )
        return YieldActionProvider(client)
