"""Static configuration provider."""

from __future__ import annotations

import logging
from typing import Any, Mapping

from agent_relay.agents.models import RelayConfiguration
from agent_relay.permissions.validator import PermissionValidator


logger = logging.getLogger(__name__)


class StaticConfigurationProvider:
    """ConfigurationProvider that always returns the same snapshot.

    The snapshot can be swapped with update(); operations already in flight
    keep the snapshot they loaded.
    """

    def __init__(self, configuration: RelayConfiguration):
        self._configuration = configuration

    @classmethod
    def from_document(
        cls,
        document: Mapping[str, Any],
        auto_repair: bool = False,
    ) -> "StaticConfigurationProvider":
        """Validate a raw document and wrap the resulting snapshot.

        Raises:
            ConfigurationError: If the document is invalid
        """
        report = PermissionValidator().validate(document, auto_repair=auto_repair)
        for warning in report.warnings:
            logger.warning(warning)
        return cls(report.to_configuration())

    async def load_configuration(self) -> RelayConfiguration:
        return self._configuration

    def update(self, configuration: RelayConfiguration) -> None:
        self._configuration = configuration
