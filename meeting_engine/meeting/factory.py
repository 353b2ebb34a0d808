"""
Strategy factory: location type -> orchestration strategy.
"""
from typing import Any, Dict, List, Mapping

from meeting_engine.enums import LocationType, MeetingCombination
from meeting_engine.exceptions import CombinationNotImplementedError, ConfigurationError
from meeting_engine.logging_config import get_logger
from meeting_engine.meeting.combinations import CombinationConfig, CombinationRegistry
from meeting_engine.meeting.interfaces import MeetingStrategy

logger = get_logger(__name__)


class MeetingStrategyFactory:
    """
    Hands out the pre-built strategy for a location type.

    Strategies hold no per-request state, so one instance per combination is
    shared for the life of the process.
    """

    def __init__(self, registry: CombinationRegistry, strategies: Mapping[MeetingCombination, MeetingStrategy]):
        self.registry = registry

        for combination, strategy in strategies.items():
            config = registry.get_config(combination)
            if not config.is_implemented:
                raise ConfigurationError(
                    f"Strategy registered for combination '{combination.value}' which is not marked implemented"
                )
            if strategy.get_strategy_name() != config.pair_name:
                raise ConfigurationError(
                    f"Strategy '{strategy.get_strategy_name()}' does not match combination "
                    f"'{combination.value}' ({config.pair_name})"
                )
        for combination in registry.get_implemented_combinations():
            if combination not in strategies:
                raise ConfigurationError(f"No strategy registered for implemented combination '{combination.value}'")

        self._strategies: Dict[MeetingCombination, MeetingStrategy] = dict(strategies)

    def create_strategy(self, location_type: Any) -> MeetingStrategy:
        """
        Resolve the strategy for ``location_type``.

        Raises:
            UnsupportedLocationTypeError: location type not in the registry
            CombinationNotImplementedError: known combination without a strategy yet
        """
        combination = self.registry.combination_for(location_type)
        if not self.registry.is_implemented(combination):
            logger.info("combination_not_implemented", location_type=str(location_type),
                        combination=combination.value)
            raise CombinationNotImplementedError(LocationType(location_type).value, combination.value)
        strategy = self._strategies[combination]
        logger.debug("strategy_selected", location_type=str(location_type), strategy=strategy.get_strategy_name())
        return strategy

    def is_combination_supported(self, location_type: Any) -> bool:
        return self.registry.is_location_type_supported(location_type)

    def get_supported_location_types(self) -> List[LocationType]:
        return self.registry.get_supported_location_types()

    def get_future_location_types(self) -> List[LocationType]:
        return self.registry.get_future_location_types()

    def get_combination_config(self, location_type: Any) -> CombinationConfig:
        return self.registry.config_for(location_type)

    def get_location_type_info(self, location_type: Any) -> Dict[str, Any]:
        combination = self.registry.combination_for(location_type)
        config = self.registry.get_config(combination)
        return {
            "location_type": LocationType(location_type).value,
            "combination": combination.value,
            "meeting_provider": config.meeting_provider,
            "calendar_provider": config.calendar_provider,
            "required_integrations": [app_type.value for app_type in config.required_integrations],
            "description": config.description,
            "is_implemented": config.is_implemented,
        }
