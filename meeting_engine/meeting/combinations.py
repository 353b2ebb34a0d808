"""
Combination registry: which provider pairs exist and which are implemented.

The registry is built once at startup, is read-only afterwards and is
injected into the factory and service, so tests can supply alternate tables.
"""
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from meeting_engine.enums import IntegrationAppType, LocationType, MeetingCombination
from meeting_engine.exceptions import ConfigurationError, UnsupportedLocationTypeError


class CombinationConfig(BaseModel):
    """Static description of one (meeting provider, calendar provider) pair."""
    model_config = ConfigDict(frozen=True)

    meeting_provider: str
    calendar_provider: str
    # (app type, provider side it authenticates: "meeting" or "calendar")
    integrations: Tuple[Tuple[IntegrationAppType, str], ...]
    is_implemented: bool
    description: str
    auto_calendar_creation: bool = False
    default_meeting_settings: Mapping[str, Any] = Field(default_factory=dict)

    @property
    def required_integrations(self) -> List[IntegrationAppType]:
        seen: List[IntegrationAppType] = []
        for app_type, _side in self.integrations:
            if app_type not in seen:
                seen.append(app_type)
        return seen

    @property
    def meeting_integration(self) -> IntegrationAppType:
        return next(app_type for app_type, side in self.integrations if side == "meeting")

    @property
    def calendar_integration(self) -> IntegrationAppType:
        return next(app_type for app_type, side in self.integrations if side == "calendar")

    @property
    def pair_name(self) -> str:
        return f"{self.meeting_provider}+{self.calendar_provider}"


ZOOM_DEFAULT_SETTINGS = {
    "host_video": True,
    "participant_video": True,
    "join_before_host": False,
    "waiting_room": True,
}

DEFAULT_COMBINATIONS: Dict[MeetingCombination, CombinationConfig] = {
    MeetingCombination.GOOGLE_MEET_CALENDAR: CombinationConfig(
        meeting_provider="google_meet",
        calendar_provider="google_calendar",
        integrations=(
            (IntegrationAppType.GOOGLE_MEET_AND_CALENDAR, "meeting"),
            (IntegrationAppType.GOOGLE_MEET_AND_CALENDAR, "calendar"),
        ),
        is_implemented=True,
        description="Google Meet with Google Calendar integration",
        auto_calendar_creation=True,
        default_meeting_settings={"enable_video": True, "enable_audio": True},
    ),
    MeetingCombination.ZOOM_GOOGLE_CALENDAR: CombinationConfig(
        meeting_provider="zoom",
        calendar_provider="google_calendar",
        integrations=(
            (IntegrationAppType.ZOOM_MEETING, "meeting"),
            (IntegrationAppType.GOOGLE_MEET_AND_CALENDAR, "calendar"),
        ),
        is_implemented=True,
        description="Zoom meetings with Google Calendar tracking",
        default_meeting_settings=ZOOM_DEFAULT_SETTINGS,
    ),
    MeetingCombination.ZOOM_OUTLOOK_CALENDAR: CombinationConfig(
        meeting_provider="zoom",
        calendar_provider="outlook_calendar",
        integrations=(
            (IntegrationAppType.ZOOM_MEETING, "meeting"),
            (IntegrationAppType.OUTLOOK_CALENDAR, "calendar"),
        ),
        is_implemented=True,
        description="Zoom meetings with Outlook Calendar tracking",
        default_meeting_settings=ZOOM_DEFAULT_SETTINGS,
    ),
    MeetingCombination.TEAMS_OUTLOOK_CALENDAR: CombinationConfig(
        meeting_provider="teams",
        calendar_provider="outlook_calendar",
        integrations=(
            (IntegrationAppType.OUTLOOK_WITH_TEAMS, "meeting"),
            (IntegrationAppType.OUTLOOK_CALENDAR, "calendar"),
        ),
        is_implemented=False,
        description="Microsoft Teams with Outlook Calendar integration",
        auto_calendar_creation=True,
        default_meeting_settings={"allowed_presenters": "everyone", "enable_lobby": True},
    ),
    MeetingCombination.TEAMS_GOOGLE_CALENDAR: CombinationConfig(
        meeting_provider="teams",
        calendar_provider="google_calendar",
        integrations=(
            (IntegrationAppType.OUTLOOK_WITH_TEAMS, "meeting"),
            (IntegrationAppType.GOOGLE_MEET_AND_CALENDAR, "calendar"),
        ),
        is_implemented=False,
        description="Microsoft Teams with Google Calendar tracking",
    ),
    MeetingCombination.GOOGLE_MEET_OUTLOOK_CALENDAR: CombinationConfig(
        meeting_provider="google_meet",
        calendar_provider="outlook_calendar",
        integrations=(
            (IntegrationAppType.GOOGLE_MEET_AND_CALENDAR, "meeting"),
            (IntegrationAppType.OUTLOOK_CALENDAR, "calendar"),
        ),
        is_implemented=False,
        description="Google Meet with Outlook Calendar tracking",
    ),
}

DEFAULT_LOCATION_MAPPING: Dict[LocationType, MeetingCombination] = {
    LocationType.GOOGLE_MEET_AND_CALENDAR: MeetingCombination.GOOGLE_MEET_CALENDAR,
    LocationType.ZOOM_MEETING: MeetingCombination.ZOOM_GOOGLE_CALENDAR,
    LocationType.OUTLOOK_WITH_ZOOM: MeetingCombination.ZOOM_OUTLOOK_CALENDAR,
    LocationType.OUTLOOK_WITH_TEAMS: MeetingCombination.TEAMS_OUTLOOK_CALENDAR,
}


class CombinationRegistry:
    """Immutable location type -> combination -> config table."""

    def __init__(
        self,
        configs: Mapping[MeetingCombination, CombinationConfig],
        location_mapping: Mapping[LocationType, MeetingCombination],
    ):
        for location_type, combination in location_mapping.items():
            if combination not in configs:
                raise ConfigurationError(
                    f"Location type '{location_type.value}' maps to unconfigured combination '{combination.value}'"
                )
        combinations = list(location_mapping.values())
        duplicates = {c for c in combinations if combinations.count(c) > 1}
        if duplicates:
            raise ConfigurationError(
                f"Combinations mapped from more than one location type: {sorted(c.value for c in duplicates)}"
            )

        self._configs = MappingProxyType(dict(configs))
        self._location_mapping = MappingProxyType(dict(location_mapping))
        self._reverse_mapping = MappingProxyType({c: lt for lt, c in location_mapping.items()})

    @property
    def location_mapping(self) -> Mapping[LocationType, MeetingCombination]:
        return self._location_mapping

    def combination_for(self, location_type: Any) -> MeetingCombination:
        """
        Raises:
            UnsupportedLocationTypeError: no mapping for ``location_type``
        """
        try:
            return self._location_mapping[LocationType(location_type)]
        except (KeyError, ValueError):
            raise UnsupportedLocationTypeError(location_type)

    def location_type_for(self, combination: MeetingCombination) -> Optional[LocationType]:
        return self._reverse_mapping.get(combination)

    def get_config(self, combination: MeetingCombination) -> CombinationConfig:
        try:
            return self._configs[combination]
        except KeyError:
            raise ConfigurationError(f"Unknown combination: {combination}")

    def config_for(self, location_type: Any) -> CombinationConfig:
        return self.get_config(self.combination_for(location_type))

    def is_implemented(self, combination: MeetingCombination) -> bool:
        config = self._configs.get(combination)
        return bool(config and config.is_implemented)

    def get_implemented_combinations(self) -> List[MeetingCombination]:
        return [c for c, config in self._configs.items() if config.is_implemented]

    def get_future_combinations(self) -> List[MeetingCombination]:
        return [c for c, config in self._configs.items() if not config.is_implemented]

    def is_location_type_supported(self, location_type: Any) -> bool:
        try:
            return self.is_implemented(self.combination_for(location_type))
        except UnsupportedLocationTypeError:
            return False

    def get_supported_location_types(self) -> List[LocationType]:
        return [lt for lt, c in self._location_mapping.items() if self.is_implemented(c)]

    def get_future_location_types(self) -> List[LocationType]:
        return [lt for lt, c in self._location_mapping.items() if not self.is_implemented(c)]


def build_default_registry() -> CombinationRegistry:
    return CombinationRegistry(DEFAULT_COMBINATIONS, DEFAULT_LOCATION_MAPPING)
