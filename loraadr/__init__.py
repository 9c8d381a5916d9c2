# Initialisation du package loraadr
from .config import AdrSettings, load_settings
from .engine import (
    AdrEngine,
    ALGORITHMS,
    ALITECS_RN2483,
    DEFAULT_CUSTOM,
    get_algorithm,
    register_algorithm,
)
from .errors import (
    AdrError,
    ConfigurationError,
    InvalidRequestError,
    UnknownRegionError,
)
from .models import AdrRequest, AdrResponse, UplinkHistoryEntry
from .regions import REGIONS, DataRate, RegionConfig, RegionRegistry
from . import loss, margin, redundancy, regions, search

__version__ = "1.0.0"

__all__ = [
    "AdrSettings",
    "load_settings",
    "AdrEngine",
    "ALGORITHMS",
    "ALITECS_RN2483",
    "DEFAULT_CUSTOM",
    "get_algorithm",
    "register_algorithm",
    "AdrError",
    "ConfigurationError",
    "InvalidRequestError",
    "UnknownRegionError",
    "AdrRequest",
    "AdrResponse",
    "UplinkHistoryEntry",
    "REGIONS",
    "DataRate",
    "RegionConfig",
    "RegionRegistry",
    "loss",
    "margin",
    "redundancy",
    "regions",
    "search",
]
