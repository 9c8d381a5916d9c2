"""Region channel plans and the LoRa data-rate resolver.

Only the uplink data-rate tables of the LoRaWAN Regional Parameters are
modelled: for every DR index its modulation, bandwidth and spreading factor
(or FSK bitrate). The ADR algorithm steps over a monotonic ladder of LoRa
125 kHz spreading factors, so the resolver narrows the maximum DR of a device
to the highest enabled LoRa 125 kHz data rate of its region.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Tuple

from .errors import ConfigurationError, UnknownRegionError

logger = logging.getLogger(__name__)

LORA = "LORA"
FSK = "FSK"
LR_FHSS = "LR_FHSS"
MODULATIONS = (LORA, FSK, LR_FHSS)

# Bande passante des data rates utilisables par l'ADR (Hz)
ADR_BANDWIDTH_HZ = 125000

# SNR minimal de démodulation par SF (valeurs issues de la spécification LoRaWAN)
REQUIRED_SNR = {7: -7.5, 8: -10.0, 9: -12.5, 10: -15.0, 11: -17.5, 12: -20.0}


@dataclass(frozen=True)
class DataRate:
    """Modulation parameters of one data-rate index."""

    modulation: str
    bandwidth: int
    spreading_factor: int | None = None
    bitrate: int | None = None

    def __post_init__(self) -> None:
        modulation = str(self.modulation).upper().replace("-", "_")
        if modulation not in MODULATIONS:
            raise ConfigurationError(f"Unknown modulation: {self.modulation}")
        object.__setattr__(self, "modulation", modulation)

    @property
    def is_lora_125khz(self) -> bool:
        return self.modulation == LORA and self.bandwidth == ADR_BANDWIDTH_HZ


def _lora(sf: int, bandwidth: int = ADR_BANDWIDTH_HZ) -> DataRate:
    return DataRate(LORA, bandwidth, spreading_factor=sf)


def _fsk(bitrate: int = 50000) -> DataRate:
    return DataRate(FSK, 0, bitrate=bitrate)


@dataclass(frozen=True)
class RegionConfig:
    """Data-rate table of a region together with its enabled uplink DRs."""

    region_id: str
    data_rates: Mapping[int, DataRate]
    enabled_uplink_data_rates: Tuple[int, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        enabled = tuple(int(dr) for dr in self.enabled_uplink_data_rates)
        missing = [dr for dr in enabled if dr not in self.data_rates]
        if missing:
            raise ConfigurationError(
                f"Region {self.region_id}: enabled DR(s) {missing} are not defined"
            )
        object.__setattr__(self, "enabled_uplink_data_rates", enabled)

    def get_enabled_uplink_data_rates(self) -> Tuple[int, ...]:
        return self.enabled_uplink_data_rates

    def get_data_rate(self, dr: int) -> DataRate:
        """Return the :class:`DataRate` of index ``dr`` (``KeyError`` if unknown)."""

        return self.data_rates[dr]

    @classmethod
    def from_dict(cls, region_id: str, data: Mapping[str, Any]) -> "RegionConfig":
        try:
            rates = {
                int(dr): DataRate(
                    modulation=params["modulation"],
                    bandwidth=int(params.get("bandwidth", 0)),
                    spreading_factor=params.get("spreading_factor"),
                    bitrate=params.get("bitrate"),
                )
                for dr, params in data["data_rates"].items()
            }
            enabled = data.get("enabled_uplink_data_rates", sorted(rates))
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            if isinstance(exc, ConfigurationError):
                raise
            raise ConfigurationError(f"Invalid region {region_id}: {exc}") from exc
        return cls(region_id, rates, tuple(enabled))


def max_lora_dr(region: RegionConfig) -> int:
    """Return the highest enabled uplink DR using LoRa modulation at 125 kHz.

    ``0`` is returned when the region enables no such data rate.
    """

    max_dr = 0
    for dr in region.get_enabled_uplink_data_rates():
        if region.get_data_rate(dr).is_lora_125khz:
            max_dr = max(max_dr, dr)
    return max_dr


def effective_max_dr(max_dr: int, region: RegionConfig) -> int:
    """Reduce the device ``max_dr`` to the highest LoRa 125 kHz DR of ``region``."""

    lora_max = max_lora_dr(region)
    if max_dr > lora_max:
        logger.debug(
            "Region %s: max DR %d reduced to LoRa 125 kHz DR %d",
            region.region_id,
            max_dr,
            lora_max,
        )
        return lora_max
    return max_dr


def required_snr_for_dr(region: RegionConfig, dr: int) -> float:
    """Return the demodulation floor SNR (dB) of LoRa data rate ``dr``.

    Raises :class:`~loraadr.errors.ConfigurationError` when ``dr`` is not a
    LoRa data rate of ``region``.
    """

    try:
        rate = region.get_data_rate(dr)
    except KeyError:
        raise ConfigurationError(
            f"DR{dr} is not defined for region {region.region_id}"
        ) from None
    if rate.modulation != LORA or rate.spreading_factor not in REQUIRED_SNR:
        raise ConfigurationError(
            f"DR{dr} of region {region.region_id} is not a LoRa data rate"
        )
    return REQUIRED_SNR[rate.spreading_factor]


def _ladder(sfs: Iterable[int]) -> Dict[int, DataRate]:
    return {dr: _lora(sf) for dr, sf in enumerate(sfs)}


EU868 = RegionConfig(
    "eu868",
    {**_ladder(range(12, 6, -1)), 6: _lora(7, 250000), 7: _fsk()},
    tuple(range(8)),
)
US915 = RegionConfig(
    "us915",
    {
        **_ladder(range(10, 6, -1)),
        4: _lora(8, 500000),
        5: DataRate(LR_FHSS, 1523000),
        6: DataRate(LR_FHSS, 1523000),
    },
    tuple(range(5)),
)
AU915 = RegionConfig(
    "au915",
    {**_ladder(range(12, 6, -1)), 6: _lora(8, 500000), 7: DataRate(LR_FHSS, 1523000)},
    tuple(range(7)),
)
AS923 = RegionConfig(
    "as923",
    {**_ladder(range(12, 6, -1)), 6: _lora(7, 250000), 7: _fsk()},
    tuple(range(8)),
)
IN865 = RegionConfig(
    "in865",
    {**_ladder(range(12, 6, -1)), 7: _fsk()},
    (0, 1, 2, 3, 4, 5, 7),
)
KR920 = RegionConfig("kr920", _ladder(range(12, 6, -1)), tuple(range(6)))

BUILTIN_REGIONS = (EU868, US915, AU915, AS923, IN865, KR920)


class RegionRegistry:
    """Lookup service resolving a region configuration id to its channel plan."""

    def __init__(self, regions: Iterable[RegionConfig] = BUILTIN_REGIONS) -> None:
        self._regions: Dict[str, RegionConfig] = {}
        for region in regions:
            self.register(region)

    def register(self, region: RegionConfig, region_config_id: str | None = None) -> None:
        """Register ``region`` under ``region_config_id`` (defaults to its id)."""

        self._regions[(region_config_id or region.region_id).lower()] = region

    def get(self, region_config_id: str | None) -> RegionConfig:
        """Return the region registered as ``region_config_id``.

        Raises :class:`~loraadr.errors.UnknownRegionError` when it is unknown.
        """

        if region_config_id is None:
            raise UnknownRegionError(region_config_id)
        try:
            return self._regions[str(region_config_id).lower()]
        except KeyError:
            raise UnknownRegionError(region_config_id) from None

    def __contains__(self, region_config_id: object) -> bool:
        return str(region_config_id).lower() in self._regions

    def ids(self) -> list[str]:
        return sorted(self._regions)

    def load_file(self, path: str | Path) -> list[str]:
        """Register the regions described in the JSON file ``path``.

        The file maps region configuration ids to objects with a
        ``data_rates`` mapping (DR index to ``modulation``, ``bandwidth``,
        ``spreading_factor`` / ``bitrate``) and an optional
        ``enabled_uplink_data_rates`` list. Returns the loaded ids.
        """

        p = Path(path)
        with p.open("r", encoding="utf8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ConfigurationError("Region file must contain a JSON object")
        loaded = []
        for region_id, params in data.items():
            self.register(RegionConfig.from_dict(region_id, params))
            loaded.append(region_id)
        logger.info("Loaded %d region(s) from %s", len(loaded), p)
        return loaded


# Registre partagé utilisé par défaut par les algorithmes sensibles à la région
REGIONS = RegionRegistry()


__all__ = [
    "LORA",
    "FSK",
    "LR_FHSS",
    "ADR_BANDWIDTH_HZ",
    "REQUIRED_SNR",
    "DataRate",
    "RegionConfig",
    "RegionRegistry",
    "REGIONS",
    "BUILTIN_REGIONS",
    "max_lora_dr",
    "effective_max_dr",
    "required_snr_for_dr",
]
