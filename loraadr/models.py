"""Request and response objects exchanged with the network server.

The network server talks to an ADR algorithm with plain mappings. Two key
styles are in use: camelCase (``txPowerIndex``, ``uplinkHistory``...) and
snake_case (``tx_power_index``, ``uplink_history``...). Both are accepted when
decoding; :meth:`AdrResponse.to_dict` writes the style requested by the
algorithm.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Tuple

from .errors import InvalidRequestError

WIRE_STYLES = ("camel", "snake")


def _lookup(data: Mapping[str, Any], *keys: str, default=...):
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    if default is ...:
        raise InvalidRequestError(f"Missing field {keys[0]!r}")
    return default


def _as_int(value, name: str) -> int:
    if isinstance(value, bool):
        raise InvalidRequestError(f"{name} must be an integer, not bool")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise InvalidRequestError(f"{name} must be an integer") from exc


def _as_float(value, name: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidRequestError(f"{name} must be a number") from exc


_TRUE_STRINGS = {"true", "1", "yes", "on"}
_FALSE_STRINGS = {"false", "0", "no", "off"}


def _as_bool(value, name: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        key = value.strip().lower()
        if key in _TRUE_STRINGS:
            return True
        if key in _FALSE_STRINGS:
            return False
    raise InvalidRequestError(f"{name} must be a boolean")


def _check_style(style: str) -> str:
    if style not in WIRE_STYLES:
        raise ValueError(f"Unknown wire style: {style}")
    return style


@dataclass(frozen=True)
class UplinkHistoryEntry:
    """One received uplink kept in the ADR history window."""

    f_cnt: int
    max_snr: float
    tx_power_index: int
    max_rssi: float | None = None
    gateway_count: int | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "UplinkHistoryEntry":
        rssi = _lookup(data, "maxRssi", "max_rssi", default=None)
        gw_count = _lookup(data, "gatewayCount", "gateway_count", default=None)
        return cls(
            f_cnt=_as_int(_lookup(data, "fCnt", "f_cnt"), "fCnt"),
            max_snr=_as_float(_lookup(data, "maxSnr", "max_snr"), "maxSnr"),
            tx_power_index=_as_int(
                _lookup(data, "txPowerIndex", "tx_power_index"), "txPowerIndex"
            ),
            max_rssi=None if rssi is None else _as_float(rssi, "maxRssi"),
            gateway_count=None if gw_count is None else _as_int(gw_count, "gatewayCount"),
        )

    def to_dict(self, style: str = "camel") -> dict[str, Any]:
        camel = _check_style(style) == "camel"
        out: dict[str, Any] = {
            "fCnt" if camel else "f_cnt": self.f_cnt,
            "maxSnr" if camel else "max_snr": self.max_snr,
            "txPowerIndex" if camel else "tx_power_index": self.tx_power_index,
        }
        if self.max_rssi is not None:
            out["maxRssi" if camel else "max_rssi"] = self.max_rssi
        if self.gateway_count is not None:
            out["gatewayCount" if camel else "gateway_count"] = self.gateway_count
        return out


def _history(entries: Iterable[UplinkHistoryEntry | Mapping[str, Any]]):
    return tuple(
        e if isinstance(e, UplinkHistoryEntry) else UplinkHistoryEntry.from_dict(e)
        for e in entries
    )


@dataclass(frozen=True)
class AdrRequest:
    """Snapshot of a device state handed to an ADR algorithm for one uplink."""

    dr: int
    tx_power_index: int
    nb_trans: int
    max_dr: int
    max_tx_power_index: int
    required_snr_for_dr: float
    installation_margin: float
    adr: bool = True
    uplink_history: Tuple[UplinkHistoryEntry, ...] = field(default_factory=tuple)
    region_config_id: str | None = None
    min_dr: int = 0
    dev_eui: str | None = None
    region_common_name: str | None = None
    mac_version: str | None = None
    reg_params_revision: str | None = None

    def __post_init__(self) -> None:
        # Accept lists of entries or of mappings
        object.__setattr__(self, "uplink_history", _history(self.uplink_history))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AdrRequest":
        """Decode a request from its camelCase or snake_case mapping."""

        if not isinstance(data, Mapping):
            raise InvalidRequestError("ADR request must be a mapping")
        history = _lookup(data, "uplinkHistory", "uplink_history", default=())
        if isinstance(history, (str, bytes)) or not isinstance(history, Iterable):
            raise InvalidRequestError("uplinkHistory must be a list")
        return cls(
            adr=_as_bool(_lookup(data, "adr", "adrEnabled", "adr_enabled"), "adr"),
            dr=_as_int(_lookup(data, "dr"), "dr"),
            tx_power_index=_as_int(
                _lookup(data, "txPowerIndex", "tx_power_index"), "txPowerIndex"
            ),
            nb_trans=_as_int(_lookup(data, "nbTrans", "nb_trans"), "nbTrans"),
            max_dr=_as_int(_lookup(data, "maxDr", "max_dr"), "maxDr"),
            max_tx_power_index=_as_int(
                _lookup(data, "maxTxPowerIndex", "max_tx_power_index"),
                "maxTxPowerIndex",
            ),
            required_snr_for_dr=_as_float(
                _lookup(data, "requiredSnrForDr", "required_snr_for_dr"),
                "requiredSnrForDr",
            ),
            installation_margin=_as_float(
                _lookup(data, "installationMargin", "installation_margin"),
                "installationMargin",
            ),
            uplink_history=_history(history),
            region_config_id=_lookup(
                data, "regionConfigId", "region_config_id", default=None
            ),
            min_dr=_as_int(_lookup(data, "minDr", "min_dr", default=0), "minDr"),
            dev_eui=_lookup(data, "devEui", "dev_eui", default=None),
            region_common_name=_lookup(
                data, "regionCommonName", "region_common_name", default=None
            ),
            mac_version=_lookup(data, "macVersion", "mac_version", default=None),
            reg_params_revision=_lookup(
                data, "regParamsRevision", "reg_params_revision", default=None
            ),
        )

    def to_dict(self, style: str = "camel") -> dict[str, Any]:
        camel = _check_style(style) == "camel"
        pairs = [
            ("adr", "adr", self.adr),
            ("dr", "dr", self.dr),
            ("txPowerIndex", "tx_power_index", self.tx_power_index),
            ("nbTrans", "nb_trans", self.nb_trans),
            ("maxDr", "max_dr", self.max_dr),
            ("minDr", "min_dr", self.min_dr),
            ("maxTxPowerIndex", "max_tx_power_index", self.max_tx_power_index),
            ("requiredSnrForDr", "required_snr_for_dr", self.required_snr_for_dr),
            ("installationMargin", "installation_margin", self.installation_margin),
            ("regionConfigId", "region_config_id", self.region_config_id),
            ("devEui", "dev_eui", self.dev_eui),
            ("regionCommonName", "region_common_name", self.region_common_name),
            ("macVersion", "mac_version", self.mac_version),
            ("regParamsRevision", "reg_params_revision", self.reg_params_revision),
        ]
        out = {
            (c if camel else s): value for c, s, value in pairs if value is not None
        }
        out["uplinkHistory" if camel else "uplink_history"] = [
            e.to_dict(style) for e in self.uplink_history
        ]
        return out


@dataclass(frozen=True)
class AdrResponse:
    """Radio parameters the network server should command."""

    dr: int
    tx_power_index: int
    nb_trans: int

    def to_dict(self, style: str = "camel") -> dict[str, int]:
        if _check_style(style) == "camel":
            return {
                "dr": self.dr,
                "txPowerIndex": self.tx_power_index,
                "nbTrans": self.nb_trans,
            }
        return {
            "dr": self.dr,
            "tx_power_index": self.tx_power_index,
            "nb_trans": self.nb_trans,
        }


__all__ = ["WIRE_STYLES", "UplinkHistoryEntry", "AdrRequest", "AdrResponse"]
