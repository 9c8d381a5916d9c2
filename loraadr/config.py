"""Settings of the ADR decision engine.

The constants of the algorithm (history window, redundancy table, dB per
step...) live in :class:`AdrSettings` so that an engine can be built with a
smaller window for tests or with the behaviour of one of the legacy variants.
Settings can be read from JSON or INI files with :func:`load_settings`.
"""

from __future__ import annotations

import configparser
import json
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Mapping, Tuple

from .errors import ConfigurationError

# Nombre d'uplinks nécessaires avant d'estimer la perte ou d'augmenter la puissance
REQUIRED_HISTORY_COUNT = 20
# Gain en dB associé à un pas de DR ou de puissance
SNR_STEP_DB = 3.0
# Bornes des classes de perte (en %)
LOSS_THRESHOLDS: Tuple[float, float, float] = (5.0, 10.0, 30.0)
# NbTrans indexé par [classe de perte][NbTrans courant - 1]
NB_TRANS_TABLE: Tuple[Tuple[int, int, int], ...] = (
    (1, 1, 2),
    (1, 2, 3),
    (2, 3, 3),
    (3, 3, 3),
)

HISTORY_COUNT_COMPARISONS = ("at-least", "exact")


@dataclass(frozen=True)
class AdrSettings:
    """Tunable constants of the ADR algorithm."""

    required_history_count: int = REQUIRED_HISTORY_COUNT
    snr_step_db: float = SNR_STEP_DB
    loss_thresholds: Tuple[float, float, float] = LOSS_THRESHOLDS
    nb_trans_table: Tuple[Tuple[int, int, int], ...] = NB_TRANS_TABLE
    # Lowest TxPower index the algorithm may command when raising power
    power_floor_index: int = 0
    # "at-least": defer while fewer uplinks than required were seen at the
    # current power. "exact": defer unless exactly the required count was seen.
    history_count_comparison: str = "at-least"
    lower_dr_at_power_floor: bool = True
    legacy_negative_loss: bool = False

    def __post_init__(self) -> None:
        if self.required_history_count < 0:
            raise ConfigurationError("required_history_count must be >= 0")
        if self.snr_step_db <= 0:
            raise ConfigurationError("snr_step_db must be > 0")
        if self.power_floor_index < 0:
            raise ConfigurationError("power_floor_index must be >= 0")
        if self.history_count_comparison not in HISTORY_COUNT_COMPARISONS:
            raise ConfigurationError(
                "history_count_comparison must be one of "
                + ", ".join(HISTORY_COUNT_COMPARISONS)
            )
        thresholds = tuple(float(t) for t in self.loss_thresholds)
        if len(thresholds) != 3 or list(thresholds) != sorted(thresholds):
            raise ConfigurationError("loss_thresholds must be 3 increasing values")
        table = tuple(tuple(int(v) for v in row) for row in self.nb_trans_table)
        if len(table) != 4 or any(len(row) != 3 for row in table):
            raise ConfigurationError("nb_trans_table must be a 4x3 table")
        if any(not 1 <= v <= 3 for row in table for v in row):
            raise ConfigurationError("nb_trans_table values must be within [1, 3]")
        # Normalise lists coming from JSON into hashable tuples
        object.__setattr__(self, "loss_thresholds", thresholds)
        object.__setattr__(self, "nb_trans_table", table)

    def with_overrides(self, **overrides: Any) -> "AdrSettings":
        """Return a copy of these settings with ``overrides`` applied."""

        return replace(self, **overrides)


_FIELD_NAMES = {f.name for f in fields(AdrSettings)}
_BOOL_FIELDS = {"lower_dr_at_power_floor", "legacy_negative_loss"}
_INT_FIELDS = {"required_history_count", "power_floor_index"}


def settings_from_mapping(
    data: Mapping[str, Any], base: AdrSettings | None = None
) -> AdrSettings:
    """Build :class:`AdrSettings` from ``data`` on top of ``base``."""

    unknown = set(data) - _FIELD_NAMES
    if unknown:
        raise ConfigurationError(
            "Unknown ADR setting(s): " + ", ".join(sorted(unknown))
        )
    try:
        return replace(base or AdrSettings(), **dict(data))
    except (TypeError, ValueError) as exc:
        if isinstance(exc, ConfigurationError):
            raise
        raise ConfigurationError(str(exc)) from exc


def _parse_row(raw: str) -> list[float]:
    return [float(x) for x in raw.replace(",", " ").split() if x]


def _read_ini(path: Path) -> dict[str, Any]:
    cp = configparser.ConfigParser()
    with path.open("r", encoding="utf8") as f:
        cp.read_file(f)
    data: dict[str, Any] = {}
    if cp.has_section("ADR"):
        for key, raw in cp.items("ADR"):
            if key in _BOOL_FIELDS:
                data[key] = cp.getboolean("ADR", key)
            elif key in _INT_FIELDS:
                data[key] = cp.getint("ADR", key)
            elif key == "snr_step_db":
                data[key] = cp.getfloat("ADR", key)
            elif key == "loss_thresholds":
                data[key] = tuple(_parse_row(raw))
            else:
                data[key] = raw.strip()
    if cp.has_section("NB_TRANS"):
        rows = []
        for bucket in range(4):
            raw = cp.get("NB_TRANS", f"LOSS{bucket}", fallback=None)
            if raw is None:
                rows.append(NB_TRANS_TABLE[bucket])
                continue
            rows.append(tuple(int(v) for v in _parse_row(raw)))
        data["nb_trans_table"] = tuple(rows)
    return data


def load_settings(path: str | Path, base: AdrSettings | None = None) -> AdrSettings:
    """Load ADR settings from a JSON or INI file.

    JSON files contain an object whose keys are :class:`AdrSettings` field
    names. INI files use an ``[ADR]`` section for scalar values and an
    optional ``[NB_TRANS]`` section with rows ``LOSS0`` to ``LOSS3`` of three
    comma or space separated values. Missing values keep those of ``base``
    (the defaults when ``base`` is ``None``).
    """

    p = Path(path)
    suffix = p.suffix.lower()
    if suffix == ".json":
        with p.open("r", encoding="utf8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ConfigurationError("JSON settings must be an object")
    elif suffix in {".ini", ".cfg"}:
        try:
            data = _read_ini(p)
        except (configparser.Error, ValueError) as exc:
            raise ConfigurationError(f"Invalid settings file {p}: {exc}") from exc
    else:
        raise ConfigurationError("Unsupported file format; use JSON or INI")
    return settings_from_mapping(data, base)


__all__ = [
    "AdrSettings",
    "REQUIRED_HISTORY_COUNT",
    "SNR_STEP_DB",
    "LOSS_THRESHOLDS",
    "NB_TRANS_TABLE",
    "HISTORY_COUNT_COMPARISONS",
    "settings_from_mapping",
    "load_settings",
]
