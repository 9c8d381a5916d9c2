"""SNR margin, step count and history sufficiency checks."""

from __future__ import annotations

from typing import Sequence

from .config import REQUIRED_HISTORY_COUNT, SNR_STEP_DB
from .errors import ConfigurationError
from .models import UplinkHistoryEntry

# Valeur utilisée lorsque l'historique est vide : désactive toute montée de DR
NO_SNR = -999.0


def max_snr(history: Sequence[UplinkHistoryEntry]) -> float:
    """Return the best SNR of ``history`` or :data:`NO_SNR` when it is empty."""

    snr_m = NO_SNR
    for entry in history:
        if entry.max_snr > snr_m:
            snr_m = entry.max_snr
    return snr_m


def snr_margin(
    snr_max: float, required_snr_for_dr: float, installation_margin: float
) -> float:
    return snr_max - required_snr_for_dr - installation_margin


def step_count(margin: float, step_db: float = SNR_STEP_DB) -> int:
    """Return the number of DR/TxPower steps for ``margin``.

    The division is truncated toward zero so that a margin of -5 dB gives -1
    step and not -2.
    """

    return int(margin / step_db)


def history_count(history: Sequence[UplinkHistoryEntry], tx_power_index: int) -> int:
    """Return how many uplinks of ``history`` were sent at ``tx_power_index``."""

    return sum(1 for entry in history if entry.tx_power_index == tx_power_index)


def should_defer(
    n_step: int,
    count: int,
    required_history_count: int = REQUIRED_HISTORY_COUNT,
    comparison: str = "at-least",
) -> bool:
    """Return ``True`` when a power increase must wait for more history.

    Only negative steps are deferred, to avoid up/down/up TxPower changes while
    uplinks at the current power are still being collected.
    """

    if n_step >= 0:
        return False
    if comparison == "exact":
        return count != required_history_count
    if comparison == "at-least":
        return count < required_history_count
    raise ConfigurationError(f"Unknown history count comparison: {comparison}")


__all__ = [
    "NO_SNR",
    "max_snr",
    "snr_margin",
    "step_count",
    "history_count",
    "should_defer",
]
