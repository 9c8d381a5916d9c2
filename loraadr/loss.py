"""Packet loss estimation from the frame counters of the uplink history."""

from __future__ import annotations

from typing import Sequence

from .config import REQUIRED_HISTORY_COUNT
from .models import UplinkHistoryEntry


def lost_packets(
    history: Sequence[UplinkHistoryEntry], *, legacy_negative_loss: bool = False
) -> int:
    """Return the number of frames missing between consecutive history entries.

    Consecutive uplinks are expected to differ by exactly one frame counter.
    A backward step (wrapped or re-ordered counters) counts as no loss unless
    ``legacy_negative_loss`` is set, in which case it is subtracted.
    """

    lost = 0
    previous_f_cnt = None
    for entry in history:
        if previous_f_cnt is not None:
            gap = entry.f_cnt - previous_f_cnt - 1
            if gap > 0 or legacy_negative_loss:
                lost += gap
        previous_f_cnt = entry.f_cnt
    return lost


def packet_loss_percentage(
    history: Sequence[UplinkHistoryEntry],
    required_history_count: int = REQUIRED_HISTORY_COUNT,
    *,
    legacy_negative_loss: bool = False,
) -> float:
    """Return the packet loss (%) observed over ``history``.

    Below ``required_history_count`` entries no loss is assumed and ``0.0``
    is returned.
    """

    if not history or len(history) < required_history_count:
        return 0.0
    lost = lost_packets(history, legacy_negative_loss=legacy_negative_loss)
    return lost / len(history) * 100.0


__all__ = ["lost_packets", "packet_loss_percentage"]
