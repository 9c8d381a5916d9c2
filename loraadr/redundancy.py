"""NbTrans selection from the estimated packet loss."""

from __future__ import annotations

from typing import Sequence

from .config import LOSS_THRESHOLDS, NB_TRANS_TABLE

MIN_NB_TRANS = 1
MAX_NB_TRANS = 3


def loss_bucket(
    loss_percentage: float, thresholds: Sequence[float] = LOSS_THRESHOLDS
) -> int:
    """Return the row of the NbTrans table matching ``loss_percentage``."""

    for bucket, limit in enumerate(thresholds):
        if loss_percentage < limit:
            return bucket
    return len(thresholds)


def select_nb_trans(
    current_nb_trans: int,
    loss_percentage: float,
    *,
    table: Sequence[Sequence[int]] = NB_TRANS_TABLE,
    thresholds: Sequence[float] = LOSS_THRESHOLDS,
) -> int:
    """Return the NbTrans to command for the given loss.

    Low loss pulls NbTrans down towards 1, high loss pushes it towards 3.
    ``current_nb_trans`` is clamped to ``[1, 3]`` before the lookup.
    """

    nb_trans = min(max(current_nb_trans, MIN_NB_TRANS), MAX_NB_TRANS)
    return table[loss_bucket(loss_percentage, thresholds)][nb_trans - 1]


__all__ = ["MIN_NB_TRANS", "MAX_NB_TRANS", "loss_bucket", "select_nb_trans"]
