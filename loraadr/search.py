"""Walk from a signed step count to the (TxPower index, DR) pair to command."""

from __future__ import annotations


def ideal_tx_power_index_and_dr(
    n_step: int,
    tx_power_index: int,
    dr: int,
    max_tx_power_index: int,
    max_dr: int,
    *,
    power_floor_index: int = 0,
    min_dr: int = 0,
    lower_dr_at_power_floor: bool = True,
) -> tuple[int, int]:
    """Return ``(tx_power_index, dr)`` after consuming ``n_step`` steps.

    Each positive step raises the DR while it is below ``max_dr``, otherwise
    raises the TxPower index (lower power) while it is below
    ``max_tx_power_index``. Each negative step lowers the TxPower index (more
    power) while it is above ``power_floor_index``, otherwise lowers the DR
    down to ``min_dr`` when ``lower_dr_at_power_floor`` is set. A step is
    consumed even when nothing can change.
    """

    while n_step != 0:
        if n_step > 0:
            if dr < max_dr:
                dr += 1
            elif tx_power_index < max_tx_power_index:
                # an increase in index decreases the tx-power
                tx_power_index += 1
            n_step -= 1
        else:
            if tx_power_index > power_floor_index:
                tx_power_index -= 1
            elif lower_dr_at_power_floor and dr > min_dr:
                dr -= 1
            n_step += 1
    return tx_power_index, dr


__all__ = ["ideal_tx_power_index_and_dr"]
