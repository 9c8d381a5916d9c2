"""Replay an uplink trace through an ADR algorithm.

The network server normally keeps the uplink history and applies the ADR
answer after each uplink. This module reproduces that loop for a single
device so that decisions can be inspected offline: every uplink of the trace
is appended to a sliding history window, the engine is evaluated and the
commanded DR / TxPower / NbTrans become the device state for the next uplink.
"""

from __future__ import annotations

import logging
from collections import deque
from pathlib import Path
from typing import Any, Iterable, Mapping

import pandas as pd

from .engine import AdrEngine
from .errors import InvalidRequestError
from .models import AdrRequest, UplinkHistoryEntry
from .regions import (
    RegionConfig,
    RegionRegistry,
    effective_max_dr,
    required_snr_for_dr,
)

logger = logging.getLogger(__name__)

TRACE_COLUMNS = ("fCnt", "maxSnr")
DECISION_COLUMNS = ["fCnt", "maxSnr", "dr", "txPowerIndex", "nbTrans", "changed"]


def load_trace(path: str | Path) -> pd.DataFrame:
    """Read an uplink trace CSV with at least ``fCnt`` and ``maxSnr`` columns."""

    df = pd.read_csv(path)
    missing = [c for c in TRACE_COLUMNS if c not in df.columns]
    if missing:
        raise InvalidRequestError(f"Trace {path} lacks column(s): {', '.join(missing)}")
    return df


def _records(uplinks: pd.DataFrame | Iterable[Mapping[str, Any]]):
    if isinstance(uplinks, pd.DataFrame):
        # NaN des colonnes optionnelles -> None
        return uplinks.astype(object).where(uplinks.notna(), None).to_dict("records")
    return list(uplinks)


def replay_uplinks(
    engine: AdrEngine,
    uplinks: pd.DataFrame | Iterable[Mapping[str, Any]],
    *,
    dr: int,
    tx_power_index: int,
    nb_trans: int,
    max_dr: int,
    max_tx_power_index: int,
    installation_margin: float,
    region: RegionConfig | str,
    adr: bool = True,
    min_dr: int = 0,
    dev_eui: str | None = None,
) -> pd.DataFrame:
    """Evaluate ``engine`` after every uplink of ``uplinks``.

    Parameters
    ----------
    engine : AdrEngine
        Algorithm to replay.
    uplinks : DataFrame or iterable of mappings
        Received uplinks in reception order, with ``fCnt`` and ``maxSnr``
        and optionally ``maxRssi`` and ``gatewayCount``.
    dr, tx_power_index, nb_trans : int
        Initial device state.
    region : RegionConfig or str
        Channel plan of the device, or its id in ``engine.regions``. The
        required SNR of each uplink is derived from its data rate, so
        ``max_dr`` is narrowed to the highest LoRa 125 kHz DR of the region.

    Returns
    -------
    DataFrame
        One row per uplink with the state commanded after it and whether it
        differs from the state the uplink was sent with.

    Raises
    ------
    ConfigurationError
        When the initial ``dr`` is not a LoRa data rate of the region.
    """

    if isinstance(region, RegionConfig):
        region_config_id = region.region_id
        engine = engine.configured(regions=RegionRegistry([region]))
    else:
        region_config_id = region
        region = engine.regions.get(region)
    max_dr = effective_max_dr(max_dr, region)
    window = engine.settings.required_history_count or None
    history: deque[UplinkHistoryEntry] = deque(maxlen=window)
    rows: list[dict[str, Any]] = []

    for uplink in _records(uplinks):
        entry = UplinkHistoryEntry.from_dict({**uplink, "txPowerIndex": tx_power_index})
        history.append(entry)
        req = AdrRequest(
            adr=adr,
            dr=dr,
            tx_power_index=tx_power_index,
            nb_trans=nb_trans,
            max_dr=max_dr,
            min_dr=min_dr,
            max_tx_power_index=max_tx_power_index,
            required_snr_for_dr=required_snr_for_dr(region, dr),
            installation_margin=installation_margin,
            uplink_history=tuple(history),
            region_config_id=region_config_id,
            dev_eui=dev_eui,
        )
        resp = engine.handle(req)
        changed = (resp.dr, resp.tx_power_index, resp.nb_trans) != (
            dr,
            tx_power_index,
            nb_trans,
        )
        if changed:
            logger.info(
                "fCnt %d: LinkADRReq DR%d TxPower %d NbTrans %d",
                entry.f_cnt,
                resp.dr,
                resp.tx_power_index,
                resp.nb_trans,
            )
        dr, tx_power_index, nb_trans = resp.dr, resp.tx_power_index, resp.nb_trans
        rows.append(
            {
                "fCnt": entry.f_cnt,
                "maxSnr": entry.max_snr,
                "dr": dr,
                "txPowerIndex": tx_power_index,
                "nbTrans": nb_trans,
                "changed": changed,
            }
        )

    return pd.DataFrame(rows, columns=DECISION_COLUMNS)


def summarize_replay(decisions: pd.DataFrame) -> dict[str, Any]:
    """Return the number of commands sent and the final state of a replay."""

    final_state = None
    if not decisions.empty:
        last = decisions.iloc[-1]
        final_state = {
            "dr": int(last["dr"]),
            "txPowerIndex": int(last["txPowerIndex"]),
            "nbTrans": int(last["nbTrans"]),
        }
    return {
        "uplinks": int(len(decisions)),
        "commands": int(decisions["changed"].sum()) if not decisions.empty else 0,
        "final_state": final_state,
    }


__all__ = [
    "TRACE_COLUMNS",
    "DECISION_COLUMNS",
    "load_trace",
    "replay_uplinks",
    "summarize_replay",
]
