"""ADR decision engine.

:class:`AdrEngine` evaluates one ADR request: it estimates the packet loss of
the uplink history to pick NbTrans, converts the SNR margin into a number of
steps and walks the data rate and TxPower index towards that target. The two
legacy algorithms shipped with the network server are instances of the same
engine with different :class:`~loraadr.config.AdrSettings`.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping

from .config import AdrSettings
from .loss import packet_loss_percentage
from .margin import history_count, max_snr, should_defer, snr_margin, step_count
from .models import WIRE_STYLES, AdrRequest, AdrResponse
from .redundancy import select_nb_trans
from .regions import REGIONS, RegionRegistry, effective_max_dr
from .search import ideal_tx_power_index_and_dr

logger = logging.getLogger(__name__)


class AdrEngine:
    """ADR algorithm registered with the network server under :meth:`id`."""

    def __init__(
        self,
        algorithm_id: str,
        name: str,
        settings: AdrSettings | None = None,
        *,
        region_aware: bool = False,
        regions: RegionRegistry | None = None,
        wire_style: str = "camel",
    ) -> None:
        """Create an engine.

        :param algorithm_id: Machine-stable identifier of the algorithm.
        :param name: Human readable name of the algorithm.
        :param settings: Algorithm constants, defaults to :class:`AdrSettings`.
        :param region_aware: Narrow the device max DR to the highest LoRa
            125 kHz DR of the request region.
        :param regions: Region lookup service, :data:`~loraadr.regions.REGIONS`
            when omitted.
        :param wire_style: Key style (``"camel"`` or ``"snake"``) of the
            mappings returned by :meth:`handle_dict`.
        """
        if wire_style not in WIRE_STYLES:
            raise ValueError(f"Unknown wire style: {wire_style}")
        self._id = algorithm_id
        self._name = name
        self.settings = settings or AdrSettings()
        self.region_aware = region_aware
        self.regions = regions if regions is not None else REGIONS
        self.wire_style = wire_style

    def id(self) -> str:
        return self._id

    def name(self) -> str:
        return self._name

    def __repr__(self) -> str:
        return f"AdrEngine({self._id!r})"

    def configured(
        self,
        settings: AdrSettings | None = None,
        regions: RegionRegistry | None = None,
    ) -> "AdrEngine":
        """Return a copy of this engine using other settings or regions."""

        return AdrEngine(
            self._id,
            self._name,
            settings or self.settings,
            region_aware=self.region_aware,
            regions=regions if regions is not None else self.regions,
            wire_style=self.wire_style,
        )

    def resolve_max_dr(self, req: AdrRequest) -> int:
        """Return the max DR in force for ``req``."""

        if not self.region_aware:
            return req.max_dr
        region = self.regions.get(req.region_config_id)
        return effective_max_dr(req.max_dr, region)

    def handle(
        self, req: AdrRequest | Mapping[str, Any]
    ) -> AdrResponse | dict[str, int]:
        """Evaluate ``req`` and return the parameters to command.

        An :class:`AdrRequest` gives an :class:`AdrResponse`; a wire mapping
        gives a mapping (see :meth:`handle_dict`).
        """

        if not isinstance(req, AdrRequest):
            return self.handle_dict(req)

        resp_dr = req.dr
        resp_tx_power_index = req.tx_power_index
        resp_nb_trans = req.nb_trans

        # If ADR is disabled, return with current values.
        if not req.adr:
            return AdrResponse(resp_dr, resp_tx_power_index, resp_nb_trans)

        s = self.settings
        max_dr = self.resolve_max_dr(req)
        # Lower the DR only if it exceeds the max allowed DR.
        if resp_dr > max_dr:
            resp_dr = max_dr
        if resp_tx_power_index > req.max_tx_power_index:
            resp_tx_power_index = req.max_tx_power_index

        loss = packet_loss_percentage(
            req.uplink_history,
            s.required_history_count,
            legacy_negative_loss=s.legacy_negative_loss,
        )
        resp_nb_trans = select_nb_trans(
            req.nb_trans,
            loss,
            table=s.nb_trans_table,
            thresholds=s.loss_thresholds,
        )

        snr_m = max_snr(req.uplink_history)
        margin = snr_margin(snr_m, req.required_snr_for_dr, req.installation_margin)
        n_step = step_count(margin, s.snr_step_db)
        prefix = f"[{req.dev_eui}] " if req.dev_eui else ""
        logger.debug(
            "%s%s: loss=%.1f%% nb_trans=%d snr_max=%.1f margin=%.1f step=%d",
            prefix,
            self._id,
            loss,
            resp_nb_trans,
            snr_m,
            margin,
            n_step,
        )

        count = history_count(req.uplink_history, req.tx_power_index)
        if should_defer(
            n_step, count, s.required_history_count, s.history_count_comparison
        ):
            logger.debug(
                "%s%s: power increase deferred, %d/%d uplinks at TxPower index %d",
                prefix,
                self._id,
                count,
                s.required_history_count,
                req.tx_power_index,
            )
            return AdrResponse(resp_dr, resp_tx_power_index, resp_nb_trans)

        tx_power_index, dr = ideal_tx_power_index_and_dr(
            n_step,
            resp_tx_power_index,
            resp_dr,
            req.max_tx_power_index,
            max_dr,
            power_floor_index=s.power_floor_index,
            min_dr=req.min_dr,
            lower_dr_at_power_floor=s.lower_dr_at_power_floor,
        )
        logger.debug(
            "%s%s: DR %d -> %d, TxPower index %d -> %d",
            prefix,
            self._id,
            req.dr,
            dr,
            req.tx_power_index,
            tx_power_index,
        )
        return AdrResponse(dr, tx_power_index, resp_nb_trans)

    def handle_dict(self, data: Mapping[str, Any]) -> dict[str, int]:
        """Decode a wire request, evaluate it and encode the response."""

        return self.handle(AdrRequest.from_dict(data)).to_dict(self.wire_style)


DEFAULT_CUSTOM = AdrEngine(
    "default-custom",
    "Default ADR algorithm (LoRa only) custom",
    AdrSettings(
        power_floor_index=0,
        history_count_comparison="at-least",
        lower_dr_at_power_floor=False,
    ),
)

ALITECS_RN2483 = AdrEngine(
    "alitecs-rn2483-adr",
    "ALITECS RN2483 ADR algorithm (LoRa only)",
    AdrSettings(
        power_floor_index=1,
        history_count_comparison="exact",
        lower_dr_at_power_floor=True,
    ),
    region_aware=True,
    wire_style="snake",
)

# Mapping of ADR algorithm ids to their engines
ALGORITHMS: Dict[str, AdrEngine] = {
    DEFAULT_CUSTOM.id(): DEFAULT_CUSTOM,
    ALITECS_RN2483.id(): ALITECS_RN2483,
}


def register_algorithm(engine: AdrEngine) -> None:
    """Register ``engine`` under its id."""
    ALGORITHMS[engine.id()] = engine


def get_algorithm(algorithm_id: str) -> AdrEngine:
    """Retrieve a registered ADR algorithm."""
    if algorithm_id not in ALGORITHMS:
        raise KeyError(f"Unknown ADR algorithm: {algorithm_id}")
    return ALGORITHMS[algorithm_id]


__all__ = [
    "AdrEngine",
    "DEFAULT_CUSTOM",
    "ALITECS_RN2483",
    "ALGORITHMS",
    "register_algorithm",
    "get_algorithm",
]
