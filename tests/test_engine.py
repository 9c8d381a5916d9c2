import itertools

import pytest

from loraadr.config import AdrSettings
from loraadr.engine import (
    ALGORITHMS,
    ALITECS_RN2483,
    DEFAULT_CUSTOM,
    AdrEngine,
    get_algorithm,
    register_algorithm,
)
from loraadr.errors import UnknownRegionError
from loraadr.models import AdrRequest, AdrResponse
from loraadr.regions import DataRate, RegionConfig, RegionRegistry

from conftest import make_history


def _request(**overrides):
    params = dict(
        adr=True,
        dr=1,
        tx_power_index=0,
        nb_trans=1,
        max_dr=5,
        max_tx_power_index=15,
        required_snr_for_dr=-17.5,
        installation_margin=10.0,
        uplink_history=make_history([10], max_snr=7.5),
        region_config_id="eu868",
    )
    params.update(overrides)
    return AdrRequest(**params)


def test_algorithm_identity():
    assert DEFAULT_CUSTOM.id() == "default-custom"
    assert DEFAULT_CUSTOM.name() == "Default ADR algorithm (LoRa only) custom"
    assert ALITECS_RN2483.id() == "alitecs-rn2483-adr"
    assert ALITECS_RN2483.name() == "ALITECS RN2483 ADR algorithm (LoRa only)"
    assert get_algorithm("default-custom") is DEFAULT_CUSTOM


def test_unknown_algorithm():
    with pytest.raises(KeyError):
        get_algorithm("adr-ml")


def test_register_algorithm():
    engine = AdrEngine("test-adr", "Test ADR", AdrSettings(required_history_count=5))
    register_algorithm(engine)
    try:
        assert get_algorithm("test-adr") is engine
    finally:
        ALGORITHMS.pop("test-adr")


@pytest.mark.parametrize("engine", [DEFAULT_CUSTOM, ALITECS_RN2483])
def test_adr_disabled_returns_current_values(engine):
    req = _request(adr=False, dr=7, tx_power_index=3, nb_trans=3, region_config_id="nowhere")
    assert engine.handle(req) == AdrResponse(dr=7, tx_power_index=3, nb_trans=3)


def test_reference_request_default_custom():
    resp = DEFAULT_CUSTOM.handle(
        {
            "adr": True,
            "dr": 1,
            "txPowerIndex": 0,
            "nbTrans": 1,
            "maxTxPowerIndex": 15,
            "requiredSnrForDr": -17.5,
            "installationMargin": 10,
            "minDr": 0,
            "maxDr": 5,
            "uplinkHistory": [
                {"fCnt": 10, "maxSnr": 7.5, "maxRssi": -110, "txPowerIndex": 0, "gatewayCount": 3}
            ],
        }
    )
    # margin 15 dB -> 5 steps: DR 1 -> 5, then one TxPower step
    assert resp == {"dr": 5, "txPowerIndex": 1, "nbTrans": 1}


def test_reference_request_alitecs():
    resp = ALITECS_RN2483.handle(
        {
            "adr": True,
            "dr": 1,
            "tx_power_index": 0,
            "nb_trans": 1,
            "max_tx_power_index": 15,
            "required_snr_for_dr": -17.5,
            "installation_margin": 10,
            "max_dr": 5,
            "region_config_id": "eu868",
            "uplink_history": [{"f_cnt": 10, "max_snr": 7.5, "tx_power_index": 0}],
        }
    )
    assert resp == {"dr": 5, "tx_power_index": 1, "nb_trans": 1}


def test_region_aware_engine_narrows_max_dr():
    # US915 DR4 is LoRa 500 kHz: the ladder stops at DR3
    req = _request(dr=4, max_dr=4, region_config_id="us915")
    assert ALITECS_RN2483.resolve_max_dr(req) == 3
    resp = ALITECS_RN2483.handle(req)
    assert resp == AdrResponse(dr=3, tx_power_index=5, nb_trans=1)
    # the generic engine keeps the device ceiling
    assert DEFAULT_CUSTOM.handle(req) == AdrResponse(dr=4, tx_power_index=5, nb_trans=1)


def test_region_aware_engine_with_custom_registry():
    region = RegionConfig(
        "lab",
        {
            0: DataRate("LORA", 125000, 12),
            1: DataRate("LORA", 125000, 11),
            2: DataRate("FSK", 0, bitrate=50000),
        },
        (0, 1, 2),
    )
    engine = ALITECS_RN2483.configured(regions=RegionRegistry([region]))
    resp = engine.handle(_request(dr=0, region_config_id="lab"))
    assert resp.dr == 1
    with pytest.raises(UnknownRegionError):
        engine.handle(_request(region_config_id="eu868"))


def test_unknown_region_fails_evaluation():
    with pytest.raises(UnknownRegionError):
        ALITECS_RN2483.handle(_request(region_config_id="mars433"))
    with pytest.raises(UnknownRegionError):
        ALITECS_RN2483.handle(_request(region_config_id=None))


def test_dr_clamped_to_max_dr():
    req = _request(dr=6, max_dr=5, uplink_history=make_history([1], max_snr=-7.5))
    # margin -7.5 + 17.5 - 10 = 0: only the clamp applies
    assert DEFAULT_CUSTOM.handle(req) == AdrResponse(dr=5, tx_power_index=0, nb_trans=1)


def test_negative_step_deferred_without_history_at_power():
    # margin -13.5 + 7.5 - 0 = -6 dB -> -2 steps
    req = _request(
        dr=3,
        tx_power_index=2,
        nb_trans=3,
        required_snr_for_dr=-7.5,
        installation_margin=0.0,
        uplink_history=make_history(range(5), max_snr=-13.5, tx_power_index=2),
    )
    assert DEFAULT_CUSTOM.handle(req) == AdrResponse(dr=3, tx_power_index=2, nb_trans=2)
    assert ALITECS_RN2483.handle(req) == AdrResponse(dr=3, tx_power_index=2, nb_trans=2)


def test_deferral_counts_only_uplinks_at_current_power():
    history = make_history(range(15), max_snr=-13.5, tx_power_index=3) + make_history(
        range(15, 20), max_snr=-13.5, tx_power_index=2
    )
    req = _request(
        dr=3,
        tx_power_index=2,
        required_snr_for_dr=-7.5,
        installation_margin=0.0,
        uplink_history=history,
    )
    assert DEFAULT_CUSTOM.handle(req) == AdrResponse(dr=3, tx_power_index=2, nb_trans=1)


def test_tx_power_index_clamped_to_max():
    # margin -7.5 + 17.5 - 10 = 0: only the clamps apply
    req = _request(
        dr=5,
        tx_power_index=9,
        max_tx_power_index=7,
        uplink_history=make_history([1], max_snr=-7.5, tx_power_index=9),
    )
    assert DEFAULT_CUSTOM.handle(req) == AdrResponse(dr=5, tx_power_index=7, nb_trans=1)
    assert ALITECS_RN2483.handle(req) == AdrResponse(dr=5, tx_power_index=7, nb_trans=1)


def test_deferral_applies_tx_power_clamp():
    req = _request(tx_power_index=12, max_tx_power_index=7, uplink_history=())
    assert DEFAULT_CUSTOM.handle(req) == AdrResponse(dr=1, tx_power_index=7, nb_trans=1)


def test_adr_disabled_keeps_tx_power_above_max():
    req = _request(adr=False, tx_power_index=12, max_tx_power_index=7)
    assert DEFAULT_CUSTOM.handle(req).tx_power_index == 12


def test_deferral_applies_dr_clamp():
    req = _request(dr=7, max_dr=5, uplink_history=())
    assert DEFAULT_CUSTOM.handle(req) == AdrResponse(dr=5, tx_power_index=0, nb_trans=1)


def test_negative_step_with_full_history_default_custom():
    req = _request(
        dr=3,
        tx_power_index=2,
        required_snr_for_dr=-7.5,
        installation_margin=0.0,
        uplink_history=make_history(range(20), max_snr=-13.5, tx_power_index=2),
    )
    assert DEFAULT_CUSTOM.handle(req) == AdrResponse(dr=3, tx_power_index=0, nb_trans=1)


def test_default_custom_keeps_dr_at_power_floor():
    req = _request(
        dr=3,
        tx_power_index=0,
        required_snr_for_dr=-7.5,
        installation_margin=0.0,
        uplink_history=make_history(range(20), max_snr=-13.5, tx_power_index=0),
    )
    assert DEFAULT_CUSTOM.handle(req) == AdrResponse(dr=3, tx_power_index=0, nb_trans=1)


def test_alitecs_lowers_dr_below_power_floor():
    # margin -16.5 + 7.5 - 0 = -9 dB -> -3 steps
    req = _request(
        dr=3,
        tx_power_index=2,
        required_snr_for_dr=-7.5,
        installation_margin=0.0,
        uplink_history=make_history(range(20), max_snr=-16.5, tx_power_index=2),
    )
    assert ALITECS_RN2483.handle(req) == AdrResponse(dr=1, tx_power_index=1, nb_trans=1)


def test_alitecs_requires_exact_history_count():
    req = _request(
        dr=3,
        tx_power_index=2,
        required_snr_for_dr=-7.5,
        installation_margin=0.0,
        uplink_history=make_history(range(21), max_snr=-16.5, tx_power_index=2),
    )
    assert ALITECS_RN2483.handle(req) == AdrResponse(dr=3, tx_power_index=2, nb_trans=1)
    assert DEFAULT_CUSTOM.handle(req) == AdrResponse(dr=3, tx_power_index=0, nb_trans=1)


def test_packet_loss_raises_nb_trans():
    # 2 frames lost over 20 uplinks: 10 % loss
    history = make_history(list(range(10)) + list(range(12, 22)), max_snr=-7.5)
    req = _request(uplink_history=history)
    assert DEFAULT_CUSTOM.handle(req).nb_trans == 2


def test_empty_history_changes_nothing():
    req = _request(dr=2, tx_power_index=1, nb_trans=2, uplink_history=())
    assert DEFAULT_CUSTOM.handle(req) == AdrResponse(dr=2, tx_power_index=1, nb_trans=1)


def test_smaller_history_window():
    engine = DEFAULT_CUSTOM.configured(settings=AdrSettings(required_history_count=3))
    req = _request(
        dr=3,
        tx_power_index=2,
        required_snr_for_dr=-7.5,
        installation_margin=0.0,
        uplink_history=make_history(range(3), max_snr=-13.5, tx_power_index=2),
    )
    assert engine.handle(req) == AdrResponse(dr=3, tx_power_index=0, nb_trans=1)
    assert DEFAULT_CUSTOM.handle(req) == AdrResponse(dr=3, tx_power_index=2, nb_trans=1)


def test_request_is_not_modified():
    req = _request()
    before = req.to_dict()
    DEFAULT_CUSTOM.handle(req)
    ALITECS_RN2483.handle(req)
    assert req.to_dict() == before


@pytest.mark.parametrize("engine", [DEFAULT_CUSTOM, ALITECS_RN2483])
def test_outputs_stay_within_ceilings(engine):
    for dr, tx, snr, count in itertools.product(
        range(0, 8), range(0, 11, 3), (-25.0, -10.0, 0.0, 12.0, 40.0), (1, 20)
    ):
        req = _request(
            dr=dr,
            tx_power_index=tx,
            nb_trans=2,
            max_dr=5,
            max_tx_power_index=7,
            required_snr_for_dr=-7.5,
            installation_margin=5.0,
            uplink_history=make_history(range(count), max_snr=snr, tx_power_index=tx),
        )
        resp = engine.handle(req)
        assert resp.dr <= 5
        assert 0 <= resp.tx_power_index <= 7
        assert 1 <= resp.nb_trans <= 3
        if tx >= engine.settings.power_floor_index:
            assert resp.tx_power_index >= engine.settings.power_floor_index
