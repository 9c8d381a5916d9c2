import json
from pathlib import Path

import pytest

from loraadr.config import AdrSettings, NB_TRANS_TABLE, load_settings
from loraadr.errors import ConfigurationError


def test_default_settings():
    s = AdrSettings()
    assert s.required_history_count == 20
    assert s.snr_step_db == 3.0
    assert s.loss_thresholds == (5.0, 10.0, 30.0)
    assert s.nb_trans_table == NB_TRANS_TABLE
    assert s.history_count_comparison == "at-least"


def test_load_json_settings(tmp_path: Path) -> None:
    path = tmp_path / "adr.json"
    path.write_text(
        json.dumps(
            {
                "required_history_count": 10,
                "power_floor_index": 1,
                "history_count_comparison": "exact",
                "nb_trans_table": [[1, 1, 1], [1, 2, 2], [2, 3, 3], [3, 3, 3]],
            }
        )
    )
    s = load_settings(path)
    assert s.required_history_count == 10
    assert s.power_floor_index == 1
    assert s.history_count_comparison == "exact"
    assert s.nb_trans_table[0] == (1, 1, 1)
    assert s.snr_step_db == 3.0


def test_load_ini_settings(tmp_path: Path) -> None:
    path = tmp_path / "adr.ini"
    path.write_text(
        "[ADR]\n"
        "required_history_count = 5\n"
        "snr_step_db = 2.5\n"
        "lower_dr_at_power_floor = no\n"
        "legacy_negative_loss = yes\n"
        "loss_thresholds = 2, 8, 20\n"
        "\n"
        "[NB_TRANS]\n"
        "LOSS3 = 2 3 3\n"
    )
    s = load_settings(path)
    assert s.required_history_count == 5
    assert s.snr_step_db == 2.5
    assert s.lower_dr_at_power_floor is False
    assert s.legacy_negative_loss is True
    assert s.loss_thresholds == (2.0, 8.0, 20.0)
    assert s.nb_trans_table[:3] == NB_TRANS_TABLE[:3]
    assert s.nb_trans_table[3] == (2, 3, 3)


def test_file_values_override_base(tmp_path: Path) -> None:
    path = tmp_path / "adr.json"
    path.write_text(json.dumps({"snr_step_db": 4.0}))
    base = AdrSettings(power_floor_index=1)
    s = load_settings(path, base=base)
    assert s.power_floor_index == 1
    assert s.snr_step_db == 4.0


@pytest.mark.parametrize(
    "content",
    [
        {"unknown_key": 1},
        {"history_count_comparison": "sometimes"},
        {"nb_trans_table": [[1, 1, 2]]},
        {"nb_trans_table": [[1, 1, 5], [1, 2, 3], [2, 3, 3], [3, 3, 3]]},
        {"loss_thresholds": [30, 10, 5]},
        {"required_history_count": -1},
        {"snr_step_db": 0},
    ],
)
def test_invalid_settings_rejected(tmp_path: Path, content) -> None:
    path = tmp_path / "adr.json"
    path.write_text(json.dumps(content))
    with pytest.raises(ConfigurationError):
        load_settings(path)


def test_invalid_ini_value_rejected(tmp_path: Path) -> None:
    path = tmp_path / "adr.ini"
    path.write_text("[ADR]\nrequired_history_count = many\n")
    with pytest.raises(ConfigurationError):
        load_settings(path)


def test_unsupported_format(tmp_path: Path) -> None:
    path = tmp_path / "adr.yaml"
    path.write_text("required_history_count: 3\n")
    with pytest.raises(ConfigurationError):
        load_settings(path)


def test_with_overrides():
    s = AdrSettings().with_overrides(required_history_count=3)
    assert s.required_history_count == 3
    with pytest.raises(ConfigurationError):
        AdrSettings().with_overrides(power_floor_index=-1)
