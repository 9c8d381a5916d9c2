import os
import sys

# Ensure the project root is on the module search path when the package is not
# installed so that ``import loraadr`` succeeds during test collection.
ROOT_DIR = os.path.dirname(os.path.dirname(__file__))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

from loraadr.models import UplinkHistoryEntry


def make_history(f_cnts, max_snr=0.0, tx_power_index=0):
    """Return history entries for ``f_cnts`` sharing SNR and TxPower index."""

    return tuple(
        UplinkHistoryEntry(f_cnt=f, max_snr=max_snr, tx_power_index=tx_power_index)
        for f in f_cnts
    )
