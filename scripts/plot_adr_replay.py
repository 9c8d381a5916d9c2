"""Plot the DR, TxPower index and NbTrans commanded during an ADR replay.

This script reads ``results/adr_replay.csv`` produced by
``loraadr replay <trace> --output results/adr_replay.csv`` and generates a
three-panel figure saved to ``figures/adr_replay``.
"""

from __future__ import annotations

import argparse
from pathlib import Path

import matplotlib.pyplot as plt
import pandas as pd

ROOT = Path(__file__).resolve().parents[1]
RESULTS_DIR = ROOT / "results"
FIGURES_DIR = ROOT / "figures"


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--input", type=Path, default=RESULTS_DIR / "adr_replay.csv", help="Replay CSV"
    )
    args = parser.parse_args(argv)

    df = pd.read_csv(args.input)
    FIGURES_DIR.mkdir(exist_ok=True)
    fig, axes = plt.subplots(3, 1, figsize=(7, 7), sharex=True)

    axes[0].step(df["fCnt"], df["dr"], where="post")
    axes[0].set_ylabel("DR")
    axes[0].set_title("ADR decisions")

    axes[1].step(df["fCnt"], df["txPowerIndex"], where="post", color="tab:orange")
    axes[1].set_ylabel("TxPower index")

    axes[2].step(df["fCnt"], df["nbTrans"], where="post", color="tab:green")
    axes[2].set_ylabel("NbTrans")
    axes[2].set_xlabel("fCnt")

    commands = df[df["changed"]]
    for ax in axes:
        for f_cnt in commands["fCnt"]:
            ax.axvline(f_cnt, color="grey", alpha=0.2, linewidth=0.8)

    fig.tight_layout()
    base = FIGURES_DIR / "adr_replay"
    for ext in ("png", "eps"):
        path = base.with_suffix(f".{ext}")
        fig.savefig(path, dpi=300, bbox_inches="tight", pad_inches=0)
        print(f"Saved {path}")
    plt.close(fig)


if __name__ == "__main__":  # pragma: no cover - script entry point
    main()
