"""Command line interface of the ADR engine."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from .config import load_settings
from .engine import ALGORITHMS, AdrEngine, get_algorithm
from .errors import AdrError
from .regions import RegionRegistry
from .replay import load_trace, replay_uplinks, summarize_replay

logger = logging.getLogger("loraadr")


def _build_engine(args: argparse.Namespace) -> AdrEngine:
    engine = get_algorithm(args.algorithm)
    settings = None
    regions = None
    if args.config:
        settings = load_settings(args.config, base=engine.settings)
    if args.regions:
        regions = RegionRegistry()
        regions.load_file(args.regions)
    if settings is None and regions is None:
        return engine
    return engine.configured(settings=settings, regions=regions)


def _read_request(source: str) -> dict:
    if source == "-":
        return json.load(sys.stdin)
    with open(source, "r", encoding="utf8") as f:
        return json.load(f)


def _cmd_evaluate(args: argparse.Namespace) -> int:
    engine = _build_engine(args)
    response = engine.handle_dict(_read_request(args.request))
    print(json.dumps(response, indent=2 if args.pretty else None))
    return 0


def _cmd_replay(args: argparse.Namespace) -> int:
    engine = _build_engine(args)
    decisions = replay_uplinks(
        engine,
        load_trace(args.trace),
        dr=args.dr,
        tx_power_index=args.tx_power_index,
        nb_trans=args.nb_trans,
        max_dr=args.max_dr,
        min_dr=args.min_dr,
        max_tx_power_index=args.max_tx_power_index,
        installation_margin=args.installation_margin,
        region=args.region,
    )
    if args.output:
        Path(args.output).parent.mkdir(parents=True, exist_ok=True)
        decisions.to_csv(args.output, index=False)
        logger.info("Saved %s", args.output)
    print(json.dumps(summarize_replay(decisions), indent=2, sort_keys=True))
    return 0


def _cmd_list(args: argparse.Namespace) -> int:
    for algorithm_id, engine in sorted(ALGORITHMS.items()):
        print(f"{algorithm_id}\t{engine.name()}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="loraadr",
        description="LoRaWAN ADR engine - Mode CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Exemples :\n"
            "  # Évaluer une requête ADR\n"
            "  loraadr evaluate request.json --algorithm default-custom\n\n"
            "  # Rejouer une trace d'uplinks EU868\n"
            "  loraadr replay uplinks.csv --region eu868 --dr 0 --output decisions.csv\n"
        ),
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Niveau de journalisation",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    def _engine_options(p: argparse.ArgumentParser) -> None:
        p.add_argument(
            "--algorithm",
            default="default-custom",
            choices=sorted(ALGORITHMS),
            help="Algorithme ADR à utiliser",
        )
        p.add_argument(
            "--config", type=str, help="Fichier JSON ou INI des paramètres ADR"
        )
        p.add_argument(
            "--regions", type=str, help="Fichier JSON de régions supplémentaires"
        )

    evaluate = sub.add_parser("evaluate", help="Évalue une requête ADR JSON")
    evaluate.add_argument("request", help="Fichier JSON de la requête ('-' pour stdin)")
    evaluate.add_argument("--pretty", action="store_true", help="Indente la réponse")
    _engine_options(evaluate)
    evaluate.set_defaults(func=_cmd_evaluate)

    replay = sub.add_parser("replay", help="Rejoue une trace CSV d'uplinks")
    replay.add_argument("trace", help="Fichier CSV (colonnes fCnt, maxSnr)")
    replay.add_argument("--region", default="eu868", help="Identifiant de région")
    replay.add_argument("--dr", type=int, default=0, help="DR initial")
    replay.add_argument("--tx-power-index", type=int, default=0, help="TxPower initial")
    replay.add_argument("--nb-trans", type=int, default=1, help="NbTrans initial")
    replay.add_argument("--max-dr", type=int, default=5, help="DR maximal du nœud")
    replay.add_argument("--min-dr", type=int, default=0, help="DR minimal du nœud")
    replay.add_argument(
        "--max-tx-power-index", type=int, default=7, help="Index TxPower maximal"
    )
    replay.add_argument(
        "--installation-margin", type=float, default=10.0, help="Marge d'installation (dB)"
    )
    replay.add_argument("--output", type=str, help="Fichier CSV des décisions")
    _engine_options(replay)
    replay.set_defaults(func=_cmd_replay)

    listing = sub.add_parser("list", help="Liste les algorithmes disponibles")
    listing.set_defaults(func=_cmd_list)
    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(message)s")
    try:
        return args.func(args)
    except (AdrError, OSError, json.JSONDecodeError) as exc:
        logger.error("Error: %s", exc)
        return 1


if __name__ == "__main__":  # pragma: no cover - script entry point
    sys.exit(main())
