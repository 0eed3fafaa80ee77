from __future__ import annotations

import argparse
import json
import signal
from typing import Any, Dict, List, Optional

from entity_store.common import PrintLogger
from entity_store.config import default_config, merge_config, validate_config

from .results import EXIT_CODES, OUTCOME_FATAL, RunSummary
from .runner import build_orchestrator


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="entity-recon")
    parser.add_argument("--config", help="Path to a JSON reconciliation config", default=None)
    parser.add_argument("--source-url", help="Source store base URL (default: $SRC_API)", default=None)
    parser.add_argument("--target-url", help="Target store base URL (default: $TGT_API)", default=None)
    parser.add_argument("--report-dir", help="Directory replaced with this run's reports", default=None)
    parser.add_argument("--only-types", help="Comma separated record types to reconcile", default=None)
    parser.add_argument("--page-size", type=int, default=None, help="Records requested per page")
    parser.add_argument("--max-pages", type=int, default=None, help="Page cap per type and store")
    parser.add_argument(
        "--max-parallel",
        type=int,
        default=None,
        help="Maximum number of record types reconciled in parallel",
    )
    parser.add_argument("--timeout-seconds", type=float, default=None, help="Per-request timeout")
    parser.add_argument(
        "--no-snapshots",
        action="store_true",
        default=False,
        help="Skip writing raw source/target record dumps",
    )
    parser.add_argument(
        "--output-json",
        help="Optional path to write the run summary as JSON",
        default=None,
    )
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace, env: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """Layer defaults, the JSON config file and command-line flags.

    Raises ``OSError`` when the config file cannot be read and ``ValueError``
    when it is not valid JSON or a section is not an object.
    """

    cfg = default_config(env)
    if args.config:
        with open(args.config, "r", encoding="utf-8") as handle:
            loaded = json.load(handle)
        if not isinstance(loaded, dict):
            raise ValueError(f"{args.config} must contain a JSON object")
        cfg = merge_config(cfg, loaded)
    for section in ["runtime", "source", "target"]:
        if not isinstance(cfg.get(section), dict):
            raise ValueError(f"{section} must be an object")
    runtime_overrides = {
        "report_dir": args.report_dir,
        "only_types": args.only_types,
        "page_size": args.page_size,
        "max_pages": args.max_pages,
        "max_parallel": args.max_parallel,
    }
    cfg["runtime"].update({key: value for key, value in runtime_overrides.items() if value is not None})
    if args.no_snapshots:
        cfg["runtime"]["dump_snapshots"] = False
    if args.source_url:
        cfg["source"]["base_url"] = args.source_url
    if args.target_url:
        cfg["target"]["base_url"] = args.target_url
    if args.timeout_seconds is not None:
        cfg["source"]["timeout_seconds"] = args.timeout_seconds
        cfg["target"]["timeout_seconds"] = args.timeout_seconds
    return cfg


def run_cli(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    try:
        cfg = build_config(args)
        validate_config(cfg)
    except (OSError, ValueError) as exc:
        PrintLogger().error("invalid_config", config=args.config, err=str(exc))
        return EXIT_CODES[OUTCOME_FATAL]

    runtime = cfg["runtime"]
    logger = PrintLogger(
        job_name=runtime.get("job_name", "entity_recon"),
        file_path=runtime.get("log_file"),
        level=runtime.get("log_level", "INFO"),
    )
    orchestrator = build_orchestrator(cfg, logger=logger)
    cancel_event = orchestrator.context.cancel_event
    received: List[str] = []

    # Handlers only flag the run; logging here could re-enter a write already in progress.
    def _on_signal(signum, _frame) -> None:
        received.append(signal.Signals(signum).name)
        cancel_event.set()

    previous = {sig: signal.signal(sig, _on_signal) for sig in (signal.SIGINT, signal.SIGTERM)}
    try:
        summary = orchestrator.run()
    except OSError as exc:
        logger.error("recon_fatal", report_dir=runtime.get("report_dir"), err=str(exc))
        summary = RunSummary.fatal(
            str(exc),
            source_url=orchestrator.context.source.describe(),
            target_url=orchestrator.context.target.describe(),
            run_id=orchestrator.context.run_id,
        )
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)
        orchestrator.context.source.close()
        orchestrator.context.target.close()
    if received:
        logger.warn("signal_received", signals=received)

    payload = summary.to_dict()
    if args.output_json:
        with open(args.output_json, "w", encoding="utf-8") as handle:
            json.dump(payload, handle, indent=2, sort_keys=True)
    else:
        print(json.dumps(payload, indent=2, sort_keys=True))
    return summary.exit_code


def main() -> None:
    raise SystemExit(run_cli())


__all__ = ["parse_args", "build_config", "run_cli", "main"]
