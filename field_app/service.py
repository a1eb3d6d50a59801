from __future__ import annotations

"""
Field app service: resolve a stabilized location, optionally submit a visit.

Examples:
  # Averaged fix from a synthetic source (3 readings, 800 ms apart)
  python -m field_app.service locate --source synthetic --lat -1.2921 --lon 36.8219

  # Replay recorded fixes (and failures) from CSV, no pacing
  python -m field_app.service locate --source csv --csv data/fixes.csv --delay-ms 0

  # Submit a visit (backend URL from FIELD_SALES_BACKEND_URL or config)
  python -m field_app.service submit --source static --lat -1.29 --lon 36.82 \
      --national-id 12345678 --name "Jane W" --region Nairobi --shop "Mama Mboga" \
      --sold Yes --sku Chicken=2 --sku Beef=1 --selfie-file selfie.png
"""

import argparse
import json
import sys
from typing import Any, Dict, List, Optional

from backend.api import ApiService
from common.config import load_config, sampler_kwargs
from common.errors import BackendError, LocationError, SubmissionBlocked, VisitValidationError
from common.logging_setup import get_logger, setup_logging
from common.utils import file_to_data_url, parse_kv_pairs
from field_app.visits import DEFAULT_SKUS, Agent, VisitForm, VisitSubmitter, user_message
from positioning.sampler import LocationSampler, check_params
from positioning.sources import build_source


log = get_logger("field_app.service")

EXIT_OK = 0
EXIT_BACKEND = 1
EXIT_NO_LOCATION = 2
EXIT_INVALID = 3


def _source_cfg(args: argparse.Namespace, cfg: Dict[str, Any]) -> Dict[str, Any]:
    """CLI flags win over the config's positioning.source block."""
    src = dict(cfg["positioning"].get("source") or {})
    if args.source:
        src["kind"] = args.source
    if args.lat is not None:
        src["latitude"] = args.lat
    if args.lon is not None:
        src["longitude"] = args.lon
    if args.accuracy is not None:
        src["accuracy"] = args.accuracy
        src["accuracy_m"] = args.accuracy
    if args.csv:
        src["path"] = args.csv
    if args.jitter is not None:
        src["jitter_m"] = args.jitter
    if args.failure_rate is not None:
        src["failure_rate"] = args.failure_rate
    if args.seed is not None:
        src["seed"] = args.seed
    return src


def _acquire_kwargs(args: argparse.Namespace, cfg: Dict[str, Any]) -> Dict[str, Any]:
    kw = sampler_kwargs(cfg)
    if args.readings is not None:
        kw["max_readings"] = args.readings
    if args.timeout_ms is not None:
        kw["per_reading_timeout_ms"] = args.timeout_ms
    if args.delay_ms is not None:
        kw["inter_reading_delay_ms"] = args.delay_ms
    if args.low_accuracy:
        kw["high_accuracy"] = False
    return kw


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="field-sales", description="Field sales location & visit client")
    ap.add_argument("--config", default="config/params.yaml")
    ap.add_argument("--log-level", default=None, help="DEBUG/INFO/WARNING/ERROR (default: config/env)")

    common = argparse.ArgumentParser(add_help=False)
    gsrc = common.add_argument_group("position source")
    gsrc.add_argument("--source", choices=["static", "csv", "synthetic", "none"], help="Override configured source")
    gsrc.add_argument("--lat", type=float, default=None)
    gsrc.add_argument("--lon", type=float, default=None)
    gsrc.add_argument("--accuracy", type=float, default=None, help="Reported accuracy (m)")
    gsrc.add_argument("--csv", default=None, help="Fix CSV (latitude,longitude,accuracy,error)")
    gsrc.add_argument("--jitter", type=float, default=None, help="Synthetic 1-sigma noise (m)")
    gsrc.add_argument("--failure-rate", type=float, default=None, help="Synthetic failure probability")
    gsrc.add_argument("--seed", type=int, default=None)

    gacq = common.add_argument_group("acquisition")
    gacq.add_argument("--readings", type=int, default=None, help="Max readings to average")
    gacq.add_argument("--timeout-ms", type=int, default=None, help="Per-reading timeout")
    gacq.add_argument("--delay-ms", type=int, default=None, help="Delay between readings")
    gacq.add_argument("--low-accuracy", action="store_true", help="Do not request high accuracy")

    sub = ap.add_subparsers(dest="cmd", required=True)
    sub.add_parser("locate", parents=[common], help="Print an averaged location as JSON")

    sp = sub.add_parser("submit", parents=[common], help="Validate, locate and save a visit")
    sp.add_argument("--national-id", required=True)
    sp.add_argument("--name", required=True)
    sp.add_argument("--region", default="")
    sp.add_argument("--shop", default="")
    sp.add_argument("--sold", choices=["Yes", "No"], required=True)
    sp.add_argument("--sku", action="append", default=[], metavar="NAME=QTY",
                    help=f"Cartons per SKU, repeatable (e.g. {DEFAULT_SKUS[0]}=2)")
    sp.add_argument("--reason", default="")
    sp.add_argument("--other-reason", default="")
    sp.add_argument("--selfie-file", default=None, help="Image file sent as the selfie")
    sp.add_argument("--backend-url", default=None)
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    cfg = load_config(args.config)
    setup_logging(args.log_level or cfg["logging"]["level"])

    try:
        source = build_source(_source_cfg(args, cfg))
    except (KeyError, ValueError, FileNotFoundError) as e:
        print(f"Invalid position source: {e}", file=sys.stderr)
        return EXIT_INVALID
    sampler = LocationSampler(source)
    kw = _acquire_kwargs(args, cfg)
    try:
        check_params(kw["max_readings"], kw["per_reading_timeout_ms"], kw["inter_reading_delay_ms"])
    except ValueError as e:
        print(f"Invalid acquisition parameters: {e}", file=sys.stderr)
        return EXIT_INVALID

    if args.cmd == "locate":
        try:
            loc = sampler.acquire(**kw)
        except LocationError as e:
            print(user_message(e), file=sys.stderr)
            return EXIT_NO_LOCATION
        except ValueError as e:
            # malformed replay data or an out-of-range fix
            print(f"Invalid position data: {e}", file=sys.stderr)
            return EXIT_INVALID
        print(json.dumps(loc.to_dict()))
        return EXIT_OK

    try:
        api = ApiService(base_url=args.backend_url or cfg["backend"]["url"], timeout=cfg["backend"]["timeout_s"])
        form = VisitForm(
            region=args.region,
            shop=args.shop,
            sold=args.sold,
            skus=parse_kv_pairs(args.sku),
            reason=args.reason,
            other_reason=args.other_reason,
            selfie=file_to_data_url(args.selfie_file) if args.selfie_file else "",
        )
    except (ValueError, FileNotFoundError) as e:
        print(str(e), file=sys.stderr)
        return EXIT_INVALID

    submitter = VisitSubmitter(api, sampler, kw)
    try:
        result = submitter.submit(Agent(national_id=args.national_id, name=args.name), form)
    except VisitValidationError as e:
        print(str(e), file=sys.stderr)
        return EXIT_INVALID
    except SubmissionBlocked as e:
        print(e.user_message, file=sys.stderr)
        return EXIT_NO_LOCATION
    except ValueError as e:
        print(f"Invalid position data: {e}", file=sys.stderr)
        return EXIT_INVALID
    except BackendError as e:
        log.error("visit not saved: %s", e)
        print("Submission failed. Please try again.", file=sys.stderr)
        return EXIT_BACKEND
    print(json.dumps(result))
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
