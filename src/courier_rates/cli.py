# src/courier_rates/cli.py
from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any

import pandas as pd

from .config.logging_config import get_logger
from .config.env import EnvError, get_app_env
from .io.paths import derive_output_paths


def _package(text: str) -> dict[str, float]:
    """'1.5' or '1.5x30x20x10' -> weight kg [x length x width x height cm]."""
    parts = text.lower().split("x")
    if len(parts) not in (1, 4):
        raise argparse.ArgumentTypeError(
            f"package must be WEIGHT or WEIGHTxLENGTHxWIDTHxHEIGHT, got {text!r}")
    try:
        nums = [float(p) for p in parts]
    except ValueError as ex:
        raise argparse.ArgumentTypeError(str(ex)) from ex
    pkg = {"weight": nums[0]}
    if len(nums) == 4:
        pkg.update(length=nums[1], width=nums[2], height=nums[3])
    return pkg


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="courier-rates",
        description="Compare shipping rates from FedEx, Delhivery and Shiprocket for one shipment or a workbook of shipments.",
    )
    p.add_argument("--origin", help="Origin pincode.")
    p.add_argument("--destination", help="Destination pincode.")
    p.add_argument("--weight", type=float, help="Weight in kg (single package).")
    p.add_argument("--length", type=float, help="Length in cm.")
    p.add_argument("--width", type=float, help="Width in cm.")
    p.add_argument("--height", type=float, help="Height in cm.")
    p.add_argument(
        "--package",
        type=_package,
        action="append",
        default=None,
        help="Package as WEIGHT or WEIGHTxLxWxH; repeat for multi-package shipments "
             "(weights are summed, the first package's dimensions are used).",
    )
    p.add_argument("--payment-type", default="Prepaid",
                   help="Prepaid or COD. Default: Prepaid")
    p.add_argument("--declared-value", type=float, default=None,
                   help="Declared value (default 1000).")
    p.add_argument("--pieces", type=int, default=1)
    p.add_argument("--billing-mode", default="E",
                   help="Delhivery billing mode: E (Express) or S (Surface).")
    p.add_argument("--status", default="",
                   help="Shipment status for Delhivery itemised charges (e.g. Delivered, RTO, DTO).")
    p.add_argument("--json", action="store_true",
                   help="Print the raw rates response as JSON.")
    p.add_argument(
        "--workbook",
        type=Path,
        default=None,
        help="Quote every row of an .xlsx and write <name>_rates.xlsx next to it.",
    )
    p.add_argument(
        "--replay",
        type=Path,
        default=None,
        help="JSON file of recorded provider responses; no network calls are made.",
    )
    p.add_argument("--timeout", type=float, default=None,
                   help="Per-provider timeout in seconds (default from RATES_PROVIDER_TIMEOUT or 10).")
    p.add_argument(
        "--no-console",
        action="store_true",
        help="Disable console logging (file logging remains).",
    )
    p.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (DEBUG, INFO, WARNING, ERROR). Default: INFO",
    )
    p.add_argument(
        "--strict-env",
        action="store_true",
        help="Require credentials for at least one provider; otherwise exit 2.",
    )
    return p


def _quote_body(args: argparse.Namespace) -> dict[str, Any]:
    packages = args.package
    if not packages:
        packages = [{
            "weight": args.weight,
            "length": args.length,
            "width": args.width,
            "height": args.height,
        }] if args.weight is not None else []
    return {
        "origin": {"pincode": args.origin},
        "destination": {"pincode": args.destination},
        "packages": packages,
        "paymentType": args.payment_type,
        "declaredValue": args.declared_value,
        "pieces": args.pieces,
        "billingMode": args.billing_mode,
        "status": args.status,
    }


def _print_tables(result: dict[str, Any]) -> None:
    rates = pd.DataFrame(result.get("rates") or [])
    if len(rates):
        print(rates.to_string(index=False))
    else:
        print("No summary rates.")

    detailed = result.get("detailedRates") or []
    if detailed:
        cols = ["_provider", "courier_name", "total_amount",
                "estimated_delivery_days", "charged_weight", "zone"]
        df = pd.DataFrame(detailed)
        print()
        print(df[[c for c in cols if c in df.columns]].to_string(index=False))


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    log_path = None
    if args.workbook:
        try:
            output_path, log_path = derive_output_paths(args.workbook)
        except FileNotFoundError:
            print(f"error: input file not found: {args.workbook}", file=sys.stderr)
            return 2

    logger = get_logger(
        "courier_rates",
        level=args.log_level,
        console=not args.no_console,
        log_file=log_path,
    )
    logger.debug("Logger initialized.")

    try:
        env_cfg = get_app_env(strict=args.strict_env)
    except EnvError as e:
        logger.error("Environment error: %s", e)
        return 2
    logger.info("Configured providers: %s",
                ", ".join(env_cfg.configured_providers()) or "none")

    # Lazy imports to keep startup light
    from .aggregator import build_aggregator

    transport_factory = None
    if args.replay:
        from .api.replay import ReplayTransport
        try:
            replay = ReplayTransport(args.replay)
        except ValueError as e:
            logger.error("Replay file error: %s", e)
            return 2
        env_cfg = env_cfg.with_placeholder_credentials()
        transport_factory = lambda: replay  # noqa: E731
        logger.info("Replay mode enabled: %s", args.replay)

    aggregator = build_aggregator(
        env_cfg, transport_factory=transport_factory, timeout=args.timeout, logger=logger)

    if args.workbook:
        from .pipelines.rate_workbook import RateWorkbookProcessor
        logger.info("Input: %s", args.workbook)
        logger.info("Rates output: %s", output_path)
        try:
            RateWorkbookProcessor(logger, aggregator).process(args.workbook, output_path)
        except (FileNotFoundError, ValueError) as e:
            logger.error("Cannot process workbook: %s", e)
            return 2
        except Exception as e:
            logger.exception("Failed to process workbook: %s", e)
            return 1
        logger.info("Done.")
        return 0

    from .quote import NoRatesFoundError, RateRequestError, calculate_rates

    try:
        result = asyncio.run(calculate_rates(aggregator, _quote_body(args)))
    except RateRequestError as e:
        print(f"error: {e} (need --origin, --destination and --weight or --package)",
              file=sys.stderr)
        return 2
    except NoRatesFoundError as e:
        logger.warning("%s", e)
        return 3

    if args.json:
        print(json.dumps(result, indent=2, ensure_ascii=False))
    else:
        _print_tables(result)
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
