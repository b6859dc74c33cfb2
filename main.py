"""CLI entry point: python main.py --input chain.json --spot 550"""

import argparse
import json
import logging
import sys
from dataclasses import replace
from datetime import date
from typing import Optional

from src.gamma_exposure import GammaAnalytics, GammaExposureConfig, InvalidInputError
from src.logging_config import LogFormat, LoggingConfig, LogLevel, PerformanceTimer, configure_logging
from src.settings import get_settings

logger = logging.getLogger(__name__)


def load_chain(path: str) -> tuple[list, Optional[float]]:
    """Read an option snapshot from a file ('-' for stdin).

    Accepts a bare list of option maps or a CBOE-style envelope
    ``{"data": {"current_price": ..., "options": [...]}}``.

    Returns:
        (raw option maps, spot price from the envelope or None)
    """
    with PerformanceTimer("load_chain"):
        if path == "-":
            payload = json.load(sys.stdin)
        else:
            with open(path, encoding="utf-8") as fh:
                payload = json.load(fh)

    if isinstance(payload, dict):
        data = payload.get("data", payload)
        if not isinstance(data, dict):
            raise InvalidInputError("Envelope 'data' must be an object", field="data")
        return data.get("options", []), data.get("current_price")
    return payload, None


def format_summary(report: dict) -> str:
    """Plain-text digest of a report for terminal use."""
    lines = [
        "=" * 60,
        f"GAMMA EXPOSURE  spot={report['spot']:,.2f}  method={report['pricing_method']}",
        f"As of {report['as_of']}  expiration={report['expiration']}  "
        f"records={report['records_used']}/{report['records_in']}",
        "=" * 60,
        f"Total GEX:       {report['total_gex']:+.4f}B",
        f"  Calls:         {report['total_call_gex']:+.4f}B",
        f"  Puts:          {report['total_put_gex']:+.4f}B",
        f"Zero gamma:      {report['zero_gamma_level'] if report['zero_gamma_level'] is not None else 'n/a'}",
    ]

    if report["per_strike"]:
        top = sorted(report["per_strike"], key=lambda s: abs(s["gex"]), reverse=True)[:5]
        lines.append("\nLargest strikes:")
        lines.extend(f"  {s['strike']:>10.2f}  {s['gex']:+.4f}B" for s in top)

    if report["expected_moves"]:
        lines.append("\nExpected moves:")
        lines.extend(
            f"  {m['expiration']}  {m['lower_strike']:.2f} ({m['lower_pct']:+.2f}%)"
            f" .. {m['upper_strike']:.2f} ({m['upper_pct']:+.2f}%)"
            for m in report["expected_moves"]
        )

    if report["walls"]:
        lines.append("\nWalls (put / call):")
        lines.extend(f"  {w['expiration']}  {w['put_wall']} / {w['call_wall']}" for w in report["walls"])

    if report["gamma_flips"]:
        lines.append("\nGamma flip by expiration:")
        for flip in report["gamma_flips"]:
            level = f"{flip['level']:.2f}" if flip["level"] is not None else "n/a"
            lines.append(f"  {flip['expiration']}  {flip['days_to_expiry']:>4}d  {level}")

    return "\n".join(lines)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="GEX - dealer gamma exposure analytics for an option chain snapshot"
    )
    parser.add_argument(
        "--input", required=True,
        help="Path to option chain JSON (list or CBOE envelope), '-' for stdin"
    )
    parser.add_argument(
        "--spot", type=float, default=None,
        help="Underlying price (default: envelope current_price)"
    )
    parser.add_argument(
        "--method", default="black-scholes",
        help="Pricing model for missing gammas: black-scholes or binomial"
    )
    parser.add_argument(
        "--expiration", default="all",
        help="Single expiration (YYYY-MM-DD) or 'all'"
    )
    parser.add_argument(
        "--as-of", type=date.fromisoformat, default=None,
        help="Valuation date YYYY-MM-DD (default: today, UTC)"
    )
    parser.add_argument(
        "--workers", type=int, default=None,
        help="Thread pool size for pricing and gamma sweeps"
    )
    parser.add_argument(
        "--log-format", choices=[f.value for f in LogFormat], default=None,
        help="Log output format (default: GEX_LOG_FORMAT or json)"
    )
    parser.add_argument(
        "--indent", type=int, default=None,
        help="Indent report JSON"
    )
    parser.add_argument(
        "--summary", action="store_true",
        help="Print a plain-text digest instead of JSON"
    )
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()

    level = settings.log_level.upper()
    log_format = args.log_format or settings.log_format.lower()
    configure_logging(LoggingConfig(
        level=LogLevel(level) if level in LogLevel.__members__ else LogLevel.INFO,
        format=LogFormat(log_format) if log_format in [f.value for f in LogFormat] else LogFormat.JSON,
    ))

    config = GammaExposureConfig.from_settings(settings)
    if args.workers is not None:
        config.exposure = replace(config.exposure, max_workers=max(args.workers, 1))

    try:
        raw_records, envelope_spot = load_chain(args.input)
        spot = args.spot if args.spot is not None else envelope_spot
        if spot is None:
            raise InvalidInputError("No spot price given and none found in the input", field="spot")

        report = GammaAnalytics(config).analyze(
            raw_records,
            spot,
            pricing_method=args.method,
            expiration=args.expiration,
            as_of=args.as_of,
        )
    except InvalidInputError as exc:
        logger.error(f"Invalid input: {exc.message}")
        print(json.dumps(exc.to_dict()), file=sys.stderr)
        return 2
    except (OSError, json.JSONDecodeError) as exc:
        logger.error(f"Could not read {args.input}: {exc}")
        return 1

    payload = report.to_dict()
    if args.summary:
        print(format_summary(payload))
    else:
        print(json.dumps(payload, indent=args.indent))
    return 0


if __name__ == "__main__":
    sys.exit(main())
