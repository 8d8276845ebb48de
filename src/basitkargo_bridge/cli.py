# src/basitkargo_bridge/cli.py
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from .config.env import ConfigurationError, get_app_env
from .config.logging_config import ROOT_LOGGER_NAME, default_log_path_for_report, get_logger

AUTO_REPORT = "auto"


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--log-level",
        default=None,
        help="Logging level (DEBUG, INFO, WARNING, ERROR). Default: $LOG_LEVEL or INFO",
    )
    common.add_argument("--log-file", type=Path, default=None, help="Also log to this file.")
    common.add_argument(
        "--no-console",
        action="store_true",
        help="Disable console logging (file logging remains).",
    )
    common.add_argument(
        "--strict-env",
        action="store_true",
        help="Require BASITKARGO_TOKEN/SHOPIFY_STORE/SHOPIFY_TOKEN; otherwise exit 2.",
    )
    common.add_argument("--env-file", type=Path, default=Path(".env"), help="Path to the .env file.")

    p = argparse.ArgumentParser(
        prog="basitkargo-bridge",
        description="Write BasitKargo tracking numbers back to Shopify orders.",
    )
    sub = p.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", parents=[common], help="Run the webhook HTTP server.")
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("--port", type=int, default=None, help="Default: $PORT or 3000")

    manual = sub.add_parser("manual", parents=[common],
                            help="Run one shipment through the handler, as if BasitKargo sent it.")
    target = manual.add_mutually_exclusive_group(required=True)
    target.add_argument("--id", dest="order_id", help="BasitKargo order id.")
    target.add_argument("--order", help="Shopify order name, e.g. LP-1009.")
    manual.add_argument("--tracking", help="Tracking number (handlerShipmentCode).")
    manual.add_argument("--carrier", help="Carrier name, e.g. 'Aras Kargo'.")
    manual.add_argument(
        "--replay-file",
        type=Path,
        default=None,
        help="JSON file of BasitKargo order details to use instead of the live API.",
    )

    backfill = sub.add_parser("backfill", parents=[common],
                              help="Replay BasitKargo orders of a date range.")
    backfill.add_argument("--start", default=None, help="YYYY-MM-DD. Default: today.")
    backfill.add_argument("--end", default=None, help="YYYY-MM-DD. Default: --start.")
    backfill.add_argument("--status", action="append", default=None,
                          help="BasitKargo status to include (repeatable). Default: SHIPPED.")
    backfill.add_argument("--size", type=int, default=50, help="Page size. Default: 50")
    backfill.add_argument("--max-pages", type=int, default=20, help="Page cap. Default: 20")
    backfill.add_argument("--report", nargs="?", const=AUTO_REPORT, default=None,
                          help="Write an .xlsx report (Summary + Failed sheets) to this path. "
                               "Without a value: backfill_<start>[_<end>].xlsx in the CWD.")
    backfill.add_argument("--replay-file", type=Path, default=None,
                          help="JSON file of BasitKargo order details to use instead of the live API.")
    return p


def _validate_date(value: str | None) -> None:
    if value:
        from datetime import date
        date.fromisoformat(value)


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    log_file = args.log_file
    report = getattr(args, "report", None)
    if log_file is None and report and report != AUTO_REPORT:
        log_file = default_log_path_for_report(report)

    logger = get_logger(
        ROOT_LOGGER_NAME,
        level=args.log_level,
        console=not args.no_console,
        log_file=log_file,
    )
    logger.debug("Logger initialized.")

    try:
        env_cfg = get_app_env(args.env_file, strict=args.strict_env)
    except ConfigurationError as e:
        logger.error("Environment error: %s", e)
        return 2

    if args.command == "serve":
        return _serve(args, env_cfg, logger)

    basitkargo = None
    if args.replay_file:
        from .api.client import ReplayClient
        try:
            basitkargo = ReplayClient(args.replay_file)
        except (ValueError, json.JSONDecodeError) as e:
            logger.error("Replay file error: %s", e)
            return 2
        logger.info("Replay mode enabled: %s", args.replay_file)

    from .pipelines.webhook_handler import WebhookHandler
    handler = WebhookHandler.from_env_cfg(env_cfg, logger, basitkargo=basitkargo)

    try:
        if args.command == "manual":
            return _manual(args, handler, logger)
        return _backfill(args, handler, logger)
    except ConfigurationError as e:
        logger.error("Environment error: %s", e)
        return 2
    except Exception as e:
        logger.exception("Command %s failed: %s", args.command, e)
        return 1


def _serve(args, env_cfg, logger) -> int:
    from .web.app import create_app

    port = args.port or env_cfg.PORT
    if not env_cfg.WEBHOOK_KEY:
        logger.warning("WEBHOOK_KEY not set; webhook routes are %s",
                       "disabled" if env_cfg.REQUIRE_WEBHOOK_KEY else "open to anyone")
    app = create_app(env_cfg)
    logger.info("Listening on %s:%s", args.host, port)
    app.run(host=args.host, port=port, threaded=True)
    return 0


def _manual(args, handler, logger) -> int:
    payload: dict = {"status": "SHIPPED"}
    if args.order_id:
        payload["id"] = args.order_id
    if args.order:
        payload["shopify_order"] = args.order
    if args.tracking:
        payload["handlerShipmentCode"] = args.tracking
    if args.carrier:
        payload["handler"] = {"name": args.carrier}

    result = handler.handle(payload)
    print(result.msg)
    logger.info("Manual run finished: %s", result.state.value)
    return 0 if result.ok else 1


def _backfill(args, handler, logger) -> int:
    try:
        _validate_date(args.start)
        _validate_date(args.end)
    except ValueError:
        logger.error("Invalid --start/--end (expected YYYY-MM-DD): %s / %s", args.start, args.end)
        return 2

    from .pipelines.backfill import BackfillRunner

    runner = BackfillRunner(logger, basitkargo=handler.basitkargo, handler=handler)
    summary = runner.run(
        start_date=args.start,
        end_date=args.end,
        status_list=args.status or ["SHIPPED"],
        size=args.size,
        max_pages=args.max_pages,
    )
    print(json.dumps(summary, ensure_ascii=False, indent=2))

    if args.report:
        from .io.report import default_report_path, write_backfill_report
        target = default_report_path(summary) if args.report == AUTO_REPORT else Path(args.report)
        path = write_backfill_report(summary, target)
        logger.info("Wrote backfill report -> %s", path)

    return 0 if summary["failedCount"] == 0 else 1


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
