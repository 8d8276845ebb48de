"""HTTP entry points: BasitKargo webhook, operator replays and the daily backfill."""
from __future__ import annotations

import hmac
import logging
from typing import Any, Optional

from flask import Flask, jsonify, request

from basitkargo_bridge.config.env import get_app_env
from basitkargo_bridge.models import EnvCfg
from basitkargo_bridge.pipelines.backfill import (
    DEFAULT_MAX_PAGES,
    DEFAULT_PAGE_SIZE,
    DEFAULT_STATUS_LIST,
    BackfillRunner,
)
from basitkargo_bridge.pipelines.webhook_handler import WebhookHandler

logger = logging.getLogger("basitkargo_bridge.web")


def check_key(env_cfg: EnvCfg, supplied: Optional[str]):
    """None when the request may proceed, else a (body, status) rejection."""
    expected = env_cfg.WEBHOOK_KEY
    if not expected:
        if env_cfg.REQUIRE_WEBHOOK_KEY:
            return "WEBHOOK_KEY is not configured", 503
        return None
    # bytes: compare_digest rejects non-ASCII str
    if not supplied or not hmac.compare_digest(supplied.encode("utf-8"), expected.encode("utf-8")):
        logger.warning("Rejected request with invalid key from %s", request.remote_addr)
        return "Unauthorized", 401
    return None


def create_app(
    env_cfg: Optional[EnvCfg] = None,
    *,
    handler: Optional[WebhookHandler] = None,
    backfill: Optional[BackfillRunner] = None,
) -> Flask:
    env_cfg = env_cfg or get_app_env()
    app = Flask(__name__)
    app.config["MAX_CONTENT_LENGTH"] = 1024 * 1024

    if handler is None:
        handler = WebhookHandler.from_env_cfg(env_cfg)
    if backfill is None:
        backfill = BackfillRunner(
            logging.getLogger("basitkargo_bridge.pipelines.backfill"),
            basitkargo=handler.basitkargo,
            handler=handler,
        )

    def _json_body() -> dict[str, Any]:
        body = request.get_json(silent=True)
        return body if isinstance(body, dict) else {}

    def _run(payload: dict[str, Any]):
        try:
            result = handler.handle(payload)
        except Exception as e:
            logger.exception("Webhook handling failed: %s", e)
            return str(e) or "Server error", 500
        logger.info("%s -> %s", result.state.value, result.msg)
        return result.msg, result.http_status

    @app.get("/")
    def health():
        return "OK", 200

    @app.post("/basitkargo-webhook")
    def basitkargo_webhook():
        rejected = check_key(env_cfg, request.args.get("key"))
        if rejected:
            return rejected
        payload = _json_body()
        logger.debug("BasitKargo payload: %s", payload)
        return _run(payload)

    @app.post("/manual-ship")
    @app.post("/manual-bk")
    def manual_ship():
        rejected = check_key(env_cfg, request.args.get("key"))
        if rejected:
            return rejected
        # { "id": "<basitkargo id>" } or { "shopify_order": "LP-1009", "handlerShipmentCode": "..." }
        return _run({**_json_body(), "status": "SHIPPED"})

    @app.post("/backfill-today")
    def backfill_today():
        rejected = check_key(env_cfg, request.args.get("key"))
        if rejected:
            return rejected
        body = _json_body()
        status_list = body.get("statusList") or DEFAULT_STATUS_LIST
        if isinstance(status_list, str):
            status_list = [s.strip() for s in status_list.split(",") if s.strip()]
        try:
            size = int(body.get("size") or DEFAULT_PAGE_SIZE)
            max_pages = int(body.get("maxPages") or DEFAULT_MAX_PAGES)
        except (TypeError, ValueError) as e:
            return jsonify({"ok": False, "error": f"Invalid backfill parameters: {e}"}), 400

        try:
            summary = backfill.run(
                start_date=body.get("startDate"),
                end_date=body.get("endDate"),
                status_list=status_list,
                size=size,
                max_pages=max_pages,
            )
        except Exception as e:
            logger.exception("Backfill failed: %s", e)
            return jsonify({"ok": False, "error": str(e) or "Server error"}), 500
        return jsonify({"ok": True, **summary}), 200

    return app
