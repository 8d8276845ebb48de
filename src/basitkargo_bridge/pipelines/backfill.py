from __future__ import annotations

import datetime as dt
from typing import Any, Optional, Sequence

from basitkargo_bridge.models import HandlerState

DEFAULT_STATUS_LIST = ("SHIPPED",)
DEFAULT_PAGE_SIZE = 50
DEFAULT_MAX_PAGES = 20

# Outcomes that leave the order with its tracking number written.
COUNTED_AS_DONE = frozenset({HandlerState.DONE, HandlerState.NO_OPEN_UNITS})


class BackfillRunner:
    """Replays BasitKargo orders from a date range through the webhook handler.

    Pages are read sequentially until a page is empty, shorter than `size`,
    or `max_pages` pages have been read. One failing order never stops the run.
    """

    def __init__(self, logger, *, basitkargo, handler) -> None:
        self.logger = logger
        self.basitkargo = basitkargo
        self.handler = handler

    def run(
        self,
        *,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        status_list: Sequence[str] = DEFAULT_STATUS_LIST,
        size: int = DEFAULT_PAGE_SIZE,
        max_pages: int = DEFAULT_MAX_PAGES,
        item_status: str = "SHIPPED",
        today: dt.date | None = None,
    ) -> dict[str, Any]:
        today = today or dt.date.today()
        start_date = start_date or today.isoformat()
        end_date = end_date or start_date
        size = max(1, int(size))
        max_pages = max(1, int(max_pages))

        done: list[str] = []
        skipped: list[str] = []
        failed: list[dict[str, str]] = []
        pages = 0

        self.logger.info("Backfill %s..%s statuses=%s size=%d max_pages=%d",
                         start_date, end_date, ",".join(status_list), size, max_pages)

        actionable = getattr(self.handler, "actionable_statuses", None)
        if actionable is not None and item_status not in actionable:
            self.logger.warning("Backfill item status %s is not actionable (%s); orders will be skipped",
                                item_status, ",".join(actionable))

        while pages < max_pages:
            items = self.basitkargo.filter_orders(
                start_date=start_date,
                end_date=end_date,
                status_list=list(status_list),
                page=pages,
                size=size,
            )
            pages += 1
            self.logger.info("Page %d: %d order(s)", pages - 1, len(items))
            if not items:
                break

            for item in items:
                self._replay(item, item_status, done, skipped, failed)

            if len(items) < size:
                break

        self.logger.info("Backfill finished: done=%d skipped=%d failed=%d pages=%d",
                         len(done), len(skipped), len(failed), pages)
        return {
            "startDate": start_date,
            "endDate": end_date,
            "statusList": list(status_list),
            "pages": pages,
            "doneCount": len(done),
            "skippedCount": len(skipped),
            "failedCount": len(failed),
            "failed": failed,
        }

    def _replay(self, item: dict, item_status: str, done: list, skipped: list, failed: list) -> None:
        oid = item.get("id")
        if oid in (None, ""):
            failed.append({"id": "", "msg": "Order item without id"})
            return
        oid = str(oid)
        try:
            result = self.handler.handle({"id": oid, "status": item_status})
        except Exception as ex:
            self.logger.exception("Backfill item %s raised: %s", oid, ex)
            failed.append({"id": oid, "msg": str(ex) or type(ex).__name__})
            return

        if not result.ok:
            failed.append({"id": oid, "msg": result.msg})
        elif result.state in COUNTED_AS_DONE:
            done.append(oid)
        else:
            self.logger.info("Backfill item %s skipped: %s", oid, result.msg)
            skipped.append(oid)
