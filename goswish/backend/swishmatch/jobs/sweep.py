# swishmatch/jobs/sweep.py
from __future__ import annotations

import logging
from typing import Any

from ..config import Settings, settings as default_settings
from ..domain.errors import MatchingError
from ..service_layer.unit_of_work import UnitOfWorkFactory, uow_factory as make_uow_factory
from ..service_layer.use_cases.broadcast import OfferBroadcaster

log = logging.getLogger(__name__)


async def sweep_unclaimed_bookings(
    broadcaster: OfferBroadcaster | None = None,
    *,
    uow_factory: UnitOfWorkFactory | None = None,
    cfg: Settings | None = None,
    limit: int = 100,
) -> dict[str, Any]:
    """
    Re-broadcast placed, unclaimed bookings that are short on offers,
    widening the radius while supply stays low.
    """
    cfg = cfg or default_settings
    uow_factory = uow_factory or make_uow_factory(cfg=cfg)
    broadcaster = broadcaster or OfferBroadcaster(uow_factory, cfg)

    async with uow_factory() as uow:
        open_bookings = await uow.repos.bookings.list_unclaimed(limit=limit)
        short: list[int] = []
        for b in open_bookings:
            if await uow.repos.notifications.count_offers(b.id) < cfg.LOW_SUPPLY_THRESHOLD:
                short.append(b.id)

    summary: dict[str, Any] = {"checked": len(open_bookings), "rebroadcast": 0, "offers": 0, "errors": 0}
    for booking_id in short:
        try:
            res = await broadcaster.broadcast_with_expansion(booking_id, max_expansions=cfg.SWEEP_MAX_EXPANSIONS)
        except MatchingError as e:
            # booking vanished or lost its house between the scan and the broadcast
            log.warning("sweep skipped booking=%s: %s", booking_id, e)
            summary["errors"] += 1
            continue
        if res.skipped is None:
            summary["rebroadcast"] += 1
            summary["offers"] += len(res.offers)

    log.info("sweep summary=%s", summary)
    return summary
