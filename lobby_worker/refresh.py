# lobby_worker/refresh.py
"""
Lobby Signal Score Refresh Worker

Purpose:
- Find LIVE campaigns whose cached signal score is missing or stale
- Recompute each score from a fresh snapshot (the engine is pure)
- Write the cached score back for list pages and brand alerts

Non-goals:
- No notifications (milestones are written, delivery happens elsewhere)
- No HTTP surface

Run:
    python -m lobby_worker.refresh          # loop forever
    python -m lobby_worker.refresh --once   # single batch
"""

from __future__ import annotations

import argparse
import logging
import time
from datetime import datetime, timezone
from typing import Dict, Optional

from lobby_common.config import worker_settings
from lobby_signal.config import ScoringConfig
from lobby_signal.models import CampaignSignal
from lobby_signal.signal_score import compute_signal_score
from lobby_worker.repository import (
    fetch_interest_records,
    fetch_pledges,
    fetch_stale_campaign_ids,
    save_signal,
)

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def update_cached_signal_score(
    campaign_id: str,
    now: Optional[datetime] = None,
    config: Optional[ScoringConfig] = None,
) -> CampaignSignal:
    """Recompute one campaign's score from storage and cache it."""
    now = now or _utcnow()
    records = fetch_interest_records(campaign_id)
    pledges = fetch_pledges(campaign_id)

    signal = compute_signal_score(records, pledges, now, config)
    save_signal(campaign_id, signal)

    logger.info(
        f"[LOBBY-REFRESH] campaign={campaign_id} score={signal.score} "
        f"class={signal.classification.value} n={signal.sample_size} "
        f"rejected={signal.rejected_count}"
    )
    return signal


def refresh_stale_signal_scores(
    stale_minutes: Optional[int] = None,
    limit: Optional[int] = None,
    now: Optional[datetime] = None,
    config: Optional[ScoringConfig] = None,
) -> Dict[str, int]:
    """
    Refresh one batch of stale campaigns.

    A failing campaign is logged and counted; it never aborts the batch.

    Returns:
        Dict with 'refreshed' and 'failed' counts
    """
    now = now or _utcnow()
    stale_minutes = stale_minutes or worker_settings.stale_minutes
    limit = limit or worker_settings.refresh_batch_size

    stats = {"refreshed": 0, "failed": 0}
    campaign_ids = fetch_stale_campaign_ids(now, stale_minutes, limit)
    if not campaign_ids:
        logger.debug("[LOBBY-REFRESH] No stale campaigns")
        return stats

    for campaign_id in campaign_ids:
        try:
            update_cached_signal_score(campaign_id, now, config)
            stats["refreshed"] += 1
        except Exception as e:
            logger.error(f"[LOBBY-REFRESH] Failed refreshing campaign={campaign_id}: {e}")
            stats["failed"] += 1

    logger.info(f"[LOBBY-REFRESH] Batch done: {stats}")
    return stats


def run_forever(poll_interval: Optional[int] = None) -> None:
    poll_interval = poll_interval or worker_settings.poll_interval_seconds
    logger.info(f"[LOBBY-REFRESH] Worker started (poll every {poll_interval}s)")

    while True:
        try:
            refresh_stale_signal_scores()
        except Exception as e:
            # Storage outage: keep the worker alive and retry next tick
            logger.error(f"[LOBBY-REFRESH] Batch failed: {e}")
        time.sleep(poll_interval)


def main() -> None:
    parser = argparse.ArgumentParser(description="Refresh cached campaign signal scores")
    parser.add_argument("--once", action="store_true", help="Run a single batch and exit")
    args = parser.parse_args()

    logging.basicConfig(
        level=worker_settings.log_level.upper(),
        format="%(asctime)s [%(levelname)s] %(message)s"
    )

    if args.once:
        refresh_stale_signal_scores()
    else:
        run_forever()


if __name__ == "__main__":
    main()
