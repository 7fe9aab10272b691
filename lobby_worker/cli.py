"""
Lobby Signal operator CLI.

Usage:
    lobby-signal score <campaign_id>
    lobby-signal brand-view <campaign_id> --user <user_id>
    lobby-signal campaigns --class HOT --limit 20
    lobby-signal refresh [--loop]
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import datetime, timezone
from typing import List, Optional

from lobby_common.config import worker_settings
from lobby_signal.config import scoring_config
from lobby_signal.models import Classification
from lobby_signal.privacy import BrandAccess, sanitize_for_brand
from lobby_signal.signal_score import compute_signal_score
from lobby_worker.refresh import refresh_stale_signal_scores, run_forever
from lobby_worker.repository import (
    PostgresAccessGate,
    fetch_campaign,
    fetch_campaigns_by_classification,
    fetch_interest_records,
    fetch_pledges,
)

logger = logging.getLogger(__name__)


def cmd_score(args: argparse.Namespace) -> int:
    now = datetime.now(timezone.utc)
    signal = compute_signal_score(
        fetch_interest_records(args.campaign_id),
        fetch_pledges(args.campaign_id),
        now,
    )
    print(signal.model_dump_json(indent=2))
    return 0


def cmd_brand_view(args: argparse.Namespace) -> int:
    campaign = fetch_campaign(args.campaign_id)
    if campaign is None:
        print(f"Campaign not found: {args.campaign_id}", file=sys.stderr)
        return 1

    # Authorization belongs to the caller; the aggregator anonymizes regardless
    access = BrandAccess(PostgresAccessGate())
    brand_id = campaign.targeted_brand_id
    if not brand_id or not access.is_brand_user(args.user, brand_id):
        print("Access denied: user is not on the targeted brand's team", file=sys.stderr)
        return 2

    view = sanitize_for_brand(
        campaign,
        fetch_interest_records(campaign.id),
        fetch_pledges(campaign.id),
        datetime.now(timezone.utc),
    )
    print(view.model_dump_json(indent=2))
    return 0


def cmd_campaigns(args: argparse.Namespace) -> int:
    rows = fetch_campaigns_by_classification(
        Classification[args.classification.upper()],
        scoring_config.signal_thresholds,
        args.limit,
    )
    print(json.dumps(rows, indent=2))
    return 0


def cmd_refresh(args: argparse.Namespace) -> int:
    if args.loop:
        run_forever()
        return 0
    stats = refresh_stale_signal_scores()
    print(json.dumps(stats))
    return 1 if stats["failed"] else 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="lobby-signal", description="Campaign demand signal tools")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("score", help="Compute a campaign's signal score")
    p.add_argument("campaign_id")
    p.set_defaults(func=cmd_score)

    p = sub.add_parser("brand-view", help="Print the brand-safe aggregate view")
    p.add_argument("campaign_id")
    p.add_argument("--user", required=True, help="Requesting brand team member")
    p.set_defaults(func=cmd_brand_view)

    p = sub.add_parser("campaigns", help="List LIVE campaigns in a classification band")
    p.add_argument("--class", dest="classification", default="HOT",
                   choices=[c.value for c in Classification] + [c.value.lower() for c in Classification])
    p.add_argument("--limit", type=int, default=20)
    p.set_defaults(func=cmd_campaigns)

    p = sub.add_parser("refresh", help="Refresh stale cached scores")
    p.add_argument("--loop", action="store_true", help="Keep polling")
    p.set_defaults(func=cmd_refresh)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=worker_settings.log_level.upper(),
        format="%(asctime)s [%(levelname)s] %(message)s"
    )
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
