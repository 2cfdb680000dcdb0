"""Main CLI entry point."""

import argparse
import json
import logging
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import ValidationError as PydanticValidationError

from handyman_bids.config import Settings
from handyman_bids.errors import MarketError
from handyman_bids.marketplace import Marketplace, build_marketplace

OFFER_YAML_KEYS = frozenset(
    {
        "client_id",
        "title",
        "location",
        "budget",
        "job_type",
        "fixed_price",
        "accepts_bids",
        "description",
        "category",
        "urgency",
        "required_skills",
        "estimated_duration",
        "target_categories",
        "deadline",
        "scheduled_for",
        "alert_start_delay_minutes",
        "alert_duration_hours",
    }
)


def main(argv: Optional[list[str]] = None) -> None:
    """Parse args and dispatch to subcommands."""
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Settings YAML (default: $HANDYMAN_BIDS_CONFIG or built-in defaults)",
    )
    common.add_argument(
        "--db",
        type=Path,
        default=None,
        help="Path to SQLite database (overrides settings)",
    )
    common.add_argument(
        "--log-level",
        default=os.environ.get("HANDYMAN_BIDS_LOG_LEVEL", "WARNING"),
        help="Logging level (default: WARNING)",
    )

    parser = argparse.ArgumentParser(
        prog="handyman-bids",
        description="Bidding and price discovery for handyman job offers",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # offer
    offer_parser = subparsers.add_parser("offer", parents=[common], help="Create and inspect job offers")
    offer_parser.add_argument(
        "action",
        choices=["create", "list", "show", "complete", "cancel"],
        help="create from YAML, list, show one, or close an offer",
    )
    offer_parser.add_argument("job_offer_id", nargs="?", help="Job offer id (show/complete/cancel)")
    offer_parser.add_argument("--file", type=Path, help="Job offer YAML (for create)")
    offer_parser.add_argument("--client", help="Client id (list filter; required for complete/cancel)")

    # bid
    bid_parser = subparsers.add_parser("bid", parents=[common], help="Place, withdraw and list bids")
    bid_parser.add_argument("action", choices=["place", "withdraw", "list"])
    bid_parser.add_argument("--job", help="Job offer id (place/list)")
    bid_parser.add_argument("--bidder", help="Bidder id (place/withdraw)")
    bid_parser.add_argument("--bid-id", help="Bid id (withdraw)")
    bid_parser.add_argument("--amount", type=float, help="Bid amount (place)")
    bid_parser.add_argument("--currency", default="USD", help="Bid currency (default: USD)")
    bid_parser.add_argument("--message", default="", help="Message to the client")
    bid_parser.add_argument("--duration", default="", help="Estimated duration")
    bid_parser.add_argument(
        "--all",
        action="store_true",
        help="List bids in every status, not only active",
    )

    # accept
    accept_parser = subparsers.add_parser("accept", parents=[common], help="Accept a bid")
    accept_parser.add_argument("bid_id")
    accept_parser.add_argument("--client", required=True, help="Client id owning the job offer")

    # assign
    assign_parser = subparsers.add_parser("assign", parents=[common], help="Assign a fixed price job")
    assign_parser.add_argument("job_offer_id")
    assign_parser.add_argument("--bidder", required=True, help="Handyman id")
    assign_parser.add_argument("--client", default=None, help="Client id owning the job offer")

    # budget
    budget_parser = subparsers.add_parser("budget", parents=[common], help="Update a job offer budget")
    budget_parser.add_argument("job_offer_id")
    budget_parser.add_argument("--client", required=True)
    budget_parser.add_argument("--min", type=float, required=True, dest="budget_min")
    budget_parser.add_argument("--max", type=float, required=True, dest="budget_max")
    budget_parser.add_argument("--currency", default="USD")

    # recommend
    recommend_parser = subparsers.add_parser(
        "recommend", parents=[common], help="Show the price recommendation for a job offer"
    )
    recommend_parser.add_argument("job_offer_id")

    # rates
    rates_parser = subparsers.add_parser("rates", parents=[common], help="Exchange rates")
    rates_parser.add_argument(
        "action",
        choices=["update", "get", "convert", "history", "stats", "fetch"],
    )
    rates_parser.add_argument("--usd-cop", type=float, help="USD->COP rate (for update)")
    rates_parser.add_argument("--source", default="manual", help="Rate source label (for update)")
    rates_parser.add_argument("--from", dest="from_currency", default="USD")
    rates_parser.add_argument("--to", dest="to_currency", default="COP")
    rates_parser.add_argument("--amount", type=float, help="Amount (for convert)")
    rates_parser.add_argument("--limit", type=int, default=30, help="History rows (default: 30)")
    rates_parser.add_argument("--days", type=int, default=7, help="Stats window in days (default: 7)")

    # nearby
    nearby_parser = subparsers.add_parser("nearby", parents=[common], help="Job offers near a handyman")
    nearby_parser.add_argument("--lat", type=float, required=True)
    nearby_parser.add_argument("--lng", type=float, required=True)
    nearby_parser.add_argument("--radius", type=float, default=None, help="Radius in km (default: 25)")
    nearby_parser.add_argument("--skills", default="", help="Comma-separated skills")
    nearby_parser.add_argument("--categories", default="", help="Comma-separated categories")
    nearby_parser.add_argument("--city", default="")
    nearby_parser.add_argument("--country", default="")
    nearby_parser.add_argument("--limit", type=int, default=20)
    nearby_parser.add_argument(
        "--show-explanations",
        action="store_true",
        help="Include match explanations in output",
    )

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        settings = _load_settings(args)
    except PydanticValidationError as e:
        raise SystemExit(f"Invalid settings: {e}")
    handlers = {
        "offer": _run_offer,
        "bid": _run_bid,
        "accept": _run_accept,
        "assign": _run_assign,
        "budget": _run_budget,
        "recommend": _run_recommend,
        "rates": _run_rates,
        "nearby": _run_nearby,
    }
    with build_marketplace(settings) as market:
        try:
            handlers[args.command](market, args)
        except MarketError as e:
            raise SystemExit(f"{e.code}: {e.message}")


def _load_settings(args: argparse.Namespace) -> Settings:
    settings = Settings.from_yaml(args.config) if args.config else Settings.from_env()
    if args.db is not None:
        settings = settings.model_copy(update={"db_path": args.db})
    return settings


def _print_json(data: Any) -> None:
    if hasattr(data, "model_dump"):
        data = data.model_dump(mode="json")
    elif isinstance(data, list):
        data = [d.model_dump(mode="json") if hasattr(d, "model_dump") else d for d in data]
    print(json.dumps(data, indent=2, default=str))


def _parse_datetime(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def _require(args: argparse.Namespace, *names: str) -> None:
    missing = [f"--{n.replace('_', '-')}" for n in names if getattr(args, n) in (None, "")]
    if missing:
        raise SystemExit(f"{args.command} {args.action} requires {', '.join(missing)}")


def _run_offer(market: Marketplace, args: argparse.Namespace) -> None:
    """Run offer command."""
    from handyman_bids.models.job_offer import Budget, Location

    if args.action == "create":
        _require(args, "file")
        data = yaml.safe_load(args.file.read_text()) or {}
        unknown = sorted(set(data) - OFFER_YAML_KEYS)
        if unknown:
            raise SystemExit(f"Unknown job offer fields: {', '.join(unknown)}")
        try:
            client_id = data.pop("client_id")
            title = data.pop("title")
            location = Location.model_validate(data.pop("location"))
            budget = Budget.model_validate(data.pop("budget"))
            for key in ("deadline", "scheduled_for"):
                if key in data:
                    data[key] = _parse_datetime(data[key])
            offer = market.jobs.create_job_offer(client_id, title, location, budget, **data)
        except KeyError as e:
            raise SystemExit(f"Job offer YAML is missing {e}")
        except (PydanticValidationError, ValueError) as e:
            raise SystemExit(f"Invalid job offer YAML: {e}")
        _print_json(offer)
    elif args.action == "list":
        offers = market.jobs.list_client_offers(args.client) if args.client else market.jobs.list_open_offers()
        _print_json(offers)
    elif args.action == "show":
        _require(args, "job_offer_id")
        _print_json(market.jobs.get_job_offer(args.job_offer_id))
    else:
        _require(args, "job_offer_id", "client")
        if args.action == "complete":
            offer = market.jobs.complete_job(args.job_offer_id, args.client)
        else:
            offer = market.jobs.cancel_job(args.job_offer_id, args.client)
        print(f"Job offer {offer.id} is now {offer.status}")


def _run_bid(market: Marketplace, args: argparse.Namespace) -> None:
    """Run bid command."""
    if args.action == "place":
        _require(args, "job", "bidder", "amount")
        bid = market.bidding.place_bid(
            args.job,
            args.bidder,
            args.amount,
            args.currency,
            message=args.message,
            estimated_duration=args.duration,
        )
        _print_json(bid)
    elif args.action == "withdraw":
        _require(args, "bid_id", "bidder")
        bid = market.bidding.withdraw_bid(args.bid_id, args.bidder)
        print(f"Bid {bid.id} withdrawn")
    else:
        _require(args, "job")
        _print_json(market.bidding.list_bids(args.job, include_outbid=args.all))


def _run_accept(market: Marketplace, args: argparse.Namespace) -> None:
    """Run accept command."""
    _print_json(market.jobs.accept_bid(args.bid_id, args.client))


def _run_assign(market: Marketplace, args: argparse.Namespace) -> None:
    """Run assign command."""
    _print_json(market.jobs.assign_fixed_price(args.job_offer_id, args.bidder, args.client))


def _run_budget(market: Marketplace, args: argparse.Namespace) -> None:
    """Run budget command. Prints the offer and the budget in every normalized currency."""
    offer, converted = market.jobs.update_budget(
        args.job_offer_id, args.client, args.budget_min, args.budget_max, args.currency
    )
    _print_json(
        {
            "jobOffer": offer.model_dump(mode="json"),
            "budgets": {c: b.model_dump(mode="json") for c, b in converted.items()},
        }
    )


def _run_recommend(market: Marketplace, args: argparse.Namespace) -> None:
    """Run recommend command."""
    rec = market.bidding.get_recommendation(args.job_offer_id)
    if rec is None:
        print(f"No bids yet for {args.job_offer_id}", file=sys.stderr)
        raise SystemExit(1)
    _print_json(rec)


def _run_rates(market: Marketplace, args: argparse.Namespace) -> None:
    """Run rates command."""
    from handyman_bids.rates import RateFeedError

    if args.action == "update":
        _require(args, "usd_cop")
        forward, inverse = market.currency.update_rates(args.usd_cop, args.source)
        _print_json([forward, inverse])
    elif args.action == "get":
        _print_json(market.currency.get_rate(args.from_currency, args.to_currency))
    elif args.action == "convert":
        _require(args, "amount")
        _print_json(market.currency.convert(args.amount, args.from_currency, args.to_currency))
    elif args.action == "history":
        _print_json(market.currency.history(args.from_currency, args.to_currency, args.limit))
    elif args.action == "stats":
        _print_json(market.currency.stats(args.from_currency, args.to_currency, args.days))
    elif args.action == "fetch":
        if market.feed is None:
            raise SystemExit("No rate feed configured. Set rate_feed_url or HANDYMAN_BIDS_RATE_FEED_URL.")
        try:
            forward, inverse = market.refresh_rates()
        except RateFeedError as e:
            raise SystemExit(f"Rate feed failed: {e}")
        _print_json([forward, inverse])


def _split(value: str) -> list[str]:
    return [v.strip() for v in value.split(",") if v.strip()]


def _run_nearby(market: Marketplace, args: argparse.Namespace) -> None:
    """Run nearby command."""
    from handyman_bids.geo import SeekerProfile

    seeker = SeekerProfile(
        latitude=args.lat,
        longitude=args.lng,
        city=args.city,
        country=args.country,
        skills=_split(args.skills),
        categories=_split(args.categories),
        radius_km=args.radius,
    )
    results = market.nearby_job_offers(seeker, limit=args.limit)
    if args.show_explanations:
        output_data = [r.model_dump(mode="json") for r in results]
    else:
        output_data = [
            {
                "jobOffer": r.offer.model_dump(mode="json"),
                "distanceKm": round(r.distance_km, 2),
                "relevanceScore": round(r.relevance_score, 1),
            }
            for r in results
        ]
    print(json.dumps(output_data, indent=2, default=str))


if __name__ == "__main__":
    main()
