#!/usr/bin/env python
"""
CLI for price estimates, fraud checks and recommendations.

Usage:
    python -m directrent.cli.predict estimate --postcode "SW1A 1AA" --property-type Flat --bedrooms 2
    python -m directrent.cli.predict fraud --price 600 --city London --description "urgent cash only"
    python -m directrent.cli.predict recommend --user-id user_0001 --city London --limit 5
"""

import argparse
import json
import sys

from directrent.logging_config import setup_logging, get_logger


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Query the DirectRent models",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python -m directrent.cli.predict estimate --postcode "M1 1AE" --property-type House --bedrooms 3
    python -m directrent.cli.predict fraud --price 400 --city London --images 0 --json
    python -m directrent.cli.predict recommend --city Leeds --price-max 1200
        """,
    )
    parser.add_argument("--json", action="store_true", help="Output as JSON")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="Set log level (default: WARNING)",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    estimate = commands.add_parser("estimate", help="Estimate monthly rent")
    estimate.add_argument("--postcode", type=str, required=True, help="UK postcode")
    estimate.add_argument("--property-type", type=str, default="Flat", help="Property type (default: Flat)")
    estimate.add_argument("--bedrooms", type=int, required=True, help="Number of bedrooms")
    estimate.add_argument("--bathrooms", type=int, default=1, help="Number of bathrooms (default: 1)")
    estimate.add_argument("--furnishing", type=str, default=None, help="Furnishing status")
    estimate.add_argument("--city", type=str, default=None, help="City (default: inferred from postcode)")

    fraud = commands.add_parser("fraud", help="Score a listing for fraud risk")
    fraud.add_argument("--price", type=float, required=True, help="Monthly rent")
    fraud.add_argument("--city", type=str, default=None, help="City")
    fraud.add_argument("--property-type", type=str, default=None, help="Property type")
    fraud.add_argument("--bedrooms", type=int, default=None, help="Number of bedrooms")
    fraud.add_argument("--bathrooms", type=int, default=None, help="Number of bathrooms")
    fraud.add_argument("--title", type=str, default="", help="Listing title")
    fraud.add_argument("--description", type=str, default="", help="Listing description")
    fraud.add_argument("--images", type=int, default=0, help="Number of images (default: 0)")
    fraud.add_argument("--landlord-listings", type=int, default=0, help="Landlord's listing count")

    recommend = commands.add_parser("recommend", help="Recommend listings")
    recommend.add_argument("--user-id", type=str, default=None, help="User id for collaborative ranking")
    recommend.add_argument("--city", type=str, default=None, help="Preferred city")
    recommend.add_argument("--property-type", type=str, default=None, help="Preferred property type")
    recommend.add_argument("--price-min", type=float, default=None, help="Minimum rent")
    recommend.add_argument("--price-max", type=float, default=None, help="Maximum rent")
    recommend.add_argument("--min-bedrooms", type=int, default=None, help="Minimum bedrooms")
    recommend.add_argument("--limit", type=int, default=10, help="Number of results (default: 10)")
    return parser


def run_command(service, args) -> dict:
    if args.command == "estimate":
        return service.estimate_price(
            postcode=args.postcode,
            property_type=args.property_type,
            bedrooms=args.bedrooms,
            bathrooms=args.bathrooms,
            furnishing_status=args.furnishing,
            city=args.city,
        )

    if args.command == "fraud":
        return service.detect_fraud({
            "price_per_month": args.price,
            "city": args.city,
            "property_type": args.property_type,
            "bedrooms": args.bedrooms,
            "bathrooms": args.bathrooms,
            "title": args.title,
            "description": args.description,
            "images": [f"image_{i}.jpg" for i in range(args.images)],
            "landlord_listing_count": args.landlord_listings,
        })

    preferences = {
        "city": args.city,
        "property_type": args.property_type,
        "price_min": args.price_min,
        "price_max": args.price_max,
        "min_bedrooms": args.min_bedrooms,
    }
    preferences = {key: value for key, value in preferences.items() if value is not None}
    return service.get_recommendations(args.user_id, preferences, args.limit)


def print_result(command: str, result: dict) -> None:
    print("\n" + "=" * 50)
    if command == "estimate":
        print("Rental Price Estimate")
        print("=" * 50)
        print(f"  Estimated Rent: £{result['estimated_price']:,.0f} pcm")
        print(f"  Range: £{result['price_range']['min']:,.0f} - £{result['price_range']['max']:,.0f}")
        print(f"  Confidence: {result['confidence']:.0%}")
        print(f"  Source: {result['model_status']}")
    elif command == "fraud":
        print("Fraud Check")
        print("=" * 50)
        print(f"  Fraud Score: {result['fraud_score']:.2f}")
        print(f"  Fraudulent: {'yes' if result['is_fraudulent'] else 'no'}")
        for reason in result["reasons"]:
            print(f"  - {reason}")
    else:
        print("Recommendations")
        print("=" * 50)
        for prop, score, reason in zip(result["properties"], result["scores"], result["reasoning"]):
            print(f"  {prop.get('property_id')}: {prop.get('city', '')} £{prop.get('price_per_month', 0):,.0f}"
                  f" score={score:.3f} ({reason})")
    print()


def main(argv=None):
    """Main entry point for the prediction CLI."""
    args = build_parser().parse_args(argv)

    # Setup logging
    setup_logging(level=args.log_level, force=True)
    logger = get_logger(__name__)

    try:
        from directrent.service import MLService

        service = MLService().initialize()
        result = run_command(service, args)
    except Exception as e:
        logger.error("Prediction failed: %s", e, exc_info=True)
        if args.json:
            print(json.dumps({"error": str(e)}))
        else:
            print(f"Error: {e}")
        sys.exit(1)

    if args.json:
        print(json.dumps(result, indent=2, default=str))
    else:
        print_result(args.command, result)


if __name__ == "__main__":
    main()
