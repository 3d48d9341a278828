#!/usr/bin/env python
"""
CLI for training the DirectRent models.

Usage:
    python -m directrent.cli.train_model
    python -m directrent.cli.train_model --model fraud
"""

import argparse
import sys

from directrent.config import get_config
from directrent.logging_config import setup_logging, get_logger

TRAINERS = {
    "price": "train_price_model",
    "fraud": "train_fraud_model",
    "recommendation": "train_recommendation_model",
    "all": "train_all_models",
}


def print_metrics(name: str, metrics: dict) -> None:
    print(f"\n{name.title()} Model Performance:")
    for key, value in metrics.items():
        if isinstance(value, float):
            print(f"  {key}: {value:.4f}")
        elif isinstance(value, (int, str)):
            print(f"  {key}: {value}")


def main(argv=None):
    """Main entry point for model training CLI."""
    parser = argparse.ArgumentParser(
        description="Train the DirectRent price, fraud and recommendation models",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python -m directrent.cli.train_model
    python -m directrent.cli.train_model --model price
    python -m directrent.cli.train_model --dataset datasets/listings.csv
        """,
    )
    parser.add_argument(
        "--model",
        choices=sorted(TRAINERS),
        default="all",
        help="Model family to train (default: all)",
    )
    parser.add_argument(
        "--dataset",
        type=str,
        default=None,
        help="Path to the listings CSV (default: from config)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Set log level (default: INFO)",
    )

    args = parser.parse_args(argv)

    # Setup logging
    setup_logging(level=args.log_level, force=True)
    logger = get_logger(__name__)

    config = get_config()
    dataset_path = args.dataset or config.dataset.path

    logger.info("Starting model training: %s", args.model)
    logger.info("Dataset: %s", dataset_path)
    logger.info("Model directory: %s", config.ml.model_dir)

    try:
        from directrent import training
        from directrent.data.processor import DataProcessor

        processor = DataProcessor(dataset_path=dataset_path)
        result = getattr(training, TRAINERS[args.model])(processor)
    except Exception as e:
        logger.error("Training error: %s", e, exc_info=True)
        sys.exit(1)

    results = result["models"] if args.model == "all" else {args.model: result}
    for name, info in results.items():
        print_metrics(name, info.get("metrics", {}))
    print()
    logger.info("Model training completed successfully")


if __name__ == "__main__":
    main()
