"""Command-line interface for training the next-product model offline.

This script replays an exported interaction log through the online learner
and persists the resulting model in a joblib store directory, the same slot
a running engine loads on startup.

Example:
    Train with default settings:
        $ python scripts/train_model.py data/fake_catalog.json data/fake_interactions.csv

    Train with custom parameters:
        $ python scripts/train_model.py catalog.json interactions.csv \\
            --output-dir models/production \\
            --epochs 10
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Add project root to Python path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from storerec.config import DEFAULT_EPOCHS, DEFAULT_MODEL_SLOT, EngineConfig
from storerec.logging_config import setup_logging
from storerec.recommender.catalog import load_catalog_json, load_interactions_csv
from storerec.recommender.learner import LearnerState, OnlineLearner
from storerec.recommender.store import JoblibModelStore


def parse_arguments() -> argparse.Namespace:
    """Parse command-line arguments.

    Returns:
        Namespace object containing parsed arguments.
    """
    parser = argparse.ArgumentParser(
        description="Train the next-product model from an exported interaction log.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "catalog_path",
        type=str,
        help="Path to JSON catalog (list of products)",
    )

    parser.add_argument(
        "interactions_path",
        type=str,
        help="Path to CSV with columns: product_id, timestamp, kind[, value]",
    )

    parser.add_argument(
        "--output-dir",
        type=str,
        default="models",
        help="Directory of the joblib model store (default: models)",
    )

    parser.add_argument(
        "--epochs",
        type=int,
        default=DEFAULT_EPOCHS,
        help=f"Fitting passes (default: {DEFAULT_EPOCHS})",
    )

    parser.add_argument(
        "--slot",
        type=str,
        default=DEFAULT_MODEL_SLOT,
        help=f"Store slot name (default: {DEFAULT_MODEL_SLOT})",
    )

    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Torch seed for reproducible runs",
    )

    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging (DEBUG level)",
    )

    return parser.parse_args()


async def run_training(args: argparse.Namespace) -> int:
    logger = logging.getLogger(__name__)

    catalog = load_catalog_json(args.catalog_path)
    interactions = load_interactions_csv(args.interactions_path)

    config = EngineConfig(epochs=args.epochs, model_slot=args.slot, torch_seed=args.seed)
    store = JoblibModelStore(args.output_dir)
    learner = OnlineLearner(store, config=config)

    await learner.initialize(catalog)
    if learner.state is not LearnerState.READY:
        logger.error("Learner failed to initialize")
        return 1
    if learner.last_load_error is not None:
        logger.warning(f"Discarded incompatible model: {learner.last_load_error.message}")

    history = await learner.train(catalog, interactions)
    if history is None:
        logger.warning("Nothing was trained (too few interactions or no usable sessions)")
        return 1

    logger.info(f"Final loss:     {history['loss'][-1]:.4f}")
    logger.info(f"Final accuracy: {history['accuracy'][-1]:.4f}")
    logger.info(f"Model saved to: {store.path_for(args.slot).absolute()}")
    return 0


def main() -> int:
    """Main entry point for the training script.

    Returns:
        Exit code: 0 on success, 1 on error.
    """
    try:
        args = parse_arguments()
        setup_logging("DEBUG" if args.verbose else "INFO", json_format=False)
        return asyncio.run(run_training(args))
    except FileNotFoundError as e:
        logging.error(f"File error: {e}")
        return 1
    except ValueError as e:
        logging.error(f"Validation error: {e}")
        return 1
    except KeyboardInterrupt:
        logging.warning("Training interrupted by user")
        return 130
    except Exception as e:
        logging.error(f"Unexpected error: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
