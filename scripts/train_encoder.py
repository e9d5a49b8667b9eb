#!/usr/bin/env python3
"""Training script for the attribute-conditioned latent encoder.

Reads the ground-truth dataset (images X, latent codes Z, attributes Y)
produced by the dataset generator and trains an encoder mapping (X, Y) to Z.

Usage:
    python scripts/train_encoder.py --dataset_path celebA/generatedDataset --n_epochs 15
    python scripts/train_encoder.py --config configs/celeba_encoder.yaml
"""

import sys
import argparse
import logging
from datetime import datetime
from pathlib import Path

import numpy as np
import torch

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from latent_encoder.config import EncoderConfig, load_config
from latent_encoder.datasets import load_groundtruth, split_train_test
from latent_encoder.models import build_encoder
from latent_encoder.training import (
    EncoderTrainer,
    CheckpointManager,
    LoggingMetricsSink,
    TensorBoardMetricsSink,
)


def setup_logging(script_name: str, timestamp: str) -> logging.Logger:
    """Setup logging to file and console."""
    log_dir = Path('logs') / script_name
    log_dir.mkdir(parents=True, exist_ok=True)

    log_file = log_dir / f'{script_name}_{timestamp}.log'

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler()
        ]
    )

    logger = logging.getLogger(__name__)
    logger.info(f"Logging to: {log_file}")

    return logger


def parse_args():
    """Parse command line arguments. Unset arguments keep the config value."""
    parser = argparse.ArgumentParser(description='Train the conditional latent encoder')

    parser.add_argument('--config', type=str, default=None,
                        help='Path to YAML config file')

    parser.add_argument('--name', type=str, default=None, help='Run name (artifact prefix)')
    parser.add_argument('--dataset_path', type=str, default=None,
                        help='Folder containing groundtruth.pt')
    parser.add_argument('--output_path', type=str, default=None,
                        help='Directory to save checkpoints')
    parser.add_argument('--batch_size', type=int, default=None)
    parser.add_argument('--split', type=float, default=None,
                        help='Train fraction (0.66 -> 66%% train, 34%% test)')
    parser.add_argument('--n_conv_layers', type=int, default=None)
    parser.add_argument('--nf', type=int, default=None, help='Filters of the first conv layer')
    parser.add_argument('--n_epochs', type=int, default=None)
    parser.add_argument('--lr', type=float, default=None, help='Adam learning rate')
    parser.add_argument('--beta1', type=float, default=None, help='Adam momentum term')
    parser.add_argument('--display', type=int, default=None, choices=[0, 1, 2],
                        help='0 = off, 1 = train/test error, 2 = error + batch images')
    parser.add_argument('--tensorboard', action='store_true',
                        help='Send metrics to TensorBoard instead of the log')
    parser.add_argument('--device', type=str, default=None, choices=['cuda', 'cpu'])
    parser.add_argument('--seed', type=int, default=None)

    return parser.parse_args()


def set_seed(seed: int):
    """Set random seed for reproducibility."""
    torch.manual_seed(seed)
    torch.cuda.manual_seed_all(seed)
    np.random.seed(seed)


def main():
    args = parse_args()

    timestamp = datetime.now().strftime('%Y%m%d_%H%M%S%f')[:-3]
    logger = setup_logging('train_encoder', timestamp)

    overrides = {
        key: getattr(args, key)
        for key in ('name', 'dataset_path', 'output_path', 'batch_size', 'split',
                    'n_conv_layers', 'nf', 'n_epochs', 'lr', 'beta1', 'display',
                    'device', 'seed')
    }
    if args.config is not None:
        logger.info(f"Loading config from: {args.config}")
        config = load_config(args.config, **overrides)
    else:
        logger.info("Using default config with CLI overrides")
        config = EncoderConfig(**{k: v for k, v in overrides.items() if v is not None})

    if config.device == 'cuda' and not torch.cuda.is_available():
        raise RuntimeError("CUDA requested but not available. Use --device cpu.")

    set_seed(config.seed)

    logger.info("Configuration:")
    for key, value in config.to_dict().items():
        logger.info(f"  {key}: {value}")

    # Load dataset
    collection = load_groundtruth(config.dataset_path)
    train_set, test_set = split_train_test(collection, config.split)

    # Create encoder
    model = build_encoder(
        train_set.images[0],
        attribute_size=collection.attribute_size,
        nf=config.nf,
        output_size=collection.latent_size,
        n_conv_layers=config.n_conv_layers,
    )
    logger.info(f"Encoder created with {sum(p.numel() for p in model.parameters())} parameters")

    output_dir = Path(config.output_path)
    if args.tensorboard:
        metrics_sink = TensorBoardMetricsSink(str(output_dir / 'tensorboard' / config.name))
    else:
        metrics_sink = LoggingMetricsSink(
            preview_dir=str(output_dir / 'previews') if config.display == 2 else None
        )

    trainer = EncoderTrainer(
        model=model,
        train_set=train_set,
        test_set=test_set,
        config=config,
        metrics_sink=metrics_sink,
        checkpoint_manager=CheckpointManager(str(output_dir), config.name),
    )

    try:
        trainer.train()
    finally:
        metrics_sink.close()

    config.save_yaml(str(output_dir / f'{config.name}_config.yaml'))
    logger.info("Training script completed successfully!")


if __name__ == '__main__':
    main()
