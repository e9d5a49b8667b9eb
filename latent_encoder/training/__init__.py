"""Training utilities for the conditional latent encoder.

This module provides:
- Latent regression loss (mean-squared error)
- Metric sinks (logging, TensorBoard) and the metric log record type
- Checkpoint management with atomic writes
- The minibatch training loop
"""

from latent_encoder.training.losses import latent_regression_loss

from latent_encoder.training.sinks import (
    MetricRecord,
    MetricsSink,
    LoggingMetricsSink,
    TensorBoardMetricsSink,
)

from latent_encoder.training.checkpoint import (
    CheckpointManager,
    atomic_save,
    load_encoder,
    load_metric_log,
)

from latent_encoder.training.trainer import (
    EncoderTrainer,
    StepTimings,
    gradient_scope,
)


__all__ = [
    # Loss
    'latent_regression_loss',
    # Sinks
    'MetricRecord',
    'MetricsSink',
    'LoggingMetricsSink',
    'TensorBoardMetricsSink',
    # Checkpoint utilities
    'CheckpointManager',
    'atomic_save',
    'load_encoder',
    'load_metric_log',
    # Trainer
    'EncoderTrainer',
    'StepTimings',
    'gradient_scope',
]
