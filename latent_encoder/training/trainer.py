"""Minibatch training loop for the conditional latent encoder.

Each epoch draws a fresh permutation of the train rows and walks it in
full batches. Every ``eval_interval`` steps (when display is enabled) one
random test batch is evaluated and the (epoch position, train error, test
error) triple is appended to the metric log. At the end of each epoch the
encoder and the metric log are checkpointed.
"""

import math
import time
import logging
from contextlib import contextmanager
from typing import List, NamedTuple, Optional, Tuple

import torch
import torch.nn as nn
from tqdm import tqdm

from latent_encoder.config import EncoderConfig
from latent_encoder.datasets import (
    Batch,
    SampleCollection,
    check_batch_size,
    window_starts,
    random_permutation,
    sample_batch,
    sample_random_batch,
)
from latent_encoder.training.losses import latent_regression_loss
from latent_encoder.training.sinks import MetricRecord, MetricsSink
from latent_encoder.training.checkpoint import CheckpointManager


logger = logging.getLogger(__name__)

ERROR_LABELS = ('Epoch', 'Train error', 'Test error')


class StepTimings(NamedTuple):
    step_time: float  # Seconds for the whole batch step
    data_time: float  # Seconds spent assembling the batch


@contextmanager
def gradient_scope(optimizer: torch.optim.Optimizer):
    """Zero gradients on entry and release them on exit.

    Gradients accumulate across backward calls, so every step must start
    from zero and nothing may read them after the optimizer consumed them.
    """
    optimizer.zero_grad(set_to_none=False)
    try:
        yield
    finally:
        optimizer.zero_grad(set_to_none=True)


class EncoderTrainer:
    """Trains an encoder to regress latent codes from (image, attributes).

    Args:
        model: Encoder taking (images, attributes) and returning latent codes
        train_set: Training subset
        test_set: Test subset (used for periodic single-batch evaluation)
        config: Resolved EncoderConfig
        metrics_sink: Receives error triples and batch previews (optional)
        checkpoint_manager: Receives per-epoch artifacts; created from
            config.output_path / config.name if None

    Raises:
        ValueError: If batch_size is below 2 or exceeds either subset size
    """

    def __init__(
        self,
        model: nn.Module,
        train_set: SampleCollection,
        test_set: SampleCollection,
        config: EncoderConfig,
        metrics_sink: Optional[MetricsSink] = None,
        checkpoint_manager: Optional[CheckpointManager] = None
    ):
        if config.batch_size < 2:
            raise ValueError(
                f"batch_size must be at least 2, got {config.batch_size}: "
                "batch normalization needs more than one row per training batch"
            )
        check_batch_size(train_set, config.batch_size, 'train')
        check_batch_size(test_set, config.batch_size, 'test')

        self.config = config
        self.device = torch.device(config.device)
        self.model = model.to(self.device)
        self.train_set = train_set
        self.test_set = test_set
        self.metrics_sink = metrics_sink if metrics_sink is not None else MetricsSink()
        self.checkpoint_manager = checkpoint_manager or CheckpointManager(config.output_path, config.name)

        self.optimizer = torch.optim.Adam(
            self.model.parameters(),
            lr=config.lr,
            betas=(config.beta1, config.beta2)
        )

        self.generator = torch.Generator()
        self.generator.manual_seed(config.seed)

        self.n_train = len(train_set)
        self.n_test = len(test_set)
        # Display denominator: counts the trailing partial batch even though it is skipped
        self.batches_per_epoch = math.ceil(self.n_train / config.batch_size)

        # Training state
        self.current_epoch = 0
        self.batch_iterations = 0
        self.error_train: Optional[float] = None
        self.error_test: Optional[float] = None
        self.metric_log: List[MetricRecord] = []

        logger.info(f"EncoderTrainer initialized: device={self.device}, lr={config.lr}, "
                    f"beta1={config.beta1}, batch_size={config.batch_size}")

    def train_step(self, batch: Batch, data_time: float = 0.0) -> Tuple[float, StepTimings]:
        """One forward/backward/Adam update on ``batch``.

        Returns:
            (train loss, timings of the step)

        Raises:
            FloatingPointError: If the loss is not finite
        """
        step_start = time.perf_counter()
        self.model.train()
        batch = batch.to(self.device)

        with gradient_scope(self.optimizer):
            z_pred = self.model(batch.images, batch.attributes)
            loss = latent_regression_loss(z_pred, batch.latents)
            if not torch.isfinite(loss):
                raise FloatingPointError(
                    f"Non-finite training loss ({loss.item()}) at epoch {self.current_epoch}, "
                    f"batch iteration {self.batch_iterations}"
                )
            loss.backward()
            self.optimizer.step()

        self.error_train = loss.item()
        step_time = time.perf_counter() - step_start + data_time
        return self.error_train, StepTimings(step_time=step_time, data_time=data_time)

    @torch.no_grad()
    def evaluate_batch(self, batch: Optional[Batch] = None) -> float:
        """Loss on one test batch (a random one if ``batch`` is None). No update."""
        if batch is None:
            batch = sample_random_batch(self.test_set, self.config.batch_size, self.generator)
        batch = batch.to(self.device)

        was_training = self.model.training
        self.model.eval()
        z_pred = self.model(batch.images, batch.attributes)
        error = latent_regression_loss(z_pred, batch.latents).item()
        self.model.train(was_training)
        return error

    def _display_tick(self, train_batch: Batch):
        """Test evaluation and metric emission, run every eval_interval steps."""
        if self.config.display == 2:
            self.metrics_sink.log_images('Train mini-batch', train_batch.images, self.batch_iterations)

        test_batch = sample_random_batch(self.test_set, self.config.batch_size, self.generator)
        self.error_test = self.evaluate_batch(test_batch)

        record = MetricRecord(
            epoch_position=self.batch_iterations / self.batches_per_epoch,
            train_error=self.error_train,
            test_error=self.error_test,
        )
        self.metric_log.append(record)
        self.metrics_sink.log_errors(*record)

        if self.config.display == 2:
            self.metrics_sink.log_images('Test mini-batch', test_batch.images, self.batch_iterations)

    def train_epoch(self, epoch: int) -> List[float]:
        """Train for one epoch over the full batches of a fresh permutation.

        Args:
            epoch: 1-based epoch number (used for logging)

        Returns:
            Training losses of the batch steps, in order
        """
        self.current_epoch = epoch
        batch_size = self.config.batch_size
        shuffle = random_permutation(self.n_train, self.generator)
        losses = []

        starts = window_starts(self.n_train, batch_size)
        pbar = tqdm(starts, desc=f'Epoch {epoch}', disable=not self.config.progress_bar)

        for window_start in pbar:
            data_start = time.perf_counter()
            batch = sample_batch(self.train_set, batch_size, shuffle, window_start)
            data_time = time.perf_counter() - data_start

            error_train, timings = self.train_step(batch, data_time)
            losses.append(error_train)

            if self.config.display and self.batch_iterations % self.config.eval_interval == 0:
                self._display_tick(batch)

            logger.info(
                'Epoch: [%d][%4d / %4d]  Error (train): %.4f  Error (test): %.4f  '
                '  Time: %.3f s  Data time: %.3f s',
                epoch, window_start // batch_size, self.batches_per_epoch,
                error_train,
                self.error_test if self.error_test is not None else -1,
                timings.step_time, timings.data_time
            )
            pbar.set_postfix({'loss': f"{error_train:.4f}"})

            self.batch_iterations += 1

        return losses

    def train(self, n_epochs: Optional[int] = None) -> List[MetricRecord]:
        """Train for a fixed number of epochs, checkpointing after each.

        Returns:
            The metric log
        """
        if n_epochs is None:
            n_epochs = self.config.n_epochs

        logger.info(f"Starting training for {n_epochs} epochs")
        logger.info(f"Training samples: {self.n_train}")
        logger.info(f"Test samples: {self.n_test}")

        if self.config.display:
            self.metrics_sink.configure(f'Encoder error - {self.config.name}', ERROR_LABELS)

        start_time = time.perf_counter()
        for epoch in range(1, n_epochs + 1):
            epoch_start = time.perf_counter()
            self.train_epoch(epoch)
            logger.info('End of epoch %d / %d \t Time Taken: %.3f s',
                        epoch, n_epochs, time.perf_counter() - epoch_start)

            self.checkpoint_manager.save_encoder(self.model, epoch, config=self.config.to_dict())
            self.checkpoint_manager.save_metric_log(self.metric_log)

        total_time = time.perf_counter() - start_time
        logger.info(f"Training completed in {total_time / 60:.1f} minutes")
        return self.metric_log
