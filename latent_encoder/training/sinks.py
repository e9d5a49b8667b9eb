"""Metric sinks for encoder training.

The trainer pushes (epoch position, train error, test error) triples and,
optionally, image-grid previews of the current batches. Sinks are one-way:
nothing is read back.
"""

import logging
import math
from pathlib import Path
from typing import NamedTuple, Optional, Sequence

import torch
from torchvision.utils import make_grid, save_image


logger = logging.getLogger(__name__)


class MetricRecord(NamedTuple):
    epoch_position: float
    train_error: float
    test_error: float


def batch_grid(images: torch.Tensor) -> torch.Tensor:
    """Tile a batch [B, C, H, W] into a roughly square grid image."""
    nrow = max(1, round(math.sqrt(images.size(0))))
    return make_grid(images.detach().cpu(), nrow=nrow, padding=0)


class MetricsSink:
    """Base sink. Subclasses override the hooks they support."""

    def configure(self, title: str, labels: Sequence[str]):
        pass

    def log_errors(self, epoch_position: float, train_error: float, test_error: float):
        pass

    def log_images(self, tag: str, images: torch.Tensor, step: int):
        pass

    def close(self):
        pass


class LoggingMetricsSink(MetricsSink):
    """Writes metrics through ``logging``.

    Args:
        preview_dir: If given, image previews are saved there as PNG files
            (one file per tag, overwritten at each tick)
    """

    def __init__(self, preview_dir: Optional[str] = None):
        self.preview_dir = Path(preview_dir) if preview_dir is not None else None
        if self.preview_dir is not None:
            self.preview_dir.mkdir(parents=True, exist_ok=True)
        self.title = ''

    def configure(self, title: str, labels: Sequence[str]):
        self.title = title
        logger.info(f"{title} - tracking {', '.join(labels)}")

    def log_errors(self, epoch_position: float, train_error: float, test_error: float):
        logger.info(
            f"{self.title} - epoch {epoch_position:.3f}: "
            f"train error {train_error:.4f}, test error {test_error:.4f}"
        )

    def log_images(self, tag: str, images: torch.Tensor, step: int):
        if self.preview_dir is None:
            return
        filename = tag.lower().replace(' ', '_').replace('/', '_') + '.png'
        save_image(batch_grid(images), self.preview_dir / filename)


class TensorBoardMetricsSink(MetricsSink):
    """Writes metrics to TensorBoard event files."""

    def __init__(self, log_dir: str):
        # Imported lazily: the tensorboard package is only needed for this sink
        from torch.utils.tensorboard import SummaryWriter

        self.writer = SummaryWriter(log_dir=log_dir)
        self.title = 'encoder'
        self.labels = ('Epoch', 'Train error', 'Test error')
        self._tick = 0

    def configure(self, title: str, labels: Sequence[str]):
        self.title = title
        self.labels = tuple(labels)
        self.writer.add_text('config/title', title)

    def log_errors(self, epoch_position: float, train_error: float, test_error: float):
        self.writer.add_scalars(
            self.title,
            {self.labels[1]: train_error, self.labels[2]: test_error},
            self._tick,
        )
        self.writer.add_scalar('epoch_position', epoch_position, self._tick)
        self._tick += 1

    def log_images(self, tag: str, images: torch.Tensor, step: int):
        self.writer.add_image(tag, batch_grid(images), step)

    def close(self):
        self.writer.close()
