"""Checkpoint saving and loading utilities for encoder training.

Two artifacts are written at every epoch boundary:
- ``<name>_<epoch>epochs.pt``: encoder state dict for that epoch
- ``<name>_error.pt``: the whole metric log, overwritten each time

Writes go to a temporary sibling file that is renamed into place, so an
interrupted save never leaves a truncated checkpoint behind.
"""

import os
import torch
import logging
from typing import Dict, Any, List, Optional, Sequence
from pathlib import Path

from latent_encoder.training.sinks import MetricRecord


logger = logging.getLogger(__name__)


def atomic_save(obj: Any, path: Path):
    """``torch.save`` to ``path`` through a temporary file and ``os.replace``.

    Raises:
        RuntimeError: If saving fails (the temporary file is removed)
    """
    path = Path(path)
    tmp_path = path.with_name(path.name + '.tmp')
    try:
        torch.save(obj, tmp_path)
        os.replace(tmp_path, path)
    except Exception as e:
        if tmp_path.exists():
            tmp_path.unlink()
        raise RuntimeError(f"Failed to save {path}: {str(e)}") from e


class CheckpointManager:
    """Manages encoder checkpoints and the metric log of a training run.

    Attributes:
        output_dir: Directory where artifacts are saved
        name: Run name used as filename prefix
    """

    def __init__(self, output_dir: str, name: str):
        if not name:
            raise ValueError("Checkpoint name must be a non-empty string")

        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.name = name

        logger.info(f"CheckpointManager initialized: dir={output_dir}, name={name}")

    def encoder_path(self, epoch: int) -> Path:
        return self.output_dir / f'{self.name}_{epoch}epochs.pt'

    @property
    def metric_log_path(self) -> Path:
        return self.output_dir / f'{self.name}_error.pt'

    def save_encoder(
        self,
        model: torch.nn.Module,
        epoch: int,
        config: Optional[Dict[str, Any]] = None
    ) -> str:
        """Save the encoder state (parameters and batch-norm buffers).

        Args:
            model: Encoder to save
            epoch: Completed epoch number (1-based)
            config: Optional config dictionary stored alongside the weights

        Returns:
            Path to saved checkpoint file
        """
        checkpoint = {
            'epoch': epoch,
            'model_state_dict': {k: v.detach().cpu().clone() for k, v in model.state_dict().items()},
        }
        if config is not None:
            checkpoint['config'] = config

        checkpoint_path = self.encoder_path(epoch)
        atomic_save(checkpoint, checkpoint_path)
        logger.info(f"Saved encoder at epoch {epoch}: {checkpoint_path}")

        return str(checkpoint_path)

    def save_metric_log(self, records: Sequence[MetricRecord]) -> str:
        """Save the full metric log, replacing any previous one."""
        payload = [tuple(record) for record in records]
        atomic_save(payload, self.metric_log_path)
        logger.info(f"Saved metric log ({len(payload)} records): {self.metric_log_path}")
        return str(self.metric_log_path)


def load_encoder(
    model: torch.nn.Module,
    checkpoint_path: str,
    device: str = 'cpu',
    strict: bool = True
) -> Dict[str, Any]:
    """Load encoder weights saved by ``CheckpointManager.save_encoder``.

    Returns:
        Dictionary with 'epoch' and 'config' if available

    Raises:
        FileNotFoundError: If checkpoint doesn't exist
        RuntimeError: If loading fails
    """
    checkpoint_path = Path(checkpoint_path)
    if not checkpoint_path.exists():
        raise FileNotFoundError(f"Checkpoint not found: {checkpoint_path}")

    try:
        checkpoint = torch.load(checkpoint_path, map_location=device)
        model.load_state_dict(checkpoint['model_state_dict'], strict=strict)
    except Exception as e:
        raise RuntimeError(f"Failed to load encoder from {checkpoint_path}: {str(e)}") from e

    logger.info(f"Loaded encoder from: {checkpoint_path}")
    return {
        'epoch': checkpoint.get('epoch'),
        'config': checkpoint.get('config'),
    }


def load_metric_log(path: str) -> List[MetricRecord]:
    """Read a metric log saved by ``CheckpointManager.save_metric_log``."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Metric log not found: {path}")
    return [MetricRecord(*row) for row in torch.load(path)]
