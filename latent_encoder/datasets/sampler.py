"""
Minibatch sampling over a SampleCollection.

Each epoch draws one uniform permutation of the subset rows and walks it
in non-overlapping windows of ``batch_size``. Only full windows are used:
the trailing ``len(subset) % batch_size`` rows of the permutation are
skipped for that epoch.
"""

from typing import NamedTuple, Optional

import torch

from latent_encoder.datasets.groundtruth import SampleCollection


class Batch(NamedTuple):
    images: torch.Tensor
    latents: torch.Tensor
    attributes: torch.Tensor

    def to(self, device) -> 'Batch':
        return Batch(*(t.to(device) for t in self))


def check_batch_size(subset: SampleCollection, batch_size: int, name: str = 'subset'):
    """Raise ValueError if ``batch_size`` full rows cannot be drawn from ``subset``."""
    if batch_size <= 0:
        raise ValueError(f"batch_size must be positive, got {batch_size}")
    if batch_size > len(subset):
        raise ValueError(
            f"batch_size ({batch_size}) exceeds the number of {name} samples ({len(subset)})"
        )


def window_starts(n_samples: int, batch_size: int) -> range:
    """Start offsets of the full batches in one epoch: floor(n_samples / batch_size) windows."""
    return range(0, n_samples - batch_size + 1, batch_size)


def num_batches(n_samples: int, batch_size: int) -> int:
    return len(window_starts(n_samples, batch_size))


def random_permutation(n_samples: int, generator: Optional[torch.Generator] = None) -> torch.Tensor:
    return torch.randperm(n_samples, generator=generator)


def sample_batch(subset: SampleCollection, batch_size: int,
                 permutation: torch.Tensor, window_start: int) -> Batch:
    """
    Gather the rows ``permutation[window_start:window_start + batch_size]``.

    ``index_select`` always allocates, so the returned tensors never alias
    the subset storage.

    Raises:
        ValueError: If the window does not fit inside the permutation
    """
    if window_start < 0 or window_start + batch_size > permutation.numel():
        raise ValueError(
            f"Window [{window_start}, {window_start + batch_size}) is out of bounds "
            f"for {permutation.numel()} samples"
        )

    indices = permutation[window_start:window_start + batch_size].long()
    return Batch(
        subset.images.index_select(0, indices).contiguous(),
        subset.latents.index_select(0, indices).contiguous(),
        subset.attributes.index_select(0, indices).contiguous(),
    )


def sample_random_batch(subset: SampleCollection, batch_size: int,
                        generator: Optional[torch.Generator] = None) -> Batch:
    """One batch from a fresh permutation at a uniformly random window start."""
    check_batch_size(subset, batch_size)
    n_samples = len(subset)
    permutation = random_permutation(n_samples, generator)
    window_start = int(torch.randint(0, n_samples - batch_size + 1, (1,), generator=generator))
    return sample_batch(subset, batch_size, permutation, window_start)
