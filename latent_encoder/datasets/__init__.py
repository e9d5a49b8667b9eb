"""
Dataset utilities for encoder training.

This module provides loading of the generated ground-truth dataset
(images X, latent codes Z, attribute vectors Y), the deterministic
train/test split and the per-epoch minibatch sampler.
"""

from .groundtruth import (
    SampleCollection,
    split_train_test,
    load_groundtruth,
)

from .sampler import (
    Batch,
    check_batch_size,
    window_starts,
    num_batches,
    random_permutation,
    sample_batch,
    sample_random_batch,
)

__all__ = [
    # Collections
    'SampleCollection',
    'split_train_test',
    'load_groundtruth',
    # Sampling
    'Batch',
    'check_batch_size',
    'window_starts',
    'num_batches',
    'random_permutation',
    'sample_batch',
    'sample_random_batch',
]
