"""
Ground-truth sample collections for encoder training.

A collection holds three row-aligned tensors: images X, latent codes Z and
attribute vectors Y. The dataset generator stores them in a single
``groundtruth.pt`` file, either with the images inlined as a tensor or as a
list of image paths relative to the dataset folder.
"""

import logging
import math
import os
from typing import Tuple

import torch
from torchvision.io import read_image, ImageReadMode


logger = logging.getLogger(__name__)

GROUNDTRUTH_FILENAME = 'groundtruth.pt'


class SampleCollection:
    """
    Parallel (image, latent, attribute) tensors.

    Args:
        images: [N, C, H, W]
        latents: [N, Zsz]
        attributes: [N, Ysz]

    Raises:
        ValueError: If the three tensors do not have the same number of rows
    """

    def __init__(self, images: torch.Tensor, latents: torch.Tensor, attributes: torch.Tensor):
        if not (images.size(0) == latents.size(0) == attributes.size(0)):
            raise ValueError(
                "Number of images, latent vectors and attribute vectors must be equal, got "
                f"{images.size(0)} images, {latents.size(0)} latents, {attributes.size(0)} attributes"
            )
        if images.dim() != 4:
            raise ValueError(f"images must be [N, C, H, W], got shape {tuple(images.shape)}")

        self.images = images
        self.latents = latents
        self.attributes = attributes

    def __len__(self):
        return self.images.size(0)

    @property
    def image_shape(self) -> Tuple[int, int, int]:
        return tuple(self.images.shape[1:])

    @property
    def latent_size(self) -> int:
        return self.latents.size(1)

    @property
    def attribute_size(self) -> int:
        return self.attributes.size(1)

    def rows(self, start: int, stop: int) -> 'SampleCollection':
        """Contiguous slice of all three tensors. Shares storage with self."""
        return SampleCollection(
            self.images[start:stop],
            self.latents[start:stop],
            self.attributes[start:stop],
        )


def split_train_test(collection: SampleCollection,
                     fraction: float) -> Tuple[SampleCollection, SampleCollection]:
    """
    Deterministically split a collection into train and test parts.

    Rows [0, k) go to train and [k, N) to test, with k = floor(fraction * N).
    No shuffling is done here; the sampler shuffles per epoch.

    Raises:
        ValueError: If fraction is not in (0, 1) or the collection has fewer than 2 rows
    """
    if not 0 < fraction < 1:
        raise ValueError(f"split fraction must be in (0, 1), got {fraction}")

    n_samples = len(collection)
    if n_samples < 2:
        raise ValueError(f"At least 2 samples are required to split, got {n_samples}")

    split_ind = math.floor(fraction * n_samples)
    train = collection.rows(0, split_ind)
    test = collection.rows(split_ind, n_samples)

    logger.info(f"Split {n_samples} samples: {len(train)} train, {len(test)} test")
    return train, test


def _load_image(path: str) -> torch.Tensor:
    return read_image(path, mode=ImageReadMode.UNCHANGED).float() / 255.0


def load_groundtruth(dataset_path: str) -> SampleCollection:
    """
    Read ``groundtruth.pt`` from a dataset folder.

    The file is a dict with ``Z`` and ``Y`` tensors and either ``X`` (when
    ``store_as_tensor`` is true) or ``im_names``, ``relative_path`` and
    ``im_size`` describing the images on disk.

    Raises:
        FileNotFoundError: If the ground-truth file does not exist
        ValueError: If the number of images, Z and Y vectors differ
    """
    filepath = os.path.join(dataset_path, GROUNDTRUTH_FILENAME)
    if not os.path.exists(filepath):
        raise FileNotFoundError(f"Ground-truth file not found: {filepath}")

    data = torch.load(filepath, map_location='cpu')
    latents = data['Z']
    attributes = data['Y']

    if data.get('store_as_tensor', 'X' in data):
        images = data['X']
        n_images = images.size(0)
    else:
        im_names = data['im_names']
        n_images = len(im_names)

    if latents.size(0) != n_images or attributes.size(0) != n_images:
        raise ValueError(
            f"{GROUNDTRUTH_FILENAME} is corrupted, number of images and Z and Y vectors is not equal "
            f"({n_images} images, {latents.size(0)} Z, {attributes.size(0)} Y). "
            "Create the dataset again."
        )

    if not data.get('store_as_tensor', 'X' in data):
        relative_path = data.get('relative_path', dataset_path)
        im_size = data['im_size']
        images = torch.empty(n_images, *im_size)
        for i, im_name in enumerate(im_names):
            images[i] = _load_image(os.path.join(relative_path, im_name))

    # Z is stored as [N, Zsz, 1, 1] by the generator
    latents = latents.reshape(latents.size(0), -1).float()
    attributes = attributes.reshape(attributes.size(0), -1).float()

    logger.info(f"Loaded {n_images} samples from {filepath}")
    return SampleCollection(images.float(), latents, attributes)
