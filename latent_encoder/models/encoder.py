#!/usr/bin/env python3
"""Attribute-conditioned image encoder.

Maps an image X and an attribute vector Y to the latent code Z that a
generator would invert. Architecture follows the encoder of the VAE/GAN
hybrid ("Autoencoding beyond pixels using a learned similarity metric"):

    Y (Ysz)         -> replicated to Ysz x H x W
    [X, Y]          -> concatenated on channels
    L conv blocks   -> 5x5 conv stride 2, BatchNorm, ReLU; nf, 2nf, 4nf, ...
    Flatten         -> nf * 2^(L-1) * H/2^L * W/2^L features
    FC              -> same width, BatchNorm, ReLU
    FC              -> Zsz (no activation)
"""

from typing import List, Tuple

import torch
import torch.nn as nn

from latent_encoder.models.layers import (
    LayerSpec,
    FlattenSpec,
    LinearSpec,
    BatchNorm1dSpec,
    ReLUSpec,
    build_sequential,
    conv_block,
    conv_output_size,
)


def broadcast_attributes(attributes: torch.Tensor, height: int, width: int) -> torch.Tensor:
    """Replicate [B, Ysz] attributes over the spatial axes to [B, Ysz, H, W]."""
    return attributes[:, :, None, None].expand(-1, -1, height, width)


def conv_feature_shape(height: int, width: int, nf: int, n_conv_layers: int) -> Tuple[int, int, int]:
    """(channels, height, width) after the convolutional stack."""
    for _ in range(n_conv_layers):
        height = conv_output_size(height)
        width = conv_output_size(width)
    return nf * 2 ** (n_conv_layers - 1), height, width


def flattened_feature_size(height: int, width: int, nf: int, n_conv_layers: int) -> int:
    channels, h, w = conv_feature_shape(height, width, nf, n_conv_layers)
    return channels * h * w


def encoder_layer_specs(in_channels: int, height: int, width: int, nf: int,
                        output_size: int, n_conv_layers: int) -> List[LayerSpec]:
    """Layer list of the encoder body, taking the already concatenated [X, Y] input."""
    specs = conv_block(in_channels, nf)
    n_filters = nf
    for _ in range(1, n_conv_layers):
        specs += conv_block(n_filters, n_filters * 2)
        n_filters *= 2

    fc_size = flattened_feature_size(height, width, nf, n_conv_layers)
    specs += [
        FlattenSpec(),
        LinearSpec(fc_size, fc_size),
        BatchNorm1dSpec(fc_size),
        ReLUSpec(),
        LinearSpec(fc_size, output_size),
    ]
    return specs


class ConditionalEncoder(nn.Module):
    """CNN encoder conditioned on attribute vectors via spatial broadcast.

    Args:
        image_shape: (C, H, W) of the input images
        attribute_size: Length of the attribute vector Y
        nf: Number of filters of the first conv block
        output_size: Length of the latent vector Z
        n_conv_layers: Number of conv blocks
    """

    def __init__(self, image_shape: Tuple[int, int, int], attribute_size: int,
                 nf: int, output_size: int, n_conv_layers: int):
        super().__init__()

        if len(image_shape) != 3:
            raise ValueError(f"image_shape must be (C, H, W), got {tuple(image_shape)}")
        for key, value in (('attribute_size', attribute_size), ('nf', nf),
                           ('output_size', output_size), ('n_conv_layers', n_conv_layers)):
            if value <= 0:
                raise ValueError(f"{key} must be positive, got {value}")

        self.image_shape = tuple(image_shape)
        self.attribute_size = attribute_size
        self.nf = nf
        self.output_size = output_size
        self.n_conv_layers = n_conv_layers

        channels, height, width = self.image_shape
        self.fc_size = flattened_feature_size(height, width, nf, n_conv_layers)
        self.body = build_sequential(
            encoder_layer_specs(channels + attribute_size, height, width, nf,
                                output_size, n_conv_layers)
        )

    def forward(self, images, attributes):
        """
        Args:
            images: [batch_size, C, H, W]
            attributes: [batch_size, attribute_size]

        Returns:
            Predicted latent codes [batch_size, output_size]
        """
        if images.shape[1:] != self.image_shape:
            raise ValueError(f"Expected images of shape [B, {self.image_shape}], got {tuple(images.shape)}")
        if attributes.dim() != 2 or attributes.size(1) != self.attribute_size:
            raise ValueError(
                f"Expected attributes of shape [B, {self.attribute_size}], got {tuple(attributes.shape)}"
            )

        y = broadcast_attributes(attributes, images.size(2), images.size(3))
        h = torch.cat([images, y], dim=1)
        return self.body(h)

    def features(self, images, attributes):
        """Flattened output of the conv stack (input of the FC head)."""
        y = broadcast_attributes(attributes, images.size(2), images.size(3))
        h = torch.cat([images, y], dim=1)
        n_trunk = 3 * self.n_conv_layers + 1
        return self.body[:n_trunk](h)


def build_encoder(sample_image: torch.Tensor, attribute_size: int, nf: int,
                  output_size: int, n_conv_layers: int) -> ConditionalEncoder:
    """Factory function sizing the encoder from one sample image [C, H, W].

    Weights use the PyTorch default initialization.
    """
    return ConditionalEncoder(
        image_shape=tuple(sample_image.shape),
        attribute_size=attribute_size,
        nf=nf,
        output_size=output_size,
        n_conv_layers=n_conv_layers,
    )
