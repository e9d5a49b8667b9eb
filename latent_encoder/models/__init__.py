"""Encoder model architectures.

This package contains:
- Layers: declarative layer specs and the sequential builder
- Encoder: attribute-conditioned CNN encoder regressing latent codes
"""

from .layers import (
    Conv2dSpec,
    BatchNorm2dSpec,
    BatchNorm1dSpec,
    ReLUSpec,
    FlattenSpec,
    LinearSpec,
    build_layer,
    build_sequential,
    conv_block,
)
from .encoder import (
    ConditionalEncoder,
    broadcast_attributes,
    flattened_feature_size,
    encoder_layer_specs,
    build_encoder,
)

__all__ = [
    # Layers
    'Conv2dSpec',
    'BatchNorm2dSpec',
    'BatchNorm1dSpec',
    'ReLUSpec',
    'FlattenSpec',
    'LinearSpec',
    'build_layer',
    'build_sequential',
    'conv_block',
    # Encoder
    'ConditionalEncoder',
    'broadcast_attributes',
    'flattened_feature_size',
    'encoder_layer_specs',
    'build_encoder',
]
