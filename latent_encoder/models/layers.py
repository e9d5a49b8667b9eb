"""Declarative layer specifications and a sequential graph builder.

A network body is described as a list of small frozen dataclasses, one per
layer kind, and turned into an ``nn.Sequential`` by ``build_sequential``.
"""

from dataclasses import dataclass
from typing import List, Sequence, Union

import torch.nn as nn


@dataclass(frozen=True)
class Conv2dSpec:
    in_channels: int
    out_channels: int
    kernel_size: int = 5
    stride: int = 2
    padding: int = 2


@dataclass(frozen=True)
class BatchNorm2dSpec:
    num_features: int


@dataclass(frozen=True)
class BatchNorm1dSpec:
    num_features: int


@dataclass(frozen=True)
class ReLUSpec:
    inplace: bool = True


@dataclass(frozen=True)
class FlattenSpec:
    pass


@dataclass(frozen=True)
class LinearSpec:
    in_features: int
    out_features: int


LayerSpec = Union[Conv2dSpec, BatchNorm2dSpec, BatchNorm1dSpec, ReLUSpec, FlattenSpec, LinearSpec]


def build_layer(spec: LayerSpec) -> nn.Module:
    """Instantiate a single layer from its spec.

    Raises:
        TypeError: If the spec type is unknown
    """
    if isinstance(spec, Conv2dSpec):
        return nn.Conv2d(spec.in_channels, spec.out_channels, kernel_size=spec.kernel_size,
                         stride=spec.stride, padding=spec.padding)
    if isinstance(spec, BatchNorm2dSpec):
        return nn.BatchNorm2d(spec.num_features)
    if isinstance(spec, BatchNorm1dSpec):
        return nn.BatchNorm1d(spec.num_features)
    if isinstance(spec, ReLUSpec):
        return nn.ReLU(inplace=spec.inplace)
    if isinstance(spec, FlattenSpec):
        return nn.Flatten(start_dim=1)
    if isinstance(spec, LinearSpec):
        return nn.Linear(spec.in_features, spec.out_features)
    raise TypeError(f"Unknown layer spec: {type(spec).__name__}")


def build_sequential(specs: Sequence[LayerSpec]) -> nn.Sequential:
    """Build an ``nn.Sequential`` from an ordered list of layer specs."""
    if not specs:
        raise ValueError("Cannot build a network from an empty layer list")
    return nn.Sequential(*[build_layer(spec) for spec in specs])


def conv_block(in_channels: int, out_channels: int) -> List[LayerSpec]:
    """5x5 stride-2 convolution, batch norm, ReLU. Halves each spatial dimension."""
    return [
        Conv2dSpec(in_channels, out_channels, kernel_size=5, stride=2, padding=2),
        BatchNorm2dSpec(out_channels),
        ReLUSpec(),
    ]


def conv_output_size(size: int, kernel_size: int = 5, stride: int = 2, padding: int = 2) -> int:
    return (size + 2 * padding - kernel_size) // stride + 1
