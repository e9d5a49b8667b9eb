import pytest
import torch
import torch.nn as nn

from latent_encoder.models import (
    Conv2dSpec,
    LinearSpec,
    ReLUSpec,
    FlattenSpec,
    build_encoder,
    build_layer,
    build_sequential,
    broadcast_attributes,
    encoder_layer_specs,
    flattened_feature_size,
)


def test_broadcast_attributes_shape_and_values() -> None:
    y = torch.tensor([[1.0, 0.0, 2.0]])
    out = broadcast_attributes(y, 4, 5)
    assert out.shape == (1, 3, 4, 5)
    assert torch.all(out[0, 2] == 2.0)
    assert torch.all(out[0, 1] == 0.0)


@pytest.mark.parametrize("size,n_conv_layers,nf", [(64, 4, 32), (32, 3, 8), (16, 1, 4), (8, 2, 4)])
def test_flattened_feature_size(size, n_conv_layers, nf) -> None:
    expected = (size // 2 ** n_conv_layers) ** 2 * nf * 2 ** (n_conv_layers - 1)
    assert flattened_feature_size(size, size, nf, n_conv_layers) == expected


def test_flattened_feature_size_non_square() -> None:
    # 32x16 -> 8x4 after two blocks, 8 channels
    assert flattened_feature_size(32, 16, 4, 2) == 8 * 8 * 4


def test_conv_stack_widths() -> None:
    specs = encoder_layer_specs(7, 32, 32, 8, 10, 3)
    convs = [s for s in specs if isinstance(s, Conv2dSpec)]
    assert [(c.in_channels, c.out_channels) for c in convs] == [(7, 8), (8, 16), (16, 32)]
    assert all((c.kernel_size, c.stride, c.padding) == (5, 2, 2) for c in convs)
    linears = [s for s in specs if isinstance(s, LinearSpec)]
    assert linears == [LinearSpec(512, 512), LinearSpec(512, 10)]


def test_output_shape_and_features() -> None:
    torch.manual_seed(0)
    sample = torch.rand(3, 16, 16)
    model = build_encoder(sample, attribute_size=5, nf=4, output_size=12, n_conv_layers=2)

    images = torch.rand(6, 3, 16, 16)
    attributes = torch.rand(6, 5)
    assert model(images, attributes).shape == (6, 12)
    assert model.features(images, attributes).shape == (6, 4 * 4 * 4 * 2)
    assert model.fc_size == 128


def test_first_conv_sees_image_and_attribute_channels() -> None:
    model = build_encoder(torch.rand(3, 8, 8), attribute_size=4, nf=4, output_size=2, n_conv_layers=1)
    assert model.body[0].in_channels == 7


def test_output_has_no_activation() -> None:
    model = build_encoder(torch.rand(1, 8, 8), attribute_size=2, nf=4, output_size=3, n_conv_layers=1)
    assert isinstance(model.body[-1], nn.Linear)
    model.eval()
    with torch.no_grad():
        model.body[-1].bias.fill_(-5.0)
        out = model(torch.rand(4, 1, 8, 8), torch.rand(4, 2))
    assert (out < 0).any()


def test_input_validation() -> None:
    model = build_encoder(torch.rand(3, 8, 8), attribute_size=4, nf=4, output_size=2, n_conv_layers=1)
    with pytest.raises(ValueError):
        model(torch.rand(2, 1, 8, 8), torch.rand(2, 4))
    with pytest.raises(ValueError):
        model(torch.rand(2, 3, 8, 8), torch.rand(2, 3))
    with pytest.raises(ValueError):
        build_encoder(torch.rand(3, 8, 8), attribute_size=4, nf=4, output_size=2, n_conv_layers=0)


def test_build_sequential() -> None:
    net = build_sequential([FlattenSpec(), LinearSpec(6, 2), ReLUSpec(inplace=False)])
    assert net(torch.rand(3, 2, 3)).shape == (3, 2)
    with pytest.raises(ValueError):
        build_sequential([])
    with pytest.raises(TypeError):
        build_layer(object())
