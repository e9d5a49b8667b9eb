import pytest
import torch

from latent_encoder.training import latent_regression_loss


def test_zero_when_equal() -> None:
    z = torch.randn(8, 10)
    assert latent_regression_loss(z, z.clone()).item() == 0.0


def test_mean_over_batch_and_dims() -> None:
    pred = torch.zeros(2, 2)
    target = torch.tensor([[1.0, 2.0], [3.0, 4.0]])
    assert latent_regression_loss(pred, target).item() == pytest.approx(7.5)
    assert latent_regression_loss(pred, target, reduction='sum').item() == pytest.approx(30.0)
    assert latent_regression_loss(pred, target, reduction='none').shape == (2, 2)


def test_non_negative() -> None:
    generator = torch.Generator().manual_seed(0)
    for _ in range(5):
        a = torch.randn(4, 3, generator=generator)
        b = torch.randn(4, 3, generator=generator)
        assert latent_regression_loss(a, b).item() > 0


def test_invalid_arguments() -> None:
    with pytest.raises(ValueError, match="reduction"):
        latent_regression_loss(torch.zeros(2, 2), torch.zeros(2, 2), reduction='max')
    with pytest.raises(ValueError, match="Shape mismatch"):
        latent_regression_loss(torch.zeros(2, 2), torch.zeros(2, 3))
