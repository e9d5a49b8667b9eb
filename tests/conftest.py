import pytest
import torch

from latent_encoder.config import get_config
from latent_encoder.datasets import SampleCollection


def make_collection(n_samples=100, channels=3, size=8, z_dim=6, y_dim=4, seed=0) -> SampleCollection:
    generator = torch.Generator().manual_seed(seed)
    return SampleCollection(
        torch.rand(n_samples, channels, size, size, generator=generator),
        torch.randn(n_samples, z_dim, generator=generator),
        (torch.rand(n_samples, y_dim, generator=generator) > 0.5).float(),
    )


@pytest.fixture
def collection() -> SampleCollection:
    return make_collection()


@pytest.fixture
def small_config(tmp_path):
    return get_config(
        name='test_encoder',
        batch_size=10,
        split=0.7,
        n_conv_layers=2,
        nf=4,
        n_epochs=1,
        lr=0.001,
        display=1,
        progress_bar=False,
        output_path=str(tmp_path / 'checkpoints'),
        seed=123,
    )
