import pytest
import torch

from latent_encoder.datasets import (
    check_batch_size,
    num_batches,
    random_permutation,
    sample_batch,
    sample_random_batch,
    split_train_test,
    window_starts,
)


@pytest.mark.parametrize("n_samples,batch_size,expected", [
    (70, 10, 7),
    (69, 10, 6),
    (71, 10, 7),
    (10, 10, 1),
    (64, 64, 1),
    (100, 3, 33),
])
def test_full_batches_only(n_samples, batch_size, expected) -> None:
    assert num_batches(n_samples, batch_size) == expected
    starts = list(window_starts(n_samples, batch_size))
    assert starts[0] == 0
    assert all(b - a == batch_size for a, b in zip(starts, starts[1:]))
    assert starts[-1] + batch_size <= n_samples


def test_sample_batch_gathers_permuted_rows(collection) -> None:
    permutation = random_permutation(len(collection), torch.Generator().manual_seed(0))
    batch = sample_batch(collection, 10, permutation, 20)
    indices = permutation[20:30]
    assert torch.equal(batch.images, collection.images[indices])
    assert torch.equal(batch.latents, collection.latents[indices])
    assert torch.equal(batch.attributes, collection.attributes[indices])


def test_batch_is_a_copy(collection) -> None:
    permutation = torch.arange(len(collection))
    batch = sample_batch(collection, 4, permutation, 0)
    batch.images.zero_()
    assert collection.images[:4].abs().sum() > 0
    assert batch.images.is_contiguous()


def test_window_out_of_bounds(collection) -> None:
    permutation = torch.arange(len(collection))
    with pytest.raises(ValueError, match="out of bounds"):
        sample_batch(collection, 10, permutation, 95)


def test_epoch_covers_each_row_at_most_once(collection) -> None:
    train, _ = split_train_test(collection, 0.7)
    permutation = random_permutation(len(train), torch.Generator().manual_seed(3))
    seen = torch.cat([permutation[s:s + 10] for s in window_starts(len(train), 10)])
    assert seen.numel() == 70
    assert seen.unique().numel() == 70


def test_permutation_reproducible_with_seed() -> None:
    a = random_permutation(50, torch.Generator().manual_seed(9))
    b = random_permutation(50, torch.Generator().manual_seed(9))
    assert torch.equal(a, b)
    assert torch.equal(a.sort().values, torch.arange(50))


def test_random_batch_stays_in_subset(collection) -> None:
    _, test = split_train_test(collection, 0.7)
    generator = torch.Generator().manual_seed(1)
    for _ in range(20):
        batch = sample_random_batch(test, 10, generator)
        assert batch.images.shape == (10, 3, 8, 8)
        for row in batch.latents:
            assert (test.latents == row).all(dim=1).any()


def test_batch_size_exceeding_subset(collection) -> None:
    _, test = split_train_test(collection, 0.7)
    with pytest.raises(ValueError, match="exceeds"):
        check_batch_size(test, 31, 'test')
    with pytest.raises(ValueError, match="exceeds"):
        sample_random_batch(test, 31)
