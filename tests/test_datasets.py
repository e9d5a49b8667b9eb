import pytest
import torch
from torchvision.io import write_png

from conftest import make_collection
from latent_encoder.datasets import SampleCollection, split_train_test, load_groundtruth


def test_collection_rejects_length_mismatch() -> None:
    with pytest.raises(ValueError, match="must be equal"):
        SampleCollection(torch.zeros(5, 3, 8, 8), torch.zeros(4, 6), torch.zeros(5, 2))
    with pytest.raises(ValueError, match="must be equal"):
        SampleCollection(torch.zeros(5, 3, 8, 8), torch.zeros(5, 6), torch.zeros(6, 2))


def test_split_sizes_and_alignment(collection) -> None:
    train, test = split_train_test(collection, 0.7)
    assert len(train) == 70
    assert len(test) == 30
    assert torch.equal(train.images, collection.images[:70])
    assert torch.equal(test.latents, collection.latents[70:])
    assert torch.equal(test.attributes, collection.attributes[70:])


@pytest.mark.parametrize("n_samples,fraction", [(2, 0.5), (7, 0.66), (33, 0.1), (100, 0.999)])
def test_split_uses_floor_cut_index(n_samples, fraction) -> None:
    data = make_collection(n_samples=n_samples)
    train, test = split_train_test(data, fraction)
    assert len(train) == int(fraction * n_samples)
    assert len(train) + len(test) == n_samples


def test_split_is_deterministic_and_shares_storage(collection) -> None:
    train_a, test_a = split_train_test(collection, 0.66)
    train_b, test_b = split_train_test(collection, 0.66)
    assert torch.equal(train_a.images, train_b.images)
    assert torch.equal(test_a.latents, test_b.latents)
    assert train_a.images.data_ptr() == collection.images.data_ptr()


def test_split_preconditions(collection) -> None:
    with pytest.raises(ValueError):
        split_train_test(collection, 0.0)
    with pytest.raises(ValueError):
        split_train_test(collection, 1.0)
    with pytest.raises(ValueError):
        split_train_test(make_collection(n_samples=1), 0.5)


def test_load_groundtruth_tensor_format(tmp_path) -> None:
    data = {
        'X': torch.rand(6, 3, 8, 8),
        'Z': torch.randn(6, 10, 1, 1),
        'Y': torch.rand(6, 4),
        'store_as_tensor': True,
    }
    torch.save(data, tmp_path / 'groundtruth.pt')

    loaded = load_groundtruth(str(tmp_path))
    assert len(loaded) == 6
    assert loaded.latents.shape == (6, 10)
    assert loaded.image_shape == (3, 8, 8)
    assert loaded.attribute_size == 4


def test_load_groundtruth_image_files(tmp_path) -> None:
    image_dir = tmp_path / 'images'
    image_dir.mkdir()
    names = []
    for i in range(3):
        name = f'{i}.png'
        write_png(torch.full((3, 8, 8), 51 * i, dtype=torch.uint8), str(image_dir / name))
        names.append(name)
    data = {
        'im_names': names,
        'relative_path': str(image_dir),
        'im_size': (3, 8, 8),
        'Z': torch.randn(3, 5),
        'Y': torch.rand(3, 2),
        'store_as_tensor': False,
    }
    torch.save(data, tmp_path / 'groundtruth.pt')

    loaded = load_groundtruth(str(tmp_path))
    assert loaded.images.shape == (3, 3, 8, 8)
    assert torch.allclose(loaded.images[2], torch.full((3, 8, 8), 102 / 255.0))


def test_load_groundtruth_corrupted(tmp_path) -> None:
    torch.save({'X': torch.rand(4, 3, 8, 8), 'Z': torch.randn(3, 5), 'Y': torch.rand(4, 2),
                'store_as_tensor': True}, tmp_path / 'groundtruth.pt')
    with pytest.raises(ValueError, match="corrupted"):
        load_groundtruth(str(tmp_path))


def test_load_groundtruth_missing(tmp_path) -> None:
    with pytest.raises(FileNotFoundError):
        load_groundtruth(str(tmp_path))
