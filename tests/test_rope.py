import numpy as np
import pytest

from mosaicmem.rope import RoPE, grid_positions_2d, grid_positions_3d


def test_rope_basic():
    rope = RoPE(8, 100, 10000.0)
    x = [1.0] * 8
    assert np.allclose(rope.rotate(x, 0), x, atol=1e-5)


def test_rope_different_positions():
    rope = RoPE(8, 100, 10000.0)
    x = [1.0] * 8
    assert not np.allclose(rope.rotate(x, 0), rope.rotate(x, 1))


def test_rope_preserves_norm():
    rope = RoPE(8, 100)
    x = np.arange(1.0, 9.0)
    assert abs(np.linalg.norm(rope.rotate(x, 37)) - np.linalg.norm(x)) < 1e-9


def test_rope_first_pair_rotates_by_position():
    rope = RoPE(4, 10)
    out = rope.rotate([1.0, 0.0, 1.0, 0.0], 1)
    assert np.allclose(out[:2], [np.cos(1.0), np.sin(1.0)])


def test_rope_clamps_position():
    rope = RoPE(4, 5)
    x = [0.3, -0.7, 1.1, 0.2]
    assert np.allclose(rope.rotate(x, 100), rope.rotate(x, 4))


def test_rope_odd_dim_raises():
    with pytest.raises(ValueError):
        RoPE(7, 10)


def test_rope_wrong_length_raises():
    with pytest.raises(ValueError):
        RoPE(8, 10).rotate([1.0] * 6, 0)


def test_rotate_batch():
    rope = RoPE(4, 10)
    vectors = [[1.0, 0.0, 0.0, 1.0], [0.5, 0.5, 0.5, 0.5]]
    out = rope.rotate_batch(vectors, [2, 3])
    assert len(out) == 2
    assert np.allclose(out[1], rope.rotate(vectors[1], 3))


def test_rotate_batch_length_mismatch():
    with pytest.raises(ValueError):
        RoPE(4, 10).rotate_batch([[1.0] * 4], [0, 1])


def test_grid_positions():
    pos = grid_positions_2d(3, 4)
    assert len(pos) == 12
    assert pos[0] == (0, 0)
    assert pos[11] == (2, 3)


def test_grid_positions_3d():
    pos = grid_positions_3d(2, 3, 4)
    assert len(pos) == 24
    assert pos[0] == (0, 0, 0)
    assert pos[12] == (1, 0, 0)
    assert pos[-1] == (1, 2, 3)