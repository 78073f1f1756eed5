import math

import numpy as np
import pytest

from mosaicmem.warped_rope import WarpedRoPE


def test_warped_rope_creation():
    wrope = WarpedRoPE(8, 64, 32)
    assert wrope.rope_u.dim == 8
    assert wrope.spatial_resolution == 64
    assert wrope.temporal_resolution == 32
    assert wrope.temporal_half_life == 1.0


def test_warped_rope_rotate():
    wrope = WarpedRoPE(8, 64, 32)
    vectors = [np.ones(24) for _ in range(4)]
    positions = [
        (10.0, 20.0, 5.0),
        (15.5, 25.0, 3.0),
        (30.0, 10.0, 0.0),
        (5.25, 5.0, 1.0),
    ]
    rotated = wrope.rotate(vectors, positions)
    assert len(rotated) == 4
    assert len(rotated[0]) == 24
    assert not np.allclose(rotated[0], rotated[1])


def test_zero_position_is_identity():
    wrope = WarpedRoPE(4, 16, 8)
    vector = np.arange(12.0)
    rotated = wrope.rotate([vector], [(0.0, 0.0, 0.0)])
    np.testing.assert_allclose(rotated[0], vector)


def test_first_pair_rotates_by_position():
    wrope = WarpedRoPE(4, 16, 8)
    vector = np.zeros(12)
    vector[0] = 1.0
    rotated = wrope.rotate([vector], [(0.7, 0.0, 0.0)])[0]
    assert rotated[0] == pytest.approx(math.cos(0.7))
    assert rotated[1] == pytest.approx(math.sin(0.7))
    np.testing.assert_allclose(rotated[2:], 0.0)


def test_rotation_preserves_norm_and_extra_components():
    wrope = WarpedRoPE(4, 16, 8)
    rng = np.random.default_rng(3)
    vector = rng.normal(size=14)
    rotated = wrope.rotate([vector], [(3.5, 1.25, 2.0)])[0]
    assert np.linalg.norm(rotated) == pytest.approx(np.linalg.norm(vector))
    np.testing.assert_allclose(rotated[12:], vector[12:])


def test_vector_too_short_raises():
    wrope = WarpedRoPE(4, 16, 8)
    with pytest.raises(ValueError):
        wrope.rotate([np.ones(10)], [(1.0, 1.0, 1.0)])


def test_length_mismatch_raises():
    wrope = WarpedRoPE(4, 16, 8)
    with pytest.raises(ValueError):
        wrope.rotate([np.ones(12)], [])


def test_odd_dim_per_axis_rejected():
    with pytest.raises(ValueError):
        WarpedRoPE(3, 16, 8)