import numpy as np
import pytest

from mosaicmem.vae import VAE, SyntheticVAE, VAEError


def build_patterned_frames(width, height, timesteps):
    plane = timesteps * height * width
    frames = np.zeros(3 * plane)
    for t in range(timesteps):
        for y in range(height):
            for x in range(width):
                idx = t * height * width + y * width + x
                frames[idx] = 1.0 if x >= width // 2 else 0.0
                frames[idx + plane] = y / max(height, 1)
                frames[idx + 2 * plane] = t / max(timesteps, 1)
    return frames


def latent_index(timesteps, height, width, ch, t, y, x):
    return ch * timesteps * height * width + t * height * width + y * width + x


def test_synthetic_vae_encode_decode():
    vae = SyntheticVAE(8, 4, 16)
    shape = (1, 3, 16, 256, 256)
    frames = np.full(3 * 16 * 256 * 256, 0.5)

    latent, lat_shape = vae.encode(frames, shape)
    assert lat_shape == (1, 16, 4, 32, 32)
    assert latent.size == 16 * 4 * 32 * 32

    decoded, dec_shape = vae.decode(latent, lat_shape)
    assert dec_shape == (1, 3, 16, 256, 256)
    assert decoded.size == 3 * 16 * 256 * 256


def test_encode_preserves_spatial_structure():
    vae = SyntheticVAE(2, 2, 8)
    shape = (1, 3, 4, 4, 4)
    frames = build_patterned_frames(4, 4, 4)

    latent, lat_shape = vae.encode(frames, shape)
    assert lat_shape == (1, 8, 2, 2, 2)

    left = latent[latent_index(lat_shape[2], lat_shape[3], lat_shape[4], 0, 0, 0, 0)]
    right = latent[latent_index(lat_shape[2], lat_shape[3], lat_shape[4], 0, 0, 0, 1)]
    assert right > left


def test_decode_uses_latent_content():
    vae = SyntheticVAE(2, 2, 6)
    lat_shape = (1, 6, 2, 2, 2)
    latent = np.zeros(6 * 2 * 2 * 2)
    latent[latent_index(2, 2, 2, 0, 0, 0, 0)] = 1.0
    latent[latent_index(2, 2, 2, 1, 0, 0, 0)] = 0.2
    latent[latent_index(2, 2, 2, 2, 0, 0, 0)] = 0.1

    decoded, out_shape = vae.decode(latent, lat_shape)
    assert out_shape == (1, 3, 4, 4, 4)
    n = decoded.size
    assert decoded[0] > decoded[n // 3]
    assert decoded[0] > decoded[2 * n // 3]


def test_roundtrip_retains_block_pattern():
    vae = SyntheticVAE(2, 2, 9)
    shape = (1, 3, 4, 4, 4)
    frames = build_patterned_frames(4, 4, 4)

    latent, lat_shape = vae.encode(frames, shape)
    decoded, decoded_shape = vae.decode(latent, lat_shape)
    assert decoded_shape == shape

    volume = decoded.reshape(decoded_shape)
    half = decoded_shape[4] // 2
    left_mean = volume[..., :half].mean()
    right_mean = volume[..., half:].mean()
    assert right_mean > left_mean


def test_encode_of_constant_frames_keeps_source_channels():
    vae = SyntheticVAE(2, 1, 5)
    latent, lat_shape = vae.encode(np.full(3 * 2 * 4 * 4, 0.5), (1, 3, 2, 4, 4))
    volume = latent.reshape(lat_shape)
    assert np.allclose(volume[:, :3], 0.5)


def test_encode_short_clip_keeps_one_latent_frame():
    vae = SyntheticVAE(4, 4, 3)
    _, lat_shape = vae.encode(np.zeros(3 * 2 * 2 * 2), (1, 3, 2, 2, 2))
    assert lat_shape == (1, 3, 1, 1, 1)


def test_decode_output_is_clamped_to_unit_range():
    vae = SyntheticVAE(2, 2, 4)
    rng = np.random.default_rng(3)
    latent = rng.normal(scale=5.0, size=4 * 2 * 3 * 3)
    decoded, _ = vae.decode(latent, (1, 4, 2, 3, 3))
    assert decoded.min() >= 0.0
    assert decoded.max() <= 1.0


def test_decode_single_channel_gives_grey_frames():
    vae = SyntheticVAE(2, 1, 1)
    latent = np.linspace(0.1, 0.6, 4)
    decoded, shape = vae.decode(latent, (1, 1, 1, 2, 2))
    volume = decoded.reshape(shape)
    assert np.allclose(volume[:, 0], volume[:, 1])
    assert np.allclose(volume[:, 0], volume[:, 2])


def test_encode_rejects_zero_dimensions():
    with pytest.raises(VAEError, match="non-zero"):
        SyntheticVAE(2, 2, 4).encode([], (1, 3, 0, 4, 4))


def test_encode_rejects_zero_latent_channels():
    with pytest.raises(VAEError):
        SyntheticVAE(2, 2, 0).encode(np.zeros(3 * 16), (1, 3, 1, 4, 4))


def test_encode_rejects_wrong_length():
    with pytest.raises(VAEError, match="48 elements"):
        SyntheticVAE(2, 2, 4).encode(np.zeros(10), (1, 3, 1, 4, 4))


def test_decode_rejects_wrong_length():
    with pytest.raises(VAEError, match="expected 8 elements"):
        SyntheticVAE(2, 2, 4).decode(np.zeros(3), (1, 1, 2, 2, 2))


def test_decode_rejects_zero_dimensions():
    with pytest.raises(VAEError, match="non-zero"):
        SyntheticVAE(2, 2, 4).decode([], (1, 0, 1, 1, 1))


def test_downsample_factors_are_reported():
    vae = SyntheticVAE(8, 4, 16)
    assert (vae.spatial_downsample, vae.temporal_downsample, vae.latent_channels) == (8, 4, 16)


def test_vae_interface_cannot_be_instantiated():
    with pytest.raises(TypeError):
        VAE()