import numpy as np
import pytest

from pydrobert.feats import scales


@pytest.fixture(
    params=[
        scales.MelScaling(),
        scales.ScalingFunction.from_alias("mel"),
    ],
    ids=[
        "mel",
        "mel_alias",
    ],
    scope="module",
)
def scaling_function(request):
    return request.param


def test_scales_invertible(scaling_function):
    for hertz in range(20, 8000):
        scale = scaling_function.hertz_to_scale(hertz)
        assert np.isclose(hertz, scaling_function.scale_to_hertz(scale)), (
            "Inverse not equal to orig for {} at {}".format(
                scaling_function,
                hertz,
            )
        )


def test_scales_vectorize(scaling_function):
    hertz = np.linspace(0, 8000, 100)
    scale = scaling_function.hertz_to_scale(hertz)
    assert scale.shape == hertz.shape
    assert np.all(np.diff(scale) > 0)
    assert np.allclose(scaling_function.scale_to_hertz(scale), hertz)


def test_mel_known_values():
    mel = scales.MelScaling()
    assert mel.hertz_to_scale(0) == 0
    assert np.isclose(mel.hertz_to_scale(700), 1127 * np.log(2))
    # about 1000 mel at 1000 Hz
    assert np.isclose(mel.hertz_to_scale(1000), 1000, atol=1)
