import os
import warnings

from tempfile import mkdtemp
from shutil import rmtree
from zlib import adler32


import pytest
import numpy as np

from pydrobert.feats import config

warnings.simplefilter("error")
# # annoying scipy errors. Not mah fault!
warnings.filterwarnings("ignore", message="numpy.dtype size changed")
warnings.filterwarnings("ignore", message="numpy.ufunc size changed")
warnings.filterwarnings("ignore", category=ImportWarning)
warnings.filterwarnings("ignore", category=DeprecationWarning)


# fixtures
@pytest.fixture
def temp_dir():
    dir_name = mkdtemp()
    yield dir_name
    rmtree(dir_name)


@pytest.fixture
def config_file(temp_dir):
    return os.path.join(temp_dir, "feats.conf")


@pytest.fixture(params=[True, False], ids=["fftpack", "numpy"])
def fft_backend(request):
    # restore the backend after each test so the toggle doesn't leak
    use_fftpack = config.USE_FFTPACK
    if request.param:
        pytest.importorskip("scipy")
    config.USE_FFTPACK = request.param
    yield "fftpack" if request.param else "numpy"
    config.USE_FFTPACK = use_fftpack


def pytest_runtest_setup(item):
    # implicitly seeds all tests for the sake of reproducibility
    np.random.seed(abs(adler32(bytes(item.name, "utf-8"))))
