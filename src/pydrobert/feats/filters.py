# Copyright 2023 Sean Robertson

# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at

#     http://www.apache.org/licenses/LICENSE-2.0

# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Windows, mel filters, and the cepstral transform"""

import abc
import enum
from typing import Any, Mapping, Optional, Tuple, Union

import numpy as np

from pydrobert.feats.alias import AliasedFactory, alias_factory_subclass_from_arg
from pydrobert.feats.scales import ScalingFunction
from pydrobert.feats.util import InvalidConfigError

__all__ = [
    "BlackmanWindow",
    "compute_dct_matrix",
    "compute_lifter_coeffs",
    "compute_mel_filters",
    "compute_window",
    "HammingWindow",
    "HannWindow",
    "MelFilterBank",
    "PoveyWindow",
    "RectangularWindow",
    "string_to_window",
    "WindowFunction",
    "window_to_string",
    "WindowType",
]

# windows


class WindowType(enum.Enum):
    """The shape of the window applied to each frame

    The value of each member is its canonical name.
    """

    NONE = "none"
    RECTANGULAR = "rectangular"
    HAMMING = "hamming"
    HANNING = "hanning"
    POVEY = "povey"
    BLACKMAN = "blackman"


def window_to_string(window: WindowType) -> str:
    """Canonical name of a window type"""
    return WindowType(window).value


def string_to_window(window: str) -> WindowType:
    """Window type going by the canonical name `window`

    Raises
    ------
    InvalidConfigError
        If `window` is not one of the names in :class:`WindowType`
    """
    try:
        return WindowType(window)
    except ValueError:
        names = "', '".join(w.value for w in WindowType)
        raise InvalidConfigError(
            f"Expected window to be one of '{names}'; got '{window}'"
        ) from None


class WindowFunction(AliasedFactory):
    """A real, symmetric window sampled at integer offsets

    Subclasses evaluate the Kaldi [povey2011]_ closed forms at ``i = 0, ..., width -
    1`` with ``a = 2 pi / (width - 1)``. The windows are not normalized.
    """

    @abc.abstractmethod
    def get_impulse_response(self, width: int) -> np.ndarray:
        """Write the window into a float64 numpy array of fixed width"""
        pass


class RectangularWindow(WindowFunction):
    """A window of ones"""

    aliases = {"rectangular", "rect"}  #:

    def get_impulse_response(self, width: int) -> np.ndarray:
        return np.ones(width, dtype=np.float64)


class HammingWindow(WindowFunction):
    """``0.54 - 0.46 cos(a i)``

    See Also
    --------
    numpy.hamming
    """

    aliases = {"hamming"}  #:

    def get_impulse_response(self, width: int) -> np.ndarray:
        return np.hamming(width)


class HannWindow(WindowFunction):
    """``0.5 - 0.5 cos(a i)``

    See Also
    --------
    numpy.hanning
    """

    aliases = {"hanning", "hann"}  #:

    def get_impulse_response(self, width: int) -> np.ndarray:
        return np.hanning(width)


class PoveyWindow(WindowFunction):
    """Kaldi's default window, a Hann window raised to the power 0.85

    It looks like a Hamming window but goes to zero at the edges.
    """

    aliases = {"povey"}  #:

    def get_impulse_response(self, width: int) -> np.ndarray:
        return np.hanning(width) ** 0.85


class BlackmanWindow(WindowFunction):
    """``0.42 - 0.5 cos(a i) + 0.08 cos(2 a i)``

    See Also
    --------
    numpy.blackman
    """

    aliases = {"blackman"}  #:

    def get_impulse_response(self, width: int) -> np.ndarray:
        window = np.blackman(width)
        # numpy's closed form dips ~1e-17 below zero at the edges
        return np.maximum(window, 0.0, out=window)


def compute_window(
    window_size: int, window_type: Union[WindowType, str]
) -> Optional[np.ndarray]:
    """Table of `window_size` multipliers for `window_type`

    Returns :obj:`None` for :obj:`WindowType.NONE`, in which case frames are left as
    they are.
    """
    if isinstance(window_type, str):
        window_type = string_to_window(window_type)
    if window_type is WindowType.NONE:
        return None
    return WindowFunction.from_alias(window_type.value).get_impulse_response(
        window_size
    )


# mel filters


class MelFilterBank(object):
    """Filters triangular along the mel scale, as in Kaldi and HTK

    ``num_filts + 2`` vertices are placed uniformly along the scale of
    `scaling_function` between `low_hz` and `high_hz`. Filter ``k`` rises linearly (in
    scale, not Hertz) from 0 at vertex ``k`` to 1 at vertex ``k + 1``, then falls back
    to 0 at vertex ``k + 2``. A DFT bin lying exactly on an outer vertex gets zero
    weight [povey2011]_ [young]_.

    Filters are sampled on the DFT bins between 0 and the Nyquist, inclusive: for
    ``num_fft_bins`` bins, bin ``i`` lies at ``i * sampling_rate / (2 * (num_fft_bins
    - 1))`` Hertz.

    Parameters
    ----------
    num_filts
        The number of filters in the bank
    low_hz, high_hz
        The bottommost and topmost edge of the filters, respectively. `high_hz`
        defaults to the Nyquist
    sampling_rate
        The sampling rate (cycles/sec) of the target recordings
    scaling_function
        Dictates the layout of the filters. Can be a :class:`ScalingFunction` or
        something compatible with :func:`alias_factory_subclass_from_arg`

    Raises
    ------
    InvalidConfigError
        If `low_hz` is negative, `high_hz` is not above `low_hz`, or `high_hz` is
        above the Nyquist
    """

    def __init__(
        self,
        num_filts: int = 23,
        low_hz: float = 20.0,
        high_hz: Optional[float] = None,
        sampling_rate: float = 16000,
        scaling_function: Union[ScalingFunction, str, Mapping[str, Any]] = "mel",
    ):
        scaling_function = alias_factory_subclass_from_arg(
            ScalingFunction, scaling_function
        )
        nyquist = 0.5 * sampling_rate
        if high_hz is None:
            high_hz = nyquist
        if num_filts < 1:
            raise InvalidConfigError(f"Expected at least one filter; got {num_filts}")
        if low_hz < 0 or high_hz <= low_hz or high_hz > nyquist:
            raise InvalidConfigError(
                f"Invalid frequency range: ({low_hz:.2f}, {high_hz:.2f}) for a "
                f"Nyquist of {nyquist:.2f}"
            )
        self._rate = sampling_rate
        self._scaling_function = scaling_function
        # converted as an array, like the bins in get_frequency_response, so that a
        # bin on an outer edge maps to exactly the outer vertex
        low_scale, high_scale = scaling_function.hertz_to_scale(
            np.array([low_hz, high_hz], dtype=np.float64)
        )
        self._vertices = np.linspace(low_scale, high_scale, num_filts + 2)

    @property
    def num_filts(self) -> int:
        """Number of filters in the bank"""
        return len(self._vertices) - 2

    @property
    def sampling_rate(self) -> float:
        """Number of samples in a second of a target recording"""
        return self._rate

    @property
    def centers_hz(self) -> Tuple[float, ...]:
        """The point of maximum gain in each filter's frequency response, in Hz"""
        return tuple(
            float(self._scaling_function.scale_to_hertz(v))
            for v in self._vertices[1:-1]
        )

    @property
    def supports_hz(self) -> Tuple[Tuple[float, float], ...]:
        """Pairs of the outer vertices of each filter, in Hz

        The frequency response is zero at and outside these boundaries.
        """
        vertices_hz = self._scaling_function.scale_to_hertz(self._vertices)
        return tuple(
            (float(low), float(high))
            for low, high in zip(vertices_hz[:-2], vertices_hz[2:])
        )

    def get_frequency_response(self, filt_idx: int, num_fft_bins: int) -> np.ndarray:
        """Weights of filter `filt_idx` over the DFT bins between 0 and the Nyquist

        Parameters
        ----------
        filt_idx
            The index of the filter to generate. Less than `num_filts`
        num_fft_bins
            The number of bins between 0 and the Nyquist, inclusive, i.e. ``dft_size
            // 2 + 1``

        Returns
        -------
        res : np.ndarray
            A float64 array of length `num_fft_bins`
        """
        if num_fft_bins < 2:
            raise ValueError(f"Expected at least 2 fft bins; got {num_fft_bins}")
        left, mid, right = self._vertices[filt_idx : filt_idx + 3]
        bin_hz = self._rate / (2 * (num_fft_bins - 1))
        scale = self._scaling_function.hertz_to_scale(
            bin_hz * np.arange(num_fft_bins, dtype=np.float64)
        )
        res = np.zeros(num_fft_bins, dtype=np.float64)
        rising = (scale > left) & (scale <= mid)
        falling = (scale > mid) & (scale < right)
        res[rising] = (scale[rising] - left) / (mid - left)
        res[falling] = (right - scale[falling]) / (right - mid)
        return res

    def get_truncated_response(
        self, filt_idx: int, num_fft_bins: int
    ) -> Tuple[int, np.ndarray]:
        """Get the nonzero region of a filter's frequency response

        Returns a pair ``(bin_idx, buf)`` such that the full response can be recovered
        by

        >>> full = numpy.zeros(num_fft_bins)
        >>> full[bin_idx:bin_idx + len(buf)] = buf

        `buf` is empty when no bin lands strictly inside the filter.
        """
        full = self.get_frequency_response(filt_idx, num_fft_bins)
        nonzero = np.flatnonzero(full)
        if not len(nonzero):
            return 0, full[:0]
        return int(nonzero[0]), full[nonzero[0] : nonzero[-1] + 1]


def compute_mel_filters(
    num_fft_bins: int,
    num_mel_bins: int,
    sample_rate: float,
    lower_bound: float,
    upper_bound: float,
) -> np.ndarray:
    """Dense matrix of mel filter weights

    Returns
    -------
    weights : np.ndarray
        Of shape ``(num_mel_bins, num_fft_bins)``. Row ``k`` is
        ``MelFilterBank(num_mel_bins, lower_bound, upper_bound,
        sample_rate).get_frequency_response(k, num_fft_bins)``

    Raises
    ------
    InvalidConfigError
        On an invalid frequency range
    """
    bank = MelFilterBank(num_mel_bins, lower_bound, upper_bound, sample_rate)
    return np.stack(
        [bank.get_frequency_response(k, num_fft_bins) for k in range(num_mel_bins)]
    )


# cepstra


def compute_dct_matrix(num_rows: int, num_cols: int) -> np.ndarray:
    r"""The first `num_rows` rows of an orthonormal DCT-II of size `num_cols`

    .. math::

        D[k, n] = s_k \cos\left(\frac{\pi}{N}\left(n + \frac{1}{2}\right)k\right)

    where :math:`N` is `num_cols`, :math:`s_0 = \sqrt{1/N}` and :math:`s_k =
    \sqrt{2/N}` otherwise.
    """
    k = np.arange(num_rows, dtype=np.float64)[:, None]
    n = np.arange(num_cols, dtype=np.float64)[None, :]
    dct_matrix = np.cos(np.pi / num_cols * (n + 0.5) * k)
    dct_matrix[:1] *= np.sqrt(1.0 / num_cols)
    dct_matrix[1:] *= np.sqrt(2.0 / num_cols)
    return dct_matrix


def compute_lifter_coeffs(num_ceps: int, cepstral_lifter: float) -> np.ndarray:
    r"""Sinusoidal liftering weights for cepstral coefficients

    .. math:: l_i = 1 + \frac{L}{2} \sin\left(\frac{\pi i}{L}\right)

    When `cepstral_lifter` (:math:`L`) is zero, liftering is disabled and the weights
    are all one.
    """
    if not cepstral_lifter:
        return np.ones(num_ceps, dtype=np.float64)
    i = np.arange(num_ceps, dtype=np.float64)
    return 1.0 + 0.5 * cepstral_lifter * np.sin(np.pi * i / cepstral_lifter)
