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

"""Compute features from speech signals"""

import abc
import warnings
from typing import Any, Mapping, Optional, Tuple, Type, Union

import numpy as np

from pydrobert.feats import config
from pydrobert.feats.alias import AliasedFactory
from pydrobert.feats.filters import (
    compute_dct_matrix,
    compute_lifter_coeffs,
    compute_window,
    MelFilterBank,
)
from pydrobert.feats.options import (
    as_options,
    FbankOptions,
    FrameOptions,
    MfccOptions,
    Options,
    SpectrogramOptions,
)
from pydrobert.feats.pre import Preemphasize, RemoveDC
from pydrobert.feats.util import (
    DegenerateInputWarning,
    InvalidConfigError,
    round_up_to_nearest_power_of_two,
)

__all__ = [
    "compute_feature",
    "compute_spectrum",
    "Computer",
    "FbankComputer",
    "frame_by_frame_calculation",
    "FrameSplitter",
    "MfccComputer",
    "RealFFTComputer",
    "SpectrogramComputer",
]


def _as_signal(signal: Any) -> np.ndarray:
    signal = np.asarray(signal)
    if signal.ndim != 1:
        raise ValueError(f"Expected a 1D signal; got shape {signal.shape}")
    return signal


def _flat_view(out: np.ndarray) -> np.ndarray:
    if not isinstance(out, np.ndarray):
        raise ValueError(f"Expected out to be a numpy array; got {type(out)}")
    if out.ndim == 1:
        return out
    if not out.flags.c_contiguous:
        raise ValueError("A multi-dimensional out must be C-contiguous")
    return out.reshape(-1)


# spectral transform


class RealFFTComputer(object):
    """Real FFTs of a fixed size, in Kaldi's packed layout

    For a real input ``x`` of length ``dim``, :func:`compute` returns a real array of
    the same length laid out as

    ::

        [Re X[0], Re X[dim/2], Re X[1], Im X[1], ..., Re X[dim/2-1], Im X[dim/2-1]]

    The DC and Nyquist bins are purely real, so this holds the entire nonredundant
    half of the spectrum. The backend is chosen on each call: :mod:`scipy.fftpack`
    if :obj:`pydrobert.feats.config.USE_FFTPACK` is set, :mod:`numpy.fft`
    otherwise.

    Parameters
    ----------
    dim
        The size of the transform. A power of two of at least 2

    Raises
    ------
    InvalidConfigError
        If `dim` is not a power of two of at least 2
    """

    def __init__(self, dim: int):
        dim = int(dim)
        if dim < 2 or dim & (dim - 1):
            raise InvalidConfigError(
                f"FFT size must be a power of two of at least 2; got {dim}"
            )
        self._dim = dim

    @property
    def dim(self) -> int:
        """The size of the transform"""
        return self._dim

    def compute(
        self, frame: np.ndarray, out: Optional[np.ndarray] = None
    ) -> np.ndarray:
        """Compute the packed real FFT of `frame`, optionally storing it in `out`"""
        frame = np.asarray(frame, dtype=np.float64)
        if frame.shape != (self._dim,):
            raise ValueError(
                f"Expected frame of shape ({self._dim},); got {frame.shape}"
            )
        if out is None:
            out = np.empty(self._dim, dtype=np.float64)
        if config.USE_FFTPACK:
            from scipy import fftpack

            # [y0, Re y1, Im y1, ..., Re y(n/2)]
            packed = fftpack.rfft(frame)
            out[0] = packed[0]
            out[1] = packed[-1]
            out[2:] = packed[1:-1]
        else:
            half_spect = np.fft.rfft(frame)
            out[0] = half_spect[0].real
            out[1] = half_spect[-1].real
            out[2::2] = half_spect[1:-1].real
            out[3::2] = half_spect[1:-1].imag
        return out


def compute_spectrum(
    realfft: np.ndarray,
    out: Optional[np.ndarray] = None,
    apply_pow: bool = True,
    apply_log: bool = False,
) -> np.ndarray:
    """Power or magnitude spectrum from a packed real FFT

    Parameters
    ----------
    realfft
        A packed real FFT of even length ``dim``, as returned by
        :func:`RealFFTComputer.compute`
    out
        Where to store the ``dim // 2 + 1`` results. Allocated if unset
    apply_pow
        Squared magnitudes if :obj:`True`, magnitudes otherwise
    apply_log
        Whether to take the natural log, after flooring values at
        :obj:`pydrobert.feats.config.LOG_FLOOR_VALUE`

    Returns
    -------
    out : np.ndarray
        The DC bin, the ``dim // 2 - 1`` interior bins, then the Nyquist bin
    """
    realfft = np.asarray(realfft, dtype=np.float64)
    dim = len(realfft)
    if dim < 2 or dim % 2:
        raise ValueError(f"Expected a packed real FFT of even length; got {dim}")
    half = dim // 2
    if out is None:
        out = np.empty(half + 1, dtype=np.float64)
    out[0] = realfft[0] * realfft[0]
    out[half] = realfft[1] * realfft[1]
    out[1:half] = realfft[2::2] * realfft[2::2] + realfft[3::2] * realfft[3::2]
    if not apply_pow:
        np.sqrt(out, out=out)
    if apply_log:
        np.maximum(out, config.LOG_FLOOR_VALUE, out=out)
        np.log(out, out=out)
    return out


# framing


class FrameSplitter(object):
    """Splits a signal into frames and prepares each one for a transform

    Frame ``t`` of a signal covers the samples ``signal[t * frame_shift:t *
    frame_shift + frame_length]``. No padding is added at either end: only frames
    lying entirely within the signal are produced, so a signal of ``N`` samples
    yields ``floor((N - frame_length) / frame_shift) + 1`` frames [povey2011]_.

    Before being handed off, each frame goes through

    1. Subtracting its mean, if ``frame_opts.remove_dc`` is set
    2. Recording its raw energy, the sum of squared samples
    3. Pre-emphasis, if ``frame_opts.preemph_coeff`` is nonzero (see
       :class:`pydrobert.feats.pre.Preemphasize`)
    4. Multiplying by the window

    The splitter supports streaming. The samples of a chunk which were not consumed
    by a complete frame are carried over and prefixed to the next chunk. Splitting a
    signal chunk by chunk thus produces the same frames as splitting it all at once.
    Chunks are committed by :func:`consume` (which :func:`frame` calls); the carried
    samples are cleared by :func:`reset`.

    Parameters
    ----------
    frame_opts
        A :class:`FrameOptions`, a mapping of its keyword arguments, or :obj:`None`
        for the defaults
    """

    def __init__(self, frame_opts: Union[FrameOptions, Mapping[str, Any], None] = None):
        frame_opts = as_options(FrameOptions, frame_opts)
        self._opts = frame_opts
        self._window = compute_window(frame_opts.frame_length, frame_opts.window_type)
        self._remove_dc = RemoveDC() if frame_opts.remove_dc else None
        if frame_opts.preemph_coeff:
            self._preemph = Preemphasize(frame_opts.preemph_coeff)
        else:
            self._preemph = None
        self._buf = np.empty(frame_opts.frame_length, dtype=np.float64)
        self._buf_len = 0
        self._started = False

    @property
    def frame_opts(self) -> FrameOptions:
        return self._opts

    @property
    def frame_length(self) -> int:
        """Number of samples per frame"""
        return self._opts.frame_length

    @property
    def frame_shift(self) -> int:
        """Number of samples between the starts of successive frames"""
        return self._opts.frame_shift

    @property
    def sample_rate(self) -> float:
        """Number of samples in a second of a target recording"""
        return self._opts.sample_rate

    @property
    def padding_length(self) -> int:
        """The smallest power of two at least `frame_length`, the FFT size"""
        return round_up_to_nearest_power_of_two(self._opts.frame_length)

    @property
    def window(self) -> Optional[np.ndarray]:
        """The window frames are multiplied by, or :obj:`None` if unwindowed"""
        return self._window

    @property
    def started(self) -> bool:
        """Whether a chunk has been consumed since construction or the last reset"""
        return self._started

    @property
    def num_carried(self) -> int:
        """The number of samples carried over from previous chunks"""
        return self._buf_len

    def reset(self) -> None:
        """Discard any carried samples, readying the splitter for a new signal"""
        self._buf_len = 0
        self._started = False

    def _num_frames(self, num_samples: int) -> int:
        return (
            num_samples + self._buf_len - self._opts.frame_length
        ) // self._opts.frame_shift + 1

    def num_frames(self, num_samples: int) -> int:
        """Number of frames available given the next `num_samples` samples

        Includes the carried samples. The result is not clamped: if fewer samples
        are available than fit in one frame, it is zero or negative and a
        :class:`DegenerateInputWarning` is issued.
        """
        return self._checked_num_frames(num_samples, 2)

    def _checked_num_frames(self, num_samples: int, stacklevel: int) -> int:
        # stacklevel is counted from the caller of this method
        num_frames = self._num_frames(num_samples)
        if num_frames <= 0:
            warnings.warn(
                f"{num_samples + self._buf_len} samples available; fewer than the "
                f"{self._opts.frame_length} needed for a frame",
                DegenerateInputWarning,
                stacklevel=stacklevel + 1,
            )
        return num_frames

    def frame_for_index(
        self, signal: np.ndarray, index: int, out: Optional[np.ndarray] = None
    ) -> Tuple[np.ndarray, float]:
        """Extract and prepare the `index`-th frame of `signal`

        Frames are counted from the start of the carried samples. This does not
        consume `signal`.

        Parameters
        ----------
        signal
            The next chunk of the signal
        index
            Which frame, less than ``num_frames(len(signal))``
        out
            An array of shape ``(frame_length,)`` to store the frame in

        Returns
        -------
        frame, raw_energy : np.ndarray, float
            The frame (`out`, if specified) and the sum of its squared samples
            after DC removal but before pre-emphasis or windowing

        Raises
        ------
        IndexError
            If `index` is out of range
        """
        signal = _as_signal(signal)
        frame_length, frame_shift = self._opts.frame_length, self._opts.frame_shift
        num_frames = self._num_frames(len(signal))
        if not (0 <= index < num_frames):
            raise IndexError(
                f"Frame index {index} out of range for {max(num_frames, 0)} frames"
            )
        if out is not None and out.shape != (frame_length,):
            raise ValueError(
                f"Expected out of shape ({frame_length},); got {out.shape}"
            )
        if out is not None and out.dtype == np.float64:
            frame = out
        else:
            frame = np.empty(frame_length, dtype=np.float64)
        start = index * frame_shift
        num_carried = max(0, self._buf_len - start)
        frame[:num_carried] = self._buf[start : start + num_carried]
        start = max(0, start - self._buf_len)
        frame[num_carried:] = signal[start : start + frame_length - num_carried]
        if self._remove_dc is not None:
            self._remove_dc.apply(frame, in_place=True)
        raw_energy = float(np.dot(frame, frame))
        if self._preemph is not None:
            self._preemph.apply(frame, in_place=True)
        if self._window is not None:
            frame *= self._window
        if out is not None and frame is not out:
            out[...] = frame
            frame = out
        return frame, raw_energy

    def consume(self, signal: np.ndarray) -> None:
        """Commit `signal` as processed, carrying over its unframed tail"""
        signal = _as_signal(signal)
        num_frames = max(0, self._num_frames(len(signal)))
        start = num_frames * self._opts.frame_shift
        keep = self._buf_len + len(signal) - start
        if start < self._buf_len:
            self._buf[:keep] = np.concatenate(
                [self._buf[start : self._buf_len], signal]
            )
        else:
            self._buf[:keep] = signal[start - self._buf_len :]
        self._buf_len = keep
        self._started = True

    def frame(
        self, signal: np.ndarray, out: np.ndarray, stride: Optional[int] = None
    ) -> int:
        """Split `signal` into frames, then consume it

        Parameters
        ----------
        signal
            The next chunk of the signal
        out
            A 1D array or a C-contiguous array, treated as flat. Frame ``t`` is
            written to ``out[t * stride:t * stride + frame_length]``
        stride
            Distance between the starts of successive frames in `out`. Defaults to
            `frame_length`

        Returns
        -------
        num_frames : int
            The number of frames written. If zero or negative, nothing was written

        Raises
        ------
        ValueError
            If `stride` is less than `frame_length` or `out` is too small
        """
        signal = _as_signal(signal)
        frame_length = self._opts.frame_length
        if stride is None:
            stride = frame_length
        if stride < frame_length:
            raise ValueError(
                f"stride ({stride}) must be at least the frame length "
                f"({frame_length})"
            )
        flat = _flat_view(out)
        num_frames = self._checked_num_frames(len(signal), 2)
        if num_frames > 0 and len(flat) < num_frames * stride:
            raise ValueError(
                f"out has {len(flat)} elements; {num_frames * stride} needed"
            )
        for t in range(num_frames):
            self.frame_for_index(
                signal, t, flat[t * stride : t * stride + frame_length]
            )
        self.consume(signal)
        return num_frames


# feature computers


class Computer(AliasedFactory):
    """Compute a fixed-length feature vector per frame of a signal

    A computer wraps a :class:`FrameSplitter` and inherits its framing and streaming
    behaviour. Features can be computed a chunk at a time

    >>> feats = []
    >>> while len(signal):
    ...     feats.append(computer.compute_chunk(signal[:chunk_size]))
    ...     signal = signal[chunk_size:]
    >>> computer.reset()

    Or all at once

    >>> feats = computer.compute_full(signal)

    Subclasses are constructed from an options object of type `options_class`, a
    mapping of its keyword arguments, or those keyword arguments directly. For
    example, these are equivalent

    >>> MfccComputer(MfccOptions(num_ceps=20))
    >>> MfccComputer({'num_ceps': 20})
    >>> MfccComputer(num_ceps=20)
    >>> Computer.from_alias('mfcc', num_ceps=20)
    """

    options_class: Type[Options] = Options
    """The type of options the computer is built from"""

    @classmethod
    def _options_from_args(
        cls, options: Union[Options, Mapping[str, Any], None], kwargs: dict
    ) -> Options:
        if kwargs:
            if options is not None:
                raise InvalidConfigError(
                    "Specify either an options object or keyword arguments, not both"
                )
            return cls.options_class(**kwargs)
        return as_options(cls.options_class, options)

    @property
    @abc.abstractmethod
    def options(self) -> Options:
        """The options the computer was built from"""
        pass

    @property
    @abc.abstractmethod
    def frame_splitter(self) -> FrameSplitter:
        """The splitter responsible for framing and streaming state"""
        pass

    @property
    @abc.abstractmethod
    def feature_dim(self) -> int:
        """Number of coefficients per frame"""
        pass

    @abc.abstractmethod
    def compute_frame(
        self, signal: np.ndarray, frame_index: int, out: np.ndarray
    ) -> float:
        """Compute the features of frame `frame_index` of `signal` into `out`

        Does not consume `signal`.

        Parameters
        ----------
        signal
            The next chunk of the signal
        frame_index
            Which frame, less than ``num_frames(len(signal))``
        out
            An array of shape ``(feature_dim,)``

        Returns
        -------
        raw_energy : float
            The sum of squares of the frame prior to pre-emphasis and windowing
        """
        pass

    @property
    def frame_length(self) -> int:
        """Number of samples which dictate a feature vector"""
        return self.frame_splitter.frame_length

    @property
    def frame_shift(self) -> int:
        """Number of samples absorbed between successive frame computations"""
        return self.frame_splitter.frame_shift

    @property
    def sample_rate(self) -> float:
        """Number of samples in a second of a target recording"""
        return self.frame_splitter.sample_rate

    @property
    def frame_length_ms(self) -> float:
        """Number of milliseconds of audio which dictate a feature vector"""
        return self.frame_length * 1000 / self.sample_rate

    @property
    def frame_shift_ms(self) -> float:
        """Number of milliseconds between successive frame computations"""
        return self.frame_shift * 1000 / self.sample_rate

    @property
    def started(self) -> bool:
        """Whether computations for a signal have started

        Becomes :obj:`True` after the first chunk is consumed. Becomes :obj:`False`
        after a call to :func:`reset`
        """
        return self.frame_splitter.started

    def num_frames(self, num_samples: int) -> int:
        """Number of frames the next `num_samples` samples complete

        See :func:`FrameSplitter.num_frames`
        """
        return self.frame_splitter._checked_num_frames(num_samples, 2)

    def consume(self, signal: np.ndarray) -> None:
        """Commit `signal` as processed, carrying over its unframed tail"""
        self.frame_splitter.consume(signal)

    def reset(self) -> None:
        """Forget any carried samples, readying the computer for a new signal"""
        self.frame_splitter.reset()

    def compute_chunk(self, chunk: np.ndarray) -> np.ndarray:
        """Compute the features of every frame completed by `chunk`

        Parameters
        ----------
        chunk
            A 1D array of the signal. Should directly follow any previously
            processed chunks

        Returns
        -------
        feats : np.ndarray
            Of shape ``(num_frames, feature_dim)``, where ``num_frames`` is
            nonnegative (possibly 0). Of the same data type as `chunk` if floating
            point, float64 otherwise
        """
        return self._compute_chunk(chunk, 2)

    def _compute_chunk(self, chunk: np.ndarray, stacklevel: int) -> np.ndarray:
        chunk = _as_signal(chunk)
        dtype = chunk.dtype if np.issubdtype(chunk.dtype, np.floating) else np.float64
        num_frames = self.frame_splitter._checked_num_frames(
            len(chunk), stacklevel + 1
        )
        num_frames = max(0, num_frames)
        feats = np.empty((num_frames, self.feature_dim), dtype=dtype)
        for t in range(num_frames):
            self.compute_frame(chunk, t, feats[t])
        self.consume(chunk)
        return feats

    def compute_full(self, signal: np.ndarray) -> np.ndarray:
        """Compute a full signal's worth of features, then reset

        Returns
        -------
        feats : np.ndarray
            Of shape ``(num_frames, feature_dim)``

        Raises
        ------
        ValueError
            If already started computing frames (``started=True``) and :func:`reset`
            has not been called
        """
        if self.started:
            raise ValueError("Already started computing frames")
        try:
            return self._compute_chunk(signal, 2)
        finally:
            self.reset()


class SpectrogramComputer(Computer):
    """Short-time (log) power or magnitude spectra

    Each prepared frame is zero-padded to the splitter's `padding_length` and
    transformed with a :class:`RealFFTComputer`. The spectrum has ``padding_length
    // 2 + 1`` bins, from DC to Nyquist. If ``use_log_raw_energy`` is set, the DC
    bin is replaced by the log of the frame's raw energy.

    Parameters
    ----------
    spectrogram_opts
        A :class:`SpectrogramOptions` or a mapping of its keyword arguments
    **kwargs
        Keyword arguments of :class:`SpectrogramOptions`, in lieu of
        `spectrogram_opts`
    """

    aliases = {"spectrogram", "spect"}  #:
    options_class = SpectrogramOptions

    def __init__(
        self,
        spectrogram_opts: Union[SpectrogramOptions, Mapping[str, Any], None] = None,
        **kwargs,
    ):
        opts = self._options_from_args(spectrogram_opts, kwargs)
        self._opts = opts
        self._splitter = FrameSplitter(opts.frame_opts)
        padding_length = self._splitter.padding_length
        self._fft = RealFFTComputer(padding_length)
        self._padded = np.zeros(padding_length, dtype=np.float64)
        self._fft_buf = np.empty(padding_length, dtype=np.float64)
        self._spect_buf = np.empty(padding_length // 2 + 1, dtype=np.float64)
        super().__init__()

    @property
    def options(self) -> SpectrogramOptions:
        return self._opts

    @property
    def frame_splitter(self) -> FrameSplitter:
        return self._splitter

    @property
    def padding_length(self) -> int:
        """The FFT size"""
        return self._splitter.padding_length

    @property
    def feature_dim(self) -> int:
        return len(self._spect_buf)

    def compute_frame(
        self, signal: np.ndarray, frame_index: int, out: np.ndarray
    ) -> float:
        frame_length = self._splitter.frame_length
        # samples past frame_length stay zero
        _, raw_energy = self._splitter.frame_for_index(
            signal, frame_index, self._padded[:frame_length]
        )
        self._fft.compute(self._padded, self._fft_buf)
        compute_spectrum(
            self._fft_buf, self._spect_buf, self._opts.apply_pow, self._opts.apply_log
        )
        if self._opts.use_log_raw_energy:
            self._spect_buf[0] = np.log(max(raw_energy, config.LOG_FLOOR_VALUE))
        out[...] = self._spect_buf
        return raw_energy


class FbankComputer(Computer):
    """(Log) mel filterbank energies

    The linear power (or magnitude) spectrum of each frame is weighted by each
    filter of a :class:`pydrobert.feats.filters.MelFilterBank` and summed. Filters
    are stored truncated to their nonzero region.

    Parameters
    ----------
    fbank_opts
        A :class:`FbankOptions` or a mapping of its keyword arguments
    **kwargs
        Keyword arguments of :class:`FbankOptions`, in lieu of `fbank_opts`

    Raises
    ------
    InvalidConfigError
        If the resolved frequency range of the filters is invalid
    """

    aliases = {"fbank"}  #:
    options_class = FbankOptions

    def __init__(
        self,
        fbank_opts: Union[FbankOptions, Mapping[str, Any], None] = None,
        **kwargs,
    ):
        opts = self._options_from_args(fbank_opts, kwargs)
        self._opts = opts
        self._spect = SpectrogramComputer(opts.spectrogram_opts)
        num_fft_bins = self._spect.feature_dim
        self._bank = MelFilterBank(
            opts.num_mel_bins,
            opts.lower_bound,
            opts.resolve_upper_bound(),
            opts.frame_opts.sample_rate,
        )
        self._filters = tuple(
            self._bank.get_truncated_response(filt_idx, num_fft_bins)
            for filt_idx in range(opts.num_mel_bins)
        )
        self._spect_buf = np.empty(num_fft_bins, dtype=np.float64)
        self._mel_buf = np.empty(opts.num_mel_bins, dtype=np.float64)
        super().__init__()

    @property
    def options(self) -> FbankOptions:
        return self._opts

    @property
    def frame_splitter(self) -> FrameSplitter:
        return self._spect.frame_splitter

    @property
    def bank(self) -> MelFilterBank:
        """The mel filter bank"""
        return self._bank

    @property
    def truncated_filters(self) -> Tuple[Tuple[int, np.ndarray], ...]:
        """Pairs ``(start_bin, weights)`` of each filter's nonzero region"""
        return self._filters

    @property
    def feature_dim(self) -> int:
        return self._opts.num_mel_bins

    def compute_frame(
        self, signal: np.ndarray, frame_index: int, out: np.ndarray
    ) -> float:
        raw_energy = self._spect.compute_frame(signal, frame_index, self._spect_buf)
        for filt_idx, (start, weights) in enumerate(self._filters):
            self._mel_buf[filt_idx] = np.dot(
                weights, self._spect_buf[start : start + len(weights)]
            )
        if self._opts.apply_log:
            np.maximum(self._mel_buf, config.LOG_FLOOR_VALUE, out=self._mel_buf)
            np.log(self._mel_buf, out=self._mel_buf)
        out[...] = self._mel_buf
        return raw_energy


class MfccComputer(Computer):
    """Mel-frequency cepstral coefficients

    The log mel energies of each frame are transformed with the first ``num_ceps``
    rows of an orthonormal DCT-II, then liftered [young]_. If ``use_energy`` is set,
    the zeroth coefficient is replaced by the log of the frame's raw energy.

    Parameters
    ----------
    mfcc_opts
        A :class:`MfccOptions` or a mapping of its keyword arguments
    **kwargs
        Keyword arguments of :class:`MfccOptions`, in lieu of `mfcc_opts`
    """

    aliases = {"mfcc"}  #:
    options_class = MfccOptions

    def __init__(
        self,
        mfcc_opts: Union[MfccOptions, Mapping[str, Any], None] = None,
        **kwargs,
    ):
        opts = self._options_from_args(mfcc_opts, kwargs)
        self._opts = opts
        self._fbank = FbankComputer(opts.fbank_opts)
        self._dct = compute_dct_matrix(opts.num_ceps, opts.fbank_opts.num_mel_bins)
        self._lifter = compute_lifter_coeffs(opts.num_ceps, opts.cepstral_lifter)
        self._mel_buf = np.empty(opts.fbank_opts.num_mel_bins, dtype=np.float64)
        self._ceps_buf = np.empty(opts.num_ceps, dtype=np.float64)
        super().__init__()

    @property
    def options(self) -> MfccOptions:
        return self._opts

    @property
    def frame_splitter(self) -> FrameSplitter:
        return self._fbank.frame_splitter

    @property
    def dct_matrix(self) -> np.ndarray:
        """The ``(num_ceps, num_mel_bins)`` DCT matrix"""
        return self._dct

    @property
    def lifter_coeffs(self) -> np.ndarray:
        """The ``num_ceps`` weights each cepstrum is multiplied by"""
        return self._lifter

    @property
    def feature_dim(self) -> int:
        return self._opts.num_ceps

    def compute_frame(
        self, signal: np.ndarray, frame_index: int, out: np.ndarray
    ) -> float:
        raw_energy = self._fbank.compute_frame(signal, frame_index, self._mel_buf)
        np.dot(self._dct, self._mel_buf, out=self._ceps_buf)
        if self._opts.cepstral_lifter:
            self._ceps_buf *= self._lifter
        if self._opts.use_energy:
            self._ceps_buf[0] = np.log(max(raw_energy, config.LOG_FLOOR_VALUE))
        out[...] = self._ceps_buf
        return raw_energy


# drivers


def compute_feature(
    computer: Computer,
    signal: np.ndarray,
    out: np.ndarray,
    stride: Optional[int] = None,
) -> int:
    """Compute the features of every frame completed by `signal` into `out`

    Frame ``t`` is written to ``out[t * stride:t * stride + feature_dim]`` (`out`
    treated as flat). Nothing outside the first ``num_frames * stride`` elements of
    `out` is touched. Afterwards, `signal` is consumed by `computer`, which is not
    reset.

    Parameters
    ----------
    computer
    signal
        The next chunk of the signal
    out
        A 1D array or a C-contiguous array
    stride
        Distance between the starts of successive feature vectors in `out`.
        Defaults to ``computer.feature_dim``

    Returns
    -------
    num_frames : int
        ``computer.num_frames(len(signal))``. If zero or negative, nothing was
        written

    Raises
    ------
    ValueError
        If `stride` is less than ``computer.feature_dim`` or `out` is too small
    """
    signal = _as_signal(signal)
    feature_dim = computer.feature_dim
    if stride is None:
        stride = feature_dim
    if stride < feature_dim:
        raise ValueError(
            f"stride ({stride}) must be at least the feature dimension "
            f"({feature_dim})"
        )
    flat = _flat_view(out)
    num_frames = computer.frame_splitter._checked_num_frames(len(signal), 2)
    if num_frames > 0 and len(flat) < num_frames * stride:
        raise ValueError(f"out has {len(flat)} elements; {num_frames * stride} needed")
    for t in range(num_frames):
        computer.compute_frame(signal, t, flat[t * stride : t * stride + feature_dim])
    computer.consume(signal)
    return num_frames


def frame_by_frame_calculation(
    computer: Computer, signal: np.ndarray, chunk_size: int = 2 ** 10
) -> np.ndarray:
    """Compute feature representation of entire signal iteratively

    This function constructs a feature matrix of a signal through successive calls
    to :func:`Computer.compute_chunk`, then resets `computer`. Its return value
    should be identical to that of calling ``computer.compute_full(signal)``.

    Parameters
    ----------
    computer
    signal
        A 1D array of the entire signal
    chunk_size
        The length of the signal buffer to process at a given time

    Returns
    -------
    feats : np.ndarray
        Of shape ``(num_frames, feature_dim)``

    Raises
    ------
    ValueError
        If already started computing frames (``computer.started == True``)
    """
    if computer.started:
        raise ValueError("Already started computing frames")
    if chunk_size < 1:
        raise ValueError(f"Expected a positive chunk size; got {chunk_size}")
    signal = _as_signal(signal)
    dtype = signal.dtype if np.issubdtype(signal.dtype, np.floating) else np.float64
    # warn once for the whole signal, not for each chunk short of a frame
    computer.frame_splitter._checked_num_frames(len(signal), 2)
    feats = [np.empty((0, computer.feature_dim), dtype=dtype)]
    try:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", DegenerateInputWarning)
            while len(signal):
                feats.append(computer.compute_chunk(signal[:chunk_size]))
                signal = signal[chunk_size:]
    finally:
        computer.reset()
    return np.concatenate(feats)
