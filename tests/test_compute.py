import warnings

import numpy as np
import pytest

import pydrobert.feats.compute as compute

from pydrobert.feats import config
from pydrobert.feats.filters import compute_dct_matrix, compute_window
from pydrobert.feats.options import FrameOptions
from pydrobert.feats.util import DegenerateInputWarning, InvalidConfigError


@pytest.fixture
def no_degenerate_warnings():
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", DegenerateInputWarning)
        yield


@pytest.fixture(
    params=[
        lambda: compute.SpectrogramComputer(),
        lambda: compute.SpectrogramComputer(
            apply_pow=False,
            apply_log=False,
            use_log_raw_energy=False,
            frame_opts={"frame_length": 256, "frame_shift": 100, "window_type": "none"},
        ),
        lambda: compute.FbankComputer(),
        lambda: compute.FbankComputer(
            num_mel_bins=40,
            lower_bound=64,
            upper_bound=-400,
            apply_log=False,
            frame_opts={"window_type": "povey", "remove_dc": False},
        ),
        lambda: compute.MfccComputer(),
        lambda: compute.Computer.from_alias(
            "mfcc",
            num_ceps=20,
            use_energy=False,
            cepstral_lifter=0,
            fbank_opts={
                "num_mel_bins": 30,
                "frame_opts": {
                    "frame_length": 200,
                    "frame_shift": 200,
                    "sample_rate": 8000,
                    "preemph_coeff": 0,
                    "window_type": "blackman",
                },
            },
        ),
    ],
    ids=[
        "spect_default",
        "spect_mag",
        "fbank_default",
        "fbank_povey",
        "mfcc_default",
        "mfcc_no_energy",
    ],
)
def computer(request):
    return request.param()


@pytest.fixture(
    params=[
        0,
        1,
        399,
        400,
        2 ** 10,
        4000,
    ],
    ids=[
        "empty buffer",
        "length 1 buffer",
        "short buffer",
        "one frame buffer",
        "medium buffer",
        "large buffer",
    ],
    scope="module",
)
def buff(request):
    b = np.random.random(request.param) * 2 - 1
    b.flags.writeable = False
    return b


def _reference_frames(signal, frame_opts):
    signal = np.asarray(signal, dtype=np.float64)
    fl, shift = frame_opts.frame_length, frame_opts.frame_shift
    num_frames = (len(signal) - fl) // shift + 1
    frames = np.stack([signal[t * shift : t * shift + fl] for t in range(num_frames)])
    if frame_opts.remove_dc:
        frames -= frames.mean(1, keepdims=True)
    energy = (frames ** 2).sum(1)
    coeff = frame_opts.preemph_coeff
    frames = np.concatenate(
        [frames[:, :1] * (1 - coeff), frames[:, 1:] - coeff * frames[:, :-1]], 1
    )
    window = compute_window(fl, frame_opts.window_type)
    if window is not None:
        frames *= window
    return frames, energy


def _reference_mel_banks(num_bins, padding_length, sample_rate, low, high):
    # Kaldi's MelBanks, bin by bin
    mel = lambda f: 1127.0 * np.log(1.0 + f / 700.0)  # noqa: E731
    mel_low, mel_high = mel(low), mel(high)
    delta = (mel_high - mel_low) / (num_bins + 1)
    banks = np.zeros((num_bins, padding_length // 2 + 1))
    for b in range(num_bins):
        left = mel_low + b * delta
        center, right = left + delta, left + 2 * delta
        for i in range(padding_length // 2):
            m = mel(i * sample_rate / padding_length)
            if left < m < right:
                if m <= center:
                    banks[b, i] = (m - left) / (center - left)
                else:
                    banks[b, i] = (right - m) / (right - center)
    return banks


def _reference_feats(computer, signal):
    frame_opts = computer.frame_splitter.frame_opts
    frames, energy = _reference_frames(signal, frame_opts)
    padding_length = computer.frame_splitter.padding_length
    spect = np.abs(np.fft.rfft(frames, n=padding_length)) ** 2
    opts = computer.options
    if isinstance(computer, compute.SpectrogramComputer):
        if not opts.apply_pow:
            spect **= 0.5
        if opts.apply_log:
            spect = np.log(np.maximum(spect, config.LOG_FLOOR_VALUE))
        if opts.use_log_raw_energy:
            spect[:, 0] = np.log(np.maximum(energy, config.LOG_FLOOR_VALUE))
        return spect
    if isinstance(computer, compute.FbankComputer):
        fbank_opts = opts
    else:
        fbank_opts = opts.fbank_opts
    if not fbank_opts.apply_pow:
        spect **= 0.5
    banks = _reference_mel_banks(
        fbank_opts.num_mel_bins,
        padding_length,
        frame_opts.sample_rate,
        fbank_opts.lower_bound,
        fbank_opts.resolve_upper_bound(),
    )
    mel = spect @ banks.T
    if fbank_opts.apply_log:
        mel = np.log(np.maximum(mel, config.LOG_FLOOR_VALUE))
    if isinstance(computer, compute.FbankComputer):
        return mel
    N = fbank_opts.num_mel_bins
    n = np.arange(N)
    ceps = np.stack(
        [
            np.sqrt((1 if k else 0.5) * 2 / N)
            * (mel * np.cos(np.pi * k * (2 * n + 1) / (2 * N))).sum(1)
            for k in range(opts.num_ceps)
        ],
        1,
    )
    if opts.cepstral_lifter:
        L = opts.cepstral_lifter
        ceps *= 1 + 0.5 * L * np.sin(np.pi * np.arange(opts.num_ceps) / L)
    if opts.use_energy:
        ceps[:, 0] = np.log(np.maximum(energy, config.LOG_FLOOR_VALUE))
    return ceps


# framing


def test_num_frames_closed_form():
    splitter = compute.FrameSplitter()
    assert splitter.padding_length == 512
    assert splitter.num_frames(2000) == 11
    assert splitter.num_frames(400) == 1
    assert splitter.num_frames(559) == 1
    assert splitter.num_frames(560) == 2


def test_num_frames_degenerate_warns():
    splitter = compute.FrameSplitter()
    with pytest.warns(DegenerateInputWarning):
        assert splitter.num_frames(399) == 0
    with pytest.warns(DegenerateInputWarning):
        # floor((100 - 400) / 160) + 1
        assert splitter.num_frames(100) == -1
    with pytest.warns(DegenerateInputWarning):
        assert splitter.num_frames(0) == -2


def test_split_at_500_matches_whole(no_degenerate_warnings):
    signal = np.random.randn(2000)
    splitter = compute.FrameSplitter()
    whole = np.empty((11, 400))
    assert splitter.frame(signal, whole) == 11
    splitter.reset()
    first, second = np.empty((1, 400)), np.empty((10, 400))
    assert splitter.frame(signal[:500], first) == 1
    assert splitter.num_carried == 500 - 160
    assert splitter.frame(signal[500:], second) == 10
    assert np.allclose(whole, np.concatenate([first, second]))


def test_frame_matches_reference():
    frame_opts = FrameOptions(window_type="povey")
    signal = np.random.randn(3000)
    splitter = compute.FrameSplitter(frame_opts)
    exp_frames, exp_energy = _reference_frames(signal, frame_opts)
    act_frames = np.empty_like(exp_frames)
    assert splitter.frame(signal, act_frames) == len(exp_frames)
    assert np.allclose(exp_frames, act_frames)
    splitter.reset()
    for t, exp_e in enumerate(exp_energy):
        frame, act_e = splitter.frame_for_index(signal, t)
        assert np.allclose(frame, exp_frames[t])
        assert np.isclose(act_e, exp_e)


def test_every_split_point_matches_whole(no_degenerate_warnings):
    frame_opts = FrameOptions(frame_length=25, frame_shift=10, sample_rate=1000)
    signal = np.random.randn(200)
    splitter = compute.FrameSplitter(frame_opts)
    whole = np.empty((splitter.num_frames(len(signal)), 25))
    splitter.frame(signal, whole)
    splitter.reset()
    for split in range(len(signal) + 1):
        left = np.full((max(0, splitter.num_frames(split)), 25), np.nan)
        splitter.frame(signal[:split], left)
        right = np.full((max(0, splitter.num_frames(len(signal) - split)), 25), np.nan)
        splitter.frame(signal[split:], right)
        splitter.reset()
        assert np.array_equal(whole, np.concatenate([left, right])), split


def test_random_chunks_match_whole(no_degenerate_warnings):
    signal = np.random.randn(5000)
    splitter = compute.FrameSplitter(FrameOptions(window_type="blackman"))
    whole = np.empty((splitter.num_frames(len(signal)), 400))
    splitter.frame(signal, whole)
    splitter.reset()
    chunks = []
    while len(signal):
        next_len = np.random.randint(len(signal) + 1)
        chunk = np.empty((max(0, splitter.num_frames(next_len)), 400))
        splitter.frame(signal[:next_len], chunk)
        chunks.append(chunk)
        signal = signal[next_len:]
    assert np.array_equal(whole, np.concatenate(chunks))


def test_carry_stays_below_frame_length(no_degenerate_warnings):
    splitter = compute.FrameSplitter()
    assert not splitter.started
    for chunk_len in (1, 159, 160, 399, 400, 401, 1000, 0):
        splitter.consume(np.zeros(chunk_len))
        assert splitter.num_carried < splitter.frame_length
        assert splitter.started
    splitter.reset()
    assert not splitter.started
    assert splitter.num_carried == 0


def test_frame_strides():
    splitter = compute.FrameSplitter(FrameOptions(frame_length=20, frame_shift=10))
    signal = np.random.randn(100)
    out = np.full(9 * 25 + 7, np.nan)
    assert splitter.frame(signal, out, stride=25) == 9
    frames = out[: 9 * 25].reshape(9, 25)
    assert not np.any(np.isnan(frames[:, :20]))
    assert np.all(np.isnan(frames[:, 20:]))
    assert np.all(np.isnan(out[9 * 25 :]))


def test_frame_bad_args():
    splitter = compute.FrameSplitter(FrameOptions(frame_length=20, frame_shift=10))
    signal = np.random.randn(100)
    with pytest.raises(ValueError, match="stride"):
        splitter.frame(signal, np.empty(9 * 20), stride=19)
    with pytest.raises(ValueError):
        splitter.frame(signal, np.empty(9 * 20 - 1))
    with pytest.raises(ValueError, match="contiguous"):
        splitter.frame(signal, np.empty((9, 40))[:, ::2])
    assert not splitter.started
    with pytest.raises(IndexError):
        splitter.frame_for_index(signal, 9)
    with pytest.raises(IndexError):
        splitter.frame_for_index(signal, -1)


def test_frame_length_one_fails_at_fft():
    splitter = compute.FrameSplitter(FrameOptions(frame_length=1, frame_shift=1))
    assert splitter.padding_length == 1
    with pytest.raises(InvalidConfigError):
        compute.SpectrogramComputer(frame_opts={"frame_length": 1, "frame_shift": 1})


# spectral transform


@pytest.mark.parametrize("dim", [2, 4, 512])
def test_real_fft_packing(dim, fft_backend):
    x = np.random.randn(dim)
    act = compute.RealFFTComputer(dim).compute(x)
    exp = np.fft.rfft(x)
    assert act.shape == (dim,)
    assert np.isclose(act[0], exp[0].real)
    assert np.isclose(act[1], exp[-1].real)
    assert np.allclose(act[2::2], exp[1:-1].real)
    assert np.allclose(act[3::2], exp[1:-1].imag)


@pytest.mark.parametrize("dim", [0, 1, 3, 400])
def test_real_fft_bad_dim(dim):
    with pytest.raises(InvalidConfigError):
        compute.RealFFTComputer(dim)


def test_compute_spectrum():
    x = np.random.randn(64)
    realfft = compute.RealFFTComputer(64).compute(x)
    exp = np.abs(np.fft.rfft(x))
    assert np.allclose(compute.compute_spectrum(realfft, apply_pow=False), exp)
    assert np.allclose(compute.compute_spectrum(realfft), exp ** 2)
    out = np.empty(33)
    act = compute.compute_spectrum(realfft, out, apply_log=True)
    assert act is out
    assert np.allclose(out, np.log(np.maximum(exp ** 2, config.LOG_FLOOR_VALUE)))
    assert np.allclose(
        compute.compute_spectrum(np.zeros(8), apply_log=True),
        np.log(config.LOG_FLOOR_VALUE),
    )


def test_sine_peaks_at_bin():
    computer = compute.SpectrogramComputer(apply_log=False, use_log_raw_energy=False)
    k = 50
    freq = k * computer.sample_rate / computer.padding_length
    t = np.arange(4000) / computer.sample_rate
    signal = np.sin(2 * np.pi * freq * t)
    feats = computer.compute_full(signal)
    assert feats.shape[1] == computer.padding_length // 2 + 1 == 257
    assert np.all(np.argmax(feats, 1) == k)


# feature computers


def test_framewise_matches_full(computer, buff, no_degenerate_warnings):
    feats_full = computer.compute_full(buff)
    feats_framewise = compute.frame_by_frame_calculation(computer, buff)
    assert feats_full.shape == feats_framewise.shape
    assert np.allclose(feats_full, feats_framewise), (
        feats_full.shape[0],
        np.where(np.logical_not(np.isclose(feats_full, feats_framewise)))[0],
    )


def test_chunk_sizes_dont_matter_to_result(computer, buff, no_degenerate_warnings):
    feats = compute.frame_by_frame_calculation(computer, buff)
    feats_chunks = []
    while len(buff):
        next_len = np.random.randint(len(buff) + 1)
        feats_chunks.append(computer.compute_chunk(buff[:next_len]))
        buff = buff[next_len:]
    computer.reset()
    feats_chunks = np.concatenate([np.empty((0, computer.feature_dim))] + feats_chunks)
    assert np.allclose(feats, feats_chunks), (
        feats.shape[0],
        np.where(np.logical_not(np.isclose(feats, feats_chunks))),
    )


def test_every_split_point_computer(computer, no_degenerate_warnings):
    signal = np.random.randn(computer.frame_length + 3 * computer.frame_shift + 7)
    feats = computer.compute_full(signal)
    assert len(feats) == 4
    for split in range(0, len(signal) + 1, 3):
        left = computer.compute_chunk(signal[:split])
        right = computer.compute_chunk(signal[split:])
        computer.reset()
        assert np.allclose(feats, np.concatenate([left, right])), split


def test_zero_samples_generate_zero_features(computer, no_degenerate_warnings):
    assert computer.compute_full(np.empty(0)).shape == (0, computer.feature_dim)
    assert computer.compute_chunk(np.empty(0)).shape == (0, computer.feature_dim)


def test_short_signal_warns(computer):
    with pytest.warns(DegenerateInputWarning):
        feats = computer.compute_full(np.random.randn(computer.frame_length - 1))
    assert feats.shape == (0, computer.feature_dim)
    with pytest.warns(DegenerateInputWarning):
        feats = compute.frame_by_frame_calculation(computer, np.empty(0))
    assert feats.shape == (0, computer.feature_dim)


def test_started_makes_sense(computer, no_degenerate_warnings):
    assert not computer.started
    computer.compute_chunk(np.empty(1))
    assert computer.started
    with pytest.raises(ValueError):
        computer.compute_full(np.empty(1000))
    with pytest.raises(ValueError):
        compute.frame_by_frame_calculation(computer, np.empty(1000))
    computer.reset()
    assert not computer.started
    computer.compute_full(np.random.randn(1000))
    assert not computer.started


def test_repeated_calls_generate_same_results(computer, buff, no_degenerate_warnings):
    assert np.allclose(computer.compute_full(buff), computer.compute_full(buff))
    assert np.allclose(
        compute.frame_by_frame_calculation(computer, buff),
        compute.frame_by_frame_calculation(computer, buff),
    )


def test_matches_reference(computer):
    signal = np.random.randn(4321)
    exp = _reference_feats(computer, signal)
    act = computer.compute_full(signal)
    assert exp.shape == act.shape
    assert np.allclose(exp, act, atol=1e-6), np.abs(exp - act).max()


def test_computations_same_between_backends(computer, fft_backend):
    pytest.importorskip("scipy")
    signal = np.random.randn(3000)
    feats = computer.compute_full(signal)
    config.USE_FFTPACK = fft_backend != "fftpack"
    other_feats = computer.compute_full(signal)
    assert np.allclose(feats, other_feats)


def test_dtypes(computer):
    signal = np.random.randn(2000)
    assert computer.compute_full(signal).dtype == np.float64
    assert computer.compute_full(signal.astype(np.float32)).dtype == np.float32
    int_signal = (signal * 1000).astype(np.int16)
    feats = computer.compute_full(int_signal)
    assert feats.dtype == np.float64
    assert np.allclose(feats, computer.compute_full(int_signal.astype(np.float64)))


def test_mfcc_energy_and_lifter():
    signal = np.random.randn(3000)
    fbank = compute.FbankComputer()
    plain = compute.MfccComputer(use_energy=False, cepstral_lifter=0)
    assert np.array_equal(plain.lifter_coeffs, np.ones(13))
    log_mel = fbank.compute_full(signal)
    assert np.allclose(
        plain.compute_full(signal), log_mel @ compute_dct_matrix(13, 23).T
    )
    energy = compute.MfccComputer(cepstral_lifter=0)
    _, raw_energy = _reference_frames(signal, energy.frame_splitter.frame_opts)
    feats = energy.compute_full(signal)
    assert np.allclose(feats[:, 0], np.log(raw_energy))
    assert np.allclose(feats[:, 1:], plain.compute_full(signal)[:, 1:])
    liftered = compute.MfccComputer(use_energy=False)
    assert np.allclose(
        liftered.compute_full(signal),
        plain.compute_full(signal) * liftered.lifter_coeffs,
    )
    assert liftered.dct_matrix.shape == (13, 23)


def test_fbank_filters_are_truncated():
    computer = compute.FbankComputer()
    assert len(computer.truncated_filters) == 23
    assert computer.bank.num_filts == 23
    for start, weights in computer.truncated_filters:
        assert start > 0
        assert 0 < len(weights) < computer.frame_splitter.padding_length // 2 + 1


def test_fbank_invalid_range():
    with pytest.raises(InvalidConfigError):
        compute.FbankComputer(lower_bound=8000)
    with pytest.raises(InvalidConfigError):
        compute.FbankComputer(upper_bound=-9000)
    with pytest.raises(InvalidConfigError):
        compute.FbankComputer(upper_bound=9000)


def test_computer_construction():
    opts = compute.MfccComputer.options_class(num_ceps=20)
    for computer in (
        compute.MfccComputer(opts),
        compute.MfccComputer({"num_ceps": 20}),
        compute.MfccComputer(num_ceps=20),
        compute.Computer.from_alias("mfcc", num_ceps=20),
    ):
        assert computer.options == opts
        assert computer.feature_dim == 20
    with pytest.raises(InvalidConfigError):
        compute.MfccComputer(opts, num_ceps=13)
    assert isinstance(compute.Computer.from_alias("spect"), compute.SpectrogramComputer)
    computer = compute.FbankComputer()
    assert computer.frame_length_ms == 25
    assert computer.frame_shift_ms == 10
    assert computer.sample_rate == 16000


# pipeline driver


def test_compute_feature_bounds(computer):
    signal = np.random.randn(3000)
    exp = computer.compute_full(signal)
    dim = computer.feature_dim
    stride = dim + 3
    rows = len(exp)
    out = np.full(rows * stride + 11, np.nan)
    assert compute.compute_feature(computer, signal, out, stride) == rows
    assert computer.started
    computer.reset()
    act = out[: rows * stride].reshape(rows, stride)
    assert np.allclose(act[:, :dim], exp)
    assert np.all(np.isnan(act[:, dim:]))
    assert np.all(np.isnan(out[rows * stride :]))


def test_compute_feature_2d_out(computer):
    signal = np.random.randn(2000)
    exp = computer.compute_full(signal)
    out = np.empty_like(exp)
    assert compute.compute_feature(computer, signal, out) == len(exp)
    assert np.allclose(out, exp)


def test_compute_feature_streams(computer, no_degenerate_warnings):
    signal = np.random.randn(3000)
    exp = computer.compute_full(signal)
    out = np.empty_like(exp)
    written = 0
    for chunk in np.array_split(signal, 7):
        num_frames = compute.compute_feature(computer, chunk, out[written:])
        written += max(0, num_frames)
    computer.reset()
    assert written == len(exp)
    assert np.allclose(out, exp)


def test_compute_feature_degenerate(computer):
    out = np.full(10, np.nan)
    with pytest.warns(DegenerateInputWarning):
        num_frames = compute.compute_feature(computer, np.zeros(10), out)
    assert num_frames <= 0
    assert np.all(np.isnan(out))
    # consumed, not reset
    assert computer.started


def test_compute_feature_bad_args(computer):
    signal = np.random.randn(2000)
    rows = computer.num_frames(len(signal))
    dim = computer.feature_dim
    with pytest.raises(ValueError, match="stride"):
        compute.compute_feature(computer, signal, np.empty(rows * dim), dim - 1)
    with pytest.raises(ValueError):
        compute.compute_feature(computer, signal, np.empty(rows * dim - 1))
    with pytest.raises(ValueError, match="contiguous"):
        compute.compute_feature(computer, signal, np.empty((rows, 2 * dim))[:, ::2])
    assert not computer.started


@pytest.mark.parametrize(
    "call",
    [
        lambda: compute.FrameSplitter().num_frames(100),
        lambda: compute.FrameSplitter().frame(np.zeros(100), np.empty(0)),
        lambda: compute.FbankComputer().num_frames(100),
        lambda: compute.FbankComputer().compute_chunk(np.zeros(100)),
        lambda: compute.MfccComputer().compute_full(np.zeros(100)),
        lambda: compute.compute_feature(
            compute.SpectrogramComputer(), np.zeros(100), np.empty(0)
        ),
        lambda: compute.frame_by_frame_calculation(
            compute.FbankComputer(), np.zeros(100), 30
        ),
    ],
    ids=[
        "splitter_num_frames",
        "splitter_frame",
        "num_frames",
        "compute_chunk",
        "compute_full",
        "compute_feature",
        "frame_by_frame",
    ],
)
def test_degenerate_warning_points_at_caller(call):
    with pytest.warns(DegenerateInputWarning) as record:
        call()
    assert len(record) == 1
    assert record[0].filename == __file__
