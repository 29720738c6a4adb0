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

"""Validated, immutable options for the feature computers

Each options class mirrors a Kaldi-style configuration struct. Values can be
serialized as ``--StructName.field=value`` lines with :func:`Options.configure`,
registered on an :class:`argparse.ArgumentParser` with
:func:`Options.parse_configure`, and read back with :func:`Options.from_namespace`.

Options nest: :class:`SpectrogramOptions` embeds :class:`FrameOptions`,
:class:`FbankOptions` embeds :class:`SpectrogramOptions`, and :class:`MfccOptions`
embeds :class:`FbankOptions`. Nested options are derived once at construction. A
nested value which contradicts what its parent requires raises an
:class:`InvalidConfigError` rather than being overwritten.
"""

import abc
import argparse
from typing import Any, Callable, Mapping, Optional, Tuple, Type, TypeVar, Union

from typing_extensions import Self

from pydrobert.feats.filters import WindowType, string_to_window, window_to_string
from pydrobert.feats.util import InvalidConfigError

__all__ = [
    "as_options",
    "FbankOptions",
    "FrameOptions",
    "MfccOptions",
    "Options",
    "SpectrogramOptions",
]

T = TypeVar("T", bound="Options")


def _bool_type(x: Union[str, bool]) -> bool:
    if isinstance(x, bool):
        return x
    x_ = x.strip().lower()
    if x_ in {"true", "t", "1", "yes"}:
        return True
    elif x_ in {"false", "f", "0", "no"}:
        return False
    raise argparse.ArgumentTypeError(f"'{x}' cannot be interpreted as a boolean")


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    elif isinstance(value, WindowType):
        return window_to_string(value)
    elif isinstance(value, float):
        # whole numbers without a trailing ".0", everything else exactly
        return "%d" % value if value.is_integer() else repr(value)
    return str(value)


def _as_int(name: str, value: Any) -> int:
    try:
        int_value = int(value)
    except (TypeError, ValueError):
        raise InvalidConfigError(f"{name} must be an integer; got {value!r}")
    if int_value != value:
        raise InvalidConfigError(f"{name} must be an integer; got {value!r}")
    return int_value


class Options(abc.ABC):
    """Base class for a configuration struct

    Subclasses list their own ``fields`` as triples ``(key, attribute, type)``, where
    `key` is the name following ``StructName.`` on the command line, `attribute` the
    name of the property and keyword argument, and `type` the conversion from a
    string. Fields of an embedded struct are serialized before those of its parent.
    """

    struct_name: str = ""
    fields: Tuple[Tuple[str, str, Callable[[str], Any]], ...] = tuple()
    nested: Optional[str] = None
    """Attribute storing the embedded options, if any"""

    @abc.abstractmethod
    def check(self) -> None:
        """Raise an :class:`InvalidConfigError` if any value is invalid

        Called on construction.
        """
        pass

    def configure(self) -> str:
        """Serialize the options as ``--StructName.field=value`` lines

        Booleans are written as ``true`` or ``false``. Floats are written exactly,
        without a fractional part if they are whole numbers. The result can be read back by an :class:`argparse.ArgumentParser` with
        ``fromfile_prefix_chars='@'``, once :func:`parse_configure` has registered
        the arguments.
        """
        text = "" if self.nested is None else getattr(self, self.nested).configure()
        for key, attr, _ in self.fields:
            value = _format_value(getattr(self, attr))
            text += f"--{self.struct_name}.{key}={value}\n"
        return text

    def parse_configure(self, parser: argparse.ArgumentParser) -> None:
        """Register every field (including embedded ones) with `parser`

        Each field becomes an optional argument ``--StructName.field`` whose default
        is the current value of this instance. Use :func:`from_namespace` on the
        parsed namespace to build the options back.
        """
        if self.nested is not None:
            getattr(self, self.nested).parse_configure(parser)
        group = parser.add_argument_group(self.struct_name)
        for key, attr, type_ in self.fields:
            default = getattr(self, attr)
            group.add_argument(
                f"--{self.struct_name}.{key}",
                dest=f"{self.struct_name}.{key}",
                type=type_,
                default=default,
                metavar=key.upper(),
                help=f"(default: {_format_value(default)})",
            )

    @classmethod
    def from_namespace(cls, namespace: argparse.Namespace) -> Self:
        """Build validated options from a namespace populated by `parse_configure`"""
        return cls(**cls._kwargs_from_namespace(namespace))

    @classmethod
    def _kwargs_from_namespace(cls, namespace: argparse.Namespace) -> dict:
        return dict(
            (attr, getattr(namespace, f"{cls.struct_name}.{key}"))
            for key, attr, _ in cls.fields
        )

    def __eq__(self, other: Any) -> bool:
        if type(self) is not type(other):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self) -> int:
        return hash((type(self), self._key()))

    def _key(self) -> tuple:
        key = tuple(getattr(self, attr) for _, attr, _ in self.fields)
        if self.nested is not None:
            key += (getattr(self, self.nested),)
        return key

    def __repr__(self) -> str:
        kwargs = ", ".join(
            f"{attr}={getattr(self, attr)!r}" for _, attr, _ in self.fields
        )
        if self.nested is not None:
            kwargs += f", {self.nested}={getattr(self, self.nested)!r}"
        return f"{type(self).__name__}({kwargs})"


def as_options(
    options_class: Type[T], arg: Union[T, Mapping[str, Any], None] = None
) -> T:
    """Coerce `arg` into an instance of `options_class`

    `arg` may be an instance of `options_class` (returned as-is), a mapping of keyword
    arguments to its constructor (e.g. from JSON), or :obj:`None` for the defaults.
    """
    if arg is None:
        return options_class()
    elif isinstance(arg, options_class):
        return arg
    elif isinstance(arg, Options):
        raise InvalidConfigError(
            f"Expected {options_class.__name__}; got {type(arg).__name__}"
        )
    elif isinstance(arg, Mapping):
        return options_class(**arg)
    raise TypeError(
        f"Cannot build {options_class.__name__} from object of type "
        f"{type(arg).__name__}"
    )


class FrameOptions(Options):
    """How to split a signal into frames

    Parameters
    ----------
    frame_length
        Number of samples per frame
    frame_shift
        Number of samples between the starts of successive frames. At most
        `frame_length`
    sample_rate
        Samples per second (Hz)
    window_type
        The window to multiply each frame by. A :class:`WindowType` or its name
    preemph_coeff
        Pre-emphasis coefficient in ``[0, 1)``. 0 disables pre-emphasis
    remove_dc
        Whether to subtract the mean of each frame before pre-emphasis
    """

    struct_name = "FrameOpts"
    fields = (
        ("frame_length", "frame_length", int),
        ("frame_shift", "frame_shift", int),
        ("preemph_coeff", "preemph_coeff", float),
        ("sample_rate", "sample_rate", float),
        ("remove_dc", "remove_dc", _bool_type),
        ("window", "window_type", string_to_window),
    )

    def __init__(
        self,
        frame_length: int = 400,
        frame_shift: int = 160,
        sample_rate: float = 16000.0,
        window_type: Union[WindowType, str] = WindowType.HAMMING,
        preemph_coeff: float = 0.97,
        remove_dc: bool = True,
    ):
        if isinstance(window_type, str):
            window_type = string_to_window(window_type)
        self._frame_length = _as_int("frame_length", frame_length)
        self._frame_shift = _as_int("frame_shift", frame_shift)
        self._sample_rate = float(sample_rate)
        self._window_type = WindowType(window_type)
        self._preemph_coeff = float(preemph_coeff)
        self._remove_dc = bool(remove_dc)
        self.check()

    @property
    def frame_length(self) -> int:
        return self._frame_length

    @property
    def frame_shift(self) -> int:
        return self._frame_shift

    @property
    def sample_rate(self) -> float:
        return self._sample_rate

    @property
    def window_type(self) -> WindowType:
        return self._window_type

    @property
    def preemph_coeff(self) -> float:
        return self._preemph_coeff

    @property
    def remove_dc(self) -> bool:
        return self._remove_dc

    @property
    def frame_length_ms(self) -> float:
        """Frame length in milliseconds"""
        return 1000 * self._frame_length / self._sample_rate

    @property
    def frame_shift_ms(self) -> float:
        """Frame shift in milliseconds"""
        return 1000 * self._frame_shift / self._sample_rate

    def check(self) -> None:
        if self._sample_rate <= 0:
            raise InvalidConfigError(
                f"Expected a positive sample rate; got {self._sample_rate:g}"
            )
        if self._frame_shift <= 0:
            raise InvalidConfigError(
                f"Expected a positive frame shift; got {self._frame_shift}"
            )
        if self._frame_length < self._frame_shift:
            raise InvalidConfigError(
                f"Frame length ({self._frame_length}) must be at least the frame "
                f"shift ({self._frame_shift})"
            )
        if not (0.0 <= self._preemph_coeff < 1.0):
            raise InvalidConfigError(
                f"Expected preemph_coeff in [0, 1); got {self._preemph_coeff:g}"
            )


class SpectrogramOptions(Options):
    """Options for a (log) power or magnitude spectrogram

    Parameters
    ----------
    apply_pow
        Power (squared magnitude) spectrum if :obj:`True`, magnitude otherwise
    apply_log
        Whether to take the log of the spectrum
    use_log_raw_energy
        Whether to replace the first coefficient with the log of the frame's raw
        energy
    frame_opts
        A :class:`FrameOptions`, a mapping of its keyword arguments, or :obj:`None`
        for the defaults
    """

    struct_name = "SpectrogramOpts"
    fields = (
        ("apply_log", "apply_log", _bool_type),
        ("apply_pow", "apply_pow", _bool_type),
        ("use_log_raw_energy", "use_log_raw_energy", _bool_type),
    )
    nested = "frame_opts"

    def __init__(
        self,
        apply_pow: bool = True,
        apply_log: bool = True,
        use_log_raw_energy: bool = True,
        frame_opts: Union[FrameOptions, Mapping[str, Any], None] = None,
    ):
        self._apply_pow = bool(apply_pow)
        self._apply_log = bool(apply_log)
        self._use_log_raw_energy = bool(use_log_raw_energy)
        self._frame_opts = as_options(FrameOptions, frame_opts)
        self.check()

    @property
    def apply_pow(self) -> bool:
        return self._apply_pow

    @property
    def apply_log(self) -> bool:
        return self._apply_log

    @property
    def use_log_raw_energy(self) -> bool:
        return self._use_log_raw_energy

    @property
    def frame_opts(self) -> FrameOptions:
        return self._frame_opts

    def check(self) -> None:
        self._frame_opts.check()

    @classmethod
    def _kwargs_from_namespace(cls, namespace: argparse.Namespace) -> dict:
        kwargs = super()._kwargs_from_namespace(namespace)
        kwargs["frame_opts"] = FrameOptions.from_namespace(namespace)
        return kwargs


class FbankOptions(Options):
    """Options for (log) mel filterbank energies

    The embedded spectrogram is always linear and never reports the raw energy, as
    the log is taken after mel binning. It is derived from `frame_opts` and
    `apply_pow`. Alternatively, a complete `spectrogram_opts` may be passed.

    Parameters
    ----------
    num_mel_bins
        Number of triangular mel filters. At least 3
    lower_bound
        Low frequency cutoff of the bottommost filter, in Hz
    upper_bound
        High frequency cutoff of the topmost filter, in Hz. If non-positive, it is
        an offset from the Nyquist
    apply_log
        Whether to take the log of the filter energies
    apply_pow
        Whether the embedded spectrogram is a power spectrum (:obj:`True`, the
        default) or a magnitude spectrum
    frame_opts
        A :class:`FrameOptions`, a mapping of its keyword arguments, or :obj:`None`
        for the defaults
    spectrogram_opts
        A :class:`SpectrogramOptions` or mapping of its keyword arguments

    Raises
    ------
    InvalidConfigError
        If `spectrogram_opts` has ``apply_log`` or ``use_log_raw_energy`` set, was
        passed along with `frame_opts`, or disagrees with `apply_pow`
    """

    struct_name = "FbankOpts"
    fields = (
        ("apply_log", "apply_log", _bool_type),
        ("lower_bound", "lower_bound", float),
        ("upper_bound", "upper_bound", float),
        ("num_mel_bins", "num_mel_bins", int),
    )
    nested = "spectrogram_opts"

    def __init__(
        self,
        num_mel_bins: int = 23,
        lower_bound: float = 20.0,
        upper_bound: float = 0.0,
        apply_log: bool = True,
        apply_pow: Optional[bool] = None,
        frame_opts: Union[FrameOptions, Mapping[str, Any], None] = None,
        spectrogram_opts: Union[SpectrogramOptions, Mapping[str, Any], None] = None,
    ):
        if spectrogram_opts is None:
            spectrogram_opts = SpectrogramOptions(
                apply_pow=True if apply_pow is None else apply_pow,
                apply_log=False,
                use_log_raw_energy=False,
                frame_opts=frame_opts,
            )
        else:
            if frame_opts is not None:
                raise InvalidConfigError(
                    "Only one of frame_opts and spectrogram_opts may be specified"
                )
            spectrogram_opts = as_options(SpectrogramOptions, spectrogram_opts)
            if apply_pow is not None and bool(apply_pow) != spectrogram_opts.apply_pow:
                raise InvalidConfigError(
                    f"apply_pow={apply_pow} contradicts spectrogram_opts.apply_pow="
                    f"{spectrogram_opts.apply_pow}"
                )
        self._num_mel_bins = _as_int("num_mel_bins", num_mel_bins)
        self._lower_bound = float(lower_bound)
        self._upper_bound = float(upper_bound)
        self._apply_log = bool(apply_log)
        self._spectrogram_opts = spectrogram_opts
        self.check()

    @property
    def num_mel_bins(self) -> int:
        return self._num_mel_bins

    @property
    def lower_bound(self) -> float:
        return self._lower_bound

    @property
    def upper_bound(self) -> float:
        return self._upper_bound

    @property
    def apply_log(self) -> bool:
        return self._apply_log

    @property
    def apply_pow(self) -> bool:
        return self._spectrogram_opts.apply_pow

    @property
    def spectrogram_opts(self) -> SpectrogramOptions:
        return self._spectrogram_opts

    @property
    def frame_opts(self) -> FrameOptions:
        return self._spectrogram_opts.frame_opts

    def resolve_upper_bound(self) -> float:
        """The upper bound in Hz, with non-positive values offset from the Nyquist"""
        if self._upper_bound > 0:
            return self._upper_bound
        return 0.5 * self.frame_opts.sample_rate + self._upper_bound

    def check(self) -> None:
        self._spectrogram_opts.check()
        if self._spectrogram_opts.apply_log:
            raise InvalidConfigError(
                "The spectrogram of a filterbank must be linear (apply_log=false)"
            )
        if self._spectrogram_opts.use_log_raw_energy:
            raise InvalidConfigError(
                "The spectrogram of a filterbank cannot use the raw energy "
                "(use_log_raw_energy=false)"
            )
        if self._num_mel_bins < 3:
            raise InvalidConfigError(
                f"Expected at least 3 mel bins; got {self._num_mel_bins}"
            )
        if self._lower_bound < 0:
            raise InvalidConfigError(
                f"Expected a non-negative lower bound; got {self._lower_bound:g}"
            )

    @classmethod
    def _kwargs_from_namespace(cls, namespace: argparse.Namespace) -> dict:
        kwargs = super()._kwargs_from_namespace(namespace)
        kwargs["spectrogram_opts"] = SpectrogramOptions.from_namespace(namespace)
        return kwargs


class MfccOptions(Options):
    """Options for mel-frequency cepstral coefficients

    Parameters
    ----------
    num_ceps
        Number of cepstral coefficients to keep, including the zeroth. At least 1 and
        at most ``fbank_opts.num_mel_bins``
    use_energy
        Whether to replace the zeroth coefficient with the log of the frame's raw
        energy
    cepstral_lifter
        Liftering coefficient. 0 disables liftering
    fbank_opts
        A :class:`FbankOptions` or a mapping of its keyword arguments. Its log and
        power flags must be set
    frame_opts
        Shorthand for ``fbank_opts={'frame_opts': frame_opts}``

    Raises
    ------
    InvalidConfigError
        If `fbank_opts` does not take the log of power, or was passed along with
        `frame_opts`
    """

    struct_name = "MfccOpts"
    fields = (
        ("num_ceps", "num_ceps", int),
        ("use_energy", "use_energy", _bool_type),
        ("cepstral_lifter", "cepstral_lifter", float),
    )
    nested = "fbank_opts"

    def __init__(
        self,
        num_ceps: int = 13,
        use_energy: bool = True,
        cepstral_lifter: float = 22.0,
        fbank_opts: Union[FbankOptions, Mapping[str, Any], None] = None,
        frame_opts: Union[FrameOptions, Mapping[str, Any], None] = None,
    ):
        if fbank_opts is None:
            fbank_opts = FbankOptions(frame_opts=frame_opts)
        elif frame_opts is not None:
            raise InvalidConfigError(
                "Only one of frame_opts and fbank_opts may be specified"
            )
        else:
            fbank_opts = as_options(FbankOptions, fbank_opts)
        self._num_ceps = _as_int("num_ceps", num_ceps)
        self._use_energy = bool(use_energy)
        self._cepstral_lifter = float(cepstral_lifter)
        self._fbank_opts = fbank_opts
        self.check()

    @property
    def num_ceps(self) -> int:
        return self._num_ceps

    @property
    def use_energy(self) -> bool:
        return self._use_energy

    @property
    def cepstral_lifter(self) -> float:
        return self._cepstral_lifter

    @property
    def fbank_opts(self) -> FbankOptions:
        return self._fbank_opts

    @property
    def frame_opts(self) -> FrameOptions:
        return self._fbank_opts.frame_opts

    def check(self) -> None:
        self._fbank_opts.check()
        if not self._fbank_opts.apply_log:
            raise InvalidConfigError("MFCCs require log filterbanks (apply_log=true)")
        if not self._fbank_opts.apply_pow:
            raise InvalidConfigError(
                "MFCCs require a power spectrogram (apply_pow=true)"
            )
        if self._num_ceps < 1:
            raise InvalidConfigError(
                f"Expected at least 1 cepstral coefficient; got {self._num_ceps}"
            )
        if self._num_ceps > self._fbank_opts.num_mel_bins:
            raise InvalidConfigError(
                f"num_ceps ({self._num_ceps}) cannot exceed num_mel_bins "
                f"({self._fbank_opts.num_mel_bins})"
            )
        if self._cepstral_lifter < 0:
            raise InvalidConfigError(
                f"Expected a non-negative cepstral lifter; got "
                f"{self._cepstral_lifter:g}"
            )

    @classmethod
    def _kwargs_from_namespace(cls, namespace: argparse.Namespace) -> dict:
        kwargs = super()._kwargs_from_namespace(namespace)
        kwargs["fbank_opts"] = FbankOptions.from_namespace(namespace)
        return kwargs
