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

"""Classes for pre-processing frames of speech"""

import abc

import numpy as np

from pydrobert.feats.alias import AliasedFactory

__all__ = [
    "PreProcessor",
    "Preemphasize",
    "RemoveDC",
]


def _slices(ndim: int, axis: int, *slcs: slice):
    res = []
    for slc in slcs:
        idx = [slice(None)] * ndim
        idx[axis] = slc
        res.append(tuple(idx))
    return res


class PreProcessor(AliasedFactory):
    """A container for pre-processing frames with a transform"""

    @abc.abstractmethod
    def apply(
        self, signal: np.ndarray, axis: int = -1, in_place: bool = False
    ) -> np.ndarray:
        """Applies the transformation to a signal tensor

        Consult the class documentation for more details on what the transformation
        is.

        Parameters
        ----------
        signal
        axis
            The axis of `signal` to apply the transformation along
        in_place
            Whether it is okay to modify `signal` (:obj:`True`) or whether a copy
            should be made (:obj:`False`). `signal` is only modified if it is already
            of type float64

        Returns
        -------
        out : np.ndarray
            The transformed signal, of the same data type as `signal`
        """
        pass


class RemoveDC(PreProcessor):
    """Subtract the mean along the target axis

    Intermediate values are calculated as 64-bit floats. The result is cast back to
    the input data type.
    """

    aliases = {"remove_dc", "dc"}  #:

    def apply(
        self, signal: np.ndarray, axis: int = -1, in_place: bool = False
    ) -> np.ndarray:
        signal_dtype = signal.dtype
        if not in_place or signal_dtype != np.float64:
            signal = signal.astype(np.float64)
        if signal.size:
            signal -= signal.mean(axis=axis, keepdims=True)
        return signal.astype(signal_dtype, copy=False)


class Preemphasize(PreProcessor):
    """Attenuate the low frequencies of a signal by taking sample differences

    The following transformation is applied along the target axis

    ::

        new[i] = old[i] - coeff * old[i-1] for i > 0
        new[0] = old[0] - coeff * old[0]

    The first sample is treated as though it were preceded by itself, as in Kaldi
    [povey2011]_. This is applied to each frame separately, so no state passes from
    one frame to the next.

    Intermediate values are calculated as 64-bit floats. The result is cast back to
    the input data type.

    Parameters
    ----------
    coeff

    Attributes
    ----------
    coeff : float
    """

    aliases = {"preemphasize", "preemphasis", "preemph"}  #:

    def __init__(self, coeff: float = 0.97):
        self.coeff = coeff
        super().__init__()

    def apply(
        self, signal: np.ndarray, axis: int = -1, in_place: bool = False
    ) -> np.ndarray:
        signal_dtype = signal.dtype
        if not in_place or signal_dtype != np.float64:
            signal = signal.astype(np.float64)
        if not signal.ndim or not signal.shape[axis] or not self.coeff:
            return signal.astype(signal_dtype, copy=False)
        head, tail, first = _slices(
            signal.ndim, axis, slice(1, None), slice(None, -1), slice(0, 1)
        )
        # the right-hand side is evaluated before any element is overwritten
        signal[head] -= self.coeff * signal[tail]
        signal[first] -= self.coeff * signal[first]
        return signal.astype(signal_dtype, copy=False)
