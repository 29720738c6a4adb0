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

"""Scaling functions

A scaling function maps frequencies (in Hertz) to some other real domain (the
"scale" domain) and back. Filter vertices are laid out uniformly along the scale in
:class:`pydrobert.feats.filters.MelFilterBank`.
"""

import abc
from typing import Union

import numpy as np

from pydrobert.feats.alias import AliasedFactory

__all__ = [
    "MelScaling",
    "ScalingFunction",
]

Frequency = Union[float, np.ndarray]


class ScalingFunction(AliasedFactory):
    """Converts a frequency to some scale and back again

    Both directions accept scalars or numpy arrays.
    """

    @abc.abstractmethod
    def scale_to_hertz(self, scale: Frequency) -> Frequency:
        """Convert scale to frequency (in Hertz)"""
        pass

    @abc.abstractmethod
    def hertz_to_scale(self, hertz: Frequency) -> Frequency:
        """Convert frequency (in Hertz) to scale"""
        pass


class MelScaling(ScalingFunction):
    r"""Psychoacoustic mel scale, as computed by Kaldi and HTK

    The functional approximation of [oshaughnessy1987]_:

    .. math:: s = 1127 \ln \left(1 + \frac{f}{700} \right)

    Where :math:`s` is the scale and :math:`f` is the frequency in Hertz. This is the
    natural-log form [povey2011]_ evaluates, rather than ``2595 log10``; the two
    differ in the last few bits.
    """

    aliases = {"mel"}  #:

    def scale_to_hertz(self, scale: Frequency) -> Frequency:
        return 700.0 * (np.exp(np.divide(scale, 1127.0)) - 1.0)

    def hertz_to_scale(self, hertz: Frequency) -> Frequency:
        return 1127.0 * np.log(1.0 + np.divide(hertz, 700.0))
