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

"""Package constants used throughout pydrobert.feats"""

import numpy as np

__all__ = [
    "LOG_FLOOR_VALUE",
    "USE_FFTPACK",
]


USE_FFTPACK = False
"""bool : Whether to use :mod:`scipy.fftpack` for real FFTs

:mod:`scipy.fftpack` returns real FFTs in a packed layout close to the one the
feature computers consume, so it avoids a complex intermediate. This is set
automatically to :obj:`True` if :mod:`scipy.fftpack` can be imported. It can be set
to :obj:`False` to use the numpy implementation. Checked on every transform.

:meta hide-value:
"""
try:
    from scipy import fftpack  # noqa: F401

    USE_FFTPACK = True
except ImportError:
    pass

LOG_FLOOR_VALUE = float(np.finfo(np.float32).eps)
"""float : Value used as floor when taking log in computations

Kaldi floors energies at the 32-bit machine epsilon before taking their log.
"""
