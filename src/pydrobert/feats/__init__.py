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

"""Kaldi-compatible acoustic features with few dependencies

Spectrograms, mel filterbank energies, and MFCCs computed frame by frame from buffers
of audio samples. The numerical conventions (frame boundaries, DC removal,
pre-emphasis, windows, FFT padding, mel filter shapes, DCT normalization, and
liftering) follow [povey2011]_ so that features can be fed to decoders trained on
Kaldi features.

References
----------
.. [povey2011] D. Povey et al., "The Kaldi Speech Recognition Toolkit," in IEEE 2011
   Workshop on Automatic Speech Recognition and Understanding, Hilton Waikoloa
   Village, Big Island, Hawaii, US, 2011.
.. [young] S. Young et al., "The HTK book (for HTK version 3.4)," Cambridge
   university engineering department, vol. 2, no. 2, pp. 2-3, 2006.
.. [oshaughnessy1987] D. O'Shaughnessy, Speech communication: human and machine.
   Addison-Wesley Pub. Co., 1987.
"""

from importlib.metadata import PackageNotFoundError, version

__author__ = "Sean Robertson"
__email__ = "sdrobert@cs.toronto.edu"
__license__ = "Apache 2.0"
__copyright__ = "Copyright 2023 Sean Robertson"

__all__ = [
    "alias",
    "command_line",
    "compute",
    "config",
    "filters",
    "options",
    "pre",
    "scales",
    "util",
]

try:
    __version__ = version("pydrobert-feats")
except PackageNotFoundError:
    __version__ = "inplace"
