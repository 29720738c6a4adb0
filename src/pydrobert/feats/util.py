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

"""Miscellaneous utility functions and exception types"""

__all__ = [
    "DegenerateInputWarning",
    "InvalidConfigError",
    "round_up_to_nearest_power_of_two",
]


class InvalidConfigError(ValueError):
    """A feature option is malformed, out of range, or contradicts another

    Raised eagerly when options or the tables derived from them (windows, filters,
    FFTs) are built. It is a :class:`ValueError`, so code catching the latter keeps
    working.
    """


class DegenerateInputWarning(UserWarning):
    """Fewer samples are available than are needed for a single frame"""


def round_up_to_nearest_power_of_two(n: int) -> int:
    """Smallest power of two greater than or equal to `n`

    Non-positive `n` rounds up to 1.
    """
    n = int(n)
    if n <= 1:
        return 1
    return 1 << (n - 1).bit_length()
