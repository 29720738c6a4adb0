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

"""Building windows, scales, and feature computers by name"""

import abc
from typing import Any, Iterator, Mapping, Set, Type, TypeVar, Union

__all__ = [
    "alias_factory_subclass_from_arg",
    "AliasedFactory",
]

T = TypeVar("T", bound="AliasedFactory", covariant=True)


def _walk_subclasses(cls: type) -> Iterator[type]:
    # post-order, most recently registered last, so that reversing gives priority
    # to later registrations
    for child in cls.__subclasses__():
        yield from _walk_subclasses(child)
    yield cls


class AliasedFactory(abc.ABC):
    """An abstract interface for initializing concrete subclasses by alias

    Window functions (``'hamming'``), scaling functions (``'mel'``), and feature
    computers (``'mfcc'``) are all aliased factories, which lets them be specified by
    name in configurations.
    """

    aliases: Set[str] = set()
    """class aliases for :func:`from_alias`"""

    @classmethod
    def from_alias(cls: Type[T], alias: str, *args, **kwargs) -> T:
        """Initialize the subclass of this class going by `alias`

        The search covers this class and all of its (transitive) subclasses. If more
        than one class claims `alias`, the one registered last wins.

        Parameters
        ----------
        alias
            Alias of the subclass
        *args
            Positional arguments to initialize the subclass
        **kwargs
            Keyword arguments to initialize the subclass

        Raises
        ------
        ValueError
            Alias can't be found
        """
        for subclass in reversed(list(_walk_subclasses(cls))):
            if alias in subclass.aliases:
                return subclass(*args, **kwargs)
        raise ValueError(f"Cannot find subclass of {cls.__name__} with alias '{alias}'")


def alias_factory_subclass_from_arg(
    factory_class: Type[T], arg: Union[T, str, Mapping[str, Any]]
) -> T:
    """Get an instance of an AliasedFactory from a flexible argument

    1. If `arg` is an instance of `factory_class`, return `arg`
    2. If `arg` is a :class:`str`, use it as the alias
    3. Otherwise copy `arg` to a dictionary, pop the key :obj:`'alias'` (or, failing
       that, :obj:`'name'`) and pass the rest as keyword arguments

    The third form is what one gets from a JSON configuration, e.g.

    >>> computer = alias_factory_subclass_from_arg(
    ...     Computer, {"name": "fbank", "num_mel_bins": 40})
    """
    if isinstance(arg, factory_class):
        return arg
    elif isinstance(arg, str):
        return factory_class.from_alias(arg)
    kwargs = dict(arg)
    if "alias" in kwargs:
        alias = kwargs.pop("alias")
    else:
        alias = kwargs.pop("name")
    return factory_class.from_alias(alias, **kwargs)
