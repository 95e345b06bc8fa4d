# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""Type hints used internally by this package"""

from typing import (
    Any, Awaitable, AsyncIterable, AsyncIterator, AsyncContextManager, Callable, Dict,
    Iterable, Iterator, List, Mapping, MutableMapping, Optional, Sequence, Set, Tuple,
    Type, TypeVar, Union, cast,
  )
from types import TracebackType
from typing_extensions import Self, TypeAlias

Jsonable: TypeAlias = Union[None, bool, int, float, str, List['Jsonable'], Dict[str, 'Jsonable']]
"""A type hint for a value that can be serialized to JSON"""

JsonableDict: TypeAlias = Dict[str, Jsonable]
"""A type hint for a JSON object (dict with string keys)"""

JsonableTypes = (type(None), bool, int, float, str, list, dict)
"""A tuple of types usable with isinstance() to check a value is Jsonable"""

HostAndPort = Tuple[str, int]
"""A type hint for an (ip_address, port) tuple as used by socket.sendto()"""

MacAddr = str
"""A device MAC address as reported by the device. The stable identity of a unit."""
