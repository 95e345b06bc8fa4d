#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Gree protocol messages.

Every message except the scan request is a JSON envelope:

    {
      "cid": "app",
      "i": 0,
      "pack": "<encrypted, encoded pack>",
      "t": "pack",
      "tcid": "<MAC address>",
      "uid": 0
    }

where "pack" is the codec-encoded JSON of the inner payload. This module builds the
four request shapes (scan, bind, status, cmd) and parses their typed responses.
"""

from __future__ import annotations

import json

from .internal_types import *
from .pkg_logging import logger
from .constants import GENERIC_KEY
from .exceptions import ProtocolError, SerializationError
from . import codec

SCAN_MESSAGE = b'{\n  "t": "scan"\n}'
"""The scan request. It is the only message sent without an envelope."""

def _loads_object(text: Union[str, bytes], what: str) -> JsonableDict:
    try:
        result = json.loads(text)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise SerializationError(f"Malformed JSON in {what}: {e}") from e
    if not isinstance(result, dict):
        raise ProtocolError(f"Expected a JSON object in {what}, got {type(result).__name__}")
    return result

class GreeMessage:
    """Wrapper for a raw Gree datagram carrying a JSON envelope.

    Provides parsing and formatting of the envelope and typed accessors for its fields.
    Missing fields read as "" or 0, matching what devices tolerate.
    """

    _raw_data: bytes
    """The raw UDP datagram contents"""

    _json_data: JsonableDict
    """The decoded envelope"""

    def __init__(
            self,
            json_data: Optional[Mapping[str, Jsonable]]=None,
            raw_data: Optional[bytes]=None,
          ):
        if raw_data is None:
            if json_data is None:
                raise ValueError("Either json_data or raw_data must be provided")
            self._json_data = dict(json_data)
            self._raw_data = json.dumps(self._json_data).encode('utf-8')
        else:
            if json_data is not None:
                raise ValueError("If raw_data is provided, json_data must be None")
            self.raw_data = raw_data

    def __str__(self) -> str:
        return f"GreeMessage({self._json_data})"

    def __repr__(self) -> str:
        return str(self)

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, GreeMessage):
            return False
        return self._json_data == other._json_data

    @property
    def raw_data(self) -> bytes:
        """The raw UDP datagram contents"""
        return self._raw_data

    @raw_data.setter
    def raw_data(self, value: bytes) -> None:
        """Set the raw UDP datagram contents, and re-parse the envelope."""
        assert isinstance(value, bytes)
        self._json_data = _loads_object(value, "datagram")
        self._raw_data = value

    @property
    def json_data(self) -> JsonableDict:
        return self._json_data

    def _get_str(self, name: str) -> str:
        result = self._json_data.get(name, "")
        return result if isinstance(result, str) else ""

    def _get_int(self, name: str) -> int:
        result = self._json_data.get(name, 0)
        return result if isinstance(result, int) and not isinstance(result, bool) else 0

    @property
    def cid(self) -> str:
        return self._get_str("cid")

    @property
    def i(self) -> int:
        return self._get_int("i")

    @property
    def pack(self) -> str:
        """The encrypted, base64-encoded inner payload. "" if absent."""
        return self._get_str("pack")

    @property
    def t(self) -> str:
        """The message type; "pack" for envelopes."""
        return self._get_str("t")

    @property
    def tcid(self) -> str:
        """The MAC address of the target device."""
        return self._get_str("tcid")

    @property
    def uid(self) -> int:
        return self._get_int("uid")

    def decode_pack(self, key: codec.KeyLike) -> JsonableDict:
        """Decrypts and parses the inner payload.

        Raises CryptoError if decryption fails, SerializationError if the result is not JSON.
        """
        text = codec.decode(self.pack, key)
        logger.debug(f"pack raw: {text}")
        return _loads_object(text, "pack")

    @classmethod
    def envelope(
            cls,
            pack_data: Mapping[str, Jsonable],
            key: codec.KeyLike,
            tcid: str,
            i: int=0,
            cid: str="app",
          ) -> GreeMessage:
        """Wraps an inner payload into an encrypted envelope."""
        pack = codec.encode(json.dumps(dict(pack_data)), key)
        return cls({
            "cid": cid,
            "i": i,
            "pack": pack,
            "t": "pack",
            "tcid": tcid,
            "uid": 0,
        })


PackT = TypeVar('PackT', bound='ResponsePack')

class ResponsePack:
    """Base class for decoded inner payloads of device responses."""

    t: str
    """The pack type, e.g., "bindok" """

    json_data: JsonableDict
    """The complete decoded pack"""

    def __init__(self, json_data: JsonableDict):
        self.json_data = json_data
        self.t = self._field(json_data, "t", str, "")

    def __str__(self) -> str:
        return f"{type(self).__name__}({self.json_data})"

    def __repr__(self) -> str:
        return str(self)

    _no_default = object()

    @classmethod
    def _field(cls, json_data: JsonableDict, name: str, expected: Union[type, Tuple[type, ...]], default: Any=_no_default) -> Any:
        if name not in json_data:
            if default is cls._no_default:
                raise ProtocolError(f"{cls.__name__}: missing field '{name}'")
            return default
        result = json_data[name]
        if not isinstance(result, expected) or (isinstance(result, bool) and expected is int):
            raise ProtocolError(f"{cls.__name__}: field '{name}' has unexpected type {type(result).__name__}")
        return result

    @classmethod
    def _names_field(cls, json_data: JsonableDict, name: str) -> List[str]:
        result = cls._field(json_data, name, list)
        for x in result:
            if not isinstance(x, str):
                raise ProtocolError(f"{cls.__name__}: field '{name}' contains a non-string name {x!r}")
        return result

class ScanResponsePack(ResponsePack):
    """Device identity and vendor metadata reported in reply to a scan. Informational only,
       except for `mac`."""

    cid: str
    bc: str
    brand: str
    catalog: str
    mac: str
    mid: str
    model: str
    name: str
    lock: int
    series: str
    vender: str
    ver: str

    def __init__(self, json_data: JsonableDict):
        super().__init__(json_data)
        for name in ("cid", "bc", "brand", "catalog", "mac", "mid", "model", "name", "series", "vender", "ver"):
            value = json_data.get(name, "")
            setattr(self, name, value if isinstance(value, str) else "")
        lock = json_data.get("lock", 0)
        self.lock = lock if isinstance(lock, int) else 0

class BindResponsePack(ResponsePack):
    """{"t": "bindok", "mac": "<MAC address>", "key": "<unique AES key>", "r": 200}"""

    mac: str
    key: str
    r: int

    def __init__(self, json_data: JsonableDict):
        super().__init__(json_data)
        self.mac = self._field(json_data, "mac", str)
        self.key = self._field(json_data, "key", str)
        self.r = self._field(json_data, "r", int)

class StatusResponsePack(ResponsePack):
    """{"t": "dat", "mac": ..., "r": 200, "cols": [names...], "dat": [values...]}

    `cols` and `dat` are paired positionally.
    """

    mac: str
    r: int
    cols: List[str]
    dat: List[Jsonable]

    def __init__(self, json_data: JsonableDict):
        super().__init__(json_data)
        self.mac = self._field(json_data, "mac", str)
        self.r = self._field(json_data, "r", int)
        self.cols = self._names_field(json_data, "cols")
        self.dat = self._field(json_data, "dat", list)

    def items(self) -> List[Tuple[str, Jsonable]]:
        return list(zip(self.cols, self.dat))

class CommandResponsePack(ResponsePack):
    """{"t": "res", "mac": ..., "r": 200, "opt": [names...], "p": [values...], "val": [values...]}

    `opt` and `p` echo the request. `val` is optional.
    """

    mac: str
    r: int
    opt: List[str]
    p: List[Jsonable]
    val: List[Jsonable]

    def __init__(self, json_data: JsonableDict):
        super().__init__(json_data)
        self.mac = self._field(json_data, "mac", str)
        self.r = self._field(json_data, "r", int)
        self.opt = self._names_field(json_data, "opt")
        self.p = self._field(json_data, "p", list)
        self.val = self._field(json_data, "val", list, [])

    def items(self) -> List[Tuple[str, Jsonable]]:
        """The applied (name, value) pairs, pairing `opt` with `p`."""
        return list(zip(self.opt, self.p))


def scan_request() -> bytes:
    return SCAN_MESSAGE

def bind_request(mac: str, key: codec.KeyLike=GENERIC_KEY) -> GreeMessage:
    return GreeMessage.envelope({"mac": mac, "t": "bind", "uid": 0}, key, tcid=mac, i=1)

def status_request(mac: str, key: codec.KeyLike, names: Sequence[str]) -> GreeMessage:
    return GreeMessage.envelope({"cols": list(names), "mac": mac, "t": "status"}, key, tcid=mac)

def command_request(mac: str, key: codec.KeyLike, names: Sequence[str], values: Sequence[Jsonable]) -> GreeMessage:
    if len(names) != len(values):
        raise ValueError(f"{len(names)} names but {len(values)} values")
    return GreeMessage.envelope({"opt": list(names), "p": list(values), "t": "cmd"}, key, tcid=mac)

def handle_response(addr: str, message: GreeMessage, key: codec.KeyLike, pack_type: Type[PackT]) -> PackT:
    """Decodes the pack of a response message received from `addr` into `pack_type`."""
    pack = pack_type(message.decode_pack(key))
    logger.debug(f"[{addr}] pack: {pack}")
    return pack
