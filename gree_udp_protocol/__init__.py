# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Package gree_udp_protocol controls Gree (and Gree-based OEM) air conditioners over the local network.

Gree units listen on UDP port 7000. A client discovers them with a broadcast scan, performs
a bind handshake with each device to obtain a per-device AES key, and then reads and writes
named device variables (power, mode, set temperature, fan speed, ...) with JSON messages
whose payload is AES-128-ECB encrypted and base64-encoded.

GreeClient is a stateless low-level client for the four exchanges. Gree is a high-level
client that keeps a registry of scanned devices, binds on demand, and rescans and retries
when an operation fails.
"""

from .version import __version__

from .internal_types import Jsonable, JsonableDict, MacAddr

from .exceptions import (
    GreeError,
    CryptoError,
    ProtocolError,
    SerializationError,
    GreeIoError,
    ResponseTimeout,
    NotFound,
    NotBound,
    InvalidVariable,
    InvalidValue,
    ConfigError,
    http_status_for_error,
  )

from .messages import (
    GreeMessage,
    ScanResponsePack,
    BindResponsePack,
    StatusResponsePack,
    CommandResponsePack,
  )
from .gree_socket import GreeSocket
from .client import GreeClient, ScanResultInfo
from .config import GreeClientConfig, GreeConfig
from .registry import Device, DeviceRegistry
from .var_bag import VariableBag, VariableSlot
from .gree import Gree, Operation, OpKind
from . import variables
from .variables import ALL_VARS, DEFAULT_VARS
from .constants import GREE_PORT, GENERIC_KEY

__all__ = [
    '__version__',
    'Jsonable', 'JsonableDict', 'MacAddr',
    'GreeError', 'CryptoError', 'ProtocolError', 'SerializationError', 'GreeIoError',
    'ResponseTimeout', 'NotFound', 'NotBound', 'InvalidVariable', 'InvalidValue', 'ConfigError',
    'http_status_for_error',
    'GreeMessage', 'ScanResponsePack', 'BindResponsePack', 'StatusResponsePack', 'CommandResponsePack',
    'GreeSocket',
    'GreeClient', 'ScanResultInfo',
    'GreeClientConfig', 'GreeConfig',
    'Device', 'DeviceRegistry',
    'VariableBag', 'VariableSlot',
    'Gree', 'Operation', 'OpKind',
    'variables', 'ALL_VARS', 'DEFAULT_VARS',
    'GREE_PORT', 'GENERIC_KEY',
]
