# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""Exceptions defined by this package"""

from __future__ import annotations

from typing import Optional

class GreeError(Exception):
  """Base class for all error exceptions defined by this package."""
  pass

class CryptoError(GreeError):
  """A pack could not be base64-decoded or decrypted."""
  pass

class ProtocolError(GreeError):
  """A message did not have the shape required by the protocol."""
  pass

class SerializationError(ProtocolError):
  """A message or pack was not valid JSON."""
  pass

class GreeIoError(GreeError):
  """A socket operation failed. The underlying OSError is chained as __cause__."""
  pass

class ResponseTimeout(GreeError):
  """No matching response arrived before the receive timeout expired."""
  pass

class NotFound(GreeError):
  """A device or alias is not known to the registry."""

  target: str

  def __init__(self, target: str):
    super().__init__(f"Device not found: {target}")
    self.target = target

class NotBound(GreeError):
  """An operation requires a session key that the device does not have."""

  mac: str

  def __init__(self, mac: str):
    super().__init__(f"Device is not bound: {mac}")
    self.mac = mac

class InvalidVariable(GreeError):
  """A variable name is not in the catalog."""

  var_name: str

  def __init__(self, var_name: str):
    super().__init__(f"Invalid variable: {var_name}")
    self.var_name = var_name

class InvalidValue(GreeError):
  """A value is outside of the declared domain of its variable."""

  var_name: str
  literal: str

  def __init__(self, var_name: str, literal: str, msg: Optional[str]=None):
    if msg is None:
      msg = f"Invalid value for {var_name}: {literal!r}"
    super().__init__(msg)
    self.var_name = var_name
    self.literal = literal

class ConfigError(GreeError):
  """A configuration property is missing, has the wrong type, or is inconsistent."""
  pass

def http_status_for_error(exc: BaseException) -> int:
  """Returns the HTTP status code a front end should report for a failed operation.

     Unknown devices map to 404, transient network failures to 503, and everything
     else (bad input, protocol errors) to 400.
  """
  if isinstance(exc, NotFound):
    return 404
  if isinstance(exc, (ResponseTimeout, GreeIoError)):
    return 503
  return 400
