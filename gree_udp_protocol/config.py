# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""Configuration support.

Configurations can be built directly, or loaded from JSON. String values in JSON
may reference environment variables as ${NAME}; e.g.,

    {
      "broadcast_address": "${GREE_BROADCAST}",
      "aliases": { "living-room": "f4911e000000" },
      "min_scan_age": 30
    }
"""

from __future__ import annotations

import os
import json
from string import Template

from .internal_types import *
from .constants import (
    GREE_PORT,
    DEFAULT_MAX_COUNT,
    DEFAULT_RECV_TIMEOUT,
    DEFAULT_BUFFER_SIZE,
    DEFAULT_MIN_SCAN_AGE,
    DEFAULT_MAX_SCAN_AGE,
  )
from .exceptions import ConfigError
from .util import get_default_broadcast_address

def render_template_json_data(json_data: Jsonable, env: Optional[Mapping[str, str]]=None) -> Jsonable:
  """Substitutes ${NAME} references to environment variables in all string values.
     Unknown names are left as-is."""
  if env is None:
    env = dict(os.environ)
  if isinstance(json_data, str):
    return Template(json_data).safe_substitute(env)
  if isinstance(json_data, list):
    return [render_template_json_data(x, env) for x in json_data]
  if isinstance(json_data, dict):
    return { k: render_template_json_data(v, env) for k, v in json_data.items() }
  return json_data

class _ConfigReader:
  """Typed access to the properties of a rendered JSON config object."""

  _json_data: JsonableDict

  def __init__(self, json_data: JsonableDict):
    self._json_data = json_data

  def get_str(self, key: str, default: str) -> str:
    result = self._json_data.get(key, default)
    if not isinstance(result, str):
      raise ConfigError(f"Config: Expected property {key} to be str, got {type(result)}")
    return result

  def get_int(self, key: str, default: int) -> int:
    result = self._json_data.get(key, default)
    if isinstance(result, str):
      try:
        result = int(result)
      except ValueError:
        pass
    if not isinstance(result, int) or isinstance(result, bool):
      raise ConfigError(f"Config: Expected property {key} to be int, got {type(result)}")
    return result

  def get_float(self, key: str, default: float) -> float:
    result = self._json_data.get(key, default)
    if isinstance(result, str):
      try:
        result = float(result)
      except ValueError:
        pass
    if not isinstance(result, (int, float)) or isinstance(result, bool):
      raise ConfigError(f"Config: Expected property {key} to be a number, got {type(result)}")
    return float(result)

  def get_bool(self, key: str, default: bool) -> bool:
    result = self._json_data.get(key, default)
    if isinstance(result, str) and result.lower() in ('true', 'false', '1', '0'):
      result = result.lower() in ('true', '1')
    if not isinstance(result, bool):
      raise ConfigError(f"Config: Expected property {key} to be bool, got {type(result)}")
    return result

  def get_str_dict(self, key: str) -> Dict[str, str]:
    result = self._json_data.get(key, {})
    if not isinstance(result, dict) or not all(isinstance(v, str) for v in result.values()):
      raise ConfigError(f"Config: Expected property {key} to be a dict of str")
    return dict(result) # type: ignore[arg-type]

def _loads_object(config_text: str) -> JsonableDict:
  try:
    result = json.loads(config_text)
  except json.JSONDecodeError as e:
    raise ConfigError(f"Config: invalid JSON: {e}") from e
  if not isinstance(result, dict):
    raise ConfigError(f"Config: Expected a JSON object, got {type(result)}")
  return result

class GreeClientConfig:
  """Settings for the low-level client: addresses, limits and timeouts."""

  bind_address: str = "0.0.0.0"
  bind_port: int = 0
  broadcast_address: str
  device_port: int = GREE_PORT
  max_count: int = DEFAULT_MAX_COUNT
  recv_timeout: float = DEFAULT_RECV_TIMEOUT
  buffer_size: int = DEFAULT_BUFFER_SIZE

  def __init__(
        self,
        bind_address: str="0.0.0.0",
        bind_port: int=0,
        broadcast_address: Optional[str]=None,
        device_port: int=GREE_PORT,
        max_count: int=DEFAULT_MAX_COUNT,
        recv_timeout: float=DEFAULT_RECV_TIMEOUT,
        buffer_size: int=DEFAULT_BUFFER_SIZE,
      ):
    if broadcast_address is None:
      broadcast_address = get_default_broadcast_address()
    self.bind_address = bind_address
    self.bind_port = bind_port
    self.broadcast_address = broadcast_address
    self.device_port = device_port
    self.max_count = max_count
    self.recv_timeout = recv_timeout
    self.buffer_size = buffer_size
    self.validate()

  def validate(self) -> None:
    if self.max_count < 1:
      raise ConfigError(f"Config: max_count must be at least 1, got {self.max_count}")
    if self.recv_timeout <= 0.0:
      raise ConfigError(f"Config: recv_timeout must be positive, got {self.recv_timeout}")
    if self.buffer_size < 1:
      raise ConfigError(f"Config: buffer_size must be positive, got {self.buffer_size}")

  @classmethod
  def from_json_data(cls, json_data: JsonableDict, env: Optional[Mapping[str, str]]=None) -> GreeClientConfig:
    rendered = render_template_json_data(json_data, env)
    assert isinstance(rendered, dict)
    return cls.from_rendered_json_data(rendered)

  @classmethod
  def from_rendered_json_data(cls, rendered: JsonableDict) -> GreeClientConfig:
    """Builds a config from a JSON object whose ${NAME} references have already been substituted."""
    r = _ConfigReader(rendered)
    return cls(
        bind_address=r.get_str('bind_address', "0.0.0.0"),
        bind_port=r.get_int('bind_port', 0),
        broadcast_address=r.get_str('broadcast_address', "") or None,
        device_port=r.get_int('device_port', GREE_PORT),
        max_count=r.get_int('max_count', DEFAULT_MAX_COUNT),
        recv_timeout=r.get_float('recv_timeout', DEFAULT_RECV_TIMEOUT),
        buffer_size=r.get_int('buffer_size', DEFAULT_BUFFER_SIZE),
      )

  def to_json_data(self) -> JsonableDict:
    return dict(
        bind_address=self.bind_address,
        bind_port=self.bind_port,
        broadcast_address=self.broadcast_address,
        device_port=self.device_port,
        max_count=self.max_count,
        recv_timeout=self.recv_timeout,
        buffer_size=self.buffer_size,
      )

class GreeConfig:
  """Settings for the high-level Gree client.

  The scan freshness window is [min_scan_age, max_scan_age): a scan younger than
  min_scan_age is never repeated; one older than max_scan_age is always repeated.
  """

  client_config: GreeClientConfig
  aliases: Dict[str, MacAddr]
  min_scan_age: float
  max_scan_age: float
  preserve_session_keys: bool
  """If True, a device that reappears in a rescan with the same MAC keeps its session key."""

  def __init__(
        self,
        client_config: Optional[GreeClientConfig]=None,
        aliases: Optional[Mapping[str, MacAddr]]=None,
        min_scan_age: float=DEFAULT_MIN_SCAN_AGE,
        max_scan_age: float=DEFAULT_MAX_SCAN_AGE,
        preserve_session_keys: bool=False,
      ):
    self.client_config = GreeClientConfig() if client_config is None else client_config
    self.aliases = {} if aliases is None else dict(aliases)
    self.min_scan_age = min_scan_age
    self.max_scan_age = max_scan_age
    self.preserve_session_keys = preserve_session_keys
    self.validate()

  def validate(self) -> None:
    if self.min_scan_age < 0.0:
      raise ConfigError(f"Config: min_scan_age must not be negative, got {self.min_scan_age}")
    if not self.min_scan_age < self.max_scan_age:
      raise ConfigError(f"Config: min_scan_age ({self.min_scan_age}) must be less than max_scan_age ({self.max_scan_age})")

  @classmethod
  def from_json_data(cls, json_data: JsonableDict, env: Optional[Mapping[str, str]]=None) -> GreeConfig:
    """Builds a config from a JSON object. Client settings may be given at the top level
       or nested under "client"."""
    rendered = render_template_json_data(json_data, env)
    assert isinstance(rendered, dict)
    r = _ConfigReader(rendered)
    client_json = rendered.get('client', rendered)
    if not isinstance(client_json, dict):
      raise ConfigError(f"Config: Expected property client to be dict, got {type(client_json)}")
    return cls(
        client_config=GreeClientConfig.from_rendered_json_data(client_json),
        aliases=r.get_str_dict('aliases'),
        min_scan_age=r.get_float('min_scan_age', DEFAULT_MIN_SCAN_AGE),
        max_scan_age=r.get_float('max_scan_age', DEFAULT_MAX_SCAN_AGE),
        preserve_session_keys=r.get_bool('preserve_session_keys', False),
      )

  @classmethod
  def loads(cls, config_text: str, env: Optional[Mapping[str, str]]=None) -> GreeConfig:
    return cls.from_json_data(_loads_object(config_text), env)

  @classmethod
  def load_file(cls, pathname: str, env: Optional[Mapping[str, str]]=None) -> GreeConfig:
    pathname = os.path.abspath(os.path.expanduser(pathname))
    try:
      with open(pathname, encoding='utf-8') as f:
        config_text = f.read()
    except OSError as e:
      raise ConfigError(f"Config: unable to read {pathname}: {e}") from e
    return cls.loads(config_text, env)

  def to_json_data(self) -> JsonableDict:
    result: JsonableDict = dict(
        client=self.client_config.to_json_data(),
        aliases=dict(self.aliases),
        min_scan_age=self.min_scan_age,
        max_scan_age=self.max_scan_age,
        preserve_session_keys=self.preserve_session_keys,
      )
    return result
