from __future__ import annotations

import asyncio
import json
from typing import Any, Dict, List, Optional

import pytest

from gree_udp_protocol import GreeClientConfig, codec
from gree_udp_protocol.constants import GENERIC_KEY


def scan_pack_json(mac: str, name: str = "") -> Dict[str, Any]:
    return {
        "t": "dev",
        "cid": mac,
        "bc": "gree",
        "brand": "gree",
        "catalog": "gree",
        "mac": mac,
        "mid": "10001",
        "model": "gree",
        "name": name,
        "series": "gree",
        "vender": "1",
        "ver": "V1.1.13",
        "lock": 0,
    }


class FakeGreeNetwork(asyncio.DatagramProtocol):
    """Answers scan, bind, status and cmd requests for a set of devices from one loopback socket."""

    def __init__(self, devices: Dict[str, Dict[str, Any]]):
        self.state = {mac: dict(values) for mac, values in devices.items()}
        self.keys = {mac: f"K{n:015d}" for n, mac in enumerate(devices)}
        self.silent = False
        self.extra_scan_replies: List[bytes] = []
        self.requests: List[Dict[str, Any]] = []
        self.transport: Optional[asyncio.DatagramTransport] = None

    async def start(self) -> int:
        loop = asyncio.get_running_loop()
        await loop.create_datagram_endpoint(lambda: self, local_addr=("127.0.0.1", 0))
        assert self.transport is not None
        return self.transport.get_extra_info("sockname")[1]

    def close(self) -> None:
        if self.transport is not None:
            self.transport.close()
            self.transport = None

    def send_to(self, payload: Dict[str, Any], addr) -> None:
        assert self.transport is not None
        self.transport.sendto(json.dumps(payload).encode("utf-8"), addr)

    def connection_made(self, transport) -> None:
        self.transport = transport

    def datagram_received(self, data: bytes, addr) -> None:
        request = json.loads(data)
        target = request.get("tcid", "")
        if request.get("t") == "pack":
            key = GENERIC_KEY if request.get("i") == 1 else self.keys[target]
            request = json.loads(codec.decode(request["pack"], key))
        self.requests.append(request)
        if self.silent:
            return
        if request["t"] == "scan":
            for mac in self.state:
                self.send_to(self.envelope(mac, scan_pack_json(mac, f"ac-{mac[-4:]}"), GENERIC_KEY, 1), addr)
            for raw in self.extra_scan_replies:
                assert self.transport is not None
                self.transport.sendto(raw, addr)
        elif request["t"] == "bind":
            mac = request["mac"]
            pack = {"t": "bindok", "mac": mac, "key": self.keys[mac], "r": 200}
            self.send_to(self.envelope(mac, pack, GENERIC_KEY, 1), addr)
        elif request["t"] == "status":
            mac = request["mac"]
            cols = request["cols"]
            pack = {"t": "dat", "mac": mac, "r": 200, "cols": cols, "dat": [self.state[mac].get(c, 0) for c in cols]}
            self.send_to(self.envelope(mac, pack, self.keys[mac], 0), addr)
        elif request["t"] == "cmd":
            mac = target
            for name, value in zip(request["opt"], request["p"]):
                self.state[mac][name] = value
            pack = {"t": "res", "mac": mac, "r": 200, "opt": request["opt"], "p": request["p"], "val": request["p"]}
            self.send_to(self.envelope(mac, pack, self.keys[mac], 0), addr)

    @staticmethod
    def envelope(mac: str, pack: Dict[str, Any], key: str, i: int) -> Dict[str, Any]:
        return {
            "t": "pack",
            "i": i,
            "uid": 0,
            "cid": mac,
            "tcid": "",
            "pack": codec.encode(json.dumps(pack), key),
        }


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


MAC_A = "f4911e000001"
MAC_B = "f4911e000002"


@pytest.fixture
def fake_network() -> FakeGreeNetwork:
    return FakeGreeNetwork({
        MAC_A: {"Pow": 1, "Mod": 1, "SetTem": 24, "TemUn": 0, "WdSpd": 0},
        MAC_B: {"Pow": 0, "Mod": 4, "SetTem": 21, "TemUn": 0, "WdSpd": 3},
    })


@pytest.fixture
def single_device_network() -> FakeGreeNetwork:
    return FakeGreeNetwork({MAC_A: {"Pow": 0, "Mod": 0, "SetTem": 25, "TemUn": 0, "WdSpd": 0}})


@pytest.fixture
def loopback_config():
    def make(port: int, recv_timeout: float = 0.3) -> GreeClientConfig:
        return GreeClientConfig(
            bind_address="127.0.0.1",
            broadcast_address="127.0.0.1",
            device_port=port,
            recv_timeout=recv_timeout,
        )
    return make


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()
