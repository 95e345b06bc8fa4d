"""Tests for GreeClient against a fake device network on the loopback interface."""

import asyncio

import pytest

from gree_udp_protocol import GreeClient, ResponseTimeout

MAC_A = "f4911e000001"
MAC_B = "f4911e000002"


def run_with_network(network, body):
    async def _run():
        port = await network.start()
        try:
            return await body(port)
        finally:
            network.close()
    return asyncio.run(_run())


def test_scan_collects_each_device_once(fake_network, loopback_config):
    async def body(port):
        async with GreeClient(loopback_config(port)) as client:
            return await client.scan()

    results = run_with_network(fake_network, body)
    assert sorted(info.mac for info in results) == [MAC_A, MAC_B]
    for info in results:
        assert info.src_addr == "127.0.0.1"
        assert info.pack.name == f"ac-{info.mac[-4:]}"
        assert info.pack.ver == "V1.1.13"


def test_scan_stops_at_max_count(fake_network, loopback_config):
    async def body(port):
        async with GreeClient(loopback_config(port)) as client:
            return await client.scan(max_count=1)

    results = run_with_network(fake_network, body)
    assert len(results) == 1


def test_scan_skips_undecodable_replies(single_device_network, loopback_config):
    single_device_network.extra_scan_replies = [
        b'{"t": "pack", "i": 1, "pack": "not base64!!"}',
        b"garbage",
    ]

    async def body(port):
        async with GreeClient(loopback_config(port)) as client:
            return await client.scan()

    results = run_with_network(single_device_network, body)
    assert [info.mac for info in results] == [MAC_A]


def test_scan_with_no_devices_is_empty(loopback_config, single_device_network):
    single_device_network.silent = True

    async def body(port):
        async with GreeClient(loopback_config(port, recv_timeout=0.1)) as client:
            return await client.scan()

    assert run_with_network(single_device_network, body) == []


def test_bind_then_read_and_write(single_device_network, loopback_config):
    async def body(port):
        async with GreeClient(loopback_config(port)) as client:
            bind_pack = await client.bind("127.0.0.1", MAC_A)
            status = await client.get_vars("127.0.0.1", MAC_A, bind_pack.key, ["Pow", "SetTem"])
            result = await client.set_vars("127.0.0.1", MAC_A, bind_pack.key, ["Pow", "SetTem"], [1, 22])
            after = await client.get_vars("127.0.0.1", MAC_A, bind_pack.key, ["Pow", "SetTem"])
            return bind_pack, status, result, after

    bind_pack, status, result, after = run_with_network(single_device_network, body)
    assert bind_pack.t == "bindok"
    assert bind_pack.mac == MAC_A
    assert bind_pack.key == single_device_network.keys[MAC_A]
    assert status.items() == [("Pow", 0), ("SetTem", 25)]
    assert result.items() == [("Pow", 1), ("SetTem", 22)]
    assert after.items() == [("Pow", 1), ("SetTem", 22)]


def test_exchange_times_out_when_device_is_silent(single_device_network, loopback_config):
    single_device_network.silent = True

    async def body(port):
        async with GreeClient(loopback_config(port, recv_timeout=0.2)) as client:
            with pytest.raises(ResponseTimeout):
                await client.bind("127.0.0.1", MAC_A)

    run_with_network(single_device_network, body)
    assert single_device_network.requests == [{"mac": MAC_A, "t": "bind", "uid": 0}]


def test_stale_datagrams_are_discarded_before_exchange(single_device_network, loopback_config):
    async def body(port):
        async with GreeClient(loopback_config(port)) as client:
            stale = single_device_network.envelope(
                MAC_A,
                {"t": "dat", "mac": MAC_A, "r": 200, "cols": ["Pow"], "dat": [1]},
                single_device_network.keys[MAC_A],
                0,
            )
            single_device_network.send_to(stale, client.local_address)
            await asyncio.sleep(0.05)
            assert client.queue is not None and client.queue.qsize() == 1
            return await client.bind("127.0.0.1", MAC_A)

    bind_pack = run_with_network(single_device_network, body)
    assert bind_pack.t == "bindok"


def test_drain_counts_discarded_entries(single_device_network, loopback_config):
    async def body(port):
        async with GreeClient(loopback_config(port)) as client:
            for _ in range(3):
                single_device_network.send_to({"t": "pack", "pack": ""}, client.local_address)
            await asyncio.sleep(0.05)
            return client.drain()

    assert run_with_network(single_device_network, body) == 3


def test_socket_error_ends_scan_with_replies_so_far(fake_network, loopback_config):
    async def body(port):
        async with GreeClient(loopback_config(port, recv_timeout=1.0)) as client:
            scan_task = asyncio.create_task(client.scan())
            await asyncio.sleep(0.1)
            client.error_received(ConnectionResetError("connection reset"))
            return await scan_task

    results = run_with_network(fake_network, body)
    assert sorted(info.mac for info in results) == [MAC_A, MAC_B]
