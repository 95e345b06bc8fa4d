"""Tests for the gree command-line tool."""

import asyncio
import json

from gree_udp_protocol import __version__
from gree_udp_protocol.__main__ import arun, run

MAC_B = "f4911e000002"


def test_version(capsys):
    assert run(["version"]) == 0
    assert capsys.readouterr().out.strip() == __version__


def test_missing_command(capsys):
    assert run([]) == 1
    assert "A command is required" in capsys.readouterr().err


def test_unknown_option_exits_with_usage_error(capsys):
    assert run(["--no-such-option", "version"]) == 2
    assert "usage:" in capsys.readouterr().err


def test_invalid_value_is_reported(capsys):
    assert run(["--broadcast", "127.0.0.1", "set", MAC_B, "Pow=2"]) == 1
    assert "gree: error: Invalid value for Pow" in capsys.readouterr().err


def test_malformed_assignment_is_reported(capsys):
    assert run(["--broadcast", "127.0.0.1", "set", MAC_B, "Pow"]) == 1
    assert "gree: error:" in capsys.readouterr().err


def test_get_and_set_with_config_file(fake_network, tmp_path, capsys):
    config_path = tmp_path / "gree.json"

    async def body():
        port = await fake_network.start()
        try:
            config_path.write_text(json.dumps({
                "bind_address": "127.0.0.1",
                "broadcast_address": "127.0.0.1",
                "device_port": port,
                "recv_timeout": 0.3,
            }))
            rc_get = await arun(["--config", str(config_path), "--alias", f"den={MAC_B}", "get", "den", "Pow", "SetTem"])
            get_out = capsys.readouterr().out
            rc_set = await arun(["--config", str(config_path), "set", MAC_B, "SetTem=26"])
            set_out = capsys.readouterr().out
            return rc_get, get_out, rc_set, set_out
        finally:
            fake_network.close()

    rc_get, get_out, rc_set, set_out = asyncio.run(body())
    assert rc_get == 0
    assert json.loads(get_out) == {"Pow": 0, "SetTem": 21}
    assert rc_set == 0
    assert json.loads(set_out) == {"SetTem": 26}
    assert fake_network.state[MAC_B]["SetTem"] == 26
