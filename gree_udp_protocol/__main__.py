#!/usr/bin/env python3

# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

from __future__ import annotations

import sys
import argparse
import json
import asyncio
import logging

from gree_udp_protocol.internal_types import *

from gree_udp_protocol import (
    __version__ as pkg_version,
    Gree,
    GreeClient,
    GreeConfig,
    VariableBag,
    DeviceRegistry,
    Device,
    DEFAULT_VARS,
  )

class CmdExitError(RuntimeError):
    exit_code: int

    def __init__(self, exit_code: int, msg: Optional[str]=None):
        if msg is None:
            msg = f"Command exited with return code {exit_code}"
        super().__init__(msg)
        self.exit_code = exit_code

class ArgparseExitError(CmdExitError):
    pass

class NoExitArgumentParser(argparse.ArgumentParser):
    def exit(self, status=0, message=None):
        if message:
            self._print_message(message, sys.stderr)
        raise ArgparseExitError(status, message)

def _split_assignment(assignment: str, what: str) -> Tuple[str, str]:
    parts = assignment.split('=', 1)
    if len(parts) != 2 or parts[0] == '':
        raise CmdExitError(1, f"Invalid {what} (expected NAME=VALUE): {assignment!r}")
    return (parts[0], parts[1])

class CommandHandler:
    _argv: Optional[Sequence[str]]
    _parser: argparse.ArgumentParser
    _args: argparse.Namespace
    _provide_traceback: bool = True

    def __init__(self, argv: Optional[Sequence[str]]=None):
        self._argv = argv

    def _print_json(self, data: Jsonable) -> None:
        print(json.dumps(data, indent=2, sort_keys=True))
        sys.stdout.flush()

    def _get_config(self) -> GreeConfig:
        config_file: Optional[str] = self._args.config_file
        cfg = GreeConfig() if config_file is None else GreeConfig.load_file(config_file)
        client_cfg = cfg.client_config
        if self._args.broadcast_address is not None:
            client_cfg.broadcast_address = self._args.broadcast_address
        if self._args.bind_address is not None:
            client_cfg.bind_address = self._args.bind_address
        if self._args.max_count is not None:
            client_cfg.max_count = self._args.max_count
        if self._args.timeout is not None:
            client_cfg.recv_timeout = self._args.timeout
        client_cfg.validate()
        for alias_assignment in self._args.aliases:
            name, mac = _split_assignment(alias_assignment, "alias")
            cfg.aliases[name] = mac
        return cfg

    async def cmd_bare(self) -> int:
        print("A command is required", file=sys.stderr)
        return 1

    async def cmd_scan(self) -> int:
        cfg = self._get_config()
        async with GreeClient(cfg.client_config) as client:
            for info in await client.scan():
                summary: JsonableDict = {
                    "src_addr": info.src_addr,
                    "mac": info.mac,
                    "scan_result": info.pack.json_data,
                    "monotonic_time": info.monotonic_time,
                    "utc_time": info.utc_time.isoformat(),
                }
                self._print_json(summary)
        return 0

    async def cmd_devices(self) -> int:
        def summarize(registry: DeviceRegistry) -> List[Jsonable]:
            return [ device.to_json_data() for device in registry.devices.values() ]

        async with Gree(self._get_config()) as gree:
            self._print_json(await gree.with_state(summarize))
        return 0

    async def cmd_bind(self) -> int:
        target: str = self._args.target

        def summarize(device: Device) -> JsonableDict:
            result = device.to_json_data()
            result["key"] = device.key
            return result

        async with Gree(self._get_config()) as gree:
            await gree.bind(target)
            self._print_json(await gree.with_device(target, summarize))
        return 0

    async def cmd_get(self) -> int:
        target: str = self._args.target
        names: List[str] = self._args.names
        if len(names) == 0:
            names = list(DEFAULT_VARS)
        bag = VariableBag.from_names(names)
        async with Gree(self._get_config()) as gree:
            await gree.net_read(target, bag)
        self._print_json(bag.to_report_map())
        return 0

    async def cmd_set(self) -> int:
        target: str = self._args.target
        pairs = [ _split_assignment(x, "variable assignment") for x in self._args.assignments ]
        bag = VariableBag.from_name_value_pairs(pairs)
        async with Gree(self._get_config()) as gree:
            await gree.net_write(target, bag)
        self._print_json(bag.to_report_map())
        return 0

    async def cmd_version(self) -> int:
        print(pkg_version)
        return 0

    async def arun(self) -> int:
        """Run the gree command-line tool with provided arguments

        Args:
            argv (Optional[Sequence[str]], optional):
                A list of commandline arguments (NOT including the program as argv[0]!),
                or None to use sys.argv[1:]. Defaults to None.

        Returns:
            int: The exit code that would be returned if this were run as a standalone command.
        """
        parser = NoExitArgumentParser(description="Control Gree air conditioners on the local network.")


        # ======================= Main command

        self._parser = parser
        parser.add_argument('--traceback', "--tb", action='store_true', default=False,
                            help='Display detailed exception information')
        parser.add_argument('--log-level', dest='log_level', default='warning',
                            choices=['debug', 'info', 'warning', 'error', 'critical'],
                            help='''The logging level to use. Default: warning''')
        parser.add_argument('-c', '--config', dest='config_file', default=None,
                            help='''A JSON configuration file. Command-line options override its settings.''')
        parser.add_argument('-a', '--broadcast', dest='broadcast_address', default=None,
                            help='''The broadcast address to scan. Default: the broadcast address of the default interface''')
        parser.add_argument('-b', '--bind', dest='bind_address', default=None,
                            help='''The local IP address to bind to. Default: 0.0.0.0''')
        parser.add_argument('--max-count', dest='max_count', type=int, default=None,
                            help='''The maximum number of devices to collect in a scan. Default: 10''')
        parser.add_argument('--timeout', type=float, default=None,
                            help='''The time to wait for each response, in seconds. Default: 3.0''')
        parser.add_argument('-A', '--alias', dest='aliases', action='append', default=[],
                            help='''A <name>=<mac> device alias. May be repeated.''')
        parser.set_defaults(func=self.cmd_bare)

        subparsers = parser.add_subparsers(
                            title='Commands',
                            description='Valid commands',
                            help='Additional help available with "<command-name> -h"')


        # ======================= scan

        parser_scan = subparsers.add_parser('scan', description="Scan the network for devices and display their replies")
        parser_scan.set_defaults(func=self.cmd_scan)

        # ======================= devices

        parser_devices = subparsers.add_parser('devices', description="Scan the network and list the registered devices")
        parser_devices.set_defaults(func=self.cmd_devices)

        # ======================= bind

        parser_bind = subparsers.add_parser('bind', description="Bind to a device and display its session key")
        parser_bind.add_argument('target', help='''The MAC address or alias of the device''')
        parser_bind.set_defaults(func=self.cmd_bind)

        # ======================= get

        parser_get = subparsers.add_parser('get', description="Read variables from a device")
        parser_get.add_argument('target', help='''The MAC address or alias of the device''')
        parser_get.add_argument('names', nargs='*', default=[],
                            help=f'''The variables to read. Default: {" ".join(DEFAULT_VARS)}''')
        parser_get.set_defaults(func=self.cmd_get)

        # ======================= set

        parser_set = subparsers.add_parser('set', description="Write variables to a device")
        parser_set.add_argument('target', help='''The MAC address or alias of the device''')
        parser_set.add_argument('assignments', nargs='+',
                            help='''<name>=<value> variable assignments''')
        parser_set.set_defaults(func=self.cmd_set)

        # ======================= version

        parser_version = subparsers.add_parser('version',
                                description='''Display version information.''')
        parser_version.set_defaults(func=self.cmd_version)

        # =========================================================

        try:
            args = parser.parse_args(self._argv)
        except ArgparseExitError as ex:
            return ex.exit_code
        traceback: bool = args.traceback
        self._provide_traceback = traceback

        try:
            logging.basicConfig(
                level=logging.getLevelName(args.log_level.upper()),
            )
            self._args = args
            func: Callable[[], Awaitable[int]] = args.func
            logging.debug(f"Running command {func.__name__}, tb = {traceback}")
            rc = await func()
            logging.debug(f"Command {func.__name__} returned {rc}")
        except Exception as ex:
            if isinstance(ex, CmdExitError):
                rc = ex.exit_code
            else:
                rc = 1
            if rc != 0:
                if traceback:
                    raise
            print(f"gree: error: {ex}", file=sys.stderr)
        except BaseException as ex:
            print(f"gree: Unhandled exception: {ex}", file=sys.stderr)
            raise

        return rc

    def run(self) -> int:
        loop = asyncio.new_event_loop()
        try:
            asyncio.set_event_loop(loop)
            rc = loop.run_until_complete(self.arun())
        finally:
            loop.close()
        return rc

def run(argv: Optional[Sequence[str]]=None) -> int:
    try:
        rc = CommandHandler(argv).run()
    except CmdExitError as ex:
        rc = ex.exit_code
    return rc

async def arun(argv: Optional[Sequence[str]]=None) -> int:
    try:
        rc = await CommandHandler(argv).arun()
    except CmdExitError as ex:
        rc = ex.exit_code
    return rc

# allow running with "python3 -m", or as a standalone script
if __name__ == "__main__":
    sys.exit(run())
