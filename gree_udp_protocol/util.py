#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Simple utility functions used by this package
"""

from __future__ import annotations

from ipaddress import IPv4Address

import netifaces

from .internal_types import *
from .constants import BROADCAST_FALLBACK_ADDRESS

def get_default_ip_gateway() -> Tuple[Optional[str], Optional[str]]:
    """Returns the (gateway_ip_address: str, gateway_interface_name: str) for the default IPv4 gateway, if any.
       returns (None, None) if there is no default IPv4 gateway."""
    gws = netifaces.gateways()
    if "default" in gws:
        default_gateway_infos = gws["default"]
        if netifaces.AF_INET in default_gateway_infos:
            gw_ip, gw_interface_name = default_gateway_infos[netifaces.AF_INET][:2]
            return (gw_ip, gw_interface_name)
    return (None, None)

def get_broadcast_addresses_and_interfaces(include_loopback: bool=False) -> List[Tuple[str, str]]:
    """Returns a list of Tuple[broadcast_address: str, interface_name: str] for the IPv4 interfaces of the
       local host that have a broadcast address. The result is sorted in a way that attempts to place the
       "preferred" address first in the list, according to the following scheme:
           1. Addresses on the default gateway interface precede all other addresses.
           2. Non-loopback addresses precede loopback addresses.
           3. Networks that begin with 172. follow other networks. This is a hack to
              deprioritize local docker network addresses.
    """
    result_with_priority: List[Tuple[int, str, str]] = []
    _, default_gateway_ifname = get_default_ip_gateway()
    for ifname in netifaces.interfaces():
        ifinfo = netifaces.ifaddresses(ifname)
        for addrinfo in ifinfo.get(netifaces.AF_INET, []):
            ip_str = addrinfo.get('addr')
            bcast_str = addrinfo.get('broadcast')
            if not isinstance(ip_str, str) or not isinstance(bcast_str, str):
                continue
            if ifname == default_gateway_ifname:
                priority = 0
            elif IPv4Address(ip_str).is_loopback:
                if not include_loopback:
                    continue
                priority = 3
            elif ip_str.startswith('172.'):
                priority = 2
            else:
                priority = 1
            result_with_priority.append((priority, bcast_str, ifname))
    return [ (bcast, ifname) for _, bcast, ifname in sorted(result_with_priority)]

def get_default_broadcast_address() -> str:
    """Returns the broadcast address of the preferred local IPv4 interface, or
       255.255.255.255 if no interface has one."""
    addrs = get_broadcast_addresses_and_interfaces()
    if len(addrs) == 0:
        return BROADCAST_FALLBACK_ADDRESS
    return addrs[0][0]
