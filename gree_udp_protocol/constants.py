# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""Constants used by this package"""

GREE_PORT = 7000
"""The UDP port number that Gree devices listen on."""

GENERIC_KEY = "a3K8Bx%2r8Y7#xDh"
"""The publicly known AES key used for scan responses and bind requests."""

BROADCAST_FALLBACK_ADDRESS = "255.255.255.255"
"""The limited broadcast address, used when no interface broadcast address can be determined."""

DEFAULT_MAX_COUNT = 10
"""The default maximum number of devices collected by a scan."""

DEFAULT_RECV_TIMEOUT = 3.0
"""The default time (in seconds) to wait for a single response datagram."""

DEFAULT_BUFFER_SIZE = 2048
"""The default maximum accepted size of an inbound datagram."""

DEFAULT_MIN_SCAN_AGE = 60.0
"""A scan younger than this (in seconds) is never repeated."""

DEFAULT_MAX_SCAN_AGE = 3600.0 * 24
"""A scan older than this (in seconds) is always repeated before the next operation."""
