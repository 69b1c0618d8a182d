"""
WireFish - Network reconnaissance and monitoring tool

Provides TCP connect port scanning, ICMP traceroute and
interface bandwidth monitoring for a single target host.
"""

__version__ = "0.1.0"
__author__ = "WireFish contributors"
