#!/usr/bin/env python3
"""
HostSweep - Network Discovery & Port Scanner

Finds live hosts in an IPv4 range and enumerates their open TCP ports,
with optional banner grabbing.

Usage:
    python hostsweep.py -t 192.168.1.0/24
    python hostsweep.py -t 10.0.0.1-10.0.0.20 -p 22,80,443 -sV
"""
import sys

from hostsweep.main import main

if __name__ == "__main__":
    sys.exit(main())
