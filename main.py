#!/usr/bin/env python3
"""
DNS Zone Pipeline - Main Entry Point

This is the main entry point for the DNS Zone Pipeline.
It can be run directly or imported as a module.
"""

import sys

from dns_zone_pipeline.cli.main import main

if __name__ == "__main__":
    sys.exit(main())
