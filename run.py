#!/usr/bin/env python3
"""Convenience runner for the trip auto-matching CLI.

Usage:
    python run.py --trips trips.json --item item.json [--profile profile.json]
"""
import logging
import sys

from trip_matcher.main import main

if __name__ == "__main__":
    if not logging.getLogger().hasHandlers():
        logging.basicConfig(level=logging.INFO, format="[%(asctime)s] %(levelname)s %(name)s: %(message)s")
    sys.exit(main())
