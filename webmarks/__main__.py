#!/usr/bin/env python3
"""
Package entry point for Webmarks.

This allows the package to be executed with: python -m webmarks
"""

import sys

from .cli import main

if __name__ == "__main__":
    sys.exit(main())
