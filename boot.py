#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Entry point for the server boot sequence, for running from a checkout.
"""

import sys

from provision.main import main

if __name__ == "__main__":
    sys.exit(main())
