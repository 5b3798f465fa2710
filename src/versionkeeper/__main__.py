#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""python -m versionkeeper"""

from .cli import main

if __name__ == "__main__":  # pragma: no cover
    main()
