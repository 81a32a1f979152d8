#!/usr/bin/env python3
"""
cssprite launcher - pack a folder of images into a CSS sprite sheet.

Equivalent to the installed ``cssprite`` console script.
"""

from cssprite.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
