#!/usr/bin/env python3
"""
main.py — Quick-start entry point.

Drop palette images into ``palette_images/``, photos into ``input/`` and run:

    python main.py batch

Or use the full CLI:

    python -m pixel_art.cli batch --help
    python -m pixel_art.cli single my_photo.jpg --mosaic
"""

from pixel_art.cli import app

if __name__ == "__main__":
    app()
