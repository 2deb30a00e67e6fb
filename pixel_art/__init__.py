"""
Pixel Art
=========

Turn photos into stylised renditions in one of two ways:

- **Pixel art**: quantise a downsampled grid to a palette learned with
  k-means from a corpus of images, then upscale with hard edges.
- **Photo-mosaic**: replace each grid cell with the thumbnail whose
  average colour is closest.
"""

__version__ = "1.0.0"

from pixel_art.batch import BatchReport, ItemResult, run_batch
from pixel_art.config import PixelArtConfig
from pixel_art.errors import (
    CorpusEmpty,
    DecodeFailure,
    EmptyCandidateSet,
    EncodeFailure,
    NoSamplesCollected,
    NoValidTiles,
    PixelArtError,
)
from pixel_art.image_io import compute_grid_size, load_image, save_png
from pixel_art.matching import nearest, nearest_indices
from pixel_art.palette import build_palette, build_palette_from_dir, sample_colors
from pixel_art.render import render_mosaic, render_pixel_art
from pixel_art.tiles import Tile, TileLibrary, build_tile_library

__all__ = [
    "BatchReport",
    "CorpusEmpty",
    "DecodeFailure",
    "EmptyCandidateSet",
    "EncodeFailure",
    "ItemResult",
    "NoSamplesCollected",
    "NoValidTiles",
    "PixelArtConfig",
    "PixelArtError",
    "Tile",
    "TileLibrary",
    "build_palette",
    "build_palette_from_dir",
    "build_tile_library",
    "compute_grid_size",
    "load_image",
    "nearest",
    "nearest_indices",
    "render_mosaic",
    "render_pixel_art",
    "run_batch",
    "sample_colors",
    "save_png",
]
