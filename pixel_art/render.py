"""Image transforms: palette quantisation and tile mosaics.

Both modes share one shape: downsample the source to a working grid with
a smooth filter, substitute every cell, then expand back to display size.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

import numpy as np
from PIL import Image

from pixel_art.color_utils import as_color_vectors, clamp_colors
from pixel_art.errors import EmptyCandidateSet
from pixel_art.image_io import compute_grid_size, to_rgb_image
from pixel_art.matching import nearest_indices
from pixel_art.tiles import TileLibrary

logger = logging.getLogger(__name__)


def downsample(
    image: Image.Image | np.ndarray,
    cells_wide: int,
    cells_high: int = 0,
) -> np.ndarray:
    """Shrink *image* to the working grid with a bilinear filter.

    Returns:
        (H, W, 3) uint8 grid, one pixel per cell.
    """
    img = to_rgb_image(image)
    w, h = compute_grid_size(img.width, img.height, cells_wide, cells_high)
    return np.array(img.resize((w, h), Image.BILINEAR), dtype=np.uint8)


def quantize(grid: np.ndarray, palette: np.ndarray) -> np.ndarray:
    """Replace every cell of an (H, W, 3) grid with its nearest palette colour."""
    h, w = grid.shape[:2]
    idx = nearest_indices(grid.reshape(-1, 3), palette)
    return clamp_colors(as_color_vectors(palette))[idx].reshape(h, w, 3)


def render_pixel_art(
    image: Image.Image | np.ndarray,
    palette: np.ndarray,
    cells_wide: int,
    cells_high: int = 0,
    upscale: int = 8,
) -> Image.Image:
    """Convert *image* to blocky pixel art restricted to *palette*.

    Args:
        image:      Source image.
        palette:    (k, 3) colours; must not be empty.
        cells_wide: Grid width in cells.
        cells_high: Grid height (0 = derive from the aspect ratio).
        upscale:    Each cell becomes a flat ``upscale x upscale`` block.

    Returns:
        RGB image of ``cells_wide * upscale`` by ``cells_high * upscale``.
    """
    if len(palette) == 0:
        msg = "Cannot render pixel art with an empty palette"
        raise EmptyCandidateSet(msg)

    grid = downsample(image, cells_wide, cells_high)
    h, w = grid.shape[:2]
    quantized = quantize(grid, palette)
    logger.debug("Quantised %dx%d grid to %d colours", w, h, len(palette))

    out = Image.fromarray(quantized)
    return out.resize((w * upscale, h * upscale), Image.NEAREST)


def render_mosaic(
    image: Image.Image | np.ndarray,
    library: TileLibrary,
    grid_wide: int,
    grid_high: int = 0,
    tile_size: int | None = None,
    progress: Callable[[int], None] | None = None,
) -> Image.Image:
    """Rebuild *image* from the thumbnails in *library*.

    Each grid cell is painted with the full thumbnail of the tile whose
    average colour is closest to the cell colour.

    Args:
        image:     Source image.
        library:   Non-empty tile library.
        grid_wide: Tiles across.
        grid_high: Tiles down (0 = derive from the aspect ratio).
        tile_size: Expected tile side; defaults to the library's.
        progress:  Called with the number of cells composited so far since
            the previous call (once per grid row).

    Returns:
        RGB image of ``grid_wide * tile_size`` by ``grid_high * tile_size``.
    """
    if len(library) == 0:
        msg = "Cannot render a mosaic with an empty tile library"
        raise EmptyCandidateSet(msg)
    if tile_size is None:
        tile_size = library.tile_size
    elif tile_size != library.tile_size:
        msg = f"tile_size {tile_size} does not match library tiles ({library.tile_size}px)"
        raise ValueError(msg)

    grid = downsample(image, grid_wide, grid_high)
    h, w = grid.shape[:2]
    choice = nearest_indices(grid.reshape(-1, 3), library.colors).reshape(h, w)

    ts = tile_size
    out = np.empty((h * ts, w * ts, 3), dtype=np.uint8)
    for y in range(h):
        for x in range(w):
            out[y * ts:(y + 1) * ts, x * ts:(x + 1) * ts] = library[choice[y, x]].pixels
        if progress is not None:
            progress(w)

    logger.debug("Composited %dx%d mosaic from %d tiles", w, h, len(library))
    return Image.fromarray(out)
