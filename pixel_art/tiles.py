"""Mosaic tiles: fixed-size thumbnails keyed by their average colour."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from pathlib import Path

import numpy as np
from PIL import Image

from pixel_art.color_utils import average_color
from pixel_art.config import PixelArtConfig
from pixel_art.errors import DecodeFailure, NoValidTiles
from pixel_art.image_io import collect_images, load_image

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class Tile:
    """A square RGB thumbnail and its average colour."""

    pixels: np.ndarray  # (tile_size, tile_size, 3) uint8, read-only
    color: np.ndarray  # (3,) float64, read-only

    @classmethod
    def from_image(cls, img: Image.Image, tile_size: int) -> Tile:
        """Resize *img* to ``tile_size x tile_size`` and record its mean colour."""
        thumb = img.convert("RGB").resize((tile_size, tile_size), Image.BILINEAR)
        pixels = np.array(thumb, dtype=np.uint8)
        color = average_color(pixels)
        pixels.setflags(write=False)
        color.setflags(write=False)
        return cls(pixels=pixels, color=color)

    @property
    def size(self) -> int:
        return self.pixels.shape[0]


class TileLibrary(Sequence):
    """Immutable, ordered collection of equally sized tiles."""

    def __init__(self, tiles: Sequence[Tile]) -> None:
        self._tiles = tuple(tiles)
        sizes = {t.size for t in self._tiles}
        if len(sizes) > 1:
            msg = f"All tiles must share one size, got {sorted(sizes)}"
            raise ValueError(msg)
        self.tile_size = sizes.pop() if sizes else 0
        self.colors = (
            np.stack([t.color for t in self._tiles])
            if self._tiles else np.empty((0, 3), dtype=np.float64)
        )
        self.colors.setflags(write=False)

    def __getitem__(self, index):
        return self._tiles[index]

    def __len__(self) -> int:
        return len(self._tiles)

    def __iter__(self) -> Iterator[Tile]:
        return iter(self._tiles)

    def __repr__(self) -> str:
        return f"TileLibrary({len(self)} tiles, {self.tile_size}px)"


def build_tile_library(
    directory: str | Path,
    tile_size: int,
    extensions: frozenset[str] = PixelArtConfig.SUPPORTED_EXTENSIONS,
) -> TileLibrary:
    """Load every decodable image under *directory* as a tile.

    Raises:
        NoValidTiles: if no image could be turned into a tile.
    """
    if tile_size <= 0:
        msg = f"tile_size must be positive, got {tile_size}"
        raise ValueError(msg)

    directory = Path(directory)
    tiles = []
    for p in collect_images(directory, extensions):
        try:
            img = load_image(p)
        except DecodeFailure as exc:
            logger.debug("Skipping tile %s (%s)", p, exc.reason)
            continue
        tiles.append(Tile.from_image(img, tile_size))

    if not tiles:
        msg = f"No valid tiles found in {directory}"
        raise NoValidTiles(msg)

    logger.info("Tile library ready: %d tiles at %dpx", len(tiles), tile_size)
    return TileLibrary(tiles)
