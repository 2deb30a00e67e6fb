"""Centralised configuration via a frozen dataclass."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path


@dataclass(frozen=True)
class PixelArtConfig:
    """All tuneable parameters for a conversion run.

    Attributes:
        palette_dir:        Corpus used to learn the palette (or tiles, in mosaic mode).
        input_dir:          Folder scanned recursively for images to convert.
        output_dir:         Folder for results; mirrors the input layout.
        palette_size:       Number of palette colours (k).
        samples_per_image:  Colour samples taken from each corpus image.
        max_palette_images: Cap on corpus images read (0 = no cap).
        kmeans_iterations:  Iteration cap for k-means.
        pixel_width:        Cells across the working grid.
        pixel_height:       Cells down the grid (0 = keep aspect ratio).
        upscale:            Each cell becomes n x n in palette mode.
        tile_size:          Side of each mosaic tile in output pixels.
        mosaic:             Compose from tiles instead of palette colours.
        workers:            Size of the conversion thread pool.
        seed:               Seed for k-means (None = non-deterministic).
    """

    # Paths
    palette_dir: Path = field(default_factory=lambda: Path("palette_images"))
    input_dir: Path = field(default_factory=lambda: Path("input"))
    output_dir: Path = field(default_factory=lambda: Path("out"))

    # Palette
    palette_size: int = 32
    samples_per_image: int = 500
    max_palette_images: int = 200
    kmeans_iterations: int = 40
    seed: int | None = None

    # Grid
    pixel_width: int = 64
    pixel_height: int = 0  # 0 derives the height from the source aspect ratio
    upscale: int = 8

    # Mosaic
    mosaic: bool = False
    tile_size: int = 16

    # Concurrency
    workers: int = 4

    PIXEL_SUFFIX: str = "_pixel"
    MOSAIC_SUFFIX: str = "_mosaic"

    SUPPORTED_EXTENSIONS: frozenset[str] = frozenset(
        {".png", ".jpg", ".jpeg", ".gif", ".webp"}
    )

    @property
    def suffix(self) -> str:
        return self.MOSAIC_SUFFIX if self.mosaic else self.PIXEL_SUFFIX

    def validate(self) -> None:
        """Raise ``ValueError`` for sizes that cannot produce an image."""
        positive = {
            "palette_size": self.palette_size,
            "pixel_width": self.pixel_width,
            "upscale": self.upscale,
            "tile_size": self.tile_size,
            "workers": self.workers,
            "kmeans_iterations": self.kmeans_iterations,
        }
        for name, value in positive.items():
            if value <= 0:
                msg = f"{name} must be positive, got {value}"
                raise ValueError(msg)
        if self.pixel_height < 0:
            msg = f"pixel_height must be >= 0, got {self.pixel_height}"
            raise ValueError(msg)
