"""Image decoding, PNG encoding, corpus discovery and output layout."""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np
from PIL import Image

from pixel_art.color_utils import clamp_colors
from pixel_art.errors import DecodeFailure, EncodeFailure

logger = logging.getLogger(__name__)


def compute_grid_size(
    original_width: int,
    original_height: int,
    cells_wide: int,
    cells_high: int = 0,
) -> tuple[int, int]:
    """Resolve the working grid (w, h).

    A *cells_high* of zero is derived from the source aspect ratio
    (rounded to the nearest integer, minimum 1).
    """
    if cells_high > 0:
        return cells_wide, cells_high
    h = max(1, round(cells_wide * original_height / original_width))
    return cells_wide, h


def to_rgb_image(image: Image.Image | np.ndarray) -> Image.Image:
    """Return *image* as an RGB Pillow image.

    Arrays may be (H, W) grayscale or (H, W, 3|4) colour; values are rounded
    and clamped to 0..255 rather than wrapped.
    """
    if isinstance(image, np.ndarray):
        image = Image.fromarray(clamp_colors(image))
    return image.convert("RGB")


def load_image(path: str | Path) -> Image.Image:
    """Decode any Pillow-readable image as RGB.

    Raises:
        DecodeFailure: if the file is missing or not a decodable image.
    """
    try:
        with Image.open(path) as img:
            return img.convert("RGB")
    except (OSError, Image.DecompressionBombError) as exc:
        raise DecodeFailure(path, str(exc)) from exc


def save_png(img: Image.Image, path: str | Path) -> None:
    """Write *img* as PNG, creating parent directories as needed.

    Raises:
        EncodeFailure: if the directory or file cannot be written.
    """
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        img.save(path, format="PNG")
    except (OSError, ValueError) as exc:
        raise EncodeFailure(path, str(exc)) from exc


def collect_images(folder: Path, extensions: frozenset[str]) -> list[Path]:
    """Recursively list image files under *folder*, sorted by path.

    Unreadable entries are skipped rather than failing the scan.
    """
    if not folder.is_dir():
        return []
    found = []
    for f in folder.rglob("*"):
        # is_file() swallows stat errors and reports False
        if f.suffix.lower() in extensions and f.is_file():
            found.append(f)
    return sorted(found)


def output_path_for(
    source: Path,
    input_root: Path,
    output_dir: Path,
    suffix: str,
) -> Path:
    """Mirror *source* under *output_dir* as ``<stem><suffix>.png``.

    The source extension is dropped, so ``a.png`` and ``a.jpg`` in one
    folder share an output path.
    """
    try:
        rel = source.relative_to(input_root)
    except ValueError:
        rel = Path(source.name)
    return output_dir / rel.with_name(f"{rel.stem}{suffix}.png")


def save_palette_swatch(
    palette: np.ndarray,
    path: str | Path,
    cell_size: int = 32,
    columns: int = 8,
) -> None:
    """Save the palette as a grid of flat colour squares."""
    colors = clamp_colors(palette)
    n = len(colors)
    if n == 0:
        msg = "Cannot draw a swatch for an empty palette"
        raise ValueError(msg)
    cols = max(1, min(columns, n))
    rows = max(1, -(-n // cols))

    grid = np.zeros((rows * cols, 3), dtype=np.uint8)
    grid[:n] = colors
    img = Image.fromarray(grid.reshape(rows, cols, 3))
    img = img.resize((cols * cell_size, rows * cell_size), Image.NEAREST)
    save_png(img, path)
