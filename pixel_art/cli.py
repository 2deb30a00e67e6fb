"""Rich command-line interface powered by Typer."""

from __future__ import annotations

import functools
import logging
import time
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn, TimeElapsedColumn

from pixel_art.batch import Converter, run_batch
from pixel_art.color_utils import clamp_colors
from pixel_art.config import PixelArtConfig
from pixel_art.errors import DecodeFailure, EncodeFailure, PixelArtError
from pixel_art.image_io import (
    collect_images,
    compute_grid_size,
    load_image,
    save_palette_swatch,
    save_png,
)
from pixel_art.palette import build_palette_from_dir
from pixel_art.render import render_mosaic, render_pixel_art
from pixel_art.tiles import build_tile_library

app = typer.Typer(
    name="pixel-art",
    help="Turn photos into palette-quantised pixel art or tile photo-mosaics.",
    add_completion=False,
    rich_markup_mode="rich",
)
console = Console()
logger = logging.getLogger("pixel_art")


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False, markup=True)],
    )


def _progress() -> Progress:
    return Progress(
        TextColumn("[bold cyan]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TimeElapsedColumn(),
        console=console,
    )


def _build_converter(cfg: PixelArtConfig) -> Converter:
    """Build the shared palette or tile library and bind it into a converter.

    Raises:
        PixelArtError: if the corpus yields no palette or tiles.
    """
    if cfg.mosaic:
        library = build_tile_library(
            cfg.palette_dir, cfg.tile_size, cfg.SUPPORTED_EXTENSIONS,
        )
        console.print(f"Tile library built: [bold]{len(library)}[/bold] tiles")
        return functools.partial(
            render_mosaic,
            library=library,
            grid_wide=cfg.pixel_width,
            grid_high=cfg.pixel_height,
            tile_size=cfg.tile_size,
        )

    palette = build_palette_from_dir(
        cfg.palette_dir,
        cfg.palette_size,
        samples_per_image=cfg.samples_per_image,
        max_images=cfg.max_palette_images,
        max_iterations=cfg.kmeans_iterations,
        seed=cfg.seed,
        extensions=cfg.SUPPORTED_EXTENSIONS,
    )
    console.print(f"Palette built: [bold]{len(palette)}[/bold] colours")
    return functools.partial(
        render_pixel_art,
        palette=palette,
        cells_wide=cfg.pixel_width,
        cells_high=cfg.pixel_height,
        upscale=cfg.upscale,
    )


def _checked(cfg: PixelArtConfig) -> PixelArtConfig:
    try:
        cfg.validate()
    except ValueError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(2) from exc
    return cfg


# Defaults come from PixelArtConfig - single source of truth
_DEFAULTS = PixelArtConfig()


# -- batch command -----------------------------------------------------

@app.command()
def batch(
    palette_dir: Path = typer.Option(
        _DEFAULTS.palette_dir, "--palette-dir", "-P",
        help="Images to learn the palette from (tile images with --mosaic)",
    ),
    input_dir: Path = typer.Option(
        _DEFAULTS.input_dir, "--input", "-i", help="Folder with images to convert",
    ),
    output_dir: Path = typer.Option(
        _DEFAULTS.output_dir, "--output", "-o", help="Results folder",
    ),
    palette_size: int = typer.Option(
        _DEFAULTS.palette_size, "--palette-size", "-k", help="Number of palette colours",
    ),
    samples_per_image: int = typer.Option(
        _DEFAULTS.samples_per_image, "--samples-per-image",
        help="Colour samples taken from each palette image",
    ),
    max_palette_images: int = typer.Option(
        _DEFAULTS.max_palette_images, "--max-palette-images",
        help="Max images read from the palette folder (0 = all)",
    ),
    pixel_width: int = typer.Option(
        _DEFAULTS.pixel_width, "--width", "-w", help="Grid width in cells",
    ),
    pixel_height: int = typer.Option(
        _DEFAULTS.pixel_height, "--height", "-H",
        help="Grid height in cells (0 = preserve aspect ratio)",
    ),
    upscale: int = typer.Option(
        _DEFAULTS.upscale, "--upscale", "-u", help="Pixel upscale factor",
    ),
    mosaic: bool = typer.Option(
        _DEFAULTS.mosaic, "--mosaic/--pixel", help="Tile mosaic instead of pixel art",
    ),
    tile_size: int = typer.Option(
        _DEFAULTS.tile_size, "--tile-size", "-t", help="Mosaic tile side in pixels",
    ),
    workers: int = typer.Option(
        _DEFAULTS.workers, "--workers", "-j", help="Concurrent conversions",
    ),
    seed: int | None = typer.Option(
        _DEFAULTS.seed, "--seed", "-s", help="k-means seed (None = random)",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Convert every image under INPUT_DIR and write results to OUTPUT_DIR."""
    _setup_logging(verbose)

    cfg = _checked(PixelArtConfig(
        palette_dir=palette_dir,
        input_dir=input_dir,
        output_dir=output_dir,
        palette_size=palette_size,
        samples_per_image=samples_per_image,
        max_palette_images=max_palette_images,
        pixel_width=pixel_width,
        pixel_height=pixel_height,
        upscale=upscale,
        mosaic=mosaic,
        tile_size=tile_size,
        workers=workers,
        seed=seed,
    ))

    images = collect_images(input_dir, cfg.SUPPORTED_EXTENSIONS)
    if not images:
        console.print(f"\n[yellow]No images found in {input_dir}/[/yellow]")
        console.print("Place .jpg / .png / ... files there and re-run.\n")
        raise typer.Exit(0)

    console.print(Panel.fit(
        f"[bold]PIXEL ART[/bold]  ({'mosaic' if cfg.mosaic else 'palette'} mode)\n"
        f"Grid width: {cfg.pixel_width}  |  Height: {cfg.pixel_height or 'auto'}\n"
        f"{'Tile size' if cfg.mosaic else 'Palette size'}: "
        f"{cfg.tile_size if cfg.mosaic else cfg.palette_size}  |  "
        f"Workers: {cfg.workers}  |  Images: {len(images)}",
        border_style="cyan",
    ))

    console.print(f"Building {'tiles' if cfg.mosaic else 'palette'} from {palette_dir}")
    try:
        convert = _build_converter(cfg)
    except PixelArtError as exc:
        logger.error("Failed to build %s: %s", "tiles" if cfg.mosaic else "palette", exc)
        raise typer.Exit(1) from exc

    t0 = time.perf_counter()
    with _progress() as progress:
        task = progress.add_task("Converting", total=len(images))
        report = run_batch(
            images,
            input_dir,
            output_dir,
            convert,
            cfg.suffix,
            workers=cfg.workers,
            on_done=lambda _result: progress.advance(task),
        )
    elapsed = time.perf_counter() - t0

    for failure in report.failed:
        console.print(f"  [red]✗[/red] {failure.source}  [dim]{failure.error}[/dim]")

    console.print(Panel.fit(
        f"[bold green]ALL DONE[/bold green] - {len(report.succeeded)} written, "
        f"{len(report.failed)} failed in {elapsed:.1f}s\n"
        f"Results in [bold]{output_dir}/[/bold]",
        border_style="green" if not report.failed else "yellow",
    ))


# -- single-image command ----------------------------------------------

@app.command()
def single(
    source: Path = typer.Argument(..., help="Path to the image to convert"),
    palette_dir: Path = typer.Option(_DEFAULTS.palette_dir, "--palette-dir", "-P"),
    output: Path = typer.Option(Path("out/pixel.png"), "--output", "-o"),
    palette_size: int = typer.Option(_DEFAULTS.palette_size, "--palette-size", "-k"),
    pixel_width: int = typer.Option(_DEFAULTS.pixel_width, "--width", "-w"),
    pixel_height: int = typer.Option(_DEFAULTS.pixel_height, "--height", "-H"),
    upscale: int = typer.Option(_DEFAULTS.upscale, "--upscale", "-u"),
    mosaic: bool = typer.Option(_DEFAULTS.mosaic, "--mosaic/--pixel"),
    tile_size: int = typer.Option(_DEFAULTS.tile_size, "--tile-size", "-t"),
    seed: int | None = typer.Option(_DEFAULTS.seed, "--seed", "-s"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Process a single image."""
    _setup_logging(verbose)

    cfg = _checked(PixelArtConfig(
        palette_dir=palette_dir,
        palette_size=palette_size,
        pixel_width=pixel_width,
        pixel_height=pixel_height,
        upscale=upscale,
        mosaic=mosaic,
        tile_size=tile_size,
        seed=seed,
    ))

    try:
        img = load_image(source)
        if cfg.mosaic:
            library = build_tile_library(palette_dir, tile_size, cfg.SUPPORTED_EXTENSIONS)
            grid_w, grid_h = compute_grid_size(img.width, img.height, pixel_width, pixel_height)
            with _progress() as progress:
                task = progress.add_task("Compositing", total=grid_w * grid_h)
                out = render_mosaic(
                    img, library, pixel_width, pixel_height, tile_size,
                    progress=lambda n: progress.advance(task, n),
                )
        else:
            out = _build_converter(cfg)(img)
        save_png(out, output)
    except (DecodeFailure, EncodeFailure) as exc:
        logger.error("%s", exc)
        raise typer.Exit(1) from exc
    except PixelArtError as exc:
        logger.error("Cannot convert %s: %s", source, exc)
        raise typer.Exit(1) from exc

    console.print(
        f"[green]✓[/green] Saved to {output}  [dim]{out.width}x{out.height} px[/dim]"
    )


# -- palette command ---------------------------------------------------

@app.command()
def palette(
    palette_dir: Path = typer.Option(_DEFAULTS.palette_dir, "--palette-dir", "-P"),
    output: Path = typer.Option(Path("out/palette.png"), "--output", "-o"),
    palette_size: int = typer.Option(_DEFAULTS.palette_size, "--palette-size", "-k"),
    samples_per_image: int = typer.Option(
        _DEFAULTS.samples_per_image, "--samples-per-image",
    ),
    max_palette_images: int = typer.Option(
        _DEFAULTS.max_palette_images, "--max-palette-images",
    ),
    seed: int | None = typer.Option(_DEFAULTS.seed, "--seed", "-s"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Learn a palette and save it as a swatch image."""
    _setup_logging(verbose)
    _checked(PixelArtConfig(palette_size=palette_size))

    try:
        colors = build_palette_from_dir(
            palette_dir,
            palette_size,
            samples_per_image=samples_per_image,
            max_images=max_palette_images,
            seed=seed,
        )
        save_palette_swatch(colors, output)
    except PixelArtError as exc:
        logger.error("%s", exc)
        raise typer.Exit(1) from exc

    for r, g, b in clamp_colors(colors):
        console.print(f"  [on rgb({r},{g},{b})]    [/]  #{r:02X}{g:02X}{b:02X}")
    console.print(f"[green]✓[/green] {len(colors)} colours saved to {output}")


if __name__ == "__main__":
    app()
