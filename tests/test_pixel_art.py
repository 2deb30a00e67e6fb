"""Tests for the colour engine: matching, palettes, tiles and rendering."""

from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest
from PIL import Image

from pixel_art.color_utils import (
    average_color,
    clamp_colors,
    squared_distance,
    squared_distance_matrix,
)
from pixel_art.config import PixelArtConfig
from pixel_art.errors import (
    CorpusEmpty,
    EmptyCandidateSet,
    NoSamplesCollected,
    NoValidTiles,
)
from pixel_art.matching import nearest, nearest_indices
from pixel_art.palette import build_palette, build_palette_from_dir, sample_colors
from pixel_art.render import render_mosaic, render_pixel_art
from pixel_art.tiles import Tile, TileLibrary, build_tile_library

# -- Fixtures ----------------------------------------------------------

RED = (255, 0, 0)
GREEN = (0, 255, 0)
BLUE = (0, 0, 255)
YELLOW = (255, 255, 0)


def _solid(color: tuple[int, int, int], size: tuple[int, int] = (10, 10)) -> Image.Image:
    return Image.new("RGB", size, color)


@pytest.fixture
def photo() -> Image.Image:
    """Synthetic non-square source image (40 wide x 20 high)."""
    rng = np.random.default_rng(456)
    return Image.fromarray(rng.integers(0, 256, size=(20, 40, 3), dtype=np.uint8))


@pytest.fixture
def palette() -> np.ndarray:
    return np.array([RED, GREEN, BLUE, YELLOW, (0, 0, 0), (255, 255, 255)], dtype=np.float64)


@pytest.fixture
def color_dir(tmp_path: Path) -> Path:
    """Four solid-colour corpus images."""
    d = tmp_path / "corpus"
    d.mkdir()
    for name, color in [("a_red", RED), ("b_green", GREEN), ("c_blue", BLUE), ("d_yellow", YELLOW)]:
        _solid(color).save(d / f"{name}.png")
    return d


@pytest.fixture
def library(color_dir: Path) -> TileLibrary:
    return build_tile_library(color_dir, tile_size=4)


# -- Config ------------------------------------------------------------

class TestConfig:
    def test_defaults(self) -> None:
        cfg = PixelArtConfig()
        assert cfg.palette_size == 32
        assert cfg.pixel_height == 0
        assert cfg.seed is None

    def test_frozen(self) -> None:
        cfg = PixelArtConfig()
        with pytest.raises(AttributeError):
            cfg.palette_size = 8  # type: ignore[misc]

    def test_suffix_follows_mode(self) -> None:
        assert PixelArtConfig().suffix == "_pixel"
        assert PixelArtConfig(mosaic=True).suffix == "_mosaic"

    def test_validate_rejects_zero_width(self) -> None:
        with pytest.raises(ValueError, match="pixel_width"):
            PixelArtConfig(pixel_width=0).validate()

    def test_validate_rejects_negative_height(self) -> None:
        with pytest.raises(ValueError, match="pixel_height"):
            PixelArtConfig(pixel_height=-1).validate()


# -- Colour utilities --------------------------------------------------

class TestColorUtils:
    def test_squared_distance(self) -> None:
        assert squared_distance(np.array([0, 0, 0]), np.array([1, 2, 2])) == 9.0

    def test_distance_matrix(self) -> None:
        q = np.array([[0, 0, 0], [10, 0, 0]], dtype=np.float64)
        c = np.array([[0, 0, 0], [0, 0, 3]], dtype=np.float64)
        dist = squared_distance_matrix(q, c, chunk_size=1)
        np.testing.assert_allclose(dist, [[0, 9], [100, 109]])

    def test_clamp(self) -> None:
        out = clamp_colors(np.array([[-5.0, 127.6, 300.0]]))
        np.testing.assert_array_equal(out, [[0, 128, 255]])
        assert out.dtype == np.uint8

    def test_average(self) -> None:
        px = np.array([[[0, 0, 0], [255, 255, 255]]], dtype=np.uint8)
        np.testing.assert_allclose(average_color(px), [127.5, 127.5, 127.5])

    def test_average_empty_is_black(self) -> None:
        np.testing.assert_array_equal(average_color(np.empty((0, 3))), [0, 0, 0])


# -- Nearest match -----------------------------------------------------

class TestNearest:
    def test_singleton_always_wins(self) -> None:
        only = np.array([12.0, 34.0, 56.0])
        for query in ([0, 0, 0], [255, 255, 255], [12, 34, 56]):
            assert nearest(np.array(query), [only], lambda c: c) is only

    def test_picks_closest(self, palette: np.ndarray) -> None:
        hit = nearest(np.array([250, 10, 5]), list(palette), lambda c: c)
        np.testing.assert_array_equal(hit, RED)

    def test_ties_resolve_to_first(self) -> None:
        cands = [("a", np.array([0, 0, 0])), ("b", np.array([2, 0, 0]))]
        assert nearest(np.array([1, 0, 0]), cands, lambda t: t[1])[0] == "a"
        idx = nearest_indices(np.array([[1, 0, 0]]), np.array([[0, 0, 0], [2, 0, 0]]))
        assert idx[0] == 0

    def test_repeatable(self, palette: np.ndarray) -> None:
        query = np.array([100, 200, 30])
        cands = list(palette)
        first = nearest(query, cands, lambda c: c)
        for _ in range(5):
            assert nearest(query, cands, lambda c: c) is first

    def test_empty_raises(self) -> None:
        with pytest.raises(EmptyCandidateSet):
            nearest(np.zeros(3), [], lambda c: c)
        with pytest.raises(EmptyCandidateSet):
            nearest_indices(np.zeros((1, 3)), np.empty((0, 3)))

    def test_vectorised_agrees_with_scan(self, palette: np.ndarray) -> None:
        rng = np.random.default_rng(7)
        queries = rng.random((50, 3)) * 255
        idx = nearest_indices(queries, palette)
        for q, i in zip(queries, idx, strict=True):
            hit = nearest(q, list(range(len(palette))), lambda j: palette[j])
            assert hit == i


# -- Sampling ----------------------------------------------------------

class TestSampling:
    def test_every_pixel_when_unbounded(self) -> None:
        assert len(sample_colors(_solid(RED), 0)) == 100

    def test_cap_larger_than_image(self) -> None:
        assert len(sample_colors(_solid(RED), 500)) == 100

    def test_stride_grid(self) -> None:
        # stride = ceil(sqrt(100 / 25)) = 2 -> 5 x 5 grid
        assert len(sample_colors(_solid(RED), 25)) == 25

    def test_never_exceeds_cap(self) -> None:
        # stride 4 gives a 3 x 3 grid, truncated to the cap
        samples = sample_colors(_solid(BLUE), 7)
        assert len(samples) == 7
        np.testing.assert_array_equal(samples, np.tile(BLUE, (7, 1)))

    def test_grayscale_array(self) -> None:
        samples = sample_colors(np.full((4, 4), 7, dtype=np.uint8), 0)
        assert samples.shape == (16, 3)
        assert (samples == 7).all()

    def test_row_major_order(self) -> None:
        arr = np.zeros((2, 2, 3), dtype=np.uint8)
        arr[0, 1] = GREEN
        arr[1, 0] = RED
        samples = sample_colors(arr, 0)
        np.testing.assert_array_equal(samples[1], GREEN)
        np.testing.assert_array_equal(samples[2], RED)


# -- Palette learning --------------------------------------------------

class TestPalette:
    def test_empty_inputs(self) -> None:
        assert build_palette(np.empty((0, 3)), 4).shape == (0, 3)
        assert build_palette(np.array([RED]), 0).shape == (0, 3)

    def test_passthrough_when_k_exceeds_samples(self) -> None:
        samples = np.array([RED, GREEN, BLUE], dtype=np.float64)
        pal = build_palette(samples, 8)
        assert len(pal) == 3
        assert {tuple(c) for c in pal} == {tuple(c) for c in samples}

    def test_k_centroids_in_range(self) -> None:
        rng = np.random.default_rng(0)
        samples = rng.integers(0, 256, size=(300, 3)).astype(np.float64)
        pal = build_palette(samples, 5, rng=np.random.default_rng(1))
        assert pal.shape == (5, 3)
        assert pal.min() >= 0
        assert pal.max() <= 255

    def test_seeded_is_reproducible(self) -> None:
        samples = np.random.default_rng(3).random((200, 3)) * 255
        a = build_palette(samples, 4, rng=np.random.default_rng(9))
        b = build_palette(samples, 4, rng=np.random.default_rng(9))
        np.testing.assert_array_equal(a, b)

    def test_two_clusters_converge(self) -> None:
        samples = np.array([[10, 10, 10]] * 50 + [[240, 240, 240]] * 50, dtype=np.float64)
        for seed in range(5):
            pal = build_palette(samples, 2, max_iterations=10, rng=np.random.default_rng(seed))
            got = sorted(tuple(c) for c in pal)
            assert got == [(10, 10, 10), (240, 240, 240)]

    def test_from_dir_recovers_solid_colours(self, color_dir: Path) -> None:
        pal = build_palette_from_dir(color_dir, 4, samples_per_image=1, max_iterations=10)
        assert {tuple(c) for c in pal} == {RED, GREEN, BLUE, YELLOW}

    def test_from_dir_is_read_only(self, color_dir: Path) -> None:
        pal = build_palette_from_dir(color_dir, 2, samples_per_image=20, seed=0)
        assert pal.shape == (2, 3)
        assert not pal.flags.writeable

    def test_max_images_cap(self, color_dir: Path) -> None:
        pal = build_palette_from_dir(color_dir, 4, samples_per_image=1, max_images=1)
        np.testing.assert_array_equal(pal, [RED])

    def test_recurses_into_subdirectories(self, tmp_path: Path) -> None:
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        _solid(GREEN).save(nested / "leaf.PNG")
        pal = build_palette_from_dir(tmp_path, 3, samples_per_image=1)
        np.testing.assert_array_equal(pal, [GREEN])

    def test_empty_dir(self, tmp_path: Path) -> None:
        with pytest.raises(CorpusEmpty):
            build_palette_from_dir(tmp_path, 4)

    def test_only_undecodable_files(self, tmp_path: Path) -> None:
        (tmp_path / "broken.png").write_bytes(b"not an image")
        with pytest.raises(NoSamplesCollected):
            build_palette_from_dir(tmp_path, 4)


# -- Tiles -------------------------------------------------------------

class TestTiles:
    def test_tile_from_image(self) -> None:
        tile = Tile.from_image(_solid(BLUE, (30, 12)), 6)
        assert tile.pixels.shape == (6, 6, 3)
        assert tile.size == 6
        np.testing.assert_allclose(tile.color, BLUE)
        assert not tile.pixels.flags.writeable

    def test_library_from_dir(self, library: TileLibrary) -> None:
        assert len(library) == 4
        assert library.tile_size == 4
        assert library.colors.shape == (4, 3)
        np.testing.assert_allclose(library[0].color, RED)

    def test_skips_bad_files(self, color_dir: Path) -> None:
        (color_dir / "zz_broken.jpg").write_bytes(b"garbage")
        assert len(build_tile_library(color_dir, 4)) == 4

    def test_empty_dir_has_no_tiles(self, tmp_path: Path) -> None:
        with pytest.raises(NoValidTiles):
            build_tile_library(tmp_path, 8)

    def test_no_valid_tiles_is_corpus_error(self, tmp_path: Path) -> None:
        (tmp_path / "broken.png").write_bytes(b"garbage")
        with pytest.raises(CorpusEmpty):
            build_tile_library(tmp_path, 8)

    def test_library_lookup_by_identity(self, library: TileLibrary) -> None:
        assert library.index(library[1]) == 1
        assert library[2] in library
        assert library.count(library[3]) == 1
        assert len({hash(t) for t in library}) == 4

    def test_mixed_sizes_rejected(self) -> None:
        with pytest.raises(ValueError):
            TileLibrary([Tile.from_image(_solid(RED), 4), Tile.from_image(_solid(RED), 5)])


# -- Pixel-art rendering -----------------------------------------------

class TestRenderPixelArt:
    def test_auto_height_dimensions(self, photo: Image.Image, palette: np.ndarray) -> None:
        out = render_pixel_art(photo, palette, cells_wide=10, upscale=3)
        # 40x20 source -> 10x5 grid
        assert out.size == (30, 15)

    def test_explicit_height(self, photo: Image.Image, palette: np.ndarray) -> None:
        out = render_pixel_art(photo, palette, cells_wide=4, cells_high=7, upscale=2)
        assert out.size == (8, 14)

    def test_blocks_are_flat_palette_colours(
        self, photo: Image.Image, palette: np.ndarray,
    ) -> None:
        up = 4
        arr = np.array(render_pixel_art(photo, palette, 8, 0, up))
        allowed = {tuple(int(v) for v in c) for c in palette}
        for y in range(0, arr.shape[0], up):
            for x in range(0, arr.shape[1], up):
                block = arr[y:y + up, x:x + up].reshape(-1, 3)
                assert (block == block[0]).all()
                assert tuple(int(v) for v in block[0]) in allowed

    def test_exact_palette_reproduces_input(self) -> None:
        src = np.array(
            [[[255, 255, 255], [255, 255, 255]], [[0, 0, 0], [0, 0, 0]]], dtype=np.uint8,
        )
        pal = np.array([[255, 255, 255], [0, 0, 0]], dtype=np.float64)
        out = render_pixel_art(Image.fromarray(src), pal, 2, 2, 1)
        np.testing.assert_array_equal(np.array(out), src)

    def test_empty_palette_fails(self, photo: Image.Image) -> None:
        with pytest.raises(EmptyCandidateSet):
            render_pixel_art(photo, np.empty((0, 3)), 4)


# -- Mosaic rendering --------------------------------------------------

class TestRenderMosaic:
    def test_dimensions(self, photo: Image.Image, library: TileLibrary) -> None:
        out = render_mosaic(photo, library, grid_wide=6, grid_high=3, tile_size=4)
        assert out.size == (24, 12)

    def test_blocks_are_tiles(self, photo: Image.Image, library: TileLibrary) -> None:
        ts = library.tile_size
        arr = np.array(render_mosaic(photo, library, 5))
        for y in range(0, arr.shape[0], ts):
            for x in range(0, arr.shape[1], ts):
                block = arr[y:y + ts, x:x + ts]
                assert any(np.array_equal(block, t.pixels) for t in library)

    def test_solid_source_uses_matching_tile(self, library: TileLibrary) -> None:
        arr = np.array(render_mosaic(_solid(BLUE, (12, 12)), library, 3, 3))
        np.testing.assert_array_equal(arr, np.tile(library[2].pixels, (3, 3, 1)))

    def test_progress_reports_every_cell(
        self, photo: Image.Image, library: TileLibrary,
    ) -> None:
        done: list[int] = []
        render_mosaic(photo, library, 6, 3, progress=done.append)
        assert sum(done) == 18

    def test_tile_size_mismatch(self, photo: Image.Image, library: TileLibrary) -> None:
        with pytest.raises(ValueError):
            render_mosaic(photo, library, 4, tile_size=9)

    def test_empty_library_fails(self, photo: Image.Image) -> None:
        with pytest.raises(EmptyCandidateSet):
            render_mosaic(photo, TileLibrary([]), 4)
