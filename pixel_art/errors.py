"""Error kinds raised by the conversion engine."""

from __future__ import annotations

from pathlib import Path


class PixelArtError(Exception):
    """Base class for all pixel_art errors."""


class CorpusEmpty(PixelArtError):
    """A palette or tile corpus contains no usable images."""


class NoValidTiles(CorpusEmpty):
    """No image in the tile corpus could be decoded."""


class NoSamplesCollected(PixelArtError):
    """Every corpus image failed to decode, so k-means has nothing to fit."""


class EmptyCandidateSet(PixelArtError):
    """Nearest-match was asked to search an empty palette or tile library."""


class DecodeFailure(PixelArtError):
    """A single image could not be read or decoded."""

    def __init__(self, path: str | Path, reason: str) -> None:
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"cannot decode {self.path}: {reason}")


class EncodeFailure(PixelArtError):
    """A rendered image could not be encoded or written."""

    def __init__(self, path: str | Path, reason: str) -> None:
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"cannot write {self.path}: {reason}")
