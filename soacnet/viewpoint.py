"""Camera viewpoint that can be saved to and restored from text."""

from __future__ import annotations

import io
import os
from dataclasses import dataclass
from typing import TextIO, Union

PathLike = Union[str, "os.PathLike[str]"]


@dataclass
class Camera:
    """Camera placement: clipping range, position, focal point and up vector."""

    clipping_range: tuple[float, float] = (0.01, 1000.01)
    position: tuple[float, float, float] = (0.0, 0.0, 1.0)
    focal_point: tuple[float, float, float] = (0.0, 0.0, 0.0)
    view_up: tuple[float, float, float] = (0.0, 1.0, 0.0)


_SECTIONS = (
    ("ClippingRange", "clipping_range", 2),
    ("CameraPosition", "position", 3),
    ("CameraFocalPoint", "focal_point", 3),
    ("CameraViewUp", "view_up", 3),
)


def _format(values: tuple[float, ...]) -> str:
    return " ".join(f"{v:g}" for v in values)


class Viewpoint:
    """A camera together with its textual save/restore format."""

    def __init__(self) -> None:
        self.path = ".."
        self.camera = Camera()
        self.default_viewpoint_str = ""

    def to_string(self) -> str:
        """Return the camera settings in the viewpoint file format."""
        return "".join(
            f"{section}\n{_format(getattr(self.camera, attribute))}\n"
            for section, attribute, _ in _SECTIONS
        )

    def __str__(self) -> str:
        return self.to_string()

    def save_to_file(self, filename: PathLike) -> bool:
        """Write the viewpoint to ``filename``; return False if it cannot be opened."""
        try:
            with open(filename, "w", encoding="utf-8") as outfile:
                outfile.write(self.to_string())
        except OSError:
            return False
        self.path = os.path.dirname(os.path.abspath(filename))
        return True

    def load_from_file(self, filename: PathLike) -> bool:
        """Read the viewpoint from ``filename``; return False if it cannot be opened."""
        try:
            with open(filename, encoding="utf-8") as infile:
                self.load(infile)
        except OSError:
            return False
        self.path = os.path.dirname(os.path.abspath(filename))
        return True

    def save_default(self) -> None:
        """Remember the current viewpoint as default, unless one is already kept."""
        if not self.default_viewpoint_str:
            self.default_viewpoint_str = self.to_string()

    def load_default(self) -> None:
        """Restore the remembered default viewpoint, if any."""
        if not self.default_viewpoint_str:
            return
        self.load(io.StringIO(self.default_viewpoint_str))

    def load(self, stream: TextIO) -> None:
        """Read camera settings from a text stream in the viewpoint format.

        Sections are expected in order; a section whose name does not match
        is skipped. Reading stops when the stream runs out of tokens.
        """
        tokens = iter(stream.read().split())
        for section, attribute, count in _SECTIONS:
            name = next(tokens, None)
            if name is None:
                return
            if name != section:
                continue
            values = []
            for _ in range(count):
                token = next(tokens, None)
                if token is None:
                    return
                values.append(float(token))
            setattr(self.camera, attribute, tuple(values))