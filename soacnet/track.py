"""Tracks of snakes followed through the frames of an image sequence."""

from __future__ import annotations

from typing import Optional

from .snake import Snake


class SnakeTrack:
    """One snake per frame, with empty frames where the snake is absent."""

    def __init__(self, nframes: int = 0) -> None:
        self.track: list[Optional[Snake]] = [None] * nframes

    def track_length(self) -> int:
        """Number of frames that hold a snake."""
        return sum(1 for s in self.track if s is not None)

    def total_curve_length(self) -> float:
        """Sum of the lengths of all snakes on the track."""
        return sum((s.length() for s in self.track if s is not None), 0.0)

    def __lt__(self, other: "SnakeTrack") -> bool:
        # Longer tracks sort first.
        return self.total_curve_length() > other.total_curve_length()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SnakeTrack):
            return NotImplemented
        return len(self.track) == len(other.track) and all(
            a is b for a, b in zip(self.track, other.track))

    __hash__ = None  # type: ignore[assignment]

    def __contains__(self, snake: object) -> bool:
        return any(s is snake for s in self.track)

    def get_snake(self, frame: int) -> Optional[Snake]:
        """Snake in ``frame``, or None if the frame is empty."""
        return self.track[frame]

    def set_snake(self, frame: int, snake: Optional[Snake]) -> None:
        """Put ``snake`` in ``frame``; raises IndexError for an invalid frame."""
        if not 0 <= frame < len(self.track):
            raise IndexError(f"invalid frame number {frame}")
        self.track[frame] = snake

    def append(self, snake: Optional[Snake]) -> None:
        """Add a frame holding ``snake`` at the end."""
        self.track.append(snake)

    def first_frame(self) -> int:
        """Index of the first frame with a snake, or -1 if there is none."""
        return next((i for i, s in enumerate(self.track) if s is not None), -1)

    def first_snake(self) -> Optional[Snake]:
        """First snake on the track, or None."""
        return next((s for s in self.track if s is not None), None)

    def __str__(self) -> str:
        return "".join(f"{s.id if s is not None else 0} " for s in self.track)