"""Parameter set controlling snake initialisation, evolution and grouping."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from typing import Callable, Union

PathLike = Union[str, "os.PathLike[str]"]


class ParameterError(ValueError):
    """Raised for malformed or inconsistent parameter values."""


_INT_PREFIX = re.compile(r"\s*([+-]?\d+)")
_FLOAT_PREFIX = re.compile(
    r"\s*([+-]?(?:(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|inf(?:inity)?|nan))",
    re.IGNORECASE,
)

_EPSILON = 1e-8


def _parse_int(name: str, value: str) -> int:
    match = _INT_PREFIX.match(value)
    if match is None:
        raise ParameterError(f"invalid integer {value!r} for parameter {name!r}")
    return int(match.group(1))


def _parse_float(name: str, value: str) -> float:
    match = _FLOAT_PREFIX.match(value)
    if match is None:
        raise ParameterError(f"invalid number {value!r} for parameter {name!r}")
    return float(match.group(1))


def _parse_bool(name: str, value: str) -> bool:
    return value == "true"


def _format(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    return f"{value:g}"


_Parser = Callable[[str, str], object]

# Parameter names (current and legacy) mapped to attribute and parser.
_ASSIGNMENTS: dict[str, tuple[str, _Parser]] = {
    "intensity-scaling": ("intensity_scaling", _parse_float),
    "smoothing": ("sigma", _parse_float),
    "gaussian-std": ("sigma", _parse_float),
    "grad-diff": ("ridge_threshold", _parse_float),
    "ridge-threshold": ("ridge_threshold", _parse_float),
    "foreground": ("maximum_foreground", _parse_int),
    "maximum-foreground": ("maximum_foreground", _parse_int),
    "background": ("minimum_foreground", _parse_int),
    "minimum-foreground": ("minimum_foreground", _parse_int),
    "spacing": ("spacing", _parse_float),
    "snake-point-spacing": ("spacing", _parse_float),
    "minimum-size": ("minimum_length", _parse_float),
    "minimum-snake-length": ("minimum_length", _parse_float),
    "max-iterations": ("maximum_iterations", _parse_int),
    "maximum-iterations": ("maximum_iterations", _parse_int),
    "change-threshold": ("change_threshold", _parse_float),
    "check-period": ("check_period", _parse_int),
    "alpha": ("alpha", _parse_float),
    "beta": ("beta", _parse_float),
    "gamma": ("gamma", _parse_float),
    "weight": ("external_factor", _parse_float),
    "external-factor": ("external_factor", _parse_float),
    "stretch": ("stretch_factor", _parse_float),
    "stretch-factor": ("stretch_factor", _parse_float),
    "nsector": ("number_of_sectors", _parse_int),
    "number-of-background-radial-sectors": ("number_of_sectors", _parse_int),
    "radial-near": ("radial_near", _parse_int),
    "radial-far": ("radial_far", _parse_int),
    "background-z-xy-ratio": ("zspacing", _parse_float),
    "delta": ("delta", _parse_int),
    "overlap-threshold": ("overlap_threshold", _parse_float),
    "grouping-distance-threshold": ("grouping_distance_threshold", _parse_float),
    "grouping-delta": ("grouping_delta", _parse_int),
    "direction-threshold": ("direction_threshold", _parse_float),
    "minimum-angle-for-soac-linking": ("direction_threshold", _parse_float),
    "damp-z": ("damp_z", _parse_bool),
    "association-threshold": ("association_threshold", _parse_float),
    "c": ("c", _parse_float),
    "grouping": ("grouping", _parse_bool),
}


@dataclass
class SnakeParameters:
    """All tunable parameters of the snake extraction and grouping process."""

    intensity_scaling: float = 0.0
    sigma: float = 0.0
    ridge_threshold: float = 0.01
    maximum_foreground: int = 65535
    minimum_foreground: int = 0
    init_directions: list[bool] = field(default_factory=lambda: [True, True, True])
    spacing: float = 1.0
    minimum_length: float = 10.0
    maximum_iterations: int = 10000
    change_threshold: float = 0.1
    check_period: int = 100
    alpha: float = 0.01
    beta: float = 0.1
    gamma: float = 2.0
    external_factor: float = 1.0
    stretch_factor: float = 0.2
    number_of_sectors: int = 8
    zspacing: float = 1.0
    radial_near: int = 4
    radial_far: int = 8
    delta: int = 4
    overlap_threshold: float = 1.0
    grouping_distance_threshold: float = 4.0
    grouping_delta: int = 8
    direction_threshold: float = 2.1
    damp_z: bool = False
    association_threshold: float = 0.0
    c: float = 1.0
    grouping: bool = False
    path: str | None = field(default=None, compare=False)
    _snake_id_counter: int = field(default=0, init=False, repr=False, compare=False)

    def to_string(self) -> str:
        """Return the parameters in the tab-separated file format."""
        entries = [
            ("intensity-scaling", self.intensity_scaling),
            ("gaussian-std", self.sigma),
            ("ridge-threshold", self.ridge_threshold),
            ("maximum-foreground", self.maximum_foreground),
            ("minimum-foreground", self.minimum_foreground),
            ("init-z", bool(self.init_directions[2])),
            ("snake-point-spacing", self.spacing),
            ("minimum-snake-length", self.minimum_length),
            ("maximum-iterations", self.maximum_iterations),
            ("change-threshold", self.change_threshold),
            ("check-period", self.check_period),
            ("alpha", self.alpha),
            ("beta", self.beta),
            ("gamma", self.gamma),
            ("external-factor", self.external_factor),
            ("stretch-factor", self.stretch_factor),
            ("number-of-background-radial-sectors", self.number_of_sectors),
            ("background-z-xy-ratio", self.zspacing),
            ("radial-near", self.radial_near),
            ("radial-far", self.radial_far),
            ("delta", self.delta),
            ("overlap-threshold", self.overlap_threshold),
            ("grouping-distance-threshold", self.grouping_distance_threshold),
            ("grouping-delta", self.grouping_delta),
            ("minimum-angle-for-soac-linking", self.direction_threshold),
            ("damp-z", self.damp_z),
            ("association-threshold", self.association_threshold),
            ("c", self.c),
            ("grouping", self.grouping),
        ]
        return "".join(f"{name}\t{_format(value)}\n" for name, value in entries)

    def __str__(self) -> str:
        return self.to_string()

    def validate(self) -> None:
        """Check parameter constraints, raising ParameterError on the first violation."""
        checks = [
            (self.maximum_foreground < self.minimum_foreground,
             "Minimum foreground is greater than maximum foreground!"),
            (self.spacing < _EPSILON, "Spacing is too small!"),
            (self.change_threshold < _EPSILON, "Change threshold is too small!"),
            (self.minimum_length < _EPSILON, "Minimum length is too small!"),
            (self.alpha < 0.0, "Alpha cannot be negative!"),
            (self.beta < 0.0, "Beta cannot be negative!"),
            (self.gamma < 0.0, "Gamma cannot be negative"),
            (self.radial_near >= self.radial_far,
             "Radial far must be greater than radial near!"),
            (self.grouping_distance_threshold < 0.0,
             "Grouping distance threshold cannot be negative!"),
            (self.grouping_delta <= 0, "Grouping delta must be positive!"),
            (self.direction_threshold <= 0.0,
             "Minimum angle for SOAC linking must be positive!"),
            (self.c <= 0.0,
             "Parameter C for curve similarity must be positive."),
        ]
        for failed, message in checks:
            if failed:
                raise ParameterError(message)

    def assign(self, name: str, value: str) -> None:
        """Set the parameter called ``name`` from its textual ``value``.

        Unknown names are ignored.
        """
        if name == "init-z":
            self.init_directions[2] = value == "true"
            return
        entry = _ASSIGNMENTS.get(name)
        if entry is None:
            return
        attribute, parse = entry
        setattr(self, attribute, parse(name, value))

    def load(self, filename: PathLike) -> None:
        """Read parameters from a file of ``name value`` lines."""
        with open(filename, encoding="utf-8") as infile:
            for line in infile:
                tokens = line.split()
                name = tokens[0] if tokens else ""
                value = tokens[1] if len(tokens) > 1 else ""
                self.assign(name, value)
        self.path = os.fspath(filename)

    def save(self, filename: PathLike) -> None:
        """Write the parameters to ``filename``."""
        with open(filename, "w", encoding="utf-8") as outfile:
            outfile.write(self.to_string())
        self.path = os.fspath(filename)

    def next_snake_id(self) -> int:
        """Return a fresh snake identifier, starting at 1."""
        self._snake_id_counter += 1
        return self._snake_id_counter

    def reset_snake_id(self) -> None:
        """Restart snake identifiers from the beginning."""
        self._snake_id_counter = 0