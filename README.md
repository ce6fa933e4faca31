# soacnet

Stretching open active contours (snakes) for extracting curvilinear
networks, such as filaments and fibres, from 2D and 3D images. It also
provides the tools that decide how contour tips meeting at a junction
should be linked.

## Installation

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## Modules

- `soacnet.parameters`: `SnakeParameters` is a dataclass holding every
  setting of evolution and grouping, with the usual defaults (spacing 1.0,
  alpha 0.01, beta 0.1, gamma 2.0, stretch factor 0.2, ...). `load()` reads a
  file of `name value` lines, accepting older parameter names as aliases and
  ignoring unknown names; `save()` and `to_string()` write the tab-separated
  format. `validate()` raises `ParameterError` on the first violated
  constraint. `next_snake_id()` / `reset_snake_id()` hand out contour ids.
- `soacnet.forces`: `Sampler` does multilinear interpolation of a scalar or
  vector image held in a numpy array (`interpolate()` returns `None` outside
  the image). `stiffness_matrix()` builds the pentadiagonal system for an open
  or closed contour and `solve_system()` solves it. `pod_x()`, `pod_y()`,
  `background_intensity_2d()`, `background_intensity_3d()` and
  `local_stretch()` estimate the stretching weight at a tip from the contrast
  against its local background.
- `soacnet.snake`: `Snake` is an open or closed contour. It resamples itself
  (`resample()`, using `compute_size()`), evolves (`evolve()`,
  `evolve_with_tip_fixed()`, `evolve_final()`, `iterate_once()`), detects
  overlap with converged contours through a `NeighborGrid`, splits itself on
  self-intersection or junctions (`copy_segments()`), and gives tangents and
  distances (`tip_tangent()`, `vertex_tangent()`, `distance_to()`,
  `pass_through()`, ...).
- `soacnet.metrics`: `compute_curve_distance()`,
  `compute_one_way_curve_distance()`, `closest_snake()`, `is_shorter()` and
  `is_longer()`.
- `soacnet.tips`: `SnakeTip` is the head or tail of a contour; `link()`,
  `are_linked()`, `compute_distance()`, `compute_angle()` and
  `are_tightest_link()` relate two tips.
- `soacnet.tip_set`: `SnakeTipSet` gathers the tips at one junction.
  `configure()` links them by an optimal assignment of smooth continuations,
  optionally guided by contours of a previous frame; `configure_greedy()`
  links the smoothest pair repeatedly.
- `soacnet.track`: `SnakeTrack` holds one contour per frame of a time series.
- `soacnet.viewpoint`: `Viewpoint` keeps a `Camera` description and saves or
  restores it as plain text.
- `soacnet.util`: `mean()`, `maximum()` and `all_false()`.

## Example

```python
from soacnet.parameters import SnakeParameters
from soacnet.snake import Snake

params = SnakeParameters()
params.spacing = 2.0

snake = Snake(
    [[4, 10, 4], [4, 12, 4], [4, 15, 4], [4, 18, 4]],
    3, None, None, params, True, 0,
)
snake.length()      # 8.0
snake.resample(0.0)
snake.size()        # 5 evenly spaced vertices
```

Parameter files:

```python
params = SnakeParameters()
params.load("parameters.txt")
params.validate()
params.save("copy.txt")
```

## What it does not do

The package works on contours and arrays you give it. It does not read image
files, compute image gradients, find initial contours in an image, drive the
extraction of a whole network, or render anything: there is no command-line
tool and no viewer. To evolve contours against an image, load the image and
its gradient yourself and wrap them in `Sampler` objects.