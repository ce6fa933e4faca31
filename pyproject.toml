[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "soacnet"
version = "0.1.0"
description = "Stretching open active contours for extracting curvilinear networks from images"
requires-python = ">=3.10"
keywords = ["active contour", "snake", "filament", "curvilinear network", "image analysis"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Image Processing",
]
dependencies = [
    "numpy",
    "scipy",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["soacnet"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
