"""Top-level package for seir-projection.

This repository follows the cookiecutter-data-science template where project
code lives under `src/`. The simulation, estimation and projection code
lives under `src.seir` (engine, R0 solver, time-series projector, I/O).
"""

# Package marker; keep this module lightweight.
