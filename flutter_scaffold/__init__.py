"""flutter-scaffold -- generates Flutter projects from architecture templates."""

__version__ = "0.1.0"
