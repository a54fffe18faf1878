"""Interactive terminal client for the Mesh Bridge."""

__version__ = "0.1.0"
