"""Classroom group ordering: students fill carts under a shared budget cap,
an administrator runs the ordering window and exports the results."""

__version__ = "0.1.0"
