"""finboard - financial dashboard widget refresh core."""

__version__ = "0.1.0"
