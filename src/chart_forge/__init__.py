"""chart-forge: build, validate, scan, package and publish a custom Mimir chart."""

__version__ = "0.1.0"
