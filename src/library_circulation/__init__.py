"""Library circulation service: catalog, members, loans and live change events."""

__version__ = "0.1.0"
