"""layergen — unique layered edition generator."""

__version__ = "0.3.0"
