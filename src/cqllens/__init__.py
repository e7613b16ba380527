"""CQL statement segmentation and multi-statement execution."""

__version__ = "0.1.0"
