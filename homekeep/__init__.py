"""homekeep - recurring household maintenance scheduler."""

__version__ = "0.1.0"
