"""TTB label field verification and multi-image merge engine."""

__version__ = "1.0.0"
