"""tasklanes - recurring tasks and multi-view task boards."""

__version__ = "0.1.0"
