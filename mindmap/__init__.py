"""MindMap: voice affect analysis with clinical proxy scoring."""

__version__ = "1.0.0"
