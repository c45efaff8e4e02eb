"""Pin-a-Tree: upload a tree photo, locate it and pin it on a map."""

__version__ = "1.0.0"
