from pinatree.models.tree import Tree

__all__ = ["Tree"]
