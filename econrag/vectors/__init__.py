"""
Vector similarity index over series embeddings.
"""

from .index import VectorEntry, VectorIndex, VectorMatch, cosine_similarity, l2_normalize

__all__ = [
    "VectorEntry",
    "VectorIndex",
    "VectorMatch",
    "cosine_similarity",
    "l2_normalize",
]
