"""
Similarity scoring for embedding vectors.
"""

import math
from typing import Sequence

from ..core.exceptions import DimensionMismatchError


def cosine_similarity(vec_a: Sequence[float], vec_b: Sequence[float]) -> float:
    """
    Compute cosine similarity between two vectors.
    
    Args:
        vec_a: First vector
        vec_b: Second vector
        
    Returns:
        Cosine similarity score between -1 and 1 (floating-point rounding may
        land marginally outside). Returns 0.0 if either vector has zero norm.
        
    Raises:
        DimensionMismatchError: If vectors have different lengths
    """
    if len(vec_a) != len(vec_b):
        raise DimensionMismatchError(
            f"Vector dimensions must match: {len(vec_a)} != {len(vec_b)}",
            expected=len(vec_a),
            actual=len(vec_b),
        )
    
    # Scale by the largest component so squares neither underflow nor overflow
    scale_a = max((abs(a) for a in vec_a), default=0.0)
    scale_b = max((abs(b) for b in vec_b), default=0.0)
    
    # Zero (or empty) vectors have no direction
    if scale_a == 0 or scale_b == 0:
        return 0.0
    
    unit_a = [a / scale_a for a in vec_a]
    unit_b = [b / scale_b for b in vec_b]
    
    dot_product = sum(a * b for a, b in zip(unit_a, unit_b))
    magnitude_a = math.sqrt(sum(a * a for a in unit_a))
    magnitude_b = math.sqrt(sum(b * b for b in unit_b))
    
    return dot_product / (magnitude_a * magnitude_b)
