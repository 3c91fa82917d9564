"""
Core Utilities - Shared helper functions.
"""

import hashlib
import uuid


def compute_content_hash(content: str) -> str:
    """
    Compute SHA256 hash of text content.
    
    Args:
        content: Text content to hash
        
    Returns:
        Hex-encoded SHA256 hash (64 characters)
    """
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def generate_passage_id() -> str:
    """
    Generate a fresh, never-reused passage ID.
    
    Returns:
        ID of the form ``chunk_<32 hex chars>``
    """
    return f"chunk_{uuid.uuid4().hex}"
