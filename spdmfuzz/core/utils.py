"""
Core Utilities
"""

from bson import ObjectId


def generate_id() -> str:
    """
    Generate a unique campaign ID.

    ObjectIds are time-ordered, so log directories sort by start time.
    """
    return str(ObjectId())
