from giftmatch.services.assignment import AssignmentError, ConstraintsTooStrictError, generate_assignments
from giftmatch.services.game_flow import ExclusionError, WishlistError

__all__ = [
    "AssignmentError",
    "ConstraintsTooStrictError",
    "ExclusionError",
    "WishlistError",
    "generate_assignments",
]
