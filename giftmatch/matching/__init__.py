from giftmatch.matching.engine import HopcroftKarp
from giftmatch.matching.errors import IncompleteMatchingError, InvalidIndexError
from giftmatch.matching.matcher import SecretSantaMatcher
from giftmatch.matching.registry import EdgeRegistry
from giftmatch.matching.result import MatchResult, extract
from giftmatch.matching.shuffle import fisher_yates

__all__ = [
    "EdgeRegistry",
    "HopcroftKarp",
    "IncompleteMatchingError",
    "InvalidIndexError",
    "MatchResult",
    "SecretSantaMatcher",
    "extract",
    "fisher_yates",
]
