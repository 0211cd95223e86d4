"""Member matching against the roster"""

from .member_matcher import MemberMatcher
from .roster_search import RosterSearch
from .thresholds import MatchThresholds

__all__ = ["MatchThresholds", "MemberMatcher", "RosterSearch"]
