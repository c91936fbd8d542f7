"""
Feature Matcher Module

This module matches descriptor sets between two frames with OpenCV's
brute-force or FLANN matchers. The nearest-neighbour selector keeps the best
match for every source descriptor; the k-nearest-neighbour selector keeps it
only when it passes the distance-ratio test.

Basic Usage:
    from feature_tracking.feature_matcher import create_matcher

    matcher = create_matcher('bf', selector_type='knn')
    matches = matcher.match(previous_features, current_features)

    print(f"Found {len(matches)} matches")

Legacy names are accepted too:
    matcher = create_matcher('MAT_FLANN', 'SEL_KNN', 'DES_HOG')
"""

from typing import Optional

from .base import (
    BaseMatcher,
    Match,
    Matches,
    distance_ratio_filter,
    compute_matching_statistics
)

from .traditional import (
    DescriptorMatcher,
    BruteForceMatcher,
    FLANNMatcher,
    SELECTORS
)

from ..utils import resolve_type_name

__all__ = [
    # Base classes
    'BaseMatcher',
    'Match',
    'Matches',

    # Matchers
    'DescriptorMatcher',
    'BruteForceMatcher',
    'FLANNMatcher',
    'SELECTORS',

    # Utility functions
    'distance_ratio_filter',
    'compute_matching_statistics',
    'create_matcher',
    'get_available_matchers',
    'get_available_selectors',
]


_MATCHERS = {
    'bf': BruteForceMatcher,
    'bruteforce': BruteForceMatcher,
    'flann': FLANNMatcher,
}


def create_matcher(matcher_type: str,
                   selector_type: str = 'nn',
                   descriptor_category: Optional[str] = None,
                   **kwargs) -> BaseMatcher:
    """
    Create a descriptor matcher

    Args:
        matcher_type: Type of matcher ('bf' or 'flann')
        selector_type: Type of selector ('nn' or 'knn')
        descriptor_category: 'binary' or 'hog'; taken from the matched
            feature sets when omitted
        **kwargs: Matcher parameters (cross_check, ratio_threshold, ...)

    Returns:
        BaseMatcher: Created matcher instance
    """
    key = resolve_type_name(matcher_type, _MATCHERS.keys(), 'matcher')
    return _MATCHERS[key](selector_type=selector_type,
                          descriptor_category=descriptor_category,
                          **kwargs)


def get_available_matchers() -> list:
    """Get list of available matchers"""
    return ['bf', 'flann']


def get_available_selectors() -> list:
    """Get list of available selectors"""
    return list(SELECTORS)
