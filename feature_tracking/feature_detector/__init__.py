"""
Feature Detector Module

This module provides keypoint detectors backed by OpenCV: the classic corner
detectors (Shi-Tomasi, Harris with overlap-based non-maximum suppression,
FAST) and the scale-space detectors (BRISK, ORB, AKAZE, SIFT).

Basic Usage:
    from feature_tracking.feature_detector import DetectorFactory

    detector = DetectorFactory.create('harris', min_response=80)
    keypoints = detector.detect(image)

    print(f"Detected {len(keypoints)} keypoints")
"""

from .base import (
    BaseDetector,
    KeyPoint,
    from_cv_keypoints,
    to_cv_keypoints,
    to_grayscale
)

from .traditional import (
    ShiTomasiDetector,
    HarrisDetector,
    FASTDetector,
    BRISKDetector,
    ORBDetector,
    AKAZEDetector,
    SIFTDetector
)

from .nms import suppress_overlapping_keypoints

from .factory import DetectorFactory

from .utils import (
    load_image,
    filter_keypoints_by_region,
    limit_keypoints,
    compute_keypoint_statistics
)

__all__ = [
    # Base classes
    'BaseDetector',
    'KeyPoint',
    'from_cv_keypoints',
    'to_cv_keypoints',
    'to_grayscale',

    # Detectors
    'ShiTomasiDetector',
    'HarrisDetector',
    'FASTDetector',
    'BRISKDetector',
    'ORBDetector',
    'AKAZEDetector',
    'SIFTDetector',

    # Non-maximum suppression
    'suppress_overlapping_keypoints',

    # Factory
    'DetectorFactory',

    # Utilities
    'load_image',
    'filter_keypoints_by_region',
    'limit_keypoints',
    'compute_keypoint_statistics',
]


def create_detector(detector_type: str, **kwargs) -> BaseDetector:
    """
    Convenience function to create a keypoint detector

    Args:
        detector_type: Type of detector ('shitomasi', 'harris', 'fast', ...)
        **kwargs: Configuration parameters

    Returns:
        BaseDetector: Created detector instance
    """
    return DetectorFactory.create(detector_type, **kwargs)


def get_available_detectors() -> list:
    """Get list of available keypoint detectors"""
    return DetectorFactory.get_available_detectors()
