"""
Descriptor Extractor Module

This module computes descriptors for already-detected keypoints. Binary
descriptors (BRISK, BRIEF, ORB, FREAK, AKAZE) are matched with the Hamming
norm, gradient-histogram descriptors (SIFT) with the L2 norm.

Basic Usage:
    from feature_tracking.feature_detector import DetectorFactory
    from feature_tracking.descriptor_extractor import DescriptorFactory

    keypoints = DetectorFactory.create('fast').detect(image)
    features = DescriptorFactory.create('brief').describe(image, keypoints)

    print(f"{len(features)} keypoints described, "
          f"{features.descriptor_size} bytes each")
"""

from .base import (
    BaseDescriptorExtractor,
    FeatureSet,
    BINARY,
    HOG,
    DESCRIPTOR_CATEGORIES
)

from .traditional import (
    BRISKDescriptor,
    BRIEFDescriptor,
    ORBDescriptor,
    FREAKDescriptor,
    AKAZEDescriptor,
    SIFTDescriptor
)

from .factory import DescriptorFactory

__all__ = [
    # Base classes
    'BaseDescriptorExtractor',
    'FeatureSet',
    'BINARY',
    'HOG',
    'DESCRIPTOR_CATEGORIES',

    # Descriptors
    'BRISKDescriptor',
    'BRIEFDescriptor',
    'ORBDescriptor',
    'FREAKDescriptor',
    'AKAZEDescriptor',
    'SIFTDescriptor',

    # Factory
    'DescriptorFactory',
]


def create_descriptor(descriptor_type: str, **kwargs) -> BaseDescriptorExtractor:
    """
    Convenience function to create a descriptor extractor

    Args:
        descriptor_type: Type of descriptor ('brisk', 'brief', 'orb', ...)
        **kwargs: Configuration parameters

    Returns:
        BaseDescriptorExtractor: Created descriptor extractor
    """
    return DescriptorFactory.create(descriptor_type, **kwargs)


def get_available_descriptors() -> list:
    """Get list of available descriptor extractors"""
    return DescriptorFactory.get_available_descriptors()
