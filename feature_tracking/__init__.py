"""
Feature Tracking Package

A Python package for 2D keypoint tracking across image sequences: pluggable
keypoint detectors, descriptor extractors and descriptor matchers backed by
OpenCV, selected by name and configured from YAML.
"""

from . import feature_detector
from . import descriptor_extractor
from . import feature_matcher
from .config import TrackingConfig, ConfigManager, load_config
from .pipeline import FeatureTracker, DataBuffer, Frame, check_combination

__version__ = "0.1.0"
__author__ = "feature-tracking"

__all__ = [
    'feature_detector',
    'descriptor_extractor',
    'feature_matcher',
    'TrackingConfig',
    'ConfigManager',
    'load_config',
    'FeatureTracker',
    'DataBuffer',
    'Frame',
    'check_combination',
    '__version__',
    '__author__'
]
