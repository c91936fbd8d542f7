#!/usr/bin/env python3
"""
Configuration-based Feature Tracker CLI

This script runs keypoint detection, description and frame-to-frame matching
over an image sequence. All parameters are specified in a YAML configuration
file; the most common ones can be overridden from the command line.

Usage:
    python cli/feature_tracker.py --config configs/default.yaml
    python cli/feature_tracker.py --config configs/default.yaml --detector fast --descriptor brief
"""

import sys
import argparse
import logging
from pathlib import Path
from typing import List, Dict, Any
from glob import glob

# Add the package to path if running as script
sys.path.insert(0, str(Path(__file__).parent.parent))

from feature_tracking.config import TrackingConfig, load_config
from feature_tracking.feature_detector import (
    get_available_detectors,
    load_image,
    compute_keypoint_statistics
)
from feature_tracking.descriptor_extractor import get_available_descriptors
from feature_tracking.feature_matcher import (
    get_available_matchers,
    get_available_selectors,
    compute_matching_statistics
)
from feature_tracking.pipeline import FeatureTracker, check_combination
from feature_tracking.utils import resolve_type_name


def setup_logging(level: str = "INFO") -> logging.Logger:
    """
    Configure the root logger

    Args:
        level: Logging level name

    Returns:
        logging.Logger: Logger for this script
    """
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    return logging.getLogger(__name__)


def validate_config(config: TrackingConfig) -> bool:
    """
    Check that the configured algorithms exist and fit together

    Raises:
        ValueError: Unknown algorithm, invalid combination or missing patterns
        FileNotFoundError: Input directory does not exist
    """
    resolve_type_name(config.detector_type, get_available_detectors(), 'detector')
    resolve_type_name(config.descriptor_type, get_available_descriptors(), 'descriptor')
    resolve_type_name(config.matcher_type, get_available_matchers(), 'matcher')
    resolve_type_name(config.selector_type, get_available_selectors(), 'selector')
    check_combination(config.detector_type, config.descriptor_type)

    input_path = Path(config.input_dir)
    if not input_path.exists():
        raise FileNotFoundError(f"Input directory not found: {input_path}")

    if not config.file_patterns:
        raise ValueError("file_patterns must be specified")

    return True


def find_images(input_dir: str, file_patterns: List[str]) -> List[Path]:
    """
    Find image files in a directory

    Args:
        input_dir: Input directory
        file_patterns: Glob patterns relative to the directory

    Returns:
        List[Path]: Sorted, de-duplicated image paths
    """
    input_path = Path(input_dir)
    image_files = []

    for pattern in file_patterns:
        matches = glob(str(input_path / pattern), recursive=True)
        image_files.extend(Path(f) for f in matches)

    return sorted(set(image_files))


def process_sequence(config: TrackingConfig, logger: logging.Logger) -> Dict[str, Any]:
    """
    Track keypoints through every image found for the configuration

    Args:
        config: Tracking configuration
        logger: Logger

    Returns:
        Dict[str, Any]: Per-frame results and totals
    """
    image_files = find_images(config.input_dir, config.file_patterns)

    if not image_files:
        logger.warning(f"No images found in {config.input_dir} with patterns {config.file_patterns}")
        return {'processed': 0, 'failed': 0, 'total_keypoints': 0, 'total_matches': 0, 'results': []}

    logger.info(f"Found {len(image_files)} images to process")

    tracker = FeatureTracker(config)

    stats = {
        'processed': 0,
        'failed': 0,
        'total_keypoints': 0,
        'total_matches': 0,
        'results': []
    }

    for i, image_file in enumerate(image_files, 1):
        logger.info(f"Processing {i}/{len(image_files)}: {image_file.name}")

        try:
            image = load_image(image_file)
        except (FileNotFoundError, ValueError) as e:
            logger.error(f"  Failed: {e}")
            stats['failed'] += 1
            continue

        frame = tracker.process(image)
        keypoint_stats = compute_keypoint_statistics(frame.keypoints)
        num_matches = len(frame.matches) if frame.matches is not None else 0

        logger.info(f"  {keypoint_stats['num_keypoints']} keypoints "
                    f"(mean size {keypoint_stats['mean_size']:.2f}), {num_matches} matches")
        if frame.matches is not None and not frame.matches.is_empty():
            match_stats = compute_matching_statistics(frame.matches)
            logger.debug(f"  Mean match distance: {match_stats['mean_distance']:.4f}")

        stats['processed'] += 1
        stats['total_keypoints'] += keypoint_stats['num_keypoints']
        stats['total_matches'] += num_matches
        stats['results'].append({
            'file': str(image_file),
            'num_keypoints': keypoint_stats['num_keypoints'],
            'mean_size': keypoint_stats['mean_size'],
            'num_matches': num_matches
        })

    return stats


def main(argv=None):
    """Entry point"""
    parser = argparse.ArgumentParser(
        description='Configuration-based Feature Tracker CLI',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Example usage:
    python cli/feature_tracker.py --config configs/default.yaml
    python cli/feature_tracker.py --config configs/default.yaml --matcher flann --selector knn
    python cli/feature_tracker.py --config configs/default.yaml --log-level DEBUG --dry-run
        """
    )

    parser.add_argument('--config', type=str, required=True,
                        help='Path to YAML configuration file')
    parser.add_argument('--input-dir', type=str,
                        help='Override input directory from config')
    parser.add_argument('--detector', type=str,
                        help='Override detector type from config')
    parser.add_argument('--descriptor', type=str,
                        help='Override descriptor type from config')
    parser.add_argument('--matcher', type=str,
                        help='Override matcher type from config')
    parser.add_argument('--selector', type=str,
                        help='Override selector type from config')
    parser.add_argument('--max-keypoints', type=int,
                        help='Override max keypoints from config')
    parser.add_argument('--log-level', type=str, default='INFO',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        help='Logging level (default: INFO)')
    parser.add_argument('--dry-run', action='store_true',
                        help='Validate config and list the images without processing them')

    args = parser.parse_args(argv)

    logger = setup_logging(args.log_level)

    try:
        logger.info(f"Loading configuration from: {args.config}")
        config_path = Path(args.config)

        if not config_path.exists():
            logger.error(f"Configuration file not found: {config_path}")
            return 1

        config = load_config(config_path)

        # コマンドライン引数で設定をオーバーライド
        if args.input_dir:
            config.input_dir = args.input_dir
        if args.detector:
            config.detector_type = args.detector
        if args.descriptor:
            config.descriptor_type = args.descriptor
        if args.matcher:
            config.matcher_type = args.matcher
        if args.selector:
            config.selector_type = args.selector
        if args.max_keypoints is not None:
            config.max_keypoints = args.max_keypoints

        logger.info("Configuration loaded:")
        logger.info(f"  Detector: {config.detector_type}")
        logger.info(f"  Descriptor: {config.descriptor_type}")
        logger.info(f"  Matcher: {config.matcher_type} / {config.selector_type}")
        logger.info(f"  Input dir: {config.input_dir}")
        logger.info(f"  Max keypoints: {config.max_keypoints}")
        logger.info(f"  Focus region: {config.focus_region}")

        validate_config(config)

        if args.dry_run:
            image_files = find_images(config.input_dir, config.file_patterns)
            logger.info(f"Dry run: Would process {len(image_files)} images")
            for img_file in image_files[:5]:
                logger.info(f"  {img_file}")
            if len(image_files) > 5:
                logger.info(f"  ... and {len(image_files) - 5} more files")
            return 0

        logger.info("Starting feature tracking...")
        stats = process_sequence(config, logger)

        logger.info("Processing completed!")
        logger.info(f"  Processed: {stats['processed']} images")
        logger.info(f"  Failed: {stats['failed']} images")
        if stats['processed'] > 0:
            logger.info(f"  Average keypoints: {stats['total_keypoints'] / stats['processed']:.1f}")
        if stats['processed'] > 1:
            logger.info(f"  Average matches: {stats['total_matches'] / (stats['processed'] - 1):.1f}")

        return 0 if stats['failed'] == 0 else 1

    except Exception as e:
        logger.error(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
