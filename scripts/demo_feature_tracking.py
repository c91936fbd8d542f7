#!/usr/bin/env python3
"""
Feature Tracking Demo Script

This script runs detector / descriptor / matcher combinations on a short
synthetic sequence (a textured image translated by a few pixels per frame)
and prints how many keypoints are detected and matched, and how well the
matched displacement recovers the true shift.

Usage:
    python scripts/demo_feature_tracking.py [--detector TYPE] [--descriptor TYPE] [--image PATH]
"""

import sys
import argparse
import numpy as np
import cv2
from pathlib import Path

# Add the package to path if running as script
sys.path.insert(0, str(Path(__file__).parent.parent))

from feature_tracking import TrackingConfig, FeatureTracker
from feature_tracking.feature_detector import (
    create_detector,
    get_available_detectors,
    load_image,
    compute_keypoint_statistics
)
from feature_tracking.descriptor_extractor import get_available_descriptors


def create_test_image(size=(480, 640), pattern='noise'):
    """
    Create a test image for demonstration

    Args:
        size: Image size as (height, width)
        pattern: Pattern type ('noise', 'checkerboard', 'circles')

    Returns:
        np.ndarray: Test image
    """
    height, width = size

    if pattern == 'noise':
        # Smoothed random noise gives corners at many scales
        rng = np.random.default_rng(42)
        image = rng.integers(0, 256, (height, width), dtype=np.uint8)
        image = cv2.GaussianBlur(image, (7, 7), 2.0)
        image = cv2.normalize(image, None, 0, 255, cv2.NORM_MINMAX)
    elif pattern == 'checkerboard':
        image = np.zeros((height, width), dtype=np.uint8)
        square_size = 40
        for i in range(0, height, square_size):
            for j in range(0, width, square_size):
                if (i // square_size + j // square_size) % 2 == 0:
                    image[i:i+square_size, j:j+square_size] = 255
    elif pattern == 'circles':
        image = np.zeros((height, width), dtype=np.uint8)
        centers = [(width // 4, height // 4), (3 * width // 4, height // 4),
                   (width // 4, 3 * height // 4), (3 * width // 4, 3 * height // 4)]
        for center in centers:
            cv2.circle(image, center, 60, 255, -1)
            cv2.circle(image, center, 30, 0, -1)
    else:
        raise ValueError(f"Unknown pattern: {pattern}")

    return image


def create_sequence(image, num_frames=3, shift=(4, 2)):
    """
    Build a sequence by translating the image by `shift` pixels per frame

    Returns:
        list: Frames (first frame is the original image)
    """
    dx, dy = shift
    height, width = image.shape[:2]
    frames = []
    for i in range(num_frames):
        M = np.float32([[1, 0, dx * i], [0, 1, dy * i]])
        frames.append(cv2.warpAffine(image, M, (width, height), borderMode=cv2.BORDER_REFLECT))
    return frames


def demo_combination(detector_type, descriptor_type, frames, shift,
                     matcher_type='bf', selector_type='nn', verbose=True):
    """Track keypoints through the frames with one combination"""
    config = TrackingConfig(
        detector_type=detector_type,
        descriptor_type=descriptor_type,
        matcher_type=matcher_type,
        selector_type=selector_type
    )

    try:
        tracker = FeatureTracker(config)
    except (ValueError, ImportError, RuntimeError) as e:
        if verbose:
            print(f"{detector_type:>10} + {descriptor_type:<6}: skipped - {e}")
        return {'success': False, 'error': str(e)}

    num_keypoints = []
    num_matches = []
    errors = []

    for image in frames:
        frame = tracker.process(image)
        num_keypoints.append(len(frame.keypoints))

        if frame.matches is None:
            continue

        num_matches.append(len(frame.matches))
        previous = tracker.buffer.previous
        query_points, train_points = frame.matches.get_matched_points(
            previous.keypoints, frame.keypoints
        )
        if len(query_points) > 0:
            displacement = np.median(train_points - query_points, axis=0)
            errors.append(float(np.linalg.norm(displacement - np.array(shift))))

    result = {
        'success': True,
        'keypoints': float(np.mean(num_keypoints)),
        'matches': float(np.mean(num_matches)) if num_matches else 0.0,
        'shift_error': float(np.mean(errors)) if errors else float('nan')
    }

    if verbose:
        print(f"{detector_type:>10} + {descriptor_type:<6}: "
              f"{result['keypoints']:7.1f} keypoints, {result['matches']:7.1f} matches, "
              f"shift error {result['shift_error']:.2f}px")
    return result


def demo_detectors(image):
    """Detect keypoints on a single image with every detector"""
    print("=== Detectors ===")
    for detector_type in get_available_detectors():
        keypoints = create_detector(detector_type).detect(image)
        stats = compute_keypoint_statistics(keypoints)
        print(f"{detector_type:>10}: {stats['num_keypoints']:5d} keypoints, "
              f"mean size {stats['mean_size']:.2f}")


def demo_all_combinations(frames, shift, matcher_type, selector_type):
    """Run every detector / descriptor pair"""
    print(f"\n=== Combinations ({matcher_type} / {selector_type}) ===")
    results = {}
    for detector_type in get_available_detectors():
        for descriptor_type in get_available_descriptors():
            results[(detector_type, descriptor_type)] = demo_combination(
                detector_type, descriptor_type, frames, shift, matcher_type, selector_type
            )
    return results


def demo_matchers(frames, shift):
    """Compare matcher / selector settings on one combination"""
    print("\n=== Matchers (fast + brisk) ===")
    for matcher_type in ['bf', 'flann']:
        for selector_type in ['nn', 'knn']:
            result = demo_combination('fast', 'brisk', frames, shift,
                                      matcher_type, selector_type, verbose=False)
            if result['success']:
                print(f"{matcher_type:>5} / {selector_type:<3}: {result['matches']:7.1f} matches, "
                      f"shift error {result['shift_error']:.2f}px")
            else:
                print(f"{matcher_type:>5} / {selector_type:<3}: Failed - {result['error']}")


def main():
    parser = argparse.ArgumentParser(description='Feature Tracking Demo')
    parser.add_argument('--detector', type=str,
                        help='Specific detector to test (default: test all)')
    parser.add_argument('--descriptor', type=str, default='brisk',
                        help='Descriptor used with --detector (default: brisk)')
    parser.add_argument('--matcher', type=str, default='bf', choices=['bf', 'flann'],
                        help='Matcher type (default: bf)')
    parser.add_argument('--selector', type=str, default='nn', choices=['nn', 'knn'],
                        help='Selector type (default: nn)')
    parser.add_argument('--image', type=str,
                        help='Path to image file (default: use generated test image)')
    parser.add_argument('--pattern', type=str, default='noise',
                        choices=['noise', 'checkerboard', 'circles'],
                        help='Test image pattern (default: noise)')
    parser.add_argument('--frames', type=int, default=3,
                        help='Number of frames in the synthetic sequence (default: 3)')
    parser.add_argument('--shift', type=int, nargs=2, default=[4, 2], metavar=('DX', 'DY'),
                        help='Per-frame translation in pixels (default: 4 2)')
    parser.add_argument('--list', action='store_true',
                        help='List available detectors and descriptors and exit')

    args = parser.parse_args()

    if args.list:
        print("Available detectors:")
        for detector in get_available_detectors():
            print(f"  - {detector}")
        print("Available descriptors:")
        for descriptor in get_available_descriptors():
            print(f"  - {descriptor}")
        return

    print("Feature Tracking Demo")
    print("=====================")

    if args.image:
        try:
            image = load_image(args.image)
        except (FileNotFoundError, ValueError) as e:
            print(f"Error: {e}")
            return
        print(f"Loaded image: {args.image} ({image.shape})")
    else:
        image = create_test_image((480, 640), args.pattern)
        print(f"Created test image: {image.shape} ({args.pattern} pattern)")

    shift = tuple(args.shift)
    frames = create_sequence(image, args.frames, shift)
    print(f"Sequence: {len(frames)} frames, shift {shift} px per frame")

    if args.detector:
        result = demo_combination(args.detector, args.descriptor, frames, shift,
                                  args.matcher, args.selector)
        if not result['success']:
            print(f"\nFailed: {result['error']}")
        return

    demo_detectors(image)
    demo_all_combinations(frames, shift, args.matcher, args.selector)
    demo_matchers(frames, shift)

    print("\n=== Demo completed ===")


if __name__ == "__main__":
    main()
