import numpy as np
import pytest

from feature_tracking.descriptor_extractor import BINARY, HOG, FeatureSet
from feature_tracking.feature_detector import KeyPoint
from feature_tracking.feature_matcher import (
    BruteForceMatcher,
    DescriptorMatcher,
    FLANNMatcher,
    Match,
    Matches,
    create_matcher,
    distance_ratio_filter,
    compute_matching_statistics,
    get_available_matchers,
    get_available_selectors
)


def make_features(descriptors, category=BINARY):
    keypoints = [KeyPoint(x=float(i), y=float(2 * i), size=7.0) for i in range(len(descriptors))]
    return FeatureSet(keypoints=keypoints, descriptors=descriptors,
                      image_shape=(100, 100), descriptor_category=category)


def permuted_pair(descriptors, seed=0):
    """train[i] = query[perm[i]] となる特徴点セットの組と、各 query の正解 train インデックス"""
    perm = np.random.default_rng(seed).permutation(len(descriptors))
    query = make_features(descriptors, BINARY if descriptors.dtype == np.uint8 else HOG)
    train = make_features(descriptors[perm], query.descriptor_category)
    return query, train, np.argsort(perm)


@pytest.fixture
def binary_descriptors():
    return np.random.default_rng(1).integers(0, 256, (20, 32), dtype=np.uint8)


@pytest.fixture
def float_descriptors():
    return np.random.default_rng(2).random((20, 128), dtype=np.float32)


class TestDistanceRatioFilter:

    def test_accepts_distinctive_match(self):
        result = distance_ratio_filter([[Match(0, 3, 10.0), Match(0, 5, 20.0)]])
        assert len(result) == 1
        assert result[0].train_idx == 3
        assert result[0].ratio == pytest.approx(0.5)

    def test_boundary_is_inclusive(self):
        assert len(distance_ratio_filter([[Match(0, 1, 8.0), Match(0, 2, 10.0)]], ratio=0.8)) == 1
        assert len(distance_ratio_filter([[Match(0, 1, 8.1), Match(0, 2, 10.0)]], ratio=0.8)) == 0

    def test_single_candidate_is_accepted(self):
        only = Match(4, 2, 7.0)
        assert distance_ratio_filter([[only]]) == [only]

    def test_empty_candidates_are_skipped(self):
        assert distance_ratio_filter([[], [Match(1, 0, 1.0), Match(1, 1, 5.0)]])[0].query_idx == 1

    def test_zero_second_distance_is_rejected(self):
        assert distance_ratio_filter([[Match(0, 0, 0.0), Match(0, 1, 0.0)]]) == []

    def test_only_first_two_candidates_are_used(self):
        candidates = [Match(0, 0, 5.0), Match(0, 1, 10.0), Match(0, 2, 100.0)]
        assert distance_ratio_filter([candidates], ratio=0.4) == []


class TestBruteForceMatcher:

    def test_nn_binary(self, binary_descriptors):
        query, train, expected = permuted_pair(binary_descriptors)
        matches = BruteForceMatcher().match(query, train)

        assert len(matches) == len(binary_descriptors)
        for m in matches.matches:
            assert m.train_idx == expected[m.query_idx]
            assert m.distance == 0.0
            assert m.ratio is None

    def test_knn_binary(self, binary_descriptors):
        query, train, expected = permuted_pair(binary_descriptors)
        matches = BruteForceMatcher(selector_type='knn').match(query, train)

        assert len(matches) == len(binary_descriptors)
        assert all(m.train_idx == expected[m.query_idx] for m in matches.matches)
        assert all(m.ratio == 0.0 for m in matches.matches)

    def test_knn_rejects_ambiguous_match(self, binary_descriptors):
        query = make_features(binary_descriptors)
        # query 0 と同じ記述子が2つある
        train = make_features(np.vstack([binary_descriptors, binary_descriptors[:1]]))
        matches = BruteForceMatcher(selector_type='knn').match(query, train)

        assert 0 not in [m.query_idx for m in matches.matches]
        assert len(matches) == len(binary_descriptors) - 1

    def test_knn_with_single_train_descriptor(self, binary_descriptors):
        query = make_features(binary_descriptors[:3])
        train = make_features(binary_descriptors[5:6])
        matches = BruteForceMatcher(selector_type='knn').match(query, train)

        assert len(matches) == 3
        assert all(m.train_idx == 0 for m in matches.matches)

    def test_nn_hog(self, float_descriptors):
        query, train, expected = permuted_pair(float_descriptors)
        matches = BruteForceMatcher().match(query, train)
        assert all(m.train_idx == expected[m.query_idx] for m in matches.matches)

    def test_cross_check(self, binary_descriptors):
        query, train, expected = permuted_pair(binary_descriptors)
        matches = BruteForceMatcher(cross_check=True).match(query, train)
        assert len(matches) == len(binary_descriptors)

    def test_norm_follows_category(self):
        import cv2
        assert BruteForceMatcher.norm_for(BINARY) == cv2.NORM_HAMMING
        assert BruteForceMatcher.norm_for(HOG) == cv2.NORM_L2

    def test_category_override_with_wrong_dtype_fails(self, float_descriptors):
        query, train, _ = permuted_pair(float_descriptors)
        matcher = BruteForceMatcher(descriptor_category='binary')
        with pytest.raises(RuntimeError, match="matching failed"):
            matcher.match(query, train)

    def test_empty_feature_sets(self, binary_descriptors):
        empty = FeatureSet(keypoints=[], descriptors=np.array([]), image_shape=(100, 100))
        full = make_features(binary_descriptors)
        matcher = BruteForceMatcher()

        assert matcher.match(empty, full).is_empty()
        assert matcher.match(full, empty).is_empty()
        assert matcher.match(full, empty).query_shape == (100, 100)

    def test_invalid_parameters(self):
        with pytest.raises(ValueError):
            BruteForceMatcher(selector_type='knn', cross_check=True)
        with pytest.raises(ValueError):
            BruteForceMatcher(k=1)
        with pytest.raises(ValueError):
            BruteForceMatcher(ratio_threshold=0.0)
        with pytest.raises(ValueError, match="Unknown selector type"):
            BruteForceMatcher(selector_type='radius')


def test_descriptor_matcher_needs_a_backend():
    with pytest.raises(TypeError):
        DescriptorMatcher()


class TestFLANNMatcher:

    def test_kdtree_hog(self, float_descriptors):
        query, train, expected = permuted_pair(float_descriptors)
        matches = FLANNMatcher(selector_type='knn').match(query, train)

        assert len(matches) == len(float_descriptors)
        assert all(m.train_idx == expected[m.query_idx] for m in matches.matches)

    def test_kdtree_converts_binary_descriptors(self, binary_descriptors):
        query, train, expected = permuted_pair(binary_descriptors)
        matcher = FLANNMatcher()

        assert matcher.prepare_descriptors(binary_descriptors, BINARY).dtype == np.float32
        matches = matcher.match(query, train)
        assert all(m.train_idx == expected[m.query_idx] for m in matches.matches)

    def test_lsh_requires_binary_descriptors(self, float_descriptors):
        query, train, _ = permuted_pair(float_descriptors)
        with pytest.raises(ValueError, match="lsh"):
            FLANNMatcher(algorithm='lsh').match(query, train)

    def test_unknown_algorithm(self):
        with pytest.raises(ValueError):
            FLANNMatcher(algorithm='ball_tree')

    def test_config(self):
        config = FLANNMatcher(trees=8, checks=64).get_config()
        assert config['trees'] == 8
        assert config['checks'] == 64
        assert config['selector_type'] == 'nn'


class TestCreateMatcher:

    def test_available(self):
        assert get_available_matchers() == ['bf', 'flann']
        assert get_available_selectors() == ['nn', 'knn']

    def test_legacy_names(self):
        matcher = create_matcher('MAT_FLANN', 'SEL_KNN', 'DES_HOG')
        assert isinstance(matcher, FLANNMatcher)
        assert matcher.selector_type == 'knn'
        assert matcher.descriptor_category == HOG

    def test_brute_force_aliases(self):
        assert isinstance(create_matcher('bf'), BruteForceMatcher)
        assert isinstance(create_matcher('MAT_BF', descriptor_category='DES_BINARY'), BruteForceMatcher)
        assert isinstance(create_matcher('brute_force'), BruteForceMatcher)

    def test_unknown_matcher(self):
        with pytest.raises(ValueError, match="Unknown matcher type"):
            create_matcher('superglue')


class TestMatches:

    @pytest.fixture
    def matches(self):
        return Matches(matches=[Match(0, 1, 5.0), Match(1, 0, 1.0), Match(2, 2, 3.0)],
                       query_shape=(10, 10), train_shape=(10, 10))

    def test_matched_points(self, matches):
        query_kps = [KeyPoint(x=float(i), y=0.0, size=1) for i in range(3)]
        train_kps = [KeyPoint(x=10.0 + i, y=1.0, size=1) for i in range(3)]
        query_points, train_points = matches.get_matched_points(query_kps, train_kps)

        assert query_points.dtype == np.float32
        np.testing.assert_allclose(query_points, [[0, 0], [1, 0], [2, 0]])
        np.testing.assert_allclose(train_points, [[11, 1], [10, 1], [12, 1]])

    def test_matched_points_empty(self):
        empty = Matches(matches=[], query_shape=(1, 1), train_shape=(1, 1))
        query_points, train_points = empty.get_matched_points([], [])
        assert query_points.shape == (0, 2) and train_points.shape == (0, 2)

    def test_filter_and_top_k(self, matches):
        assert [m.query_idx for m in matches.filter_by_distance(3.0).matches] == [1, 2]
        assert [m.query_idx for m in matches.get_top_k(2).matches] == [1, 2]

    def test_statistics(self, matches):
        stats = compute_matching_statistics(matches)
        assert stats['num_matches'] == 3
        assert stats['mean_distance'] == pytest.approx(3.0)
        assert compute_matching_statistics(Matches([], (1, 1), (1, 1)))['num_matches'] == 0
