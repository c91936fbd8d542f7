import numpy as np
import cv2
import pytest


def make_textured_image(size=(240, 320), seed=42):
    """平滑化したランダムノイズ画像 (どの検出器でも特徴点が得られる)"""
    rng = np.random.default_rng(seed)
    image = rng.integers(0, 256, size, dtype=np.uint8)
    image = cv2.GaussianBlur(image, (7, 7), 2.0)
    return cv2.normalize(image, None, 0, 255, cv2.NORM_MINMAX)


def shift_image(image, dx, dy):
    """画像を (dx, dy) だけ平行移動"""
    height, width = image.shape[:2]
    M = np.float32([[1, 0, dx], [0, 1, dy]])
    return cv2.warpAffine(image, M, (width, height), borderMode=cv2.BORDER_REFLECT)


@pytest.fixture
def textured_image():
    return make_textured_image()


@pytest.fixture
def squares_image():
    """黒背景に白い正方形を置いた画像 (孤立したL字コーナーを持つ)"""
    image = np.zeros((200, 200), dtype=np.uint8)
    for x, y in [(30, 30), (120, 40), (50, 120), (130, 130)]:
        image[y:y + 40, x:x + 40] = 255
    return image


@pytest.fixture
def blank_image():
    return np.full((120, 160), 128, dtype=np.uint8)
