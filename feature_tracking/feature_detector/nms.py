"""
Non-maximum suppression for Harris corner candidates.

Candidates whose neighbourhoods overlap are reduced to the single candidate
with the strongest response.
"""

import logging
from typing import List, Sequence

from .base import KeyPoint


logger = logging.getLogger(__name__)


def suppress_overlapping_keypoints(keypoints: Sequence[KeyPoint]) -> List[KeyPoint]:
    """
    重なり合う特徴点のうち応答値が最大のものだけを残す

    各ラウンドで先頭の候補を暫定最大とし、残りの候補を順に調べる。
    暫定最大と重なる候補は近傍とみなし、応答値が厳密に大きければ
    暫定最大を置き換え、そうでなければ捨てる。重ならない候補は順序を保って
    次のラウンドへ持ち越す。ラウンドの終わりに暫定最大を出力する。

    Args:
        keypoints: 候補の特徴点 (検出順)

    Returns:
        List[KeyPoint]: 抑制後の特徴点 (出力順)
    """
    result: List[KeyPoint] = []
    remaining = list(keypoints)

    while remaining:
        max_keypoint = remaining[0]
        next_round = []

        for candidate in remaining[1:]:
            if max_keypoint.overlap(candidate) > 0.0:
                if candidate.response > max_keypoint.response:
                    max_keypoint = candidate
            else:
                next_round.append(candidate)

        result.append(max_keypoint)
        remaining = next_round

    logger.debug(f"NMS kept {len(result)} of {len(keypoints)} keypoints")
    return result
