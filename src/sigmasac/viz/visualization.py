"""
Visualization utilities for labeled correspondences.
  - building visualization images
  - saving them
"""

from __future__ import annotations

from pathlib import Path

import cv2
import numpy as np

from ..consensus.types import Correspondences, IntArray

INLIER_COLOR = (0, 200, 0)      # BGR
OUTLIER_COLOR = (0, 0, 255)


def _as_bgr(img: np.ndarray) -> np.ndarray:
    if img.ndim == 2:
        return cv2.cvtColor(img, cv2.COLOR_GRAY2BGR)
    return img


def make_side_by_side(left_bgr: np.ndarray, right_bgr: np.ndarray) -> np.ndarray:
    """
    Create a side-by-side image: [ Left | Right ].

    The shorter image is padded with black at the bottom so that pixel
    coordinates of both images stay valid (right image offset by the left width).
    """
    if left_bgr is None or right_bgr is None:
        raise ValueError("make_side_by_side received None image(s).")
    if left_bgr.size == 0 or right_bgr.size == 0:
        raise ValueError("make_side_by_side received empty image(s).")

    L = _as_bgr(left_bgr)
    R = _as_bgr(right_bgr)
    h = max(L.shape[0], R.shape[0])

    canvas = np.zeros((h, L.shape[1] + R.shape[1], 3), dtype=L.dtype)
    canvas[:L.shape[0], :L.shape[1]] = L
    canvas[:R.shape[0], L.shape[1]:] = R
    return canvas


def draw_matches(
        points: Correspondences,
        labels: IntArray,
        img1: np.ndarray,
        img2: np.ndarray,
        *,
        radius: int = 3,
        thickness: int = 1,
        draw_outliers: bool = True,
) -> np.ndarray:
    """
    Draw correspondences on a side-by-side canvas.

    Points labeled 1 are joined by a green line; other points are marked
    with red circles in both images (unless draw_outliers is False).
    """
    if points.shape[0] != np.asarray(labels).shape[0]:
        raise ValueError(f"points and labels must have the same length, got {points.shape[0]} vs {len(labels)}")

    canvas = make_side_by_side(img1, img2)
    offset = _as_bgr(img1).shape[1]

    for (x1, y1, x2, y2), label in zip(points[:, :4], labels):
        p1 = (int(round(x1)), int(round(y1)))
        p2 = (int(round(x2)) + offset, int(round(y2)))
        if label == 1:
            cv2.line(canvas, p1, p2, INLIER_COLOR, thickness, cv2.LINE_AA)
            cv2.circle(canvas, p1, radius, INLIER_COLOR, -1, cv2.LINE_AA)
            cv2.circle(canvas, p2, radius, INLIER_COLOR, -1, cv2.LINE_AA)
        elif draw_outliers:
            cv2.circle(canvas, p1, radius, OUTLIER_COLOR, thickness, cv2.LINE_AA)
            cv2.circle(canvas, p2, radius, OUTLIER_COLOR, thickness, cv2.LINE_AA)

    return canvas


def save_matches(
        points: Correspondences,
        labels: IntArray,
        img1: np.ndarray,
        img2: np.ndarray,
        output_path: Path,
) -> np.ndarray:
    """
    Draw the labeled matches and write them to `output_path`.

    Returns:
    - the drawn BGR image.
    """
    vis = draw_matches(points, labels, img1, img2)

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    cv2.imwrite(str(output_path), vis)
    return vis
