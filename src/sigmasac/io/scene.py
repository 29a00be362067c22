"""
Scene loading: correspondences, annotations, intrinsics and images.

A scene called <name> inside a dataset directory consists of:

    <name>_pts.txt       one correspondence per row (see read_points)
    <name>1.K, <name>2.K 3x3 intrinsics (essential matrix scenes only)
    <name>1.png / .jpg   first image   (also <name>A.*)
    <name>2.png / .jpg   second image  (also <name>B.*)

Images are optional; they are only used for drawing.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

import cv2
import numpy as np

from ..consensus.types import Correspondences, IntArray, Mat3x3, ModelKind, as_homogeneous, split_correspondences

_IMAGE_SUFFIXES = (("1", "2"), ("A", "B"))
_IMAGE_EXTENSIONS = (".png", ".jpg")


@dataclass
class Scene:
    name: str
    kind: ModelKind
    points: Correspondences                 # (N,4) pixel coordinates
    labels: Optional[IntArray] = None       # (N,) annotation, 1 = inlier
    image1: Optional[np.ndarray] = None
    image2: Optional[np.ndarray] = None
    K1: Optional[Mat3x3] = None
    K2: Optional[Mat3x3] = None


def read_points(path: str | Path) -> Tuple[Correspondences, Optional[IntArray]]:
    """
    Read whitespace-separated correspondences.

    Accepted row layouts:
      4 columns: x1 y1 x2 y2
      5 columns: x1 y1 x2 y2 label
      6 columns: x1 y1 1 x2 y2 1
      7 columns: x1 y1 1 x2 y2 1 label

    Returns (points (N,4) float64, labels (N,) int or None).
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Correspondence file not found: {path}")

    if path.stat().st_size == 0:
        return np.empty((0, 4), dtype=np.float64), None
    data = np.loadtxt(path, dtype=np.float64, ndmin=2)
    if data.size == 0:
        return np.empty((0, 4), dtype=np.float64), None

    cols = data.shape[1]
    labels = None
    if cols == 4:
        points = data
    elif cols == 5:
        points, labels = data[:, :4], data[:, 4]
    elif cols == 6:
        points = data[:, [0, 1, 3, 4]]
    elif cols == 7:
        points, labels = data[:, [0, 1, 3, 4]], data[:, 6]
    else:
        raise ValueError(f"Unsupported correspondence layout with {cols} columns in {path}")

    if labels is not None:
        labels = np.rint(labels).astype(np.intp)
    return np.ascontiguousarray(points, dtype=np.float64), labels


def load_matrix(path: str | Path, shape: Tuple[int, int] = (3, 3)) -> np.ndarray:
    """Read a whitespace-separated matrix (e.g. camera intrinsics)."""
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Matrix file not found: {path}")

    values = np.loadtxt(path, dtype=np.float64).ravel()
    expected = shape[0] * shape[1]
    if values.size != expected:
        raise ValueError(f"Expected {expected} values in {path}, got {values.size}")
    return values.reshape(shape)


def normalize_correspondences(points: Correspondences, K1: Mat3x3, K2: Mat3x3) -> Correspondences:
    """
    Map pixel correspondences to calibrated coordinates:  x_n = K^-1 @ [x, y, 1]^T.
    """
    pts0, pts1 = split_correspondences(points)
    n0 = as_homogeneous(pts0) @ np.linalg.inv(K1).T
    n1 = as_homogeneous(pts1) @ np.linalg.inv(K2).T
    n0 = n0[:, :2] / n0[:, 2:3]
    n1 = n1[:, :2] / n1[:, 2:3]
    return np.hstack([n0, n1]).astype(np.float64)


def threshold_normalizer(K1: Mat3x3, K2: Mat3x3) -> float:
    """
    Multiplier taking a pixel threshold into calibrated units: one over
    the mean of the four focal lengths.
    """
    mean_focal = (K1[0, 0] + K1[1, 1] + K2[0, 0] + K2[1, 1]) / 4.0
    if mean_focal <= 0.0:
        raise ValueError("Focal lengths must be positive")
    return 1.0 / float(mean_focal)


def _read_image(directory: Path, name: str, index: int) -> Optional[np.ndarray]:
    for suffixes in _IMAGE_SUFFIXES:
        for ext in _IMAGE_EXTENSIONS:
            path = directory / f"{name}{suffixes[index]}{ext}"
            if path.is_file():
                img = cv2.imread(str(path))
                if img is not None:
                    return img
    return None


def load_scene(
        directory: str | Path,
        name: str,
        kind: ModelKind,
        *,
        load_images: bool = True,
) -> Scene:
    """
    Load one scene of a dataset directory.

    Intrinsics are required for essential matrix scenes; images are
    optional everywhere.
    """
    directory = Path(directory)
    points, labels = read_points(directory / f"{name}_pts.txt")

    scene = Scene(name=name, kind=kind, points=points, labels=labels)

    if kind is ModelKind.ESSENTIAL:
        scene.K1 = load_matrix(directory / f"{name}1.K")
        scene.K2 = load_matrix(directory / f"{name}2.K")

    if load_images:
        scene.image1 = _read_image(directory, name, 0)
        scene.image2 = _read_image(directory, name, 1)
    return scene
