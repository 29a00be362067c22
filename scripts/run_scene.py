"""
Run sigma-consensus on one annotated scene of a dataset directory.

    python scripts/run_scene.py data/homography graf --kind homography
    python scripts/run_scene.py data/fundamental_matrix corr --kind fundamental --out out/corr.png
    python scripts/run_scene.py data/essential_matrix fountain --kind essential

Prints the number of iterations, the run time, the RMSE over the annotated
inliers and inlier counts; optionally saves the labeled matches.
"""

from __future__ import annotations

import argparse
import time
from pathlib import Path

import numpy as np

from sigmasac.consensus import (
    EssentialEstimator, FundamentalEstimator, HomographyEstimator, ModelKind,
    SigmaConsensus, SigmaConsensusParams, UniformSampler, get_model_inliers_mask, next_iteration_limit,
)
from sigmasac.eval import LABEL_REFINEMENT_THRESHOLDS, reference_inliers, rmse
from sigmasac.io import load_scene, normalize_correspondences, threshold_normalizer
from sigmasac.utils import setup_logger
from sigmasac.viz import save_matches

# maximum threshold, drawing threshold (pixels)
DEFAULT_THRESHOLDS = {
    ModelKind.HOMOGRAPHY: (50.0, 2.5),
    ModelKind.FUNDAMENTAL: (5.0, 1.0),
    ModelKind.ESSENTIAL: (5.0, 3.0),
}
# no cap on the theoretical iteration count
UNBOUNDED_ITERATIONS = 2 ** 31 - 1


def make_estimator(kind: ModelKind, minimal_solver: str):
    if kind is ModelKind.HOMOGRAPHY:
        return HomographyEstimator()
    if kind is ModelKind.FUNDAMENTAL:
        return FundamentalEstimator(minimal_solver=minimal_solver)
    return EssentialEstimator()


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("dataset_dir", type=Path)
    parser.add_argument("scene")
    parser.add_argument("--kind", choices=[k.value for k in ModelKind], default=ModelKind.HOMOGRAPHY.value)
    parser.add_argument("--confidence", type=float, default=0.99)
    parser.add_argument("--max-threshold", type=float, default=None, help="pixels")
    parser.add_argument("--drawing-threshold", type=float, default=None, help="pixels")
    parser.add_argument("--reference-threshold", type=float, default=2.0, help="pixels")
    parser.add_argument("--iteration-limit", type=int, default=10000)
    parser.add_argument("--partitions", type=int, default=10)
    parser.add_argument("--minimal-solver", choices=["seven_point", "eight_point"], default="seven_point")
    parser.add_argument("--no-lo", action="store_true", help="disable graph-based local optimization")
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--out", type=Path, default=None, help="save the labeled matches here")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    setup_logger()

    kind = ModelKind(args.kind)
    default_max, default_draw = DEFAULT_THRESHOLDS[kind]
    max_threshold = args.max_threshold if args.max_threshold is not None else default_max
    drawing_threshold = args.drawing_threshold if args.drawing_threshold is not None else default_draw

    scene = load_scene(args.dataset_dir, args.scene, kind, load_images=args.out is not None)
    print("-" * 62)
    print(f"{kind.value} estimation on scene '{scene.name}' ({scene.points.shape[0]} correspondences)")
    print("-" * 62)

    estimator = make_estimator(kind, args.minimal_solver)

    # Essential matrices live in calibrated coordinates: points and every
    # threshold are rescaled by the same focal-length normalizer.
    points = scene.points
    normalizer = 1.0
    if kind is ModelKind.ESSENTIAL:
        points = normalize_correspondences(scene.points, scene.K1, scene.K2)
        normalizer = threshold_normalizer(scene.K1, scene.K2)

    gt_inliers = None
    if scene.labels is not None:
        refinement_threshold = LABEL_REFINEMENT_THRESHOLDS[kind]
        if refinement_threshold is not None:
            refinement_threshold *= normalizer
        gt_inliers = reference_inliers(points, scene.labels, estimator, refinement_threshold)
        inlier_ratio = gt_inliers.size / max(points.shape[0], 1)
        theoretical = next_iteration_limit(
            inlier_ratio, args.confidence, estimator.sample_size, UNBOUNDED_ITERATIONS,
        )
        print(f"\tNumber of ground truth inliers = {gt_inliers.size}.")
        print(f"\tTheoretical RANSAC iteration number at {args.confidence:.2f} confidence = {theoretical}.")

    params = SigmaConsensusParams(
        confidence=args.confidence,
        maximum_threshold=max_threshold * normalizer,
        reference_threshold=args.reference_threshold * normalizer,
        partition_number=args.partitions,
        iteration_limit=args.iteration_limit,
        local_optimization=not args.no_lo,
    )

    start = time.perf_counter()
    result = SigmaConsensus(params).run(points, estimator, UniformSampler(args.seed))
    elapsed = time.perf_counter() - start

    print(f"\tStatus: {result.status.value}")
    print(f"\tIterations drawn at {args.confidence:.2f} confidence: {result.iterations}")
    print(f"\tElapsed time: {elapsed:.4f} secs")
    if not result.success:
        return

    model = result.model
    print(f"\tScore: {result.score.score:.3f} (inliers under reference threshold: {result.score.inlier_number})")

    if gt_inliers is not None:
        error = rmse(estimator, model, points, gt_inliers) / normalizer
        print(f"\tRMSE over {gt_inliers.size} annotated inliers: {error:.4f} px")

    for threshold in (max_threshold, drawing_threshold):
        mask = get_model_inliers_mask(points, model, estimator, threshold * normalizer)
        print(f"\tNumber of inliers for threshold {threshold:.2f} px: {int(np.count_nonzero(mask))}")

    if args.out is not None:
        if scene.image1 is None or scene.image2 is None:
            print(f"\tNo images found for scene '{scene.name}', nothing drawn")
            return
        labels = get_model_inliers_mask(points, model, estimator, drawing_threshold * normalizer).astype(np.intp)
        save_matches(scene.points, labels, scene.image1, scene.image2, args.out)
        print(f"\t[saved] {args.out}")


if __name__ == "__main__":
    main()
