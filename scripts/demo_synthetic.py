import numpy as np

from sigmasac.consensus import (
    HomographyEstimator, SigmaConsensus, SigmaConsensusParams, UniformSampler, get_model_inliers_mask,
)
from sigmasac.eval import rmse, subset_from_labeling, synthetic_homography_scene
from sigmasac.utils import setup_logger


def main() -> None:
    setup_logger()
    rng = np.random.default_rng(0)

    # 200 inliers with 0.8 px noise, 80 wrong matches
    points, labels, H_true = synthetic_homography_scene(rng, n_inliers=200, n_outliers=80, noise_sigma=0.8)

    estimator = HomographyEstimator()
    params = SigmaConsensusParams(confidence=0.99, maximum_threshold=16.0)
    res = SigmaConsensus(params).run(points, estimator, UniformSampler(seed=42))

    print("H_true:\n", H_true)
    if not res.success:
        print("Sigma-consensus failed:", res.status.value)
        return

    H_est = res.model.descriptor
    print("H_est:\n", H_est)
    print("score:", round(res.score.score, 3))
    print("inliers (reference threshold):", res.score.inlier_number, "/", points.shape[0])
    print("inliers (3 px):", int(get_model_inliers_mask(points, res.model, estimator, 3.0).sum()))
    print("rmse over true inliers:", rmse(estimator, res.model, points, subset_from_labeling(labels)))
    print("iterations:", res.iterations)


if __name__ == "__main__":
    main()
