from typing import Iterable, Tuple

import numpy as np
import open3d as o3d

Roi = Tuple[int, int, int, int]  # x_offset, y_offset, width, height


def finite_points(points: np.ndarray) -> np.ndarray:
    points = np.asarray(points).reshape(-1, 3)
    return points[np.all(np.isfinite(points), axis=1)]


def roi_indices(width: int, height: int, rois: Iterable[Roi]) -> np.ndarray:
    """
    Flat indices (row-major) of an organized cloud covered by the union of rois.
    Regions are clipped to the image; empty regions contribute nothing.
    """
    mask = np.zeros((height, width), dtype=bool)
    for x_offset, y_offset, roi_width, roi_height in rois:
        x0 = max(int(x_offset), 0)
        y0 = max(int(y_offset), 0)
        x1 = min(int(x_offset) + int(roi_width), width)
        y1 = min(int(y_offset) + int(roi_height), height)
        if x1 <= x0 or y1 <= y0:
            continue
        mask[y0:y1, x0:x1] = True
    return np.flatnonzero(mask)


def filter_by_rois(points: np.ndarray, width: int, height: int, rois: Iterable[Roi]) -> np.ndarray:
    """Keep organized points inside the rois, dropping NaN returns."""
    points = np.asarray(points).reshape(-1, 3)
    if points.shape[0] != width * height:
        raise ValueError(
            f"Organized cloud expected {width}x{height}={width * height} points, got {points.shape[0]}"
        )
    return finite_points(points[roi_indices(width, height, rois)])


def segment_plane(
    points: np.ndarray,
    distance_threshold: float = 0.01,
    num_iterations: int = 1000,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    RANSAC plane fit with Open3D.
    Returns the plane model (a, b, c, d) and the boolean inlier mask.
    """
    points = np.asarray(points, dtype=np.float64).reshape(-1, 3)
    inlier_mask = np.zeros(points.shape[0], dtype=bool)
    if points.shape[0] < 3:
        return np.zeros(4), inlier_mask

    pcd = o3d.geometry.PointCloud()
    pcd.points = o3d.utility.Vector3dVector(points)
    plane_model, inliers = pcd.segment_plane(
        distance_threshold=distance_threshold,
        ransac_n=3,
        num_iterations=num_iterations,
    )
    inlier_mask[np.asarray(inliers, dtype=int)] = True
    return np.asarray(plane_model, dtype=np.float64), inlier_mask


def remove_plane(
    points: np.ndarray,
    distance_threshold: float = 0.01,
    num_iterations: int = 1000,
) -> np.ndarray:
    """Drop the dominant plane (the table) and return what is left on top of it."""
    points = np.asarray(points, dtype=np.float64).reshape(-1, 3)
    if points.shape[0] < 3:
        return points

    pcd = o3d.geometry.PointCloud()
    pcd.points = o3d.utility.Vector3dVector(points)
    _, inliers = pcd.segment_plane(
        distance_threshold=distance_threshold,
        ransac_n=3,
        num_iterations=num_iterations,
    )
    objects = pcd.select_by_index(inliers, invert=True)
    return np.asarray(objects.points)
