from dataclasses import dataclass
from typing import List, Sequence, Tuple

import numpy as np
from scipy.spatial.transform import Rotation

from grasp_ros2.grasp import Grasp, HandGeometry

MARKERS_PER_GRASP = 4  # hand base, left finger, right finger, approach
BASE_LENGTH = 0.02
APPROACH_LENGTH = 0.08


@dataclass
class CuboidSpec:
    ns: str
    id: int
    center: np.ndarray
    quaternion: Tuple[float, float, float, float]  # x, y, z, w
    scale: Tuple[float, float, float]


def frame_to_quaternion(frame: np.ndarray) -> Tuple[float, float, float, float]:
    x, y, z, w = Rotation.from_matrix(np.asarray(frame, dtype=np.float64)).as_quat()
    return float(x), float(y), float(z), float(w)


def hand_cuboids(grasp: Grasp, index: int, hand: HandGeometry) -> List[CuboidSpec]:
    """
    Boxes that draw a two-finger hand at the grasp pose.
    Fingers straddle the bottom along the binormal and extend hand depth along the approach.
    """
    approach = np.asarray(grasp.approach, dtype=np.float64)
    binormal = np.asarray(grasp.binormal, dtype=np.float64)
    bottom = np.asarray(grasp.bottom, dtype=np.float64)
    quat = frame_to_quaternion(grasp.frame)

    hw = 0.5 * hand.outer_diameter - 0.5 * hand.finger_width
    left_bottom = bottom - hw * binormal
    right_bottom = bottom + hw * binormal
    left_center = left_bottom + 0.5 * hand.depth * approach
    right_center = right_bottom + 0.5 * hand.depth * approach
    base_center = left_bottom + 0.5 * (right_bottom - left_bottom)
    approach_center = base_center - 0.01 * approach - 0.04 * approach

    base_width = float(np.linalg.norm(right_bottom - left_bottom))
    finger_scale = (hand.depth, hand.finger_width, hand.height)

    return [
        CuboidSpec("hand_base", index, base_center, quat, (BASE_LENGTH, base_width, hand.height)),
        CuboidSpec("finger", index * 3, left_center, quat, finger_scale),
        CuboidSpec("finger", index * 3 + 1, right_center, quat, finger_scale),
        CuboidSpec("finger", index * 3 + 2, approach_center, quat,
                   (APPROACH_LENGTH, hand.finger_width, hand.height)),
    ]


def grasps_to_cuboids(grasps: Sequence[Grasp], hand: HandGeometry) -> List[CuboidSpec]:
    cuboids: List[CuboidSpec] = []
    for i, grasp in enumerate(grasps):
        cuboids.extend(hand_cuboids(grasp, i, hand))
    return cuboids
