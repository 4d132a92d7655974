import numpy as np
import pytest
from scipy.spatial.transform import Rotation

from grasp_ros2.grasp import HandGeometry
from grasp_ros2.hand_markers import (
    MARKERS_PER_GRASP,
    frame_to_quaternion,
    grasps_to_cuboids,
    hand_cuboids,
)


def test_identity_frame_quaternion():
    assert frame_to_quaternion(np.eye(3)) == pytest.approx((0.0, 0.0, 0.0, 1.0))


def test_quaternion_matches_grasp_frame(make_grasp):
    grasp = make_grasp()
    quat = frame_to_quaternion(grasp.frame)
    np.testing.assert_allclose(Rotation.from_quat(quat).as_matrix(), grasp.frame, atol=1e-9)


def test_fixed_marker_count_per_grasp(make_grasp):
    grasps = [make_grasp(bottom=(0.1 * i, 0.0, 0.5)) for i in range(5)]
    cuboids = grasps_to_cuboids(grasps, HandGeometry())
    assert len(cuboids) == MARKERS_PER_GRASP * len(grasps)


def test_no_grasps_no_markers():
    assert grasps_to_cuboids([], HandGeometry()) == []


def test_ids_unique_per_namespace(make_grasp):
    cuboids = grasps_to_cuboids([make_grasp() for _ in range(4)], HandGeometry())
    keys = [(c.ns, c.id) for c in cuboids]
    assert len(keys) == len(set(keys))


def test_hand_layout(make_grasp):
    hand = HandGeometry()
    grasp = make_grasp(bottom=(0.0, 0.0, 0.5), approach=(0.0, 0.0, 1.0), binormal=(0.0, 1.0, 0.0))
    base, left, right, approach = hand_cuboids(grasp, 2, hand)

    hw = 0.5 * hand.outer_diameter - 0.5 * hand.finger_width
    assert base.ns == 'hand_base' and base.id == 2
    np.testing.assert_allclose(base.center, [0.0, 0.0, 0.5])
    assert base.scale == pytest.approx((0.02, 2 * hw, hand.height))

    assert (left.ns, left.id) == ('finger', 6)
    np.testing.assert_allclose(left.center, [0.0, -hw, 0.5 + 0.5 * hand.depth])
    assert left.scale == pytest.approx((hand.depth, hand.finger_width, hand.height))

    assert (right.ns, right.id) == ('finger', 7)
    np.testing.assert_allclose(right.center, [0.0, hw, 0.5 + 0.5 * hand.depth])

    assert (approach.ns, approach.id) == ('finger', 8)
    np.testing.assert_allclose(approach.center, [0.0, 0.0, 0.45])
    assert approach.scale == pytest.approx((0.08, hand.finger_width, hand.height))


def test_all_parts_share_grasp_orientation(make_grasp):
    grasp = make_grasp()
    quats = {c.quaternion for c in hand_cuboids(grasp, 0, HandGeometry())}
    assert len(quats) == 1
