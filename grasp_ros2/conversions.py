from typing import Dict, Sequence, Tuple

import numpy as np
import sensor_msgs_py.point_cloud2 as pc2
from geometry_msgs.msg import Point, TransformStamped, Vector3
from grasp_msgs.msg import GraspConfig, GraspConfigList
from object_msgs.msg import ObjectsInBoxes
from rclpy.duration import Duration
from scipy.spatial.transform import Rotation
from sensor_msgs.msg import PointCloud2
from std_msgs.msg import Float32, Header
from visualization_msgs.msg import Marker, MarkerArray

from grasp_ros2.detection_state import ObjectEntry
from grasp_ros2.grasp import Grasp, HandGeometry
from grasp_ros2.hand_markers import CuboidSpec, grasps_to_cuboids


def point_to_msg(e: np.ndarray) -> Point:
    return Point(x=float(e[0]), y=float(e[1]), z=float(e[2]))


def vector_to_msg(e: np.ndarray) -> Vector3:
    return Vector3(x=float(e[0]), y=float(e[1]), z=float(e[2]))


def convert_to_grasp_msg(grasp: Grasp) -> GraspConfig:
    msg = GraspConfig()
    msg.bottom = point_to_msg(grasp.bottom)
    msg.top = point_to_msg(grasp.top)
    msg.surface = point_to_msg(grasp.surface)
    msg.approach = vector_to_msg(grasp.approach)
    msg.binormal = vector_to_msg(grasp.binormal)
    msg.axis = vector_to_msg(grasp.axis)
    msg.width = Float32(data=float(grasp.width))
    msg.score = Float32(data=float(grasp.score))
    msg.sample = point_to_msg(grasp.sample)
    return msg


def create_grasp_list_msg(grasps: Sequence[Grasp], header: Header) -> GraspConfigList:
    msg = GraspConfigList()
    msg.header = header
    msg.grasps = [convert_to_grasp_msg(grasp) for grasp in grasps]
    return msg


def cuboid_to_marker(cuboid: CuboidSpec, frame_id: str, lifetime: float) -> Marker:
    marker = Marker()
    marker.header.frame_id = frame_id
    marker.ns = cuboid.ns
    marker.id = cuboid.id
    marker.type = Marker.CUBE
    marker.action = Marker.ADD
    marker.pose.position = point_to_msg(cuboid.center)
    marker.pose.orientation.x = cuboid.quaternion[0]
    marker.pose.orientation.y = cuboid.quaternion[1]
    marker.pose.orientation.z = cuboid.quaternion[2]
    marker.pose.orientation.w = cuboid.quaternion[3]
    marker.scale.x = float(cuboid.scale[0])
    marker.scale.y = float(cuboid.scale[1])
    marker.scale.z = float(cuboid.scale[2])
    marker.color.r = 0.0
    marker.color.g = 0.0
    marker.color.b = 1.0  # Blue hand
    marker.color.a = 0.5
    marker.lifetime = Duration(seconds=lifetime).to_msg()
    return marker


def convert_to_visual_grasp_msg(
    grasps: Sequence[Grasp],
    hand: HandGeometry,
    frame_id: str,
    lifetime: float = 10.0,
) -> MarkerArray:
    marker_array = MarkerArray()
    marker_array.markers = [
        cuboid_to_marker(cuboid, frame_id, lifetime)
        for cuboid in grasps_to_cuboids(grasps, hand)
    ]
    return marker_array


def cloud_msg_to_points(msg: PointCloud2) -> Tuple[np.ndarray, int, int]:
    """XYZ of every point in row-major order, NaNs kept so organized indexing still holds."""
    points = [
        (p[0], p[1], p[2])
        for p in pc2.read_points(msg, field_names=["x", "y", "z"], skip_nans=False)
    ]
    return np.array(points, dtype=np.float32).reshape(-1, 3), msg.width, msg.height


def points_to_cloud_msg(header: Header, points: np.ndarray) -> PointCloud2:
    return pc2.create_cloud_xyz32(header, np.asarray(points, dtype=np.float32).reshape(-1, 3).tolist())


def objects_to_map(msg: ObjectsInBoxes) -> Dict[str, ObjectEntry]:
    objects: Dict[str, ObjectEntry] = {}
    for obj in msg.objects_vector:
        name = obj.object.object_name
        probability = float(obj.object.probability)
        # same label twice: keep the more confident box
        if name in objects and objects[name][0] >= probability:
            continue
        roi = (obj.roi.x_offset, obj.roi.y_offset, obj.roi.width, obj.roi.height)
        objects[name] = (probability, roi)
    return objects


def transform_point(transform: TransformStamped, point: np.ndarray) -> np.ndarray:
    """Map a point from the transform's child frame into its header frame."""
    t = transform.transform.translation
    q = transform.transform.rotation
    rotation = Rotation.from_quat([q.x, q.y, q.z, q.w])
    return rotation.apply(np.asarray(point, dtype=np.float64)) + np.array([t.x, t.y, t.z])
