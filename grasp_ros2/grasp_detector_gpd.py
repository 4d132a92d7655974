#!/usr/bin/env python3

import threading
from typing import List, Optional, Tuple

import numpy as np
import rclpy
import tf2_ros
import tf2_sensor_msgs
from geometry_msgs.msg import TransformStamped
from grasp_msgs.msg import GraspConfigList
from object_msgs.msg import ObjectsInBoxes
from rclpy.callback_groups import MutuallyExclusiveCallbackGroup, ReentrantCallbackGroup
from rclpy.duration import Duration
from rclpy.executors import MultiThreadedExecutor
from rclpy.node import Node
from rclpy.service import Service
from rclpy.time import Time
from sensor_msgs.msg import PointCloud2
from std_msgs.msg import Header
from std_srvs.srv import Trigger
from visualization_msgs.msg import MarkerArray

from grasp_ros2.cloud_filters import filter_by_rois, finite_points, remove_plane
from grasp_ros2.conversions import (
    cloud_msg_to_points,
    convert_to_visual_grasp_msg,
    create_grasp_list_msg,
    objects_to_map,
    points_to_cloud_msg,
    transform_point,
)
from grasp_ros2.detection_state import CloudBuffer, ObjectMap
from grasp_ros2.grasp import CloudCamera, Grasp, GraspDetector, HandGeometry, load_detector
from grasp_ros2.grasp_detector_base import GraspDetectorBase


class GraspDetectorGPD(Node, GraspDetectorBase):
    """
    Detects grasp poses in point clouds received over ROS topics.
    In auto mode every accepted cloud is processed by a worker thread,
    otherwise detection runs when the detect_grasps service is called.
    """

    def __init__(self, detector: Optional[GraspDetector] = None, **kwargs) -> None:
        Node.__init__(self, 'grasp_detector_gpd', **kwargs)
        GraspDetectorBase.__init__(self)

        self.declare_parameter('cloud_topic', '/camera/pointcloud')
        self.declare_parameter('object_topic', '/ros2_openvino_toolkit/detected_objects')
        self.declare_parameter('object_name', '')
        self.declare_parameter('object_detect', False)
        self.declare_parameter('auto_mode', True)
        self.declare_parameter('rviz', True)
        self.declare_parameter('plane_remove', False)
        self.declare_parameter('plane_distance_threshold', 0.01)
        self.declare_parameter('target_frame', '')
        self.declare_parameter('camera_position', [0.0, 0.0, 0.0])
        self.declare_parameter('detector_plugin', '')
        self.declare_parameter('detector_config', '')
        self.declare_parameter('finger_width', 0.01)
        self.declare_parameter('hand_outer_diameter', 0.12)
        self.declare_parameter('hand_depth', 0.06)
        self.declare_parameter('hand_height', 0.02)
        self.declare_parameter('init_bite', 0.01)
        self.declare_parameter('marker_lifetime', 10.0)

        cloud_topic: str = self.get_parameter('cloud_topic').value
        object_topic: str = self.get_parameter('object_topic').value
        self.object_name: str = self.get_parameter('object_name').value
        self.object_detect: bool = self.get_parameter('object_detect').value
        self.auto_mode: bool = self.get_parameter('auto_mode').value
        self.rviz: bool = self.get_parameter('rviz').value
        self.plane_remove: bool = self.get_parameter('plane_remove').value
        self.plane_distance_threshold: float = self.get_parameter('plane_distance_threshold').value
        self.target_frame: str = self.get_parameter('target_frame').value
        self.view_point = np.array(self.get_parameter('camera_position').value, dtype=np.float64)
        self.marker_lifetime: float = self.get_parameter('marker_lifetime').value
        self.hand = HandGeometry(
            finger_width=self.get_parameter('finger_width').value,
            outer_diameter=self.get_parameter('hand_outer_diameter').value,
            depth=self.get_parameter('hand_depth').value,
            height=self.get_parameter('hand_height').value,
            init_bite=self.get_parameter('init_bite').value,
        )

        if detector is None:
            detector = self.load_configured_detector()
        self.detector: Optional[GraspDetector] = detector
        self._detect_lock = threading.Lock()

        # Internal state
        self.cloud_buffer = CloudBuffer()
        self.objects = ObjectMap()

        # Clouds are handled one at a time so a newer cloud is never overwritten by an older one
        self.cloud_group = MutuallyExclusiveCallbackGroup()
        self.cb_group = ReentrantCallbackGroup()

        # tf buffer
        self.tf_buffer = tf2_ros.Buffer()
        self.tf_listener = tf2_ros.TransformListener(self.tf_buffer, self)

        self.cloud_sub = self.create_subscription(
            PointCloud2, cloud_topic, self.cloud_callback, 10, callback_group=self.cloud_group
        )
        if self.object_detect:
            self.object_sub = self.create_subscription(
                ObjectsInBoxes, object_topic, self.object_callback, 10, callback_group=self.cb_group
            )

        self.grasps_pub = self.create_publisher(GraspConfigList, 'clustered_grasps', 10)
        self.grasps_rviz_pub = self.create_publisher(MarkerArray, 'grasps_rviz', 10)
        self.tabletop_pub = self.create_publisher(PointCloud2, 'tabletop_points', 10)

        # On-demand detection when not in auto mode
        self.detect_service: Service = self.create_service(
            Trigger, 'detect_grasps', self.detect_grasps_callback, callback_group=self.cb_group
        )

        self._stop = threading.Event()
        self._worker: Optional[threading.Thread] = None
        if self.auto_mode:
            self._worker = threading.Thread(target=self.detection_loop, daemon=True)
            self._worker.start()

        self.get_logger().info(
            f"Grasp detector ready: cloud={cloud_topic}, auto_mode={self.auto_mode}, "
            f"object_detect={self.object_detect} ({self.object_name or 'any object'}), "
            f"plane_remove={self.plane_remove}, rviz={self.rviz}"
        )

    def load_configured_detector(self) -> GraspDetector:
        plugin: str = self.get_parameter('detector_plugin').value
        if not plugin:
            raise ValueError("Parameter 'detector_plugin' is empty, no grasp detector to run")
        kwargs = {}
        config_file: str = self.get_parameter('detector_config').value
        if config_file:
            kwargs['config_file'] = config_file
        detector = load_detector(plugin, **kwargs)
        self.get_logger().info(f"Loaded grasp detector {plugin}")
        return detector

    def transform_cloud(self, msg: PointCloud2) -> Tuple[PointCloud2, Optional[TransformStamped]]:
        """
        Express the cloud in target_frame. The transform is returned alongside so the
        view point can follow the cloud; it is None when the cloud is left as is.
        """
        if not self.target_frame or msg.header.frame_id == self.target_frame:
            return msg, None
        msg_time = Time.from_msg(msg.header.stamp)
        if self.tf_buffer.can_transform(self.target_frame, msg.header.frame_id, msg_time, Duration(seconds=1)):
            transform = self.tf_buffer.lookup_transform(
                self.target_frame,
                msg.header.frame_id,
                msg_time,
                timeout=Duration(seconds=1)
            )
            return tf2_sensor_msgs.do_transform_cloud(msg, transform), transform
        self.get_logger().warn(
            f"Transform from {msg.header.frame_id} to {self.target_frame} not available, using original point cloud"
        )
        return msg, None

    def cloud_callback(self, msg: PointCloud2) -> None:
        if msg.width * msg.height == 0:
            self.get_logger().warn("Received empty point cloud, skipping")
            return

        try:
            rois = []
            if self.object_detect:
                rois = self.objects.rois_for(self.object_name)
                if not rois:
                    self.get_logger().info(
                        f"Waiting for object '{self.object_name or 'any'}' before accepting clouds"
                    )
                    return
                if msg.height <= 1:
                    self.get_logger().warn("Object filtering needs an organized point cloud, skipping")
                    return

            # do_transform_cloud may flatten the cloud, row-major order is kept
            width, height = msg.width, msg.height
            msg, transform = self.transform_cloud(msg)
            # camera_position is given in the sensor frame
            view_point = self.view_point if transform is None else transform_point(transform, self.view_point)
            points, _, _ = cloud_msg_to_points(msg)
            if rois:
                points = filter_by_rois(points, width, height, rois)
            else:
                points = finite_points(points)

            if self.plane_remove:
                points = remove_plane(points, self.plane_distance_threshold)
                self.tabletop_pub.publish(points_to_cloud_msg(msg.header, points))

            if points.shape[0] == 0:
                self.get_logger().warn("No points left after filtering, skipping")
                return

            cloud = CloudCamera.from_points(points, view_point)
            if not self.cloud_buffer.store(cloud, msg.header, Time.from_msg(msg.header.stamp).nanoseconds):
                self.get_logger().debug("Dropped a cloud older than the buffered one")
                return
            self.get_logger().debug(f"Buffered cloud with {len(cloud)} points in frame {msg.header.frame_id}")
        except Exception as e:
            self.get_logger().error(f"Failed to process point cloud: {e}")

    def object_callback(self, msg: ObjectsInBoxes) -> None:
        self.objects.replace(objects_to_map(msg))
        self.get_logger().debug(f"Received {len(self.objects)} objects")

    def detect_grasps_callback(self, request: Trigger.Request, response: Trigger.Response) -> Trigger.Response:
        snapshot = self.cloud_buffer.snapshot()
        if snapshot is None:
            response.success = False
            response.message = "No point cloud received yet."
            return response

        try:
            grasps = self.process_cloud(*snapshot)
        except Exception as e:
            self.get_logger().error(f"Grasp detection failed: {e}")
            response.success = False
            response.message = f"Grasp detection failed: {str(e)}"
            return response

        response.success = True
        response.message = f"Detected {len(grasps)} grasp poses."
        return response

    def detect_grasps_in_topic(self) -> List[Grasp]:
        """Detect grasp poses in the latest buffered cloud."""
        snapshot = self.cloud_buffer.snapshot()
        if snapshot is None:
            self.get_logger().warn("No point cloud available, skipping grasp detection")
            return []
        return self.process_cloud(*snapshot)

    def process_cloud(self, cloud: CloudCamera, header: Header) -> List[Grasp]:
        with self._detect_lock:
            if self.detector is None:
                return []
            grasps = list(self.detector.detect_grasps(cloud))
        self.get_logger().info(f"Detected {len(grasps)} grasp poses from {len(cloud)} points")
        if self._stop.is_set():
            return grasps

        self.grasps_pub.publish(create_grasp_list_msg(grasps, header))
        if self.rviz:
            self.grasps_rviz_pub.publish(
                convert_to_visual_grasp_msg(grasps, self.hand, header.frame_id, self.marker_lifetime)
            )

        for e in self.notify(header, grasps):
            self.get_logger().warn(f"Grasp callback failed: {e}")
        return grasps

    def detection_loop(self) -> None:
        while not self._stop.is_set():
            if not self.cloud_buffer.wait(timeout=0.5):
                continue
            taken = self.cloud_buffer.take()
            if taken is None:
                continue
            try:
                self.process_cloud(*taken)
            except Exception as e:
                self.get_logger().error(f"Grasp detection failed: {e}")

    def destroy_node(self):
        self._stop.set()
        if self._worker is not None:
            # wait out a detection in progress, publishers go away with the node
            self._worker.join()
            self._worker = None
        self.cloud_buffer.clear()
        with self._detect_lock:
            if self.detector is not None:
                self.detector.close()
                self.detector = None
        return super().destroy_node()


def main(args: Optional[list] = None) -> None:
    rclpy.init(args=args)
    node = GraspDetectorGPD()
    # Clouds are serialized in their own group, services and objects are reentrant
    executor = MultiThreadedExecutor(num_threads=4)
    executor.add_node(node)
    try:
        executor.spin()
    except KeyboardInterrupt:
        pass
    finally:
        node.destroy_node()
        rclpy.shutdown()


if __name__ == '__main__':
    main()
