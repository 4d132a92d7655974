from typing import Tuple

import numpy as np
import rclpy
from object_msgs.msg import Object, ObjectInBox, ObjectsInBoxes
from rclpy.node import Node
from sensor_msgs.msg import PointCloud2, PointField, RegionOfInterest

from grasp_ros2.cloud_filters import Roi


def make_tabletop_scene(
    width: int = 64,
    height: int = 48,
    table_distance: float = 1.0,
    box_height: float = 0.1,
    pixel_size: float = 0.01,
    box_roi: Roi = (24, 16, 16, 12),
) -> Tuple[np.ndarray, Roi]:
    """
    Organized cloud (row-major, camera looking down +z) of a flat table with a box on it.
    Returns the points (width*height x 3) and the box's pixel region.
    """
    u, v = np.meshgrid(np.arange(width), np.arange(height))
    x = (u - width / 2.0) * pixel_size
    y = (v - height / 2.0) * pixel_size
    z = np.full(u.shape, table_distance)

    x0, y0, w, h = box_roi
    z[y0:y0 + h, x0:x0 + w] = table_distance - box_height

    points = np.stack((x, y, z), axis=-1).reshape(-1, 3).astype(np.float32)
    return points, box_roi


def create_organized_cloud(points: np.ndarray, width: int, height: int, frame_id: str) -> PointCloud2:
    msg = PointCloud2()
    msg.header.frame_id = frame_id
    msg.height = height
    msg.width = width
    msg.fields = [
        PointField(name='x', offset=0, datatype=PointField.FLOAT32, count=1),
        PointField(name='y', offset=4, datatype=PointField.FLOAT32, count=1),
        PointField(name='z', offset=8, datatype=PointField.FLOAT32, count=1),
    ]
    msg.is_bigendian = False
    msg.point_step = 12
    msg.row_step = msg.point_step * msg.width
    msg.is_dense = bool(np.all(np.isfinite(points)))
    msg.data = np.asarray(points, dtype='<f4').tobytes()
    return msg


class ScenePublisher(Node):
    def __init__(self) -> None:
        super().__init__('scene_publisher')
        self.declare_parameter('frame_id', 'camera_link')
        self.declare_parameter('object_name', 'box')
        self.declare_parameter('rate', 1.0)

        self.frame_id: str = self.get_parameter('frame_id').value
        self.object_name: str = self.get_parameter('object_name').value

        self.cloud_pub = self.create_publisher(PointCloud2, '/camera/pointcloud', 1)
        self.object_pub = self.create_publisher(ObjectsInBoxes, '/ros2_openvino_toolkit/detected_objects', 1)
        self.timer = self.create_timer(1.0 / self.get_parameter('rate').value, self.publish_scene)

        self.width, self.height = 64, 48
        self.points, self.box_roi = make_tabletop_scene(self.width, self.height)

    def publish_scene(self) -> None:
        stamp = self.get_clock().now().to_msg()
        cloud_msg = create_organized_cloud(self.points, self.width, self.height, self.frame_id)
        cloud_msg.header.stamp = stamp

        objects_msg = ObjectsInBoxes()
        objects_msg.header = cloud_msg.header
        x_offset, y_offset, roi_width, roi_height = self.box_roi
        objects_msg.objects_vector = [
            ObjectInBox(
                object=Object(object_name=self.object_name, probability=0.9),
                roi=RegionOfInterest(
                    x_offset=x_offset, y_offset=y_offset, width=roi_width, height=roi_height
                ),
            )
        ]

        # objects first so the detector's gate is open when the cloud arrives
        self.object_pub.publish(objects_msg)
        self.cloud_pub.publish(cloud_msg)
        self.get_logger().info('Published tabletop cloud and object box')


def main(args=None):
    rclpy.init(args=args)
    node = ScenePublisher()
    try:
        rclpy.spin(node)
    except KeyboardInterrupt:
        pass
    finally:
        node.destroy_node()
        rclpy.shutdown()


if __name__ == '__main__':
    main()
