import os
from launch import LaunchDescription
from launch.actions import DeclareLaunchArgument
from launch.substitutions import LaunchConfiguration
from launch_ros.actions import Node
from ament_index_python.packages import get_package_share_directory


def generate_launch_description():
    config_dir = os.path.join(get_package_share_directory('grasp_ros2'), 'config')
    params_file = os.path.join(config_dir, 'grasp_detector.yaml')
    rviz_config = os.path.join(config_dir, 'grasp_library.rviz')

    return LaunchDescription([
        DeclareLaunchArgument('detector_plugin', description='module:Class of the grasp detector'),
        Node(
            package='tf2_ros',
            executable='static_transform_publisher',
            name='static_tf_pub',
            arguments=['0', '0', '0', '0', '0', '0', 'map', 'camera_link'],
            output='screen',
        ),
        Node(
            package='grasp_ros2',
            executable='scene_publisher',
            name='scene_publisher',
            output='screen',
            parameters=[{'frame_id': 'camera_link', 'object_name': 'box'}],
        ),
        Node(
            package='grasp_ros2',
            executable='grasp_detector_gpd',
            name='grasp_detector_gpd',
            namespace='grasp_library',
            output='screen',
            parameters=[
                params_file,
                {
                    'detector_plugin': LaunchConfiguration('detector_plugin'),
                    'object_detect': True,
                    'object_name': 'box',
                    'plane_remove': True,
                },
            ],
        ),
        Node(
            package='rviz2',
            executable='rviz2',
            name='rviz2',
            arguments=['-d', rviz_config],
            output='screen',
        ),
    ])
