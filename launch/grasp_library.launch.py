import os
from launch import LaunchDescription
from launch.actions import DeclareLaunchArgument, ExecuteProcess
from launch.conditions import IfCondition
from launch.substitutions import LaunchConfiguration
from launch_ros.actions import Node
from ament_index_python.packages import get_package_share_directory


def generate_launch_description():
    config_dir = os.path.join(get_package_share_directory('grasp_ros2'), 'config')
    params_file = os.path.join(config_dir, 'grasp_detector.yaml')
    rviz_config = os.path.join(config_dir, 'grasp_library.rviz')

    return LaunchDescription([
        DeclareLaunchArgument('detector_plugin', description='module:Class of the grasp detector'),
        DeclareLaunchArgument('detector_config', default_value=''),
        DeclareLaunchArgument('cloud_topic', default_value='/camera/pointcloud'),
        DeclareLaunchArgument('auto_mode', default_value='true'),
        DeclareLaunchArgument('rviz', default_value='true'),
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
                    'detector_config': LaunchConfiguration('detector_config'),
                    'cloud_topic': LaunchConfiguration('cloud_topic'),
                    'auto_mode': LaunchConfiguration('auto_mode'),
                    'rviz': LaunchConfiguration('rviz'),
                },
            ],
        ),
        ExecuteProcess(
            cmd=['rviz2', '-d', rviz_config],
            output='screen',
            condition=IfCondition(LaunchConfiguration('rviz')),
        ),
    ])
