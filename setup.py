from setuptools import find_packages, setup
import os

package_name = 'grasp_ros2'

setup(
    name=package_name,
    version='0.0.0',
    packages=find_packages(exclude=['test']),
    data_files=[
        ('share/ament_index/resource_index/packages',
            ['resource/' + package_name]),
        ('share/' + package_name, ['package.xml']),
        # Add launch files
        (os.path.join('share', package_name, 'launch'),
            [os.path.join('launch', f) for f in os.listdir('launch') if f.endswith('.launch.py')]),
        # Add config files
        (os.path.join('share', package_name, 'config'),
            [os.path.join('config', f) for f in os.listdir('config') if f.endswith(('.yaml', '.rviz'))]),
    ],
    install_requires=['setuptools', 'numpy', 'scipy', 'open3d'],
    zip_safe=True,
    maintainer='brent',
    maintainer_email='rweiff2022@gmail.com',
    description='ROS 2 wrapper that detects grasp poses in point clouds with GPD.',
    license='MIT',
    tests_require=['pytest'],
    extras_require={
        'test': ['pytest', 'pyyaml'],
    },
    entry_points={
        'console_scripts': [
            'grasp_detector_gpd = grasp_ros2.grasp_detector_gpd:main',
            'scene_publisher = grasp_ros2.scene_publisher:main',
        ],
    },
)
