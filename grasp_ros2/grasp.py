import importlib
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, List, Optional

import numpy as np


@dataclass(frozen=True)
class Grasp:
    """A grasp candidate as returned by the detection library."""
    bottom: np.ndarray
    top: np.ndarray
    surface: np.ndarray
    approach: np.ndarray
    binormal: np.ndarray
    axis: np.ndarray
    width: float
    score: float
    sample: np.ndarray = field(default_factory=lambda: np.zeros(3))
    full_antipodal: bool = False
    half_antipodal: bool = False

    @property
    def position(self) -> np.ndarray:
        return self.bottom

    @property
    def frame(self) -> np.ndarray:
        # columns: approach, binormal, hand axis
        return np.column_stack((self.approach, self.binormal, self.axis))


@dataclass
class HandGeometry:
    finger_width: float = 0.01
    outer_diameter: float = 0.12
    depth: float = 0.06
    height: float = 0.02
    init_bite: float = 0.01


class CloudCamera:
    """
    Point cloud plus the camera view points it was captured from.
    points: N x 3
    camera_source: K x N, True where view point k saw point n
    view_points: 3 x K
    """

    def __init__(
        self,
        points: np.ndarray,
        camera_source: np.ndarray,
        view_points: np.ndarray,
        normals: Optional[np.ndarray] = None,
    ) -> None:
        points = np.asarray(points, dtype=np.float64).reshape(-1, 3)
        if points.shape[0] == 0:
            raise ValueError("CloudCamera needs at least one point")
        view_points = np.asarray(view_points, dtype=np.float64).reshape(3, -1)
        camera_source = np.asarray(camera_source, dtype=bool).reshape(view_points.shape[1], -1)
        if camera_source.shape[1] != points.shape[0]:
            raise ValueError(
                f"camera_source covers {camera_source.shape[1]} points, cloud has {points.shape[0]}"
            )
        if normals is not None:
            normals = np.asarray(normals, dtype=np.float64).reshape(-1, 3)
            if normals.shape[0] != points.shape[0]:
                raise ValueError("normals and points differ in length")

        self.points = points
        self.camera_source = camera_source
        self.view_points = view_points
        self.normals = normals

    @classmethod
    def from_points(cls, points: np.ndarray, view_point=(0.0, 0.0, 0.0)) -> "CloudCamera":
        points = np.asarray(points, dtype=np.float64).reshape(-1, 3)
        camera_source = np.ones((1, points.shape[0]), dtype=bool)
        return cls(points, camera_source, np.asarray(view_point, dtype=np.float64).reshape(3, 1))

    def __len__(self) -> int:
        return self.points.shape[0]


class GraspDetector(ABC):
    """Opaque grasp pose detection capability."""

    @abstractmethod
    def detect_grasps(self, cloud_camera: CloudCamera) -> List[Grasp]:
        """Return grasp candidates for the cloud, ranked by the library (best first)."""

    def close(self) -> None:
        pass


def load_detector(plugin: str, **kwargs: Any) -> GraspDetector:
    """
    Instantiate a detector from a "package.module:ClassName" string.
    Keyword arguments are forwarded to the class constructor.
    """
    module_name, sep, class_name = plugin.partition(":")
    if not sep or not module_name or not class_name:
        raise ValueError(f"Detector plugin must look like 'module:Class', got '{plugin}'")

    module = importlib.import_module(module_name)
    detector_cls = getattr(module, class_name)
    if not (isinstance(detector_cls, type) and issubclass(detector_cls, GraspDetector)):
        raise TypeError(f"{plugin} is not a GraspDetector")
    return detector_cls(**kwargs)
