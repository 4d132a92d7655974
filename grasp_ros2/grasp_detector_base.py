from typing import Any, Callable, List, Sequence

from grasp_ros2.grasp import Grasp

GraspCallback = Callable[[Any, Sequence[Grasp]], None]


class GraspDetectorBase:
    """Lets other components (e.g. a grasp planner) receive every detection result."""

    def __init__(self) -> None:
        self._grasp_callbacks: List[GraspCallback] = []

    def add_callback(self, callback: GraspCallback) -> None:
        self._grasp_callbacks.append(callback)

    def notify(self, header: Any, grasps: Sequence[Grasp]) -> List[Exception]:
        """Call every registered callback. Exceptions are returned, not raised."""
        errors: List[Exception] = []
        for callback in list(self._grasp_callbacks):
            try:
                callback(header, grasps)
            except Exception as e:
                errors.append(e)
        return errors
