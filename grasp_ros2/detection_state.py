import threading
from typing import Any, Dict, List, Optional, Tuple

from grasp_ros2.cloud_filters import Roi
from grasp_ros2.grasp import CloudCamera

ObjectEntry = Tuple[float, Roi]  # probability, region of interest


class CloudBuffer:
    """Latest accepted cloud and its header, shared between callbacks and the detection worker."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._arrived = threading.Condition(self._lock)
        self._cloud: Optional[CloudCamera] = None
        self._header: Any = None
        self._stamp: Optional[int] = None
        self._has_cloud = False

    @property
    def has_cloud(self) -> bool:
        with self._lock:
            return self._has_cloud

    def store(self, cloud: CloudCamera, header: Any, stamp: Optional[int] = None) -> bool:
        """
        Buffer a cloud. stamp is the acquisition time in nanoseconds; a cloud stamped
        before the one already buffered is rejected and False is returned.
        """
        with self._lock:
            if stamp is not None and self._stamp is not None and stamp < self._stamp:
                return False
            self._cloud = cloud
            self._header = header
            if stamp is not None:
                self._stamp = stamp
            self._has_cloud = True
            self._arrived.notify_all()
            return True

    def snapshot(self) -> Optional[Tuple[CloudCamera, Any]]:
        with self._lock:
            if self._cloud is None:
                return None
            return self._cloud, self._header

    def take(self) -> Optional[Tuple[CloudCamera, Any]]:
        """Like snapshot, but marks the cloud as consumed so it is not processed twice."""
        with self._lock:
            if not self._has_cloud or self._cloud is None:
                return None
            self._has_cloud = False
            return self._cloud, self._header

    def wait(self, timeout: Optional[float] = None) -> bool:
        with self._lock:
            return self._arrived.wait_for(lambda: self._has_cloud, timeout=timeout)

    def clear(self) -> None:
        with self._lock:
            self._cloud = None
            self._header = None
            self._stamp = None
            self._has_cloud = False


class ObjectMap:
    """Detected objects keyed by name. Every update replaces the whole mapping."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._objects: Dict[str, ObjectEntry] = {}

    def replace(self, objects: Dict[str, ObjectEntry]) -> None:
        with self._lock:
            self._objects = dict(objects)

    def get(self, name: str) -> Optional[ObjectEntry]:
        with self._lock:
            return self._objects.get(name)

    def items(self) -> List[Tuple[str, ObjectEntry]]:
        with self._lock:
            return list(self._objects.items())

    def rois_for(self, name: str = "") -> List[Roi]:
        """ROIs of the named object, or of every object when name is empty."""
        with self._lock:
            if not name:
                return [roi for _, roi in self._objects.values()]
            entry = self._objects.get(name)
            return [entry[1]] if entry is not None else []

    def __len__(self) -> int:
        with self._lock:
            return len(self._objects)
