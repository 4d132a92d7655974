import threading

import numpy as np

from grasp_ros2.detection_state import CloudBuffer, ObjectMap
from grasp_ros2.grasp import CloudCamera


def cloud_of(n):
    return CloudCamera.from_points(np.full((n, 3), float(n)))


def test_buffer_starts_empty():
    buffer = CloudBuffer()
    assert not buffer.has_cloud
    assert buffer.snapshot() is None
    assert buffer.take() is None


def test_buffer_reflects_latest_cloud():
    buffer = CloudBuffer()
    for n in (3, 7, 2, 9):
        buffer.store(cloud_of(n), f'header{n}')
        cloud, header = buffer.snapshot()
        assert len(cloud) == n
        assert header == f'header{n}'


def test_snapshot_keeps_cloud_take_consumes_it():
    buffer = CloudBuffer()
    buffer.store(cloud_of(4), 'h')
    assert buffer.snapshot() is not None
    assert buffer.has_cloud

    cloud, header = buffer.take()
    assert len(cloud) == 4
    assert not buffer.has_cloud
    assert buffer.take() is None
    # still available for on-demand detection
    assert buffer.snapshot() is not None


def test_clear_releases_cloud():
    buffer = CloudBuffer()
    buffer.store(cloud_of(4), 'h')
    buffer.clear()
    assert buffer.snapshot() is None
    assert not buffer.has_cloud


def test_wait_times_out_without_cloud():
    assert not CloudBuffer().wait(timeout=0.01)


def test_wait_wakes_on_store():
    buffer = CloudBuffer()
    timer = threading.Timer(0.05, buffer.store, args=(cloud_of(1), 'h'))
    timer.start()
    try:
        assert buffer.wait(timeout=5.0)
    finally:
        timer.join()


def test_object_map_replacement_drops_stale_entries():
    objects = ObjectMap()
    objects.replace({'cup': (0.9, (0, 0, 10, 10)), 'bottle': (0.8, (5, 5, 4, 4))})
    objects.replace({'box': (0.7, (1, 2, 3, 4))})
    assert len(objects) == 1
    assert objects.get('cup') is None
    assert objects.get('bottle') is None
    assert objects.get('box') == (0.7, (1, 2, 3, 4))


def test_object_map_copies_input():
    source = {'cup': (0.9, (0, 0, 10, 10))}
    objects = ObjectMap()
    objects.replace(source)
    source['box'] = (0.5, (0, 0, 1, 1))
    assert len(objects) == 1


def test_rois_for_named_and_any():
    objects = ObjectMap()
    objects.replace({'cup': (0.9, (0, 0, 10, 10)), 'box': (0.7, (1, 2, 3, 4))})
    assert objects.rois_for('box') == [(1, 2, 3, 4)]
    assert objects.rois_for('plate') == []
    assert sorted(objects.rois_for('')) == [(0, 0, 10, 10), (1, 2, 3, 4)]


def test_store_rejects_older_stamp():
    buffer = CloudBuffer()
    assert buffer.store(cloud_of(5), 'new', stamp=2_000)
    assert not buffer.store(cloud_of(3), 'old', stamp=1_000)
    cloud, header = buffer.snapshot()
    assert len(cloud) == 5
    assert header == 'new'


def test_store_accepts_equal_stamp_and_unstamped():
    buffer = CloudBuffer()
    assert buffer.store(cloud_of(5), 'a', stamp=1_000)
    assert buffer.store(cloud_of(3), 'b', stamp=1_000)
    assert buffer.store(cloud_of(2), 'c')
    assert buffer.snapshot()[1] == 'c'


def test_clear_resets_stamp():
    buffer = CloudBuffer()
    buffer.store(cloud_of(5), 'new', stamp=2_000)
    buffer.clear()
    assert buffer.store(cloud_of(3), 'old', stamp=1_000)


def test_concurrent_stores_keep_newest_stamp():
    buffer = CloudBuffer()
    start = threading.Barrier(8)

    def store(stamp):
        start.wait()
        buffer.store(cloud_of(stamp), f'header{stamp}', stamp=stamp)

    threads = [threading.Thread(target=store, args=(stamp,)) for stamp in range(1, 9)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    cloud, header = buffer.snapshot()
    assert header == 'header8'
    assert len(cloud) == 8
