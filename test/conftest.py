import numpy as np
import pytest

from grasp_ros2.grasp import Grasp


def _make_grasp(bottom=(0.0, 0.0, 0.5), approach=(0.0, 0.0, 1.0), binormal=(0.0, 1.0, 0.0),
                axis=(-1.0, 0.0, 0.0), width=0.05, score=1.0) -> Grasp:
    bottom = np.array(bottom, dtype=np.float64)
    approach = np.array(approach, dtype=np.float64)
    return Grasp(
        bottom=bottom,
        top=bottom + 0.06 * approach,
        surface=bottom + 0.03 * approach,
        approach=approach,
        binormal=np.array(binormal, dtype=np.float64),
        axis=np.array(axis, dtype=np.float64),
        width=width,
        score=score,
        sample=bottom + 0.04 * approach,
    )


@pytest.fixture
def make_grasp():
    return _make_grasp
