import logging

import numpy as np
import pandas as pd
import pytest

from data.dataset import Dataset


def _hitters_like(seed: int = 0):
    """263 players: short careers earn ~5.0; longer careers split on hits at 117.5"""
    rng = np.random.default_rng(seed)

    short = pd.DataFrame({
        'years': [1 + i % 4 for i in range(90)],
        'hits': [40 + (i * 7) % 161 for i in range(90)],
        'log_salary': 5.0,
    })
    low_hits = pd.DataFrame({
        'years': [5 + i % 16 for i in range(85)],
        'hits': np.round(np.linspace(40, 117, 85)).astype(int),
        'log_salary': 6.0,
    })
    high_hits = pd.DataFrame({
        'years': [5 + (i + 3) % 16 for i in range(88)],
        'hits': np.round(np.linspace(118, 200, 88)).astype(int),
        'log_salary': 6.7,
    })

    frame = pd.concat([short, low_hits, high_hits], ignore_index=True)
    frame['log_salary'] = frame['log_salary'] + rng.normal(0.0, 0.05, len(frame))
    return frame


@pytest.fixture
def hitters_frame():
    return _hitters_like()


@pytest.fixture
def hitters_dataset(hitters_frame):
    return Dataset(hitters_frame[['years', 'hits']], hitters_frame['log_salary'])


@pytest.fixture
def linear_dataset():
    x = np.arange(20, dtype=float)
    return Dataset(pd.DataFrame({'x': x}), pd.Series(2 * x + 1, name='y'))


@pytest.fixture
def separable_dataset():
    frame = pd.DataFrame({
        'noise': [3, 1, 4, 1, 5, 9, 2, 6, 5, 3, 5, 8, 9, 7, 9, 3, 2, 3, 8, 4],
        'signal': [0] * 10 + [1] * 10,
    })
    labels = pd.Series(['no'] * 10 + ['yes'] * 10, name='label')
    return Dataset(frame, labels)


@pytest.fixture
def step_dataset():
    """Four points whose pruning sequence is (4, 0), (2, 0.5), (1, 100)"""
    return Dataset(pd.DataFrame({'x': [0.0, 1.0, 2.0, 3.0]}),
                   pd.Series([0.0, 1.0, 10.0, 11.0], name='y'))


@pytest.fixture
def color_frame():
    colors = ['red', 'green', 'blue'] * 8
    response = {'red': 1.0, 'green': 10.0, 'blue': 1.5}
    return pd.DataFrame({
        'color': colors,
        'size': [float(i % 5) for i in range(24)],
        'y': [response[c] for c in colors],
    })


@pytest.fixture
def restore_root_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers[:]:
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)
