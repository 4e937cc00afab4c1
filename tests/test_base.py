import enum
import sys

import numpy as np
import pytest

from burnrl.base import Action, Agent, Environment, Model, Snapshot, State
from burnrl.nn import Tensor


class Move(Action, enum.IntEnum):
    LEFT = 0
    STAY = 1
    RIGHT = 2


class Point(State):
    def __init__(self, x, y):
        self.x, self.y = x, y

    def to_tensor(self):
        return Tensor([self.x, self.y])

    @classmethod
    def size(cls):
        return 2


class Doubler(Model):
    def forward(self, input):
        return input * 2.0


def test_action_enumerate_and_size():
    members = Action.enumerate.__func__(Move)
    assert members == [Move.LEFT, Move.STAY, Move.RIGHT]
    assert Action.size.__func__(Move) == 3


def test_action_random_is_member():
    for _ in range(50):
        assert Action.random.__func__(Move) in [Move.LEFT, Move.STAY, Move.RIGHT]


def test_state_to_tensor():
    p = Point(1.0, 2.0)
    expected = Tensor([1.0, 2.0])
    np.testing.assert_array_equal(p.to_tensor().numpy(), expected.numpy())
    assert Point.size() == len(expected.numpy())


def test_abstract_classes_cannot_be_built():
    for cls in (State, Agent, Environment, Model):
        with pytest.raises(TypeError):
            cls()


def test_snapshot_fields_are_frozen():
    snap = Snapshot(Point(0.0, 0.0), 1.0, False)
    assert snap.reward == 1.0 and snap.done is False
    with pytest.raises(AttributeError):
        snap.done = True


def test_model_infer_defaults_to_forward():
    m = Doubler()
    x = Tensor([1.5])
    np.testing.assert_array_equal(m.infer(x).numpy(), m.forward(x).numpy())


def test_environment_default_max_steps_is_unbounded():
    with pytest.raises(TypeError):
        Environment()
    assert Environment.MAX_STEPS == sys.maxsize