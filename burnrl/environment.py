"""Classic-control environments: the cart-pole and the mountain car."""

from __future__ import annotations

import enum
import math
import random
from dataclasses import dataclass
from typing import ClassVar

from burnrl.base import Action, ElemType, Environment, Snapshot, State
from burnrl.nn import Tensor

__all__ = [
    "CartPole",
    "CartPoleAction",
    "CartPoleState",
    "MountainCar",
    "MountainCarAction",
    "MountainCarState",
]


@dataclass(frozen=True)
class CartPoleState(State):
    """Cart position, cart velocity, pole angle and pole angular velocity."""

    data: tuple[float, float, float, float]

    def to_tensor(self) -> Tensor:
        return Tensor([ElemType(v) for v in self.data])

    @classmethod
    def size(cls) -> int:
        return 4


class CartPoleAction(Action, enum.IntEnum):
    LEFT = 0
    RIGHT = 1


class CartPole(Environment[CartPoleState, CartPoleAction]):
    """Balance a pole on a cart by pushing the cart left or right."""

    StateType: ClassVar[type] = CartPoleState
    ActionType: ClassVar[type] = CartPoleAction
    MAX_STEPS: ClassVar[int] = 500

    GRAVITY = 9.8
    MASS_CART = 1.0
    MASS_POLE = 0.1
    TOTAL_MASS = MASS_CART + MASS_POLE
    LENGTH = 0.5
    POLE_MASS_LENGTH = MASS_POLE * LENGTH
    FORCE_MAG = 10.0
    TAU = 0.02
    THETA_THRESHOLD = 12 * 2 * math.pi / 360
    X_THRESHOLD = 2.4

    def __init__(self, visualized: bool = False):
        self.visualized = visualized
        self._values: list[float] = [0.0, 0.0, 0.0, 0.0]
        self._steps_beyond_done: int | None = None
        self._reset_values()

    def _reset_values(self) -> None:
        self._values = [random.uniform(-0.05, 0.05) for _ in range(4)]
        self._steps_beyond_done = None

    def _observation(self) -> CartPoleState:
        return CartPoleState(tuple(float(ElemType(v)) for v in self._values))  # type: ignore[arg-type]

    def state(self) -> CartPoleState:
        return self._observation()

    def reset(self) -> Snapshot[CartPoleState]:
        self._reset_values()
        return Snapshot(self._observation(), 1.0, False)

    def step(self, action) -> Snapshot[CartPoleState]:
        action = CartPoleAction(int(action))
        x, x_dot, theta, theta_dot = self._values
        force = self.FORCE_MAG if action is CartPoleAction.RIGHT else -self.FORCE_MAG
        cos_theta = math.cos(theta)
        sin_theta = math.sin(theta)

        temp = (force + self.POLE_MASS_LENGTH * theta_dot**2 * sin_theta) / self.TOTAL_MASS
        theta_acc = (self.GRAVITY * sin_theta - cos_theta * temp) / (
            self.LENGTH * (4.0 / 3.0 - self.MASS_POLE * cos_theta**2 / self.TOTAL_MASS)
        )
        x_acc = temp - self.POLE_MASS_LENGTH * theta_acc * cos_theta / self.TOTAL_MASS

        x += self.TAU * x_dot
        x_dot += self.TAU * x_acc
        theta += self.TAU * theta_dot
        theta_dot += self.TAU * theta_acc
        self._values = [x, x_dot, theta, theta_dot]

        done = (
            x < -self.X_THRESHOLD
            or x > self.X_THRESHOLD
            or theta < -self.THETA_THRESHOLD
            or theta > self.THETA_THRESHOLD
        )
        if not done:
            reward = 1.0
        elif self._steps_beyond_done is None:
            self._steps_beyond_done = 0
            reward = 1.0
        else:
            self._steps_beyond_done += 1
            reward = 0.0
        return Snapshot(self._observation(), reward, done)


@dataclass(frozen=True)
class MountainCarState(State):
    """Car position and velocity."""

    data: tuple[float, float]

    def to_tensor(self) -> Tensor:
        return Tensor([ElemType(v) for v in self.data])

    @classmethod
    def size(cls) -> int:
        return 2


class MountainCarAction(Action, enum.IntEnum):
    ACCELERATE_TO_LEFT = 0
    NOT_ACCELERATE = 1
    ACCELERATE_TO_RIGHT = 2


class MountainCar(Environment[MountainCarState, MountainCarAction]):
    """Drive an under-powered car up a hill by rocking back and forth."""

    StateType: ClassVar[type] = MountainCarState
    ActionType: ClassVar[type] = MountainCarAction
    MAX_STEPS: ClassVar[int] = 200

    MIN_POSITION = -1.2
    MAX_POSITION = 0.6
    MAX_SPEED = 0.07
    GOAL_POSITION = 0.5
    GOAL_VELOCITY = 0.0
    FORCE = 0.001
    GRAVITY = 0.0025

    def __init__(self, visualized: bool = False):
        self.visualized = visualized
        self._position = 0.0
        self._velocity = 0.0
        self._reset_values()

    def _reset_values(self) -> None:
        self._position = random.uniform(-0.6, -0.4)
        self._velocity = 0.0

    def _observation(self) -> MountainCarState:
        return MountainCarState((float(ElemType(self._position)), float(ElemType(self._velocity))))

    def state(self) -> MountainCarState:
        return self._observation()

    def reset(self) -> Snapshot[MountainCarState]:
        self._reset_values()
        return Snapshot(self._observation(), 0.0, False)

    def step(self, action) -> Snapshot[MountainCarState]:
        action = MountainCarAction(int(action))
        velocity = self._velocity + (int(action) - 1) * self.FORCE
        velocity += math.cos(3 * self._position) * -self.GRAVITY
        velocity = min(max(velocity, -self.MAX_SPEED), self.MAX_SPEED)
        position = self._position + velocity
        position = min(max(position, self.MIN_POSITION), self.MAX_POSITION)
        if position == self.MIN_POSITION and velocity < 0:
            velocity = 0.0
        self._position, self._velocity = position, velocity

        done = position >= self.GOAL_POSITION and velocity >= self.GOAL_VELOCITY
        return Snapshot(self._observation(), -1.0, done)