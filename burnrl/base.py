"""Core abstractions: actions, states, agents, environments, models and snapshots."""

from __future__ import annotations

import random
import sys
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, ClassVar, Generic, TypeVar

import numpy as np

from burnrl.nn import Tensor

ElemType = np.float32

S = TypeVar("S")
A = TypeVar("A")


class Action:
    """Mixin for integer enums whose members are an environment's actions."""

    @classmethod
    def random(cls):
        return cls(random.randrange(cls.size()))

    @classmethod
    def enumerate(cls) -> list:
        return list(cls)  # type: ignore[call-overload]

    @classmethod
    def size(cls) -> int:
        return len(cls.enumerate())


class State(ABC):
    """An observation that can be turned into a one-dimensional tensor."""

    @abstractmethod
    def to_tensor(self) -> Tensor: ...

    @classmethod
    @abstractmethod
    def size(cls) -> int: ...


class Agent(ABC, Generic[S, A]):
    @abstractmethod
    def react(self, state: S) -> A | None: ...


@dataclass(frozen=True)
class Snapshot(Generic[S]):
    """What an environment reports after a step or a reset."""

    state: S
    reward: float
    done: bool


class Environment(ABC, Generic[S, A]):
    """A simulated world an agent steps through."""

    StateType: ClassVar[type]
    ActionType: ClassVar[type]
    MAX_STEPS: ClassVar[int] = sys.maxsize

    @abstractmethod
    def state(self) -> S: ...

    @abstractmethod
    def reset(self) -> Snapshot[S]: ...

    @abstractmethod
    def step(self, action: A) -> Snapshot[S]: ...


class Model(ABC):
    """A network with a training pass and an inference pass."""

    @abstractmethod
    def forward(self, input: Tensor) -> Any: ...

    def infer(self, input: Tensor) -> Any:
        return self.forward(input)