"""Fixed-capacity replay memory and batch sampling."""

from __future__ import annotations

import random
from collections import deque
from typing import Callable, Sequence

from burnrl.nn import Tensor, cat


def sample_indices(indices: Sequence[int], size: int) -> list[int]:
    """Draw ``size`` indices from ``indices`` uniformly, with replacement."""
    indices = list(indices)
    if size > 0 and not indices:
        raise ValueError("cannot sample from an empty set of indices")
    return [random.choice(indices) for _ in range(size)]


def get_batch(data: Sequence, indices: Sequence[int], converter: Callable[[object], Tensor]) -> Tensor:
    """Stack converted entries at ``indices`` into a tensor of one row per index."""
    items = [converter(data[i]) for i in indices if 0 <= i < len(data)]
    return cat(items, 0).reshape([len(indices), -1])


class Memory:
    """A ring buffer of transitions; the oldest are dropped once it is full."""

    def __init__(self, capacity: int):
        if capacity < 1:
            raise ValueError("memory capacity must be positive")
        self.capacity = capacity
        self._state: deque = deque(maxlen=capacity)
        self._next_state: deque = deque(maxlen=capacity)
        self._action: deque = deque(maxlen=capacity)
        self._reward: deque = deque(maxlen=capacity)
        self._done: deque = deque(maxlen=capacity)

    def push(self, state, next_state, action, reward, done: bool) -> None:
        self._state.append(state)
        self._next_state.append(next_state)
        self._action.append(action)
        self._reward.append(reward)
        self._done.append(done)

    def states(self) -> deque:
        return self._state

    def next_states(self) -> deque:
        return self._next_state

    def actions(self) -> deque:
        return self._action

    def rewards(self) -> deque:
        return self._reward

    def dones(self) -> deque:
        return self._done

    def __len__(self) -> int:
        return len(self._state)

    def is_empty(self) -> bool:
        return not self._state

    def clear(self) -> None:
        for buffer in (self._state, self._next_state, self._action, self._reward, self._done):
            buffer.clear()