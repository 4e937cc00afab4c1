"""Conversions between environment values and tensors, and training helpers."""

from __future__ import annotations

import math
import random

import numpy as np

from burnrl.nn import AdamW, Module, Tensor


def to_state_tensor(state) -> Tensor:
    return state.to_tensor()


def convert_tensor_to_action(output: Tensor, action_type):
    """Pick the action with the highest score in the first row."""
    return action_type(int(output.argmax(1).numpy().flat[0]))


def to_action_tensor(action) -> Tensor:
    return Tensor(np.array([int(action)], dtype=np.int64))


def to_reward_tensor(reward) -> Tensor:
    return Tensor([float(reward)])


def to_not_done_tensor(done: bool) -> Tensor:
    return Tensor([0.0 if done else 1.0])


def sample_action_from_tensor(output: Tensor, action_type):
    """Sample an action index weighted by the tensor's values, or None if they are not weights."""
    weights = [float(w) for w in output.numpy().ravel()]
    if (
        not weights
        or any(not math.isfinite(w) or w < 0 for w in weights)
        or sum(weights) <= 0
        or not math.isfinite(sum(weights))
    ):
        return None
    index = random.choices(range(len(weights)), weights=weights)[0]
    return action_type(index)


def get_elem(i: int, tensor: Tensor) -> float | None:
    flat = tensor.numpy().ravel()
    return float(flat[i]) if 0 <= i < flat.size else None


def elementwise_min(lhs: Tensor, rhs: Tensor) -> Tensor:
    return lhs.mask_where(rhs.lower(lhs), rhs)


def update_parameters(loss: Tensor, module: Module, optimizer: AdamW, learning_rate: float):
    """Back-propagate ``loss`` and apply one optimizer step to ``module`` alone."""
    module.zero_grad()
    loss.backward()
    return optimizer.step(learning_rate, module)