"""Deep Q-network agent with a soft-updated target network."""

from __future__ import annotations

import random
from abc import abstractmethod
from dataclasses import dataclass

from burnrl.base import Agent, Model
from burnrl.memory import Memory, get_batch, sample_indices
from burnrl.nn import AdamW, Reduction, mse_loss
from burnrl.utils import (
    convert_tensor_to_action,
    to_action_tensor,
    to_not_done_tensor,
    to_reward_tensor,
    to_state_tensor,
    update_parameters,
)

__all__ = ["DQN", "DQNModel", "DQNTrainingConfig"]


@dataclass
class DQNTrainingConfig:
    gamma: float = 0.999
    tau: float = 0.005
    learning_rate: float = 0.001
    batch_size: int = 32
    clip_grad: float | None = 100.0


class DQNModel(Model):
    """A Q-network mapping a batch of states to one value per action."""

    @abstractmethod
    def soft_update(self, that: "DQNModel", tau: float) -> "DQNModel":
        """Return a copy of this network moved towards ``that`` by ``tau``."""


class DQN(Agent):
    """Acts greedily with respect to its target network."""

    def __init__(self, environment, model: DQNModel):
        self.environment = environment
        self._target_net: DQNModel | None = model

    def react(self, state):
        if self._target_net is None:
            return None
        output = self._target_net.infer(to_state_tensor(state).unsqueeze())
        return convert_tensor_to_action(output, self.environment.ActionType)

    def model(self) -> DQNModel | None:
        return self._target_net

    def react_with_exploration(self, policy_net: DQNModel, state, eps_threshold: float):
        """Act greedily with probability ``1 - eps_threshold``, otherwise at random."""
        action_type = self.environment.ActionType
        if random.random() > eps_threshold:
            output = policy_net.forward(to_state_tensor(state).unsqueeze())
            return convert_tensor_to_action(output, action_type)
        return action_type.random()

    def _require_target(self) -> DQNModel:
        if self._target_net is None:
            raise RuntimeError("the agent has no target network")
        return self._target_net

    def train(
        self,
        policy_net: DQNModel,
        memory: Memory,
        optimizer: AdamW,
        config: DQNTrainingConfig,
    ) -> DQNModel:
        """Run one optimisation step on a sampled batch and return the updated policy net."""
        target_net = self._require_target()
        indices = sample_indices(range(len(memory)), config.batch_size)

        state_batch = get_batch(memory.states(), indices, to_state_tensor)
        action_batch = get_batch(memory.actions(), indices, to_action_tensor)
        state_action_values = policy_net.forward(state_batch).gather(1, action_batch)

        next_state_batch = get_batch(memory.next_states(), indices, to_state_tensor)
        next_state_values = target_net.forward(next_state_batch).max_dim(1).detach()

        not_done_batch = get_batch(memory.dones(), indices, to_not_done_tensor)
        reward_batch = get_batch(memory.rewards(), indices, to_reward_tensor)

        expected = (next_state_values * not_done_batch) * config.gamma + reward_batch
        loss = mse_loss(state_action_values, expected, Reduction.MEAN)

        policy_net = update_parameters(loss, policy_net, optimizer, config.learning_rate)
        self._target_net = target_net.soft_update(policy_net, config.tau)
        return policy_net

    def valid(self) -> "DQN":
        """Hand the target network over to a new, inference-only agent."""
        target_net = self._require_target()
        self._target_net = None
        return DQN(self.environment, target_net.valid())