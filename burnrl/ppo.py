"""Proximal policy optimisation agent with generalised advantage estimation."""

from __future__ import annotations

from abc import abstractmethod
from dataclasses import dataclass

import numpy as np

from burnrl.base import Agent, Model
from burnrl.memory import Memory, get_batch, sample_indices
from burnrl.nn import AdamW, Reduction, Tensor, mse_loss
from burnrl.utils import (
    elementwise_min,
    get_elem,
    sample_action_from_tensor,
    to_action_tensor,
    to_not_done_tensor,
    to_reward_tensor,
    to_state_tensor,
    update_parameters,
)

__all__ = [
    "GAEOutput",
    "PPO",
    "PPOModel",
    "PPOOutput",
    "PPOTrainingConfig",
    "get_gae",
]


@dataclass
class PPOTrainingConfig:
    gamma: float = 0.99
    lambda_: float = 0.95
    epsilon_clip: float = 0.2
    critic_weight: float = 0.5
    entropy_weight: float = 0.01
    learning_rate: float = 0.001
    epochs: int = 8
    batch_size: int = 8
    clip_grad: float | None = 100.0


@dataclass
class PPOOutput:
    """Action probabilities and state values for a batch of states."""

    policies: Tensor
    values: Tensor


class PPOModel(Model):
    """An actor-critic network: ``forward`` yields a :class:`PPOOutput`."""

    @abstractmethod
    def forward(self, input: Tensor) -> PPOOutput: ...

    def infer(self, input: Tensor) -> Tensor:
        return self.forward(input).policies


@dataclass
class GAEOutput:
    expected_returns: Tensor
    advantages: Tensor


def get_gae(
    values: Tensor,
    rewards: Tensor,
    not_dones: Tensor,
    gamma: float,
    lambda_: float,
) -> GAEOutput | None:
    """Discounted returns and advantages, or None if the inputs are too short."""
    count = rewards.numpy().size
    returns = [0.0] * count
    advantages = [0.0] * count
    running_return = 0.0
    running_advantage = 0.0

    for i in reversed(range(count)):
        reward = get_elem(i, rewards)
        not_done = get_elem(i, not_dones)
        value = get_elem(i, values)
        if reward is None or not_done is None or value is None:
            return None
        next_value = get_elem(i + 1, values)
        next_value = 0.0 if next_value is None else next_value

        running_return = reward + gamma * running_return * not_done
        running_advantage = (
            reward - value + gamma * not_done * (next_value + lambda_ * running_advantage)
        )
        returns[i] = running_return
        advantages[i] = running_advantage

    return GAEOutput(
        Tensor(np.asarray(returns, dtype=np.float32).reshape(count, 1)),
        Tensor(np.asarray(advantages, dtype=np.float32).reshape(count, 1)),
    )


class PPO(Agent):
    """Samples actions from the policy of its actor-critic model."""

    def __init__(self, environment, model: PPOModel | None = None):
        self.environment = environment
        self._model = model

    def react(self, state):
        if self._model is None:
            return None
        output = self._model.infer(to_state_tensor(state).unsqueeze())
        return sample_action_from_tensor(output, self.environment.ActionType)

    def react_with_model(self, state, model: PPOModel):
        output = model.forward(to_state_tensor(state).unsqueeze()).policies
        return sample_action_from_tensor(output, self.environment.ActionType)

    def train(
        self,
        policy_net: PPOModel,
        memory: Memory,
        optimizer: AdamW,
        config: PPOTrainingConfig,
    ) -> PPOModel:
        """Run the configured epochs of clipped-objective updates over ``memory``."""
        memory_indices = list(range(len(memory)))
        old = policy_net.forward(get_batch(memory.states(), memory_indices, to_state_tensor))
        old_policies = old.policies.detach()
        old_values = old.values.detach()

        gae = get_gae(
            old_values,
            get_batch(memory.rewards(), memory_indices, to_reward_tensor),
            get_batch(memory.dones(), memory_indices, to_not_done_tensor),
            config.gamma,
            config.lambda_,
        )
        if gae is None:
            return policy_net

        for _ in range(config.epochs):
            for _ in range(len(memory) // config.batch_size):
                indices = sample_indices(memory_indices, config.batch_size)
                indices_tensor = Tensor(np.asarray(indices, dtype=np.int64))

                state_batch = get_batch(memory.states(), indices, to_state_tensor)
                action_batch = get_batch(memory.actions(), indices, to_action_tensor)
                old_policy_batch = old_policies.select(0, indices_tensor)
                advantage_batch = gae.advantages.select(0, indices_tensor)
                expected_return_batch = gae.expected_returns.select(0, indices_tensor).detach()

                output = policy_net.forward(state_batch)
                policy_batch, value_batch = output.policies, output.values

                ratios = (policy_batch / old_policy_batch).gather(1, action_batch)
                clipped_ratios = ratios.clamp(1.0 - config.epsilon_clip, 1.0 + config.epsilon_clip)

                actor_loss = -elementwise_min(
                    ratios * advantage_batch, clipped_ratios * advantage_batch
                ).sum()
                critic_loss = mse_loss(expected_return_batch, value_batch, Reduction.SUM)
                negative_entropy = -(policy_batch.log() * policy_batch).sum_dim(1).mean()

                loss = (
                    actor_loss
                    + critic_loss * config.critic_weight
                    + negative_entropy * config.entropy_weight
                )
                policy_net = update_parameters(loss, policy_net, optimizer, config.learning_rate)
        return policy_net

    def valid(self, model: PPOModel) -> "PPO":
        """Wrap an inference-only copy of ``model`` in a new agent."""
        return PPO(self.environment, model.valid())