"""Discrete soft actor-critic agent with twin critics and a learned temperature."""

from __future__ import annotations

import copy
import random
from abc import abstractmethod
from dataclasses import dataclass

import numpy as np

from burnrl.base import Agent, Model
from burnrl.memory import Memory, get_batch, sample_indices
from burnrl.nn import AdamW, Module, Reduction, Tensor, mse_loss
from burnrl.utils import (
    convert_tensor_to_action,
    elementwise_min,
    sample_action_from_tensor,
    to_action_tensor,
    to_not_done_tensor,
    to_reward_tensor,
    to_state_tensor,
    update_parameters,
)

__all__ = [
    "SAC",
    "SACActor",
    "SACCritic",
    "SACNets",
    "SACOptimizer",
    "SACTemperature",
    "SACTrainingConfig",
]


@dataclass
class SACTrainingConfig:
    gamma: float = 0.999
    tau: float = 0.005
    learning_rate: float = 0.001
    min_probability: float = 1e-9
    batch_size: int = 32
    clip_grad: float | None = 1.0


class SACActor(Model):
    """A policy network mapping states to action probabilities."""


class SACCritic(Model):
    """A Q-network mapping states to one value per action."""

    @abstractmethod
    def soft_update(self, that: "SACCritic", tau: float) -> "SACCritic":
        """Return a copy of this network moved towards ``that`` by ``tau``."""


class SACTemperature(Module):
    """The learned log-temperature, a single trainable value starting at zero."""

    def __init__(self):
        self.temperature = Tensor(np.zeros((1, 1), dtype=np.float32), requires_grad=True)

    def forward(self) -> Tensor:
        return self.temperature


class SACNets:
    """The actor, both critics with their target copies, and the temperature."""

    def __init__(self, actor: SACActor, critic_1: SACCritic, critic_2: SACCritic):
        self.actor = actor
        self.critic_1 = copy.deepcopy(critic_1)
        self.critic_1_target: SACCritic | None = critic_1
        self.critic_2 = copy.deepcopy(critic_2)
        self.critic_2_target: SACCritic | None = critic_2
        self.temperature = SACTemperature()


@dataclass
class SACOptimizer:
    actor_optimizer: AdamW
    critic_1_optimizer: AdamW
    critic_2_optimizer: AdamW
    temperature_optimizer: AdamW


class SAC(Agent):
    """Samples actions from its actor's policy."""

    def __init__(self, environment, actor: SACActor | None = None):
        self.environment = environment
        self._actor = actor

    def react(self, state):
        if self._actor is None:
            return None
        output = self._actor.infer(to_state_tensor(state).unsqueeze())
        return sample_action_from_tensor(output, self.environment.ActionType)

    def react_with_model(self, state, actor: SACActor):
        output = actor.forward(to_state_tensor(state).unsqueeze())
        return sample_action_from_tensor(output, self.environment.ActionType)

    def model(self) -> SACActor | None:
        return self._actor

    def react_with_exploration(self, policy_net: SACActor, state, eps_threshold: float):
        """Act greedily with probability ``1 - eps_threshold``, otherwise at random."""
        action_type = self.environment.ActionType
        if random.random() > eps_threshold:
            output = policy_net.forward(to_state_tensor(state).unsqueeze())
            return convert_tensor_to_action(output, action_type)
        return action_type.random()

    def train(
        self,
        nets: SACNets,
        memory: Memory,
        optimizer: SACOptimizer,
        config: SACTrainingConfig,
    ) -> SACNets:
        """Update actor, temperature and both critics on one sampled batch."""
        if nets.critic_1_target is None:
            raise RuntimeError("Critic 1 target is not initialized")
        if nets.critic_2_target is None:
            raise RuntimeError("Critic 2 target is not initialized")

        action_dim = self.environment.ActionType.size()
        indices = sample_indices(range(len(memory)), config.batch_size)
        state_batch = get_batch(memory.states(), indices, to_state_tensor)

        action_prob = nets.actor.forward(state_batch)
        log_prob = action_prob.clamp_min(config.min_probability).log()
        q_min = elementwise_min(nets.critic_1.forward(state_batch), nets.critic_2.forward(state_batch))
        log_alpha = nets.temperature.forward()
        alpha = log_alpha.exp()
        actor_loss = (action_prob * (alpha * log_prob - q_min)).sum_dim(1).mean()
        nets.actor = update_parameters(
            actor_loss, nets.actor, optimizer.actor_optimizer, config.learning_rate
        )

        entropy = (log_prob * action_prob).sum_dim(1)
        temperature_loss = -(log_alpha * (entropy - float(action_dim)).detach()).mean()
        nets.temperature = update_parameters(
            temperature_loss,
            nets.temperature,
            optimizer.temperature_optimizer,
            config.learning_rate,
        )

        action_batch = get_batch(memory.actions(), indices, to_action_tensor)
        next_state_batch = get_batch(memory.next_states(), indices, to_state_tensor)
        reward_batch = get_batch(memory.rewards(), indices, to_reward_tensor)
        not_done_batch = get_batch(memory.dones(), indices, to_not_done_tensor)

        next_action_prob = nets.actor.no_grad().forward(next_state_batch)
        q1_target_next = nets.critic_1_target.no_grad().forward(next_state_batch)
        q2_target_next = nets.critic_2_target.no_grad().forward(next_state_batch)
        q_min_target_next = elementwise_min(q1_target_next, q2_target_next)
        q_next = next_action_prob * (q_min_target_next - alpha * entropy)
        q_target = reward_batch + (not_done_batch * config.gamma) * q_next.sum_dim(1).detach()

        q1 = nets.critic_1.forward(state_batch).gather(1, action_batch)
        nets.critic_1 = update_parameters(
            mse_loss(q_target, q1, Reduction.SUM),
            nets.critic_1,
            optimizer.critic_1_optimizer,
            config.learning_rate,
        )

        q2 = nets.critic_2.forward(state_batch).gather(1, action_batch)
        nets.critic_2 = update_parameters(
            mse_loss(q_target, q2, Reduction.SUM),
            nets.critic_2,
            optimizer.critic_2_optimizer,
            config.learning_rate,
        )

        nets.critic_1_target = nets.critic_1_target.soft_update(nets.critic_1, config.tau)
        nets.critic_2_target = nets.critic_2_target.soft_update(nets.critic_2, config.tau)
        return nets

    def valid(self, actor: SACActor) -> "SAC":
        """Wrap an inference-only copy of ``actor`` in a new agent."""
        return SAC(self.environment, actor.valid())