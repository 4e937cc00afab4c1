"""Networks and training loops for the DQN, PPO and SAC agents."""

from __future__ import annotations

import math

from burnrl.base import Agent
from burnrl.dqn import DQN, DQNModel, DQNTrainingConfig
from burnrl.memory import Memory
from burnrl.nn import AdamW, Initializer, Linear, Module, Tensor, relu, soft_update_linear, softmax
from burnrl.ppo import PPO, PPOModel, PPOOutput, PPOTrainingConfig
from burnrl.sac import SAC, SACActor, SACCritic, SACNets, SACOptimizer, SACTrainingConfig

__all__ = [
    "ActorNet",
    "CriticNet",
    "DQNNet",
    "PPONet",
    "run_dqn",
    "run_ppo",
    "run_sac",
]

DQN_MEMORY_SIZE = 4096
DQN_DENSE_SIZE = 128
EPS_DECAY = 1000.0
EPS_START = 0.9
EPS_END = 0.05

PPO_MEMORY_SIZE = 512
PPO_DENSE_SIZE = 128

SAC_MEMORY_SIZE = 4096
SAC_DENSE_SIZE = 32


def _report(episode: int, reward: float, duration: int) -> None:
    print(f'{{"episode": {episode}, "reward": {reward:.4f}, "duration": {duration}}}')


class _ThreeLayerNet(Module):
    """Three fully connected layers with ReLU between them."""

    def __init__(self, input_size: int, dense_size: int, output_size: int):
        self.linear_0 = Linear(input_size, dense_size)
        self.linear_1 = Linear(dense_size, dense_size)
        self.linear_2 = Linear(dense_size, output_size)

    def _hidden(self, input: Tensor) -> Tensor:
        return relu(self.linear_1.forward(relu(self.linear_0.forward(input))))

    def _blended(self, that: "_ThreeLayerNet", tau: float):
        net = type(self).__new__(type(self))
        net.linear_0 = soft_update_linear(self.linear_0, that.linear_0, tau)
        net.linear_1 = soft_update_linear(self.linear_1, that.linear_1, tau)
        net.linear_2 = soft_update_linear(self.linear_2, that.linear_2, tau)
        return net


class DQNNet(_ThreeLayerNet, DQNModel):
    """Q-network whose outputs pass through a final ReLU."""

    def __init__(self, input_size: int, dense_size: int, output_size: int):
        super().__init__(input_size, dense_size, output_size)

    def forward(self, input: Tensor) -> Tensor:
        return relu(self.linear_2.forward(self._hidden(input)))

    def infer(self, input: Tensor) -> Tensor:
        return self.forward(input)

    def soft_update(self, that: "DQNNet", tau: float) -> "DQNNet":
        return self._blended(that, tau)


class PPONet(Module, PPOModel):
    """Shared hidden layer feeding a softmax actor head and a scalar critic head."""

    def __init__(self, input_size: int, dense_size: int, output_size: int):
        initializer = Initializer.XAVIER_UNIFORM
        self.linear = Linear(input_size, dense_size, initializer)
        self.linear_actor = Linear(dense_size, output_size, initializer)
        self.linear_critic = Linear(dense_size, 1, initializer)

    def forward(self, input: Tensor) -> PPOOutput:
        hidden = relu(self.linear.forward(input))
        policies = softmax(self.linear_actor.forward(hidden), 1)
        values = self.linear_critic.forward(hidden)
        return PPOOutput(policies, values)

    def infer(self, input: Tensor) -> Tensor:
        hidden = relu(self.linear.forward(input))
        return softmax(self.linear_actor.forward(hidden), 1)


class ActorNet(_ThreeLayerNet, SACActor):
    """Policy network producing action probabilities."""

    def __init__(self, input_size: int, dense_size: int, output_size: int):
        super().__init__(input_size, dense_size, output_size)

    def forward(self, input: Tensor) -> Tensor:
        return softmax(self.linear_2.forward(self._hidden(input)), 1)

    def infer(self, input: Tensor) -> Tensor:
        return self.forward(input)


class CriticNet(_ThreeLayerNet, SACCritic):
    """Q-network with an unbounded linear output."""

    def __init__(self, input_size: int, dense_size: int, output_size: int):
        super().__init__(input_size, dense_size, output_size)

    def forward(self, input: Tensor) -> Tensor:
        return self.linear_2.forward(self._hidden(input))

    def infer(self, input: Tensor) -> Tensor:
        return self.forward(input)

    def soft_update(self, that: "CriticNet", tau: float) -> "CriticNet":
        return self._blended(that, tau)


def run_dqn(environment, num_episodes: int, visualized: bool = False) -> Agent:
    """Train a DQN agent for ``num_episodes`` and return its inference-only agent."""
    env = environment(visualized)
    model = DQNNet(environment.StateType.size(), DQN_DENSE_SIZE, environment.ActionType.size())
    agent = DQN(environment, model)
    config = DQNTrainingConfig()
    memory = Memory(DQN_MEMORY_SIZE)
    optimizer = AdamW(clip_grad=config.clip_grad)
    policy_net = agent.model().clone()

    step = 0
    for episode in range(num_episodes):
        episode_done = False
        episode_reward = 0.0
        episode_duration = 0
        state = env.state()

        while not episode_done:
            eps_threshold = EPS_END + (EPS_START - EPS_END) * math.exp(-step / EPS_DECAY)
            action = agent.react_with_exploration(policy_net, state, eps_threshold)
            snapshot = env.step(action)
            episode_reward += float(snapshot.reward)
            memory.push(state, snapshot.state, action, snapshot.reward, snapshot.done)

            if config.batch_size < len(memory):
                policy_net = agent.train(policy_net, memory, optimizer, config)

            step += 1
            episode_duration += 1

            if snapshot.done or episode_duration >= environment.MAX_STEPS:
                env.reset()
                episode_done = True
                _report(episode, episode_reward, episode_duration)
            else:
                state = snapshot.state

    return agent.valid()


def run_ppo(environment, num_episodes: int, visualized: bool = False) -> Agent:
    """Train a PPO agent, one update per episode, and return its inference-only agent."""
    env = environment(visualized)
    model = PPONet(environment.StateType.size(), PPO_DENSE_SIZE, environment.ActionType.size())
    agent = PPO(environment)
    config = PPOTrainingConfig()
    optimizer = AdamW(clip_grad=config.clip_grad)
    memory = Memory(PPO_MEMORY_SIZE)

    for episode in range(num_episodes):
        episode_done = False
        episode_reward = 0.0
        episode_duration = 0

        env.reset()
        while not episode_done:
            state = env.state()
            action = agent.react_with_model(state, model)
            if action is None:
                continue
            snapshot = env.step(action)
            episode_reward += float(snapshot.reward)
            memory.push(state, snapshot.state, action, snapshot.reward, snapshot.done)
            episode_duration += 1
            episode_done = snapshot.done or episode_duration >= environment.MAX_STEPS

        _report(episode, episode_reward, episode_duration)
        model = agent.train(model, memory, optimizer, config)
        memory.clear()

    return agent.valid(model)


def run_sac(environment, num_episodes: int, visualized: bool = False) -> Agent:
    """Train a SAC agent for ``num_episodes`` and return its inference-only agent."""
    env = environment(visualized)
    state_dim = environment.StateType.size()
    action_dim = environment.ActionType.size()

    nets = SACNets(
        ActorNet(state_dim, SAC_DENSE_SIZE, action_dim),
        CriticNet(state_dim, SAC_DENSE_SIZE, action_dim),
        CriticNet(state_dim, SAC_DENSE_SIZE, action_dim),
    )
    agent = SAC(environment)
    config = SACTrainingConfig()
    memory = Memory(SAC_MEMORY_SIZE)
    optimizer = SACOptimizer(
        AdamW(clip_grad=config.clip_grad),
        AdamW(clip_grad=config.clip_grad),
        AdamW(clip_grad=config.clip_grad),
        AdamW(clip_grad=config.clip_grad),
    )

    for episode in range(num_episodes):
        episode_done = False
        episode_reward = 0.0
        episode_duration = 0
        state = env.state()

        while not episode_done:
            action = agent.react_with_model(state, nets.actor)
            if action is None:
                continue
            snapshot = env.step(action)
            episode_reward += float(snapshot.reward)
            memory.push(state, snapshot.state, action, snapshot.reward, snapshot.done)

            if config.batch_size < len(memory):
                nets = agent.train(nets, memory, optimizer, config)

            episode_duration += 1

            if snapshot.done or episode_duration >= environment.MAX_STEPS:
                env.reset()
                episode_done = True
                _report(episode, episode_reward, episode_duration)
            else:
                state = snapshot.state

    return agent.valid(nets.actor)