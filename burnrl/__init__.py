"""Reinforcement learning agents (DQN, PPO, SAC), classic-control environments and a small autodiff core."""

__version__ = "0.1.0"

__all__ = [
    "base",
    "demo",
    "dqn",
    "environment",
    "memory",
    "nn",
    "ppo",
    "runners",
    "sac",
    "utils",
]