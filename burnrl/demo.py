"""Train a DQN agent on the cart-pole and then let it play one episode."""

from __future__ import annotations

import argparse

from burnrl.base import Agent
from burnrl.environment import CartPole
from burnrl.runners import run_dqn

__all__ = ["demo_model", "main"]


def demo_model(environment, agent: Agent) -> int:
    """Run ``agent`` in a visualised environment until it is done; return the steps taken."""
    env = environment(True)
    state = env.state()
    done = False
    steps = 0
    while not done:
        action = agent.react(state)
        if action is None:
            continue
        snapshot = env.step(action)
        state = snapshot.state
        done = snapshot.done
        steps += 1
    return steps


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--episodes",
        type=int,
        default=512,
        help="number of training episodes (default: 512)",
    )
    args = parser.parse_args(argv)
    if args.episodes < 0:
        parser.error("--episodes must not be negative")

    agent = run_dqn(CartPole, args.episodes, False)
    demo_model(CartPole, agent)
    return 0