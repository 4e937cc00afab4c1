import json

import numpy as np
import pytest

from burnrl.environment import CartPole, CartPoleAction, CartPoleState
from burnrl.nn import Tensor
from burnrl.runners import (
    ActorNet,
    CriticNet,
    DQNNet,
    PPONet,
    run_dqn,
    run_ppo,
    run_sac,
)


def _batch(rows=3, cols=4):
    return Tensor(np.linspace(-1.0, 1.0, rows * cols).reshape(rows, cols))


def _episode_lines(capsys):
    out = capsys.readouterr().out
    return [json.loads(line) for line in out.splitlines() if line.strip()]


def test_dqn_net_output_shape_and_non_negative():
    net = DQNNet(4, 8, 2)
    out = net.forward(_batch())
    assert out.shape == (3, 2)
    assert (out.numpy() >= 0).all()
    np.testing.assert_array_equal(net.infer(_batch()).numpy(), out.numpy())


def test_dqn_net_has_six_parameters():
    assert len(DQNNet(4, 8, 2).parameters()) == 6


@pytest.mark.parametrize("net_type", [DQNNet, CriticNet])
def test_soft_update_extremes(net_type):
    this = net_type(4, 8, 2)
    that = net_type(4, 8, 2)
    towards_that = this.soft_update(that, 1.0)
    stays = this.soft_update(that, 0.0)
    for a, b in zip(towards_that.parameters(), that.parameters()):
        np.testing.assert_allclose(a.numpy(), b.numpy(), rtol=1e-6)
    for a, b in zip(stays.parameters(), this.parameters()):
        np.testing.assert_allclose(a.numpy(), b.numpy(), rtol=1e-6)
    assert isinstance(towards_that, net_type)


def test_soft_update_leaves_source_unchanged():
    this = CriticNet(4, 8, 2)
    that = CriticNet(4, 8, 2)
    before = [p.numpy() for p in this.parameters()]
    this.soft_update(that, 0.5)
    for b, p in zip(before, this.parameters()):
        np.testing.assert_array_equal(b, p.numpy())


def test_ppo_net_policies_are_distributions():
    net = PPONet(4, 8, 3)
    output = net.forward(_batch())
    assert output.policies.shape == (3, 3)
    assert output.values.shape == (3, 1)
    np.testing.assert_allclose(output.policies.numpy().sum(axis=1), np.ones(3), rtol=1e-5)
    np.testing.assert_allclose(net.infer(_batch()).numpy(), output.policies.numpy(), rtol=1e-6)


def test_actor_net_rows_sum_to_one():
    out = ActorNet(4, 8, 2).forward(_batch(5))
    assert out.shape == (5, 2)
    np.testing.assert_allclose(out.numpy().sum(axis=1), np.ones(5), rtol=1e-5)


def test_critic_net_shape():
    out = CriticNet(4, 8, 2).infer(_batch(2))
    assert out.shape == (2, 2)


def _check_cartpole_lines(lines, episodes):
    assert [line["episode"] for line in lines] == list(range(episodes))
    for line in lines:
        assert 1 <= line["duration"] <= CartPole.MAX_STEPS
        assert line["reward"] == pytest.approx(line["duration"])


def test_run_dqn_reports_and_returns_agent(capsys):
    agent = run_dqn(CartPole, 3, False)
    _check_cartpole_lines(_episode_lines(capsys), 3)
    action = agent.react(CartPoleState((0.0, 0.0, 0.0, 0.0)))
    assert action in set(CartPoleAction)


def test_run_ppo_reports_and_returns_agent(capsys):
    agent = run_ppo(CartPole, 2, False)
    _check_cartpole_lines(_episode_lines(capsys), 2)
    action = agent.react(CartPoleState((0.01, 0.0, -0.01, 0.0)))
    assert action in set(CartPoleAction)


def test_run_sac_reports_and_returns_agent(capsys):
    agent = run_sac(CartPole, 3, False)
    _check_cartpole_lines(_episode_lines(capsys), 3)
    action = agent.react(CartPoleState((0.0, 0.0, 0.0, 0.0)))
    assert action in set(CartPoleAction)


def test_zero_episodes_prints_nothing(capsys):
    agent = run_dqn(CartPole, 0, False)
    assert _episode_lines(capsys) == []
    assert agent.react(CartPoleState((0.0, 0.0, 0.0, 0.0))) in set(CartPoleAction)