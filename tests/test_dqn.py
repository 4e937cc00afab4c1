import numpy as np
import pytest

from burnrl.dqn import DQN, DQNModel, DQNTrainingConfig
from burnrl.environment import CartPole, CartPoleAction, CartPoleState
from burnrl.memory import Memory
from burnrl.nn import AdamW, Linear, Module, Tensor, soft_update_linear


class TinyNet(Module, DQNModel):
    def __init__(self, input_size=4, output_size=2):
        self.linear = Linear(input_size, output_size)

    def forward(self, input):
        return self.linear.forward(input)

    def soft_update(self, that, tau):
        net = TinyNet.__new__(TinyNet)
        net.linear = soft_update_linear(self.linear, that.linear, tau)
        return net


def fixed_net(preferred):
    net = TinyNet()
    weight = np.zeros((4, 2), dtype=np.float32)
    bias = np.zeros(2, dtype=np.float32)
    bias[preferred] = 1.0
    net.linear.weight = Tensor(weight, requires_grad=True)
    net.linear.bias = Tensor(bias, requires_grad=True)
    return net


def filled_memory(n=40):
    memory = Memory(64)
    for i in range(n):
        s = CartPoleState((0.01 * i, 0.0, 0.0, 0.0))
        s2 = CartPoleState((0.01 * (i + 1), 0.0, 0.0, 0.0))
        memory.push(s, s2, CartPoleAction(i % 2), 1.0, i % 10 == 9)
    return memory


STATE = CartPoleState((0.1, 0.2, 0.3, 0.4))


def test_default_config():
    config = DQNTrainingConfig()
    assert config.gamma == pytest.approx(0.999)
    assert config.tau == pytest.approx(0.005)
    assert config.learning_rate == pytest.approx(0.001)
    assert config.batch_size == 32
    assert config.clip_grad == pytest.approx(100.0)


def test_react_uses_target_net():
    agent = DQN(CartPole, fixed_net(1))
    assert agent.react(STATE) is CartPoleAction.RIGHT
    agent = DQN(CartPole, fixed_net(0))
    assert agent.react(STATE) is CartPoleAction.LEFT


def test_exploration_greedy_when_threshold_negative():
    agent = DQN(CartPole, fixed_net(0))
    policy = fixed_net(1)
    for _ in range(10):
        assert agent.react_with_exploration(policy, STATE, -1.0) is CartPoleAction.RIGHT


def test_exploration_random_when_threshold_one():
    agent = DQN(CartPole, fixed_net(0))
    policy = fixed_net(1)
    seen = {agent.react_with_exploration(policy, STATE, 1.0) for _ in range(100)}
    assert seen == {CartPoleAction.LEFT, CartPoleAction.RIGHT}


def test_train_with_full_tau_copies_policy_into_target():
    agent = DQN(CartPole, TinyNet())
    policy = TinyNet()
    config = DQNTrainingConfig(tau=1.0, batch_size=8)
    before = policy.linear.weight.numpy()
    policy = agent.train(policy, filled_memory(), AdamW(clip_grad=config.clip_grad), config)
    assert not np.array_equal(before, policy.linear.weight.numpy())
    np.testing.assert_allclose(agent.model().linear.weight.numpy(), policy.linear.weight.numpy())
    np.testing.assert_allclose(agent.model().linear.bias.numpy(), policy.linear.bias.numpy())


def test_train_with_zero_tau_keeps_target():
    target = TinyNet()
    original = target.linear.weight.numpy()
    agent = DQN(CartPole, target)
    config = DQNTrainingConfig(tau=0.0, batch_size=8)
    agent.train(TinyNet(), filled_memory(), AdamW(), config)
    np.testing.assert_allclose(agent.model().linear.weight.numpy(), original)


def test_valid_moves_target_net():
    agent = DQN(CartPole, fixed_net(1))
    inference = agent.valid()
    assert agent.model() is None
    assert agent.react(STATE) is None
    assert all(not p.requires_grad for p in inference.model().parameters())
    assert inference.react(STATE) is CartPoleAction.RIGHT


def test_valid_twice_raises():
    agent = DQN(CartPole, TinyNet())
    agent.valid()
    with pytest.raises(RuntimeError):
        agent.valid()


def test_train_without_target_raises():
    agent = DQN(CartPole, TinyNet())
    agent.valid()
    with pytest.raises(RuntimeError):
        agent.train(TinyNet(), filled_memory(), AdamW(), DQNTrainingConfig(batch_size=8))