# burnrl

Reinforcement learning agents for discrete-action environments. They are built
on a small reverse-mode autodiff core written with NumPy.

The package contains:

- `burnrl.nn`: `Tensor` with gradients, `Linear` layers (`Initializer.KAIMING_UNIFORM`
  or `Initializer.XAVIER_UNIFORM`), `mse_loss` with `Reduction.MEAN` / `Reduction.SUM`,
  an `AdamW` optimizer that can clip gradients by value, and `soft_update_linear` for
  target networks.
- `burnrl.base`: the abstractions `Action`, `State`, `Agent`, `Environment`, `Model`
  and `Snapshot`.
- `burnrl.memory`: a fixed-capacity replay `Memory`, `sample_indices` and `get_batch`.
- `burnrl.environment`: the `CartPole` and `MountainCar` environments with their
  state and action types.
- `burnrl.dqn`, `burnrl.ppo`, `burnrl.sac`: the agents `DQN`, `PPO` and `SAC`, each
  with a training config that has default values (`DQNTrainingConfig`,
  `PPOTrainingConfig`, `SACTrainingConfig`).
- `burnrl.runners`: example networks (`DQNNet`, `PPONet`, `ActorNet`, `CriticNet`) and
  the training loops `run_dqn`, `run_ppo` and `run_sac`.
- `burnrl.demo`: `demo_model` and the `burnrl-demo` command.

## Installation

```
pip install .
```

The package needs Python 3.10 or newer. Its only runtime dependency is NumPy.

## Command line

```
burnrl-demo [--episodes N]
```

This command trains a DQN agent on `CartPole` for `N` episodes (512 by default)
and then runs one episode with the trained agent. While it trains, it prints one
JSON line per episode:

```
{"episode": 0, "reward": 14.0000, "duration": 14}
```

## Using the library

```python
from burnrl.environment import CartPole
from burnrl.runners import run_ppo
from burnrl.demo import demo_model

agent = run_ppo(CartPole, num_episodes=200, visualized=False)
steps = demo_model(CartPole, agent)
```

`demo_model` runs a single episode and returns the number of steps taken. A
trained agent picks an action for a state with `react`. It returns `None` if it
has no model:

```python
env = CartPole(visualized=False)
action = agent.react(env.state())
snapshot = env.step(action)
print(snapshot.state, snapshot.reward, snapshot.done)
```

An episode run by the runners ends when the environment reports `done` or when
the episode reaches the environment's `MAX_STEPS`. `MAX_STEPS` is 500 for
`CartPole` and 200 for `MountainCar`.

### Your own environment

Subclass `burnrl.base.Environment` and provide the following:

- a constructor that takes one `visualized` argument,
- the class attributes `StateType` and `ActionType`, and optionally `MAX_STEPS`,
- a `State` subclass that implements `to_tensor()` and the classmethod `size()`,
- an action type made by mixing `Action` into an `enum.IntEnum`, for example
  `class MyAction(Action, enum.IntEnum)`. This gives the type `random()`,
  `enumerate()` and `size()`,
- `state()`, plus `reset()` and `step(action)`, which both return a `Snapshot`.

### Replay memory

```python
from burnrl.memory import Memory, sample_indices, get_batch
from burnrl.utils import to_state_tensor

memory = Memory(capacity=4096)
memory.push(state, next_state, action, reward, done)
indices = sample_indices(range(len(memory)), 32)
states = get_batch(memory.states(), indices, to_state_tensor)
```

Sampling draws indices with replacement. Once the memory is full, each new
transition pushes out the oldest one.

## What the package does not do

- Nothing is drawn on screen. The environments accept a `visualized` flag and
  store it, but there is no rendering.
- Trained networks cannot be saved to disk or loaded from it.
- Everything runs on the CPU through NumPy. There is no GPU backend.

## Running the tests

```
pip install .[test]
pytest
```