import enum
import json

import pytest

from burnrl.base import Action, Agent, Environment, Snapshot
from burnrl.demo import demo_model, main


class _Move(Action, enum.IntEnum):
    STAY = 0
    GO = 1


class _Countdown(Environment):
    """Finishes after a fixed number of GO actions."""

    ActionType = _Move
    LENGTH = 4
    created = []

    def __init__(self, visualized=False):
        self.visualized = visualized
        self.position = 0
        self.received = []
        _Countdown.created.append(self)

    def state(self):
        return self.position

    def reset(self):
        self.position = 0
        return Snapshot(self.position, 0.0, False)

    def step(self, action):
        self.received.append(action)
        if action is _Move.GO:
            self.position += 1
        return Snapshot(self.position, 1.0, self.position >= self.LENGTH)


class _AlwaysGo(Agent):
    def __init__(self):
        self.seen = []

    def react(self, state):
        self.seen.append(state)
        return _Move.GO


class _HesitantAgent(Agent):
    """Returns no action on every other call."""

    def __init__(self):
        self.calls = 0

    def react(self, state):
        self.calls += 1
        return None if self.calls % 2 else _Move.GO


@pytest.fixture(autouse=True)
def _reset_created():
    _Countdown.created.clear()
    yield
    _Countdown.created.clear()


def test_demo_runs_until_done():
    agent = _AlwaysGo()
    steps = demo_model(_Countdown, agent)
    assert steps == _Countdown.LENGTH
    assert agent.seen == list(range(_Countdown.LENGTH))


def test_demo_creates_visualised_environment():
    demo_model(_Countdown, _AlwaysGo())
    assert len(_Countdown.created) == 1
    assert _Countdown.created[0].visualized is True


def test_demo_skips_missing_actions():
    agent = _HesitantAgent()
    steps = demo_model(_Countdown, agent)
    env = _Countdown.created[0]
    assert steps == _Countdown.LENGTH
    assert env.received == [_Move.GO] * _Countdown.LENGTH
    assert agent.calls == 2 * _Countdown.LENGTH


def test_main_trains_for_requested_episodes(capsys):
    assert main(["--episodes", "1"]) == 0
    lines = [json.loads(line) for line in capsys.readouterr().out.splitlines() if line.strip()]
    assert [line["episode"] for line in lines] == [0]


def test_main_rejects_negative_episodes():
    with pytest.raises(SystemExit):
        main(["--episodes", "-1"])