[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "burnrl"
version = "0.1.0"
description = "Reinforcement learning agents (DQN, PPO, SAC) with a small NumPy autodiff core and classic-control environments"
requires-python = ">=3.10"
dependencies = [
    "numpy",
]
keywords = [
    "reinforcement-learning",
    "dqn",
    "ppo",
    "sac",
    "cartpole",
    "mountain-car",
    "autodiff",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Scientific/Engineering :: Artificial Intelligence",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
burnrl-demo = "burnrl.demo:main"

[tool.hatch.build.targets.wheel]
packages = ["burnrl"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
ignore_missing_imports = true
