"""A small reverse-mode autodiff tensor library with layers and an AdamW optimizer."""

from __future__ import annotations

import copy
import enum
import math
from typing import Callable, Iterable, Iterator, Sequence

import numpy as np

ElemType = np.float32

_rng = np.random.default_rng()

_BackwardFn = Callable[[np.ndarray], Sequence["np.ndarray | None"]]


def _as_array(data) -> np.ndarray:
    array = np.asarray(data)
    if array.dtype.kind in "iub":
        return array.copy()
    return array.astype(ElemType)


def _unbroadcast(grad: np.ndarray, shape: tuple[int, ...]) -> np.ndarray:
    while grad.ndim > len(shape):
        grad = grad.sum(axis=0)
    for axis, size in enumerate(shape):
        if size == 1 and grad.shape[axis] != 1:
            grad = grad.sum(axis=axis, keepdims=True)
    return grad


class Tensor:
    """An n-dimensional array that records operations for gradient computation."""

    def __init__(self, data, requires_grad: bool = False):
        self.data = _as_array(data)
        self.requires_grad = bool(requires_grad) and self.data.dtype.kind == "f"
        self.grad: np.ndarray | None = None
        self._parents: tuple[Tensor, ...] = ()
        self._backward_fn: _BackwardFn | None = None

    @staticmethod
    def _result(data, parents: tuple["Tensor", ...], backward_fn: _BackwardFn) -> "Tensor":
        out = Tensor(data)
        if out.data.dtype.kind == "f" and any(p.requires_grad for p in parents):
            out.requires_grad = True
            out._parents = parents
            out._backward_fn = backward_fn
        return out

    @property
    def shape(self) -> tuple[int, ...]:
        return tuple(self.data.shape)

    def __repr__(self) -> str:
        return f"Tensor({self.data!r}, requires_grad={self.requires_grad})"

    def _topological_order(self) -> list["Tensor"]:
        order: list[Tensor] = []
        visited: set[int] = set()
        stack: list[tuple[Tensor, bool]] = [(self, False)]
        while stack:
            node, expanded = stack.pop()
            if expanded:
                order.append(node)
                continue
            if id(node) in visited:
                continue
            visited.add(id(node))
            stack.append((node, True))
            for parent in node._parents:
                if id(parent) not in visited and parent.requires_grad:
                    stack.append((parent, False))
        return order

    def backward(self) -> None:
        """Compute gradients of this tensor with respect to every leaf it depends on."""
        if not self.requires_grad:
            raise RuntimeError("tensor does not require gradients")
        grads: dict[int, np.ndarray] = {id(self): np.ones_like(self.data)}
        order = self._topological_order()
        for node in reversed(order):
            grad = grads.get(id(node))
            if grad is None or node._backward_fn is None:
                continue
            for parent, parent_grad in zip(node._parents, node._backward_fn(grad)):
                if parent_grad is None or not parent.requires_grad:
                    continue
                key = id(parent)
                grads[key] = grads[key] + parent_grad if key in grads else parent_grad
        for node in order:
            if node._backward_fn is None and id(node) in grads:
                node.grad = grads[id(node)].astype(ElemType)

    def detach(self) -> "Tensor":
        return Tensor(self.data.copy())

    def numpy(self) -> np.ndarray:
        return self.data.copy()

    # Arithmetic

    @staticmethod
    def _lift(value) -> "Tensor":
        return value if isinstance(value, Tensor) else Tensor(np.asarray(value, dtype=ElemType))

    def __add__(self, other) -> "Tensor":
        other = self._lift(other)
        sa, sb = self.shape, other.shape
        return self._result(
            self.data + other.data,
            (self, other),
            lambda g: (_unbroadcast(g, sa), _unbroadcast(g, sb)),
        )

    __radd__ = __add__

    def __neg__(self) -> "Tensor":
        return self._result(-self.data, (self,), lambda g: (-g,))

    def __sub__(self, other) -> "Tensor":
        return self + (-self._lift(other))

    def __rsub__(self, other) -> "Tensor":
        return self._lift(other) + (-self)

    def __mul__(self, other) -> "Tensor":
        other = self._lift(other)
        a, b = self.data, other.data
        return self._result(
            a * b,
            (self, other),
            lambda g: (_unbroadcast(g * b, a.shape), _unbroadcast(g * a, b.shape)),
        )

    __rmul__ = __mul__

    def __truediv__(self, other) -> "Tensor":
        other = self._lift(other)
        a, b = self.data, other.data
        return self._result(
            a / b,
            (self, other),
            lambda g: (_unbroadcast(g / b, a.shape), _unbroadcast(-g * a / (b * b), b.shape)),
        )

    def matmul(self, other: "Tensor") -> "Tensor":
        a, b = self.data, other.data
        return self._result(a @ b, (self, other), lambda g: (g @ b.T, a.T @ g))

    __matmul__ = matmul

    # Element-wise functions

    def relu(self) -> "Tensor":
        mask = self.data > 0
        return self._result(self.data * mask, (self,), lambda g: (g * mask,))

    def softmax(self, dim: int) -> "Tensor":
        shifted = self.data - self.data.max(axis=dim, keepdims=True)
        exps = np.exp(shifted)
        out = exps / exps.sum(axis=dim, keepdims=True)
        return self._result(
            out,
            (self,),
            lambda g: (out * (g - (g * out).sum(axis=dim, keepdims=True)),),
        )

    def log(self) -> "Tensor":
        a = self.data
        return self._result(np.log(a), (self,), lambda g: (g / a,))

    def exp(self) -> "Tensor":
        out = np.exp(self.data)
        return self._result(out, (self,), lambda g: (g * out,))

    def clamp(self, low: float, high: float) -> "Tensor":
        a = self.data
        inside = (a >= low) & (a <= high)
        return self._result(np.clip(a, low, high), (self,), lambda g: (g * inside,))

    def clamp_min(self, low: float) -> "Tensor":
        a = self.data
        inside = a >= low
        return self._result(np.maximum(a, ElemType(low)), (self,), lambda g: (g * inside,))

    # Indexing

    def gather(self, dim: int, indices: "Tensor") -> "Tensor":
        idx = indices.data.astype(np.int64)
        shape = self.shape

        def backward(g):
            grad = np.zeros(shape, dtype=g.dtype)
            position = list(np.indices(idx.shape))
            position[dim] = idx
            np.add.at(grad, tuple(position), g)
            return (grad,)

        return self._result(np.take_along_axis(self.data, idx, axis=dim), (self,), backward)

    def select(self, dim: int, indices: "Tensor") -> "Tensor":
        idx = np.asarray(indices.data if isinstance(indices, Tensor) else indices, dtype=np.int64)
        shape = self.shape

        def backward(g):
            grad = np.zeros(shape, dtype=g.dtype)
            position = [slice(None)] * len(shape)
            position[dim] = idx
            np.add.at(grad, tuple(position), g)
            return (grad,)

        return self._result(np.take(self.data, idx, axis=dim), (self,), backward)

    def max_dim(self, dim: int) -> "Tensor":
        idx = np.argmax(self.data, axis=dim)
        idx = np.expand_dims(idx, dim)
        shape = self.shape

        def backward(g):
            grad = np.zeros(shape, dtype=g.dtype)
            np.put_along_axis(grad, idx, g, axis=dim)
            return (grad,)

        return self._result(np.take_along_axis(self.data, idx, axis=dim), (self,), backward)

    def argmax(self, dim: int) -> "Tensor":
        return Tensor(np.expand_dims(np.argmax(self.data, axis=dim), dim).astype(np.int64))

    # Reductions and shapes

    def sum(self) -> "Tensor":
        shape = self.shape
        return self._result(
            np.array([self.data.sum()]), (self,), lambda g: (np.full(shape, g[0], dtype=g.dtype),)
        )

    def sum_dim(self, dim: int) -> "Tensor":
        shape = self.shape
        return self._result(
            self.data.sum(axis=dim, keepdims=True),
            (self,),
            lambda g: (np.broadcast_to(g, shape).copy(),),
        )

    def mean(self) -> "Tensor":
        shape = self.shape
        count = max(self.data.size, 1)
        return self._result(
            np.array([self.data.mean()]),
            (self,),
            lambda g: (np.full(shape, g[0] / count, dtype=g.dtype),),
        )

    def reshape(self, shape: Sequence[int]) -> "Tensor":
        original = self.shape
        return self._result(
            self.data.reshape(tuple(int(s) for s in shape)),
            (self,),
            lambda g: (g.reshape(original),),
        )

    def unsqueeze(self) -> "Tensor":
        return self.reshape((1, *self.shape))

    # Comparison and masking

    def lower(self, other: "Tensor") -> "Tensor":
        return Tensor(self.data < self._lift(other).data)

    def mask_where(self, mask: "Tensor", value: "Tensor") -> "Tensor":
        value = self._lift(value)
        m = mask.data.astype(bool)
        sa, sb = self.shape, value.shape
        return self._result(
            np.where(m, value.data, self.data),
            (self, value),
            lambda g: (_unbroadcast(g * ~m, sa), _unbroadcast(g * m, sb)),
        )


def cat(tensors: Sequence[Tensor], dim: int) -> Tensor:
    """Concatenate tensors along an existing dimension."""
    tensors = list(tensors)
    if not tensors:
        raise ValueError("cannot concatenate an empty sequence of tensors")
    sizes = [t.shape[dim] for t in tensors]
    splits = np.cumsum(sizes)[:-1]
    return Tensor._result(
        np.concatenate([t.data for t in tensors], axis=dim),
        tuple(tensors),
        lambda g: tuple(np.split(g, splits, axis=dim)),
    )


def relu(x: Tensor) -> Tensor:
    return x.relu()


def softmax(x: Tensor, dim: int) -> Tensor:
    return x.softmax(dim)


class Reduction(enum.Enum):
    MEAN = "mean"
    SUM = "sum"


def mse_loss(prediction: Tensor, target: Tensor, reduction: Reduction = Reduction.MEAN) -> Tensor:
    """Squared error between two tensors, reduced to a single-element tensor."""
    diff = prediction - target
    squared = diff * diff
    return squared.mean() if reduction is Reduction.MEAN else squared.sum()


class Initializer(enum.Enum):
    KAIMING_UNIFORM = "kaiming_uniform"
    XAVIER_UNIFORM = "xavier_uniform"

    def bound(self, fan_in: int, fan_out: int) -> float:
        if self is Initializer.KAIMING_UNIFORM:
            return 1.0 / math.sqrt(fan_in)
        return math.sqrt(6.0 / (fan_in + fan_out))

    def sample(self, shape: tuple[int, ...], fan_in: int, fan_out: int) -> np.ndarray:
        bound = self.bound(fan_in, fan_out)
        return _rng.uniform(-bound, bound, size=shape).astype(ElemType)


def _walk_parameters(obj) -> Iterator[Tensor]:
    for value in vars(obj).values():
        if isinstance(value, Tensor):
            yield value
        elif isinstance(value, Module):
            yield from value.parameters()
        elif isinstance(value, (list, tuple)):
            for item in value:
                if isinstance(item, Tensor):
                    yield item
                elif isinstance(item, Module):
                    yield from item.parameters()


class Module:
    """Base class for anything holding trainable tensors as attributes."""

    def parameters(self) -> list[Tensor]:
        return list(_walk_parameters(self))

    def zero_grad(self) -> None:
        for param in self.parameters():
            param.grad = None

    def clone(self):
        return copy.deepcopy(self)

    def no_grad(self):
        module = self.clone()
        for param in module.parameters():
            param.requires_grad = False
            param.grad = None
        return module

    def valid(self):
        return self.no_grad()


class Linear(Module):
    """A fully connected layer computing ``x @ weight + bias``."""

    def __init__(
        self,
        in_features: int,
        out_features: int,
        initializer: Initializer = Initializer.KAIMING_UNIFORM,
    ):
        self.weight = Tensor(
            initializer.sample((in_features, out_features), in_features, out_features),
            requires_grad=True,
        )
        self.bias: Tensor | None = Tensor(
            initializer.sample((out_features,), in_features, out_features), requires_grad=True
        )

    @classmethod
    def from_parameters(cls, weight: Tensor, bias: Tensor | None) -> "Linear":
        layer = cls.__new__(cls)
        layer.weight = weight
        layer.bias = bias
        return layer

    def forward(self, x: Tensor) -> Tensor:
        out = x.matmul(self.weight)
        return out + self.bias if self.bias is not None else out


class AdamW:
    """Adam with decoupled weight decay and optional gradient value clipping."""

    def __init__(
        self,
        clip_grad: float | None = None,
        beta_1: float = 0.9,
        beta_2: float = 0.999,
        epsilon: float = 1e-5,
        weight_decay: float = 1e-4,
    ):
        self.clip_grad = clip_grad
        self.beta_1 = beta_1
        self.beta_2 = beta_2
        self.epsilon = epsilon
        self.weight_decay = weight_decay
        self._state: dict[int, tuple[np.ndarray, np.ndarray, int]] = {}

    def step(self, learning_rate: float, module: Module) -> Module:
        """Update every parameter of ``module`` that holds a gradient; return the module."""
        for position, param in enumerate(module.parameters()):
            if param.grad is None:
                continue
            grad = param.grad.astype(np.float64)
            if self.clip_grad is not None:
                grad = np.clip(grad, -self.clip_grad, self.clip_grad)
            m, v, t = self._state.get(
                position, (np.zeros_like(grad), np.zeros_like(grad), 0)
            )
            if m.shape != grad.shape:
                m, v, t = np.zeros_like(grad), np.zeros_like(grad), 0
            t += 1
            m = self.beta_1 * m + (1 - self.beta_1) * grad
            v = self.beta_2 * v + (1 - self.beta_2) * grad * grad
            self._state[position] = (m, v, t)
            m_hat = m / (1 - self.beta_1**t)
            v_hat = v / (1 - self.beta_2**t)
            data = param.data.astype(np.float64)
            data = data - learning_rate * self.weight_decay * data
            data = data - learning_rate * m_hat / (np.sqrt(v_hat) + self.epsilon)
            param.data = data.astype(ElemType)
            param.grad = None
        return module


def soft_update_tensor(this: Tensor, that: Tensor, tau: float) -> Tensor:
    """Blend ``this`` towards ``that`` by ``tau`` into a fresh parameter."""
    return Tensor(this.data * (1.0 - tau) + that.data * tau, requires_grad=True)


def soft_update_linear(this: Linear, that: Linear, tau: float) -> Linear:
    weight = soft_update_tensor(this.weight, that.weight, tau)
    bias = (
        soft_update_tensor(this.bias, that.bias, tau)
        if this.bias is not None and that.bias is not None
        else None
    )
    return Linear.from_parameters(weight, bias)


def parameters_of(modules: Iterable[Module]) -> list[Tensor]:
    return [p for module in modules for p in module.parameters()]