"""
The primitive operators, by name, with their declared types.

Every operator is polymorphic. Its type parameters are tied together by
a relation which says how the output type follows from the inputs.
Per-call attributes (such as an axis) are merged over the defaults given
here when a call site instantiates the declaration.
"""
from typing import Iterator
from .calculus import FuncType, TypeParam, TypeRelation

class OperatorRegistry:
	def __init__(self):
		self._declarations : dict[str, FuncType] = {}

	def declare(self, name:str, typ:FuncType):
		assert isinstance(typ, FuncType), typ
		assert name not in self._declarations, name
		self._declarations[name] = typ

	def lookup(self, name:str) -> FuncType:
		""" Raises KeyError for unknown operators. """
		return self._declarations[name]

	def __contains__(self, name): return name in self._declarations
	def __iter__(self) -> Iterator[str]: return iter(self._declarations)

def _related(relation:str, arity:int, **attrs) -> FuncType:
	params = [TypeParam(n) for n in "abcdefg"[:arity+1]]
	*inputs, output = params
	return FuncType(inputs, output, params, [TypeRelation(relation, params, arity, attrs)])

def standard_operators() -> OperatorRegistry:
	ops = OperatorRegistry()
	for name in ["add", "subtract", "multiply", "divide", "power", "maximum", "minimum"]:
		ops.declare(name, _related("Broadcast", 2))
	for name in ["equal", "not_equal", "less", "greater", "less_equal", "greater_equal"]:
		ops.declare(name, _related("BroadcastComparison", 2))
	for name in ["negative", "abs", "exp", "log", "sqrt", "tanh", "sigmoid", "relu", "copy"]:
		ops.declare(name, _related("Identity", 1))
	ops.declare("matmul", _related("MatMul", 2))
	for name in ["sum", "mean", "max", "min", "prod"]:
		ops.declare(name, _related("Reduce", 1, axis=None, keepdims=False))
	ops.declare("expand_dims", _related("ExpandDims", 1, axis=0, num_newaxis=1))
	ops.declare("concatenate", _related("Concatenate", 1, axis=0))
	return ops
