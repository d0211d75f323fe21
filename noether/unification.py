"""
The unification approach to type-inference.

Work proceeds breadth-first from a queue of pending pairs.
Each pair is first brought to its representatives in the arena.
After that, either the two are already the same, or one is incomplete
and gets bound, or they are of the same phylum and decompose into
further pairs. Anything else is a KindMismatch.
"""
from collections import deque
from typing import Optional
from .ontology import Phrase
from .calculus import (
	NoetherType, IncompleteType, TensorType, TupleType, FuncType, TypeCall, ShapeVar,
)
from .arena import TypeArena
from .diagnostics import KindMismatch, ShapeMismatch, DTypeMismatch, ArityMismatch, AdtMismatch

def unify(arena:TypeArena, a:NoetherType, b:NoetherType, at:Optional[Phrase]=None):
	def enq(x, y):
		queue.append((x, y))
	def U(x, y):
		x, y = arena.find(x), arena.find(y)
		# Lemma: neither X nor Y is a bound incomplete type.
		if x is y or x == y:
			return
		elif isinstance(x, IncompleteType):
			arena.bind(x, y, at)
		elif isinstance(y, IncompleteType):
			arena.bind(y, x, at)
		elif x.phylum() == y.phylum():
			_DECOMPOSE[x.phylum()](x, y, enq, at)
		else:
			raise KindMismatch(arena.resolve(x), arena.resolve(y), at=at)

	queue = deque()
	enq(a, b)
	while queue:
		U(*queue.popleft())

def dims_agree(d1, d2) -> bool:
	""" A shape variable agrees with any dimension. """
	return d1 == d2 or isinstance(d1, ShapeVar) or isinstance(d2, ShapeVar)

def _tensors(x:TensorType, y:TensorType, enq, at):
	if x.dtype != y.dtype:
		raise DTypeMismatch(x, y, at=at)
	if x.rank != y.rank or not all(map(dims_agree, x.shape, y.shape)):
		raise ShapeMismatch(x, y, at=at)

def _tuples(x:TupleType, y:TupleType, enq, at):
	if len(x.fields) != len(y.fields):
		raise ArityMismatch(x, y, at=at)
	for p, q in zip(x.fields, y.fields):
		enq(p, q)

def _functions(x:FuncType, y:FuncType, enq, at):
	# Type parameters and relations are not unified directly.
	# Schemes get instantiated before they ever come here.
	if x.arity() != y.arity():
		raise ArityMismatch(x, y, at=at)
	for p, q in zip(x.arg_types, y.arg_types):
		enq(p, q)
	enq(x.ret_type, y.ret_type)

def _type_calls(x:TypeCall, y:TypeCall, enq, at):
	if x.func is not y.func:
		raise AdtMismatch(x, y, at=at)
	if len(x.args) != len(y.args):
		raise ArityMismatch(x, y, at=at)
	for p, q in zip(x.args, y.args):
		enq(p, q)

_DECOMPOSE = {
	TensorType: _tensors,
	TupleType: _tuples,
	FuncType: _functions,
	TypeCall: _type_calls,
}
