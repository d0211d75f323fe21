"""
Type relations are capabilities: a relation name maps to a procedure.

A procedure gets the present (resolved) types of its slots, the attributes
of the particular instance, and a reporter. It may refine slots only by
calling `reporter.assign(index, type)`, which goes through unification.
It answers with a Verdict:

	HOLDS: satisfied now and forever. The solver discharges the instance.
	FAILS: can never be satisfied. The solver raises RelationViolation.
	INDETERMINATE: not enough is known yet. Try again when a slot changes.

The standard library here covers the elementwise, broadcasting, reducing
and reshaping operators that the primitive registry declares.
"""
import enum
from typing import Callable, Mapping, Optional, Sequence

from .calculus import NoetherType, IncompleteType, TypeParam, TensorType, TupleType, ShapeVar, ANY_DIM
from .diagnostics import IndexOutOfRange, UnboundName
from .unification import dims_agree

class Verdict(enum.Enum):
	HOLDS = "holds"
	FAILS = "fails"
	INDETERMINATE = "indeterminate"

HOLDS, FAILS, INDETERMINATE = Verdict.HOLDS, Verdict.FAILS, Verdict.INDETERMINATE

Procedure = Callable[[Sequence[NoetherType], Mapping, "Reporter"], Verdict]

class Reporter:
	""" What a relation procedure may do to its slots. The solver supplies the real thing. """
	origin = None
	def assign(self, index:int, typ:NoetherType): raise NotImplementedError(type(self))

class RelationRegistry:
	def __init__(self):
		self._procedures : dict[str, Procedure] = {}
		self._arity : dict[str, Optional[int]] = {}

	def register(self, name:str, procedure:Procedure, arity:Optional[int]=None):
		assert name not in self._procedures, name
		self._procedures[name] = procedure
		self._arity[name] = arity

	def lookup(self, name:str, at=None) -> Procedure:
		try: return self._procedures[name]
		except KeyError: raise UnboundName(name, at=at) from None

	def arity(self, name:str) -> Optional[int]: return self._arity.get(name)

	def __contains__(self, name): return name in self._procedures
	def __iter__(self): return iter(self._procedures)


def _undecided(t:NoetherType) -> bool:
	""" A rigid type parameter might yet be any tensor at all. """
	return isinstance(t, (IncompleteType, TypeParam))

def _classify(types:Sequence[NoetherType], *slots:int):
	"""
	Either the tensor types in the given slots,
	or else the Verdict to give up with.
	"""
	found = []
	for i in slots:
		t = types[i]
		if _undecided(t): return INDETERMINATE
		if not isinstance(t, TensorType): return FAILS
		found.append(t)
	return found

def broadcast_shapes(s1, s2) -> Optional[tuple]:
	""" Numpy-style. None means the shapes do not broadcast. """
	rank = max(len(s1), len(s2))
	s1 = (1,) * (rank - len(s1)) + tuple(s1)
	s2 = (1,) * (rank - len(s2)) + tuple(s2)
	out = []
	for d1, d2 in zip(s1, s2):
		if d1 == d2: out.append(d1)
		elif d1 == 1: out.append(d2)
		elif d2 == 1: out.append(d1)
		elif isinstance(d1, ShapeVar): out.append(d2)
		elif isinstance(d2, ShapeVar): out.append(d1)
		else: return None
	return tuple(out)

def _normalize_axis(axis, rank:int) -> Optional[int]:
	if not isinstance(axis, int) or not -rank <= axis < rank: return None
	return axis % rank if rank else axis

def identity(types, attrs, reporter:Reporter) -> Verdict:
	it = _classify(types, 0)
	if isinstance(it, Verdict): return it
	reporter.assign(1, it[0])
	return HOLDS

def _broadcasting(out_dtype:Optional[str]) -> Procedure:
	def procedure(types, attrs, reporter:Reporter) -> Verdict:
		it = _classify(types, 0, 1)
		if isinstance(it, Verdict): return it
		a, b = it
		if a.dtype != b.dtype: return FAILS
		shape = broadcast_shapes(a.shape, b.shape)
		if shape is None: return FAILS
		reporter.assign(2, TensorType(shape, out_dtype or a.dtype))
		return HOLDS
	return procedure

broadcast = _broadcasting(None)
broadcast_comparison = _broadcasting("bool")

def matmul(types, attrs, reporter:Reporter) -> Verdict:
	it = _classify(types, 0, 1)
	if isinstance(it, Verdict): return it
	a, b = it
	if a.dtype != b.dtype or a.rank < 2 or b.rank != 2: return FAILS
	if not dims_agree(a.shape[-1], b.shape[0]): return FAILS
	reporter.assign(2, TensorType(a.shape[:-1] + b.shape[1:], a.dtype))
	return HOLDS

def reduction(types, attrs, reporter:Reporter) -> Verdict:
	it = _classify(types, 0)
	if isinstance(it, Verdict): return it
	x, = it
	axis = attrs.get("axis")
	if axis is None: axes = set(range(x.rank))
	else:
		axes = set()
		for a in (axis if isinstance(axis, tuple) else (axis,)):
			a = _normalize_axis(a, x.rank)
			if a is None: return FAILS
			axes.add(a)
	if attrs.get("keepdims"):
		shape = [1 if i in axes else d for i, d in enumerate(x.shape)]
	else:
		shape = [d for i, d in enumerate(x.shape) if i not in axes]
	reporter.assign(1, TensorType(shape, x.dtype))
	return HOLDS

def expand_dims(types, attrs, reporter:Reporter) -> Verdict:
	it = _classify(types, 0)
	if isinstance(it, Verdict): return it
	x, = it
	axis, num_newaxis = attrs.get("axis", 0), attrs.get("num_newaxis", 1)
	if not -x.rank - 1 <= axis <= x.rank or num_newaxis < 0: return FAILS
	if axis < 0: axis += x.rank + 1
	shape = x.shape[:axis] + (1,) * num_newaxis + x.shape[axis:]
	reporter.assign(1, TensorType(shape, x.dtype))
	return HOLDS

def concatenate(types, attrs, reporter:Reporter) -> Verdict:
	tup = types[0]
	if _undecided(tup): return INDETERMINATE
	if not isinstance(tup, TupleType) or not tup.fields: return FAILS
	it = _classify(tup.fields, *range(len(tup.fields)))
	if isinstance(it, Verdict): return it
	first = it[0]
	axis = _normalize_axis(attrs.get("axis", 0), first.rank)
	if axis is None: return FAILS
	total = 0
	for t in it:
		if t.dtype != first.dtype or t.rank != first.rank: return FAILS
		for i, (d1, d2) in enumerate(zip(first.shape, t.shape)):
			if i != axis and not dims_agree(d1, d2): return FAILS
		d = t.shape[axis]
		total = ANY_DIM if isinstance(d, ShapeVar) or isinstance(total, ShapeVar) else total + d
	shape = first.shape[:axis] + (total,) + first.shape[axis+1:]
	reporter.assign(1, TensorType(shape, first.dtype))
	return HOLDS

def tuple_projection(types, attrs, reporter:Reporter) -> Verdict:
	""" Used for projections out of tuples whose type was not known in time. """
	tup, index = types[0], attrs["index"]
	if _undecided(tup): return INDETERMINATE
	if not isinstance(tup, TupleType): return FAILS
	if not 0 <= index < len(tup.fields):
		raise IndexOutOfRange(index, tup, at=reporter.origin)
	reporter.assign(1, tup.fields[index])
	return HOLDS

def standard_relations() -> RelationRegistry:
	registry = RelationRegistry()
	registry.register("Identity", identity, 2)
	registry.register("Broadcast", broadcast, 3)
	registry.register("BroadcastComparison", broadcast_comparison, 3)
	registry.register("MatMul", matmul, 3)
	registry.register("Reduce", reduction, 2)
	registry.register("ExpandDims", expand_dims, 2)
	registry.register("Concatenate", concatenate, 2)
	registry.register("TupleGetItem", tuple_projection, 2)
	return registry
