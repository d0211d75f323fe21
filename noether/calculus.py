"""
The type calculus: these bits represent the data over which inference operates.

Most types are value objects. They hash and compare by structure, which
makes them play well as dictionary keys and in equality tests. Three kinds
of type have identity instead:

* IncompleteType: a placeholder minted by a TypeArena during one inference run.
* TypeParam: a universally-quantified parameter, possibly of a more specific kind.
* GlobalTypeVar: the handle of an ADT definition. Two ADTs with identical
  constructors but distinct handles are distinct types.

Shapes are sequences of dimensions. A dimension is either a concrete
non-negative integer or a named ShapeVar, which stands for a size not
known until run-time and agrees with any other dimension.
"""
import enum
from typing import Iterable, Mapping, Optional, Union
from .ontology import Symbol

class Kind(enum.Enum):
	TYPE = "Type"
	BASE_TYPE = "BaseType"
	SHAPE = "Shape"
	SHAPE_VAR = "ShapeVar"

# Only these kinds may stand where a whole type is expected.
TYPE_POSITION_KINDS = frozenset([Kind.TYPE, Kind.BASE_TYPE])

class NoetherType:
	def visit(self, visitor:"TypeVisitor"): raise NotImplementedError(type(self))
	def phylum(self):
		""" Types of different phyla never unify. """
		return self
	def __repr__(self) -> str:
		it = self.visit(Render())
		assert isinstance(it, str), (it, type(self))
		return it

class ValueType(NoetherType):
	""" Value objects so they can serve as keys and compare structurally. """
	def __init__(self, *key):
		self._key = key
		self._hash = hash((type(self), key))
	def __hash__(self): return self._hash
	def __eq__(self, other): return type(self) is type(other) and self._key == other._key
	def phylum(self): return type(self)

class ShapeVar:
	""" A named dimension. """
	def __init__(self, name:str):
		assert isinstance(name, str)
		self.name = name
	def __hash__(self): return hash((ShapeVar, self.name))
	def __eq__(self, other): return isinstance(other, ShapeVar) and self.name == other.name
	def __repr__(self): return self.name

ANY_DIM = ShapeVar("any")

Dim = Union[int, ShapeVar]

def _check_dim(d) -> Dim:
	if isinstance(d, ShapeVar): return d
	if isinstance(d, int) and not isinstance(d, bool) and d >= 0: return d
	raise ValueError("Not a dimension: %r" % (d,))

class TensorType(ValueType):
	def __init__(self, shape:Iterable[Dim], dtype:str="float32"):
		assert isinstance(dtype, str), dtype
		self.shape = tuple(_check_dim(d) for d in shape)
		self.dtype = dtype
		super().__init__(self.dtype, self.shape)
	def visit(self, visitor:"TypeVisitor"): return visitor.on_tensor(self)
	@property
	def rank(self) -> int: return len(self.shape)
	def is_scalar(self) -> bool: return not self.shape

def scalar_type(dtype:str) -> TensorType:
	return TensorType((), dtype)

BOOL = scalar_type("bool")

class TupleType(ValueType):
	def __init__(self, fields:Iterable[NoetherType]):
		self.fields = tuple(fields)
		assert all(isinstance(f, NoetherType) for f in self.fields), self.fields
		super().__init__(self.fields)
	def visit(self, visitor:"TypeVisitor"): return visitor.on_tuple(self)

class TypeRelation:
	"""
	A named constraint among an ordered list of type slots.
	The first `num_inputs` slots are inputs; the rest are outputs.
	The solver looks the name up in a RelationRegistry to find out what it means.
	"""
	def __init__(self, name:str, args:Iterable[NoetherType], num_inputs:Optional[int]=None, attrs:Optional[Mapping]=None):
		self.name = name
		self.args = tuple(args)
		self.num_inputs = len(self.args) - 1 if num_inputs is None else num_inputs
		self.attrs = {k: freeze(v) for k, v in (attrs or {}).items()}
		self._key = (name, self.args, self.num_inputs, tuple(sorted(self.attrs.items())))
	def __hash__(self): return hash(self._key)
	def __eq__(self, other): return isinstance(other, TypeRelation) and self._key == other._key
	def with_args(self, args:Iterable[NoetherType]) -> "TypeRelation":
		return TypeRelation(self.name, args, self.num_inputs, self.attrs)
	def __repr__(self): return Render().relation(self)

def freeze(value):
	if isinstance(value, (list, tuple)): return tuple(freeze(v) for v in value)
	return value

class FuncType(ValueType):
	def __init__(
			self,
			arg_types:Iterable[NoetherType],
			ret_type:NoetherType,
			type_params:Iterable["TypeParam"]=(),
			relations:Iterable[TypeRelation]=(),
	):
		self.arg_types = tuple(arg_types)
		self.ret_type = ret_type
		self.type_params = tuple(type_params)
		self.relations = tuple(relations)
		assert all(isinstance(p, TypeParam) for p in self.type_params), self.type_params
		super().__init__(self.arg_types, self.ret_type, self.type_params, self.relations)
	def visit(self, visitor:"TypeVisitor"): return visitor.on_func(self)
	def arity(self) -> int: return len(self.arg_types)

class TypeParam(NoetherType, Symbol):
	"""Did I say value-object? Not for type parameters! These have identity."""
	def __init__(self, name:str, kind:Kind=Kind.TYPE):
		super().__init__(name)
		self.kind = kind
	def visit(self, visitor:"TypeVisitor"): return visitor.on_param(self)

class IncompleteType(NoetherType):
	""" Only a TypeArena should make these. """
	def __init__(self, index:int):
		self.index = index
	def visit(self, visitor:"TypeVisitor"): return visitor.on_incomplete(self)

class GlobalTypeVar(NoetherType, Symbol):
	""" The handle of an ADT definition. """
	kind = Kind.TYPE
	def visit(self, visitor:"TypeVisitor"): return visitor.on_global_type_var(self)

class TypeCall(ValueType):
	""" The type of an ADT instance: a handle applied to type arguments. """
	def __init__(self, func:GlobalTypeVar, args:Iterable[NoetherType]=()):
		assert isinstance(func, GlobalTypeVar), func
		self.func = func
		self.args = tuple(args)
		super().__init__(self.func, self.args)
	def visit(self, visitor:"TypeVisitor"): return visitor.on_type_call(self)

###################
#

class TypeVisitor:
	def on_tensor(self, t:TensorType): raise NotImplementedError(type(self))
	def on_tuple(self, t:TupleType): raise NotImplementedError(type(self))
	def on_func(self, f:FuncType): raise NotImplementedError(type(self))
	def on_param(self, p:TypeParam): raise NotImplementedError(type(self))
	def on_incomplete(self, v:IncompleteType): raise NotImplementedError(type(self))
	def on_global_type_var(self, g:GlobalTypeVar): raise NotImplementedError(type(self))
	def on_type_call(self, tc:TypeCall): raise NotImplementedError(type(self))


class Render(TypeVisitor):
	""" Return a string representation of the term. """
	def __init__(self):
		self._var_names = {}
	def on_tensor(self, t: TensorType):
		if t.is_scalar(): return t.dtype
		return "Tensor[(%s), %s]" % (", ".join(map(str, t.shape)), t.dtype)
	def on_tuple(self, t: TupleType):
		if len(t.fields) == 1: return "(%s,)" % t.fields[0].visit(self)
		return self._args(t.fields)
	def on_func(self, f: FuncType):
		generic = "<%s>" % ", ".join(p.visit(self) for p in f.type_params) if f.type_params else ""
		text = "fn%s%s -> %s" % (generic, self._args(f.arg_types), f.ret_type.visit(self))
		if f.relations:
			text += " where " + ", ".join(map(self.relation, f.relations))
		return text
	def on_param(self, p: TypeParam):
		return p.name
	def on_incomplete(self, v: IncompleteType):
		if v not in self._var_names:
			self._var_names[v] = "?%s" % name_variable(len(self._var_names) + 1)
		return self._var_names[v]
	def on_global_type_var(self, g: GlobalTypeVar):
		return g.name
	def on_type_call(self, tc: TypeCall):
		if tc.args: return "%s[%s]" % (tc.func.name, ", ".join(a.visit(self) for a in tc.args))
		return tc.func.name
	def relation(self, r: TypeRelation):
		return r.name + self._args(r.args)
	def _args(self, args: Iterable[NoetherType]):
		return "(%s)" % ", ".join(a.visit(self) for a in args)

def name_variable(n):
	name = ""
	while n:
		n, remainder = divmod(n-1, 26)
		name = chr(97+remainder) + name
	return name


class Rewrite(TypeVisitor):
	""" Rebuild a type from the bottom up. Subclasses decide what happens at the leaves. """
	def on_tensor(self, t: TensorType): return t
	def on_tuple(self, t: TupleType): return TupleType(f.visit(self) for f in t.fields)
	def on_func(self, f: FuncType):
		return FuncType(
			[a.visit(self) for a in f.arg_types],
			f.ret_type.visit(self),
			f.type_params,
			[self.relation(r) for r in f.relations],
		)
	def on_param(self, p: TypeParam): return p
	def on_incomplete(self, v: IncompleteType): return v
	def on_global_type_var(self, g: GlobalTypeVar): return g
	def on_type_call(self, tc: TypeCall): return TypeCall(tc.func, [a.visit(self) for a in tc.args])
	def relation(self, r: TypeRelation) -> TypeRelation:
		return r.with_args(a.visit(self) for a in r.args)

class Substitute(Rewrite):
	""" Replace type parameters (or incomplete types) according to a mapping. """
	def __init__(self, gamma:Mapping[NoetherType, NoetherType]):
		self._gamma = gamma
	def on_param(self, p: TypeParam): return self._gamma.get(p, p)
	def on_incomplete(self, v: IncompleteType): return self._gamma.get(v, v)

def substitute(gamma:Mapping[NoetherType, NoetherType], typ:NoetherType) -> NoetherType:
	return typ.visit(Substitute(gamma)) if gamma else typ


class Census(TypeVisitor):
	"""
	Takes note of the incomplete types and the free type parameters within a term,
	each in order of first appearance. A FuncType binds its own type parameters,
	so those do not count as free within it.
	"""
	def __init__(self):
		self.incompletes: list[IncompleteType] = []
		self.params: list[TypeParam] = []
		self._bound: list[TypeParam] = []
	def tour(self, types:Iterable[NoetherType]):
		for t in types: t.visit(self)
		return self
	def on_tensor(self, t: TensorType): pass
	def on_tuple(self, t: TupleType): self.tour(t.fields)
	def on_func(self, f: FuncType):
		depth = len(self._bound)
		self._bound.extend(f.type_params)
		self.tour(f.arg_types)
		f.ret_type.visit(self)
		for r in f.relations: self.tour(r.args)
		del self._bound[depth:]
	def on_param(self, p: TypeParam):
		if p not in self._bound and p not in self.params: self.params.append(p)
	def on_incomplete(self, v: IncompleteType):
		if v not in self.incompletes: self.incompletes.append(v)
	def on_global_type_var(self, g: GlobalTypeVar): pass
	def on_type_call(self, tc: TypeCall): self.tour(tc.args)

def incompletes_in(*types:NoetherType) -> list[IncompleteType]:
	return Census().tour(types).incompletes

def free_params_in(*types:NoetherType) -> list[TypeParam]:
	return Census().tour(types).params

