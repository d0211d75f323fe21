"""
The expression syntax of the IR, as plain constructors of tree nodes.

There is no concrete syntax: clients build these trees directly.
Local variables are resolved by identity, not by name. A Var node both
binds (as a parameter, a let-binder, or a pattern variable) and refers.
Shadowing just means making a new Var with the same name.

Class-level type annotations make peace with pycharm wherever later passes add fields.
"""
from typing import Any, Mapping, Optional, Sequence
from .ontology import Phrase, Symbol, ValueExpression
from .calculus import NoetherType, TypeParam, TypeRelation, GlobalTypeVar

class Var(Symbol, ValueExpression):
	type_annotation: Optional[NoetherType]
	def __init__(self, name:str, type_annotation:Optional[NoetherType]=None):
		super().__init__(name)
		self.type_annotation = type_annotation
	def __str__(self):
		if self.type_annotation is None: return self.name
		return "%s: %s" % (self.name, self.type_annotation)

class GlobalVar(Symbol, ValueExpression):
	""" The handle of a global function in a Module. """
	def __str__(self): return "@" + self.name

class Op(ValueExpression):
	""" Refers to a primitive operator by name. """
	def __init__(self, name:str):
		self.name = name
	def __str__(self): return self.name

class Constructor(Symbol, ValueExpression):
	"""
	One case of an algebraic data type. The input types may mention the type
	parameters of the owning definition, and the definition's own handle.
	"""
	tag: int  # TypeData fills this in.
	def __init__(self, name:str, inputs:Sequence[NoetherType], belong_to:GlobalTypeVar):
		super().__init__(name)
		assert isinstance(belong_to, GlobalTypeVar), belong_to
		self.inputs = tuple(inputs)
		self.belong_to = belong_to
	def arity(self): return len(self.inputs)

class Constant(ValueExpression):
	def __init__(self, dtype:str, shape:Sequence[int]=(), value:Any=None):
		self.dtype, self.shape, self.value = dtype, tuple(shape), value
	def __str__(self):
		if self.value is not None and not self.shape: return repr(self.value)
		return "const<%s%s>" % (self.dtype, list(self.shape) if self.shape else "")

def _dtype_of(value) -> str:
	if isinstance(value, bool): return "bool"
	if isinstance(value, int): return "int32"
	if isinstance(value, float): return "float32"
	raise TypeError("No tensor element type for %r" % (value,))

def const(value, dtype:Optional[str]=None) -> Constant:
	""" Make a constant from a Python scalar or a rectangular nest of lists. """
	shape = []
	probe = value
	while isinstance(probe, (list, tuple)):
		if not probe: raise ValueError("Cannot tell the element type of an empty tensor")
		shape.append(len(probe))
		probe = probe[0]
	_check_rectangular(value, shape)
	return Constant(dtype or _dtype_of(probe), shape, value)

def _check_rectangular(value, shape):
	if not shape: return
	if not isinstance(value, (list, tuple)) or len(value) != shape[0]:
		raise ValueError("Ragged tensor constant")
	for item in value:
		_check_rectangular(item, shape[1:])

class Function(ValueExpression):
	def __init__(
			self,
			params:Sequence[Var],
			body:ValueExpression,
			ret_type:Optional[NoetherType]=None,
			type_params:Sequence[TypeParam]=(),
			relations:Sequence[TypeRelation]=(),
	):
		assert all(isinstance(p, Var) for p in params), params
		self.params = tuple(params)
		self.body = body
		self.ret_type = ret_type
		self.type_params = tuple(type_params)
		self.relations = tuple(relations)
	def is_fully_annotated(self) -> bool:
		return self.ret_type is not None and all(p.type_annotation is not None for p in self.params)
	def __str__(self):
		generic = "<%s>" % ", ".join(map(str, self.type_params)) if self.type_params else ""
		ret = "" if self.ret_type is None else " -> %s" % (self.ret_type,)
		return "fn%s(%s)%s { %s }" % (generic, ", ".join(map(str, self.params)), ret, self.body)

class Call(ValueExpression):
	resolved_type_args: Optional[tuple]  # The inferencer fills this in.
	def __init__(
			self,
			op:ValueExpression,
			args:Sequence[ValueExpression],
			type_args:Optional[Sequence[NoetherType]]=None,
			attrs:Optional[Mapping]=None,
	):
		self.op = op
		self.args = tuple(args)
		self.type_args = None if type_args is None else tuple(type_args)
		self.attrs = dict(attrs or {})
		self.resolved_type_args = None
	def __str__(self):
		explicit = "[%s]" % ", ".join(map(repr, self.type_args)) if self.type_args else ""
		return "%s%s(%s)" % (self.op, explicit, ", ".join(map(str, self.args)))

class Let(ValueExpression):
	def __init__(self, var:Var, value:ValueExpression, body:ValueExpression):
		assert isinstance(var, Var), var
		self.var, self.value, self.body = var, value, body
	def __str__(self): return "let %s = %s; %s" % (self.var, self.value, self.body)

class Tuple(ValueExpression):
	def __init__(self, fields:Sequence[ValueExpression]):
		self.fields = tuple(fields)
	def __str__(self): return "(%s)" % ", ".join(map(str, self.fields))

class TupleGetItem(ValueExpression):
	def __init__(self, tuple_value:ValueExpression, index:int):
		assert isinstance(index, int), index
		self.tuple_value, self.index = tuple_value, index
	def __str__(self): return "%s.%d" % (self.tuple_value, self.index)

class If(ValueExpression):
	def __init__(self, cond:ValueExpression, true_branch:ValueExpression, false_branch:ValueExpression):
		self.cond, self.true_branch, self.false_branch = cond, true_branch, false_branch
	def __str__(self): return "if (%s) { %s } else { %s }" % (self.cond, self.true_branch, self.false_branch)

class Pattern(Phrase):
	pass

class PatternWildcard(Pattern):
	def __str__(self): return "_"

class PatternVar(Pattern):
	def __init__(self, var:Var):
		assert isinstance(var, Var), var
		self.var = var
	def __str__(self): return str(self.var)

class PatternConstructor(Pattern):
	def __init__(self, constructor:Constructor, patterns:Sequence[Pattern]=()):
		assert isinstance(constructor, Constructor), constructor
		self.constructor = constructor
		self.patterns = tuple(patterns)
	def __str__(self):
		if not self.patterns: return self.constructor.name
		return "%s(%s)" % (self.constructor.name, ", ".join(map(str, self.patterns)))

class Clause(Phrase):
	def __init__(self, lhs:Pattern, rhs:ValueExpression):
		assert isinstance(lhs, Pattern), lhs
		self.lhs, self.rhs = lhs, rhs
	def __str__(self): return "%s => %s" % (self.lhs, self.rhs)

class Match(ValueExpression):
	def __init__(self, data:ValueExpression, clauses:Sequence[Clause]):
		self.data = data
		self.clauses = tuple(clauses)
	def __str__(self):
		return "match (%s) { %s }" % (self.data, " | ".join(map(str, self.clauses)))
