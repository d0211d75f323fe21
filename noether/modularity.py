"""
Here find the module system -- such as it is.

A Module maps global handles to function definitions and ADT handles
to their type data. It is populated before inference and stays read-only
while a run is in progress. Between runs it may be extended.
"""
from typing import Iterator, Optional, Sequence
from .calculus import Kind, TypeParam, GlobalTypeVar, TypeCall, FuncType, NoetherType
from .syntax import GlobalVar, Function, Constructor

class AlreadyExists(KeyError):
	""" A name may be defined only once per module. """

class TypeData:
	"""
	The definition of an algebraic data type: its handle, its type parameters
	(with their kinds), and its constructors in order. Constructor tags are
	their positions.
	"""
	def __init__(self, header:GlobalTypeVar, type_params:Sequence[TypeParam], constructors:Sequence[Constructor]):
		self.header = header
		self.type_params = tuple(type_params)
		self.constructors = tuple(constructors)
		for tag, ctor in enumerate(self.constructors):
			assert ctor.belong_to is header, (ctor, header)
			ctor.tag = tag

	def self_type(self) -> TypeCall:
		return TypeCall(self.header, self.type_params)

	def constructor_type(self, ctor:Constructor) -> FuncType:
		""" The polymorphic function type of a constructor: inputs to this ADT. """
		return FuncType(ctor.inputs, self.self_type(), self.type_params)

	def __repr__(self): return "<data %s>" % self.header.name

class Module:
	def __init__(self):
		self.functions : dict[GlobalVar, Function] = {}
		self.type_definitions : dict[GlobalTypeVar, TypeData] = {}
		self.checked_types : dict[GlobalVar, FuncType] = {}
		self._global_vars : dict[str, GlobalVar] = {}
		self._global_type_vars : dict[str, GlobalTypeVar] = {}
		self._constructors : dict[Constructor, TypeData] = {}

	def add_function(self, name, fn:Function) -> GlobalVar:
		"""
		Name may be a string or a GlobalVar made in advance,
		which is how mutually recursive definitions refer to each other.
		"""
		gv = name if isinstance(name, GlobalVar) else GlobalVar(name)
		if gv.name in self._global_vars: raise AlreadyExists(gv.name)
		assert isinstance(fn, Function), fn
		self._global_vars[gv.name] = gv
		self.functions[gv] = fn
		return gv

	def add_type_data(self, td:TypeData) -> TypeData:
		name = td.header.name
		if name in self._global_type_vars: raise AlreadyExists(name)
		self._global_type_vars[name] = td.header
		self.type_definitions[td.header] = td
		for ctor in td.constructors:
			self._constructors[ctor] = td
		return td

	def define_data(self, name:str, params:Sequence=(), cases:Sequence=()) -> TypeData:
		"""
		Convenience for building an ADT in one go.
		`params` are names (or TypeParams); `cases` are (name, input-builder) pairs,
		where the input-builder takes the handle and the type params and returns input types.
		"""
		header = GlobalTypeVar(name)
		type_params = [p if isinstance(p, TypeParam) else TypeParam(p, Kind.TYPE) for p in params]
		ctors = [Constructor(c, build(header, *type_params), header) for c, build in cases]
		return self.add_type_data(TypeData(header, type_params, ctors))

	def get_global_var(self, name:str) -> GlobalVar: return self._global_vars[name]
	def get_global_type_var(self, name:str) -> GlobalTypeVar: return self._global_type_vars[name]

	def lookup_constructor(self, ctor:Constructor) -> Optional[TypeData]:
		return self._constructors.get(ctor)

	def constructor_named(self, type_name:str, ctor_name:str) -> Constructor:
		td = self.type_definitions[self.get_global_type_var(type_name)]
		for ctor in td.constructors:
			if ctor.name == ctor_name: return ctor
		raise KeyError(ctor_name)

	def update(self, other:"Module"):
		""" Bring in another module's definitions. Names must not collide. """
		for td in other.type_definitions.values():
			self.add_type_data(td)
		for gv, fn in other.functions.items():
			self.add_function(gv, fn)
		self.checked_types.update(other.checked_types)

	def __iter__(self) -> Iterator[GlobalVar]: return iter(self.functions)

	def signature(self, gv:GlobalVar) -> Optional[NoetherType]:
		return self.checked_types.get(gv)
