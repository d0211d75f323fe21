"""
The arena owns every incomplete type made during one inference run,
and also the substitution that says what each one has become.

Incomplete types are indices into the arena. Binding two of them together
is a union; binding one to a proper type records that type at the root.
Path compression keeps `find` quick. The occurs check in `bind` ensures
that `resolve` always terminates.
"""
from typing import Callable, Optional
from .ontology import Phrase
from .calculus import NoetherType, IncompleteType, Rewrite, incompletes_in
from .diagnostics import OccursCheckFailure

class TypeArena:
	def __init__(self):
		self._cells: list[IncompleteType] = []
		self._parent: list[int] = []
		self._binding: list[Optional[NoetherType]] = []
		self._observers: list[Callable[[IncompleteType], None]] = []

	def fresh(self) -> IncompleteType:
		index = len(self._cells)
		cell = IncompleteType(index)
		self._cells.append(cell)
		self._parent.append(index)
		self._binding.append(None)
		return cell

	def several(self, n:int) -> list[IncompleteType]:
		return [self.fresh() for _ in range(n)]

	def observe(self, callback:Callable[[IncompleteType], None]):
		""" The callback hears about every root that gets bound. """
		self._observers.append(callback)

	def _root(self, index:int) -> int:
		parent = self._parent
		root = index
		while parent[root] != root:
			root = parent[root]
		while parent[index] != root:
			parent[index], index = root, parent[index]
		return root

	def _owns(self, t:NoetherType) -> bool:
		return isinstance(t, IncompleteType) and t.index < len(self._cells) and self._cells[t.index] is t

	def find(self, t:NoetherType) -> NoetherType:
		"""
		Shallow: the representative of an incomplete type, or what it is bound to.
		Anything else stands for itself.
		"""
		if not isinstance(t, IncompleteType): return t
		assert self._owns(t), "Incomplete type from some other arena"
		root = self._root(t.index)
		bound = self._binding[root]
		return self._cells[root] if bound is None else bound

	def resolve(self, t:NoetherType) -> NoetherType:
		""" Deep: substitute throughout, as far as present knowledge allows. """
		return t.visit(_Resolve(self))

	def free_variables(self, t:NoetherType) -> list[IncompleteType]:
		return incompletes_in(self.resolve(t))

	def bind(self, v:IncompleteType, t:NoetherType, at:Optional[Phrase]=None):
		"""
		Make the (unbound) incomplete type `v` stand for `t`.
		This is the only way the substitution ever changes.
		"""
		v = self.find(v)
		assert isinstance(v, IncompleteType), "Can only bind an unbound incomplete type"
		t = self.find(t)
		if t is v: return
		if isinstance(t, IncompleteType):
			self._parent[v.index] = t.index
		else:
			if v in incompletes_in(self.resolve(t)):
				raise OccursCheckFailure(v, t, at=at)
			self._binding[v.index] = t
		for callback in self._observers:
			callback(v)

class _Resolve(Rewrite):
	def __init__(self, arena:TypeArena):
		self._arena = arena
	def on_incomplete(self, v: IncompleteType):
		it = self._arena.find(v)
		return it if isinstance(it, IncompleteType) else it.visit(self)
