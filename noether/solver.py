"""
The relation solver keeps the pending relation instances of one run
and drives them toward a fixpoint.

Instances are processed in the order they were generated. An instance
which cannot yet decide goes to sleep, watching the incomplete types
among its slots. When the arena binds one of those, the instance is
marked dirty and goes back in the queue. When the queue runs dry with
instances still pending, the fixpoint is stuck.
"""
import heapq
from collections import defaultdict
from typing import Iterable, Optional
from .ontology import Phrase
from .calculus import NoetherType, IncompleteType, TypeRelation, freeze
from .arena import TypeArena
from .unification import unify
from .relations import RelationRegistry, Reporter, Verdict
from .diagnostics import RelationViolation, AmbiguousType, ArityMismatch, TypeIssue

class RelationInstance:
	""" One use of a relation, tied to the call site or definition that made it. """
	def __init__(self, seq:int, relation:TypeRelation, origin:Optional[Phrase], attrs:dict):
		self.seq, self.relation, self.origin, self.attrs = seq, relation, origin, attrs
		self.dirty = False
	@property
	def name(self) -> str: return self.relation.name
	@property
	def args(self) -> tuple: return self.relation.args
	def __repr__(self): return "<%d:%r>" % (self.seq, self.relation)

class _SlotReporter(Reporter):
	def __init__(self, arena:TypeArena, instance:RelationInstance):
		self._arena, self._instance = arena, instance
		self.origin = instance.origin
	def assign(self, index:int, typ:NoetherType):
		unify(self._arena, self._instance.args[index], typ, self.origin)

class RelationSolver:
	def __init__(self, arena:TypeArena, registry:RelationRegistry):
		self._arena, self._registry = arena, registry
		self._pending : dict[int, RelationInstance] = {}
		self._queue : list[int] = []
		self._watchers : dict[IncompleteType, set[int]] = defaultdict(set)
		self._seq = 0
		arena.observe(self._hear_binding)

	def add(self, relation:TypeRelation, origin:Optional[Phrase]=None, attrs:Optional[dict]=None) -> RelationInstance:
		self._registry.lookup(relation.name, origin)  # Fail early on unknown names.
		arity = self._registry.arity(relation.name)
		if arity is not None and arity != len(relation.args):
			raise ArityMismatch(relation.name, arity, len(relation.args), gripe="The relation %s takes %s types, but this use gives it %s.", at=origin)
		self._seq += 1
		merged = dict(relation.attrs)
		merged.update((k, freeze(v)) for k, v in (attrs or {}).items())
		instance = RelationInstance(self._seq, relation, origin, merged)
		self._pending[instance.seq] = instance
		self._enqueue(instance)
		return instance

	def _enqueue(self, instance:RelationInstance):
		if not instance.dirty:
			instance.dirty = True
			heapq.heappush(self._queue, instance.seq)

	def _hear_binding(self, v:IncompleteType):
		for seq in self._watchers.pop(v, ()):
			if seq in self._pending:
				self._enqueue(self._pending[seq])

	def propagate(self):
		""" Work until every pending instance is asleep or discharged. """
		while self._queue:
			seq = heapq.heappop(self._queue)
			instance = self._pending.get(seq)
			if instance is not None and instance.dirty:
				instance.dirty = False
				self._attempt(instance)

	def _attempt(self, instance:RelationInstance):
		procedure = self._registry.lookup(instance.name, instance.origin)
		types = [self._arena.resolve(a) for a in instance.args]
		try:
			verdict = procedure(types, instance.attrs, _SlotReporter(self._arena, instance))
		except TypeIssue as e:
			raise e.blame(instance.origin)
		if verdict is Verdict.HOLDS:
			del self._pending[instance.seq]
		elif verdict is Verdict.FAILS:
			final = [self._arena.resolve(a) for a in instance.args]
			raise RelationViolation(instance.name, final, at=instance.origin)
		else:
			assert verdict is Verdict.INDETERMINATE, verdict
			for t in instance.args:
				for v in self._arena.free_variables(t):
					self._watchers[v].add(instance.seq)

	def mark(self) -> int:
		""" Instances added after this point have sequence numbers beyond the mark. """
		return self._seq

	def pending(self, since:int=0) -> list[RelationInstance]:
		return [self._pending[seq] for seq in sorted(self._pending) if seq > since]

	def detach(self, instances:Iterable[RelationInstance]):
		""" Take instances out of play: they have moved onto a generalised signature. """
		for instance in instances:
			del self._pending[instance.seq]

	def finish(self):
		self.propagate()
		stuck = self.pending()
		if stuck:
			first = stuck[0]
			raise AmbiguousType(first.relation.with_args(self._arena.resolve(a) for a in first.args), at=first.origin)
