"""
Type-checking for match expressions.

Each clause's pattern is checked against the scrutinee's type. A constructor
pattern demands the type of its owning ADT, applied to fresh type arguments,
so that a constructor from some other ADT fails to unify. Sub-patterns get
the constructor's input types with the ADT's parameters replaced by those
arguments. Pattern variables bind whatever type they meet.

The bodies of all clauses must agree. There is no exhaustiveness
or reachability analysis.
"""
from boozetools.support.foundation import Visitor
from .calculus import NoetherType, IncompleteType, TypeCall, substitute
from .diagnostics import ArityMismatch, KindMismatch, AmbiguousType, UnboundName
from . import syntax

class PatternChecker(Visitor):
	def __init__(self, inferencer):
		self._inferencer = inferencer
		self._scrutinees : list[tuple[syntax.Match, NoetherType]] = []

	def check_match(self, mx:syntax.Match, env:dict) -> NoetherType:
		infer = self._inferencer
		subject = infer.infer(mx.data, env)
		self._expect_adt(mx, subject, final=False)
		branches = []
		for clause in mx.clauses:
			bindings = {}
			self.visit(clause.lhs, subject, bindings)
			infer.note(clause.lhs, subject)
			branches.append((clause.rhs, infer.infer(clause.rhs, {**env, **bindings})))
		if not branches:
			return infer.arena.fresh()
		result = branches[0][1]
		for rhs, typ in branches[1:]:
			infer.unify(result, typ, rhs)
		self._scrutinees.append((mx, subject))
		return result

	def _expect_adt(self, mx:syntax.Match, subject:NoetherType, final:bool):
		"""
		While inference is under way the scrutinee may not be known yet.
		At the end it must be some ADT.
		"""
		arena = self._inferencer.arena
		found = arena.find(subject)
		if isinstance(found, IncompleteType):
			if not final: return
			raise AmbiguousType(found, at=mx.data)
		elif isinstance(found, TypeCall):
			return
		raise KindMismatch(arena.resolve(subject), gripe="Only a value of some data type can be matched on, but this is %s.", at=mx.data)

	def check_scrutinees(self):
		for mx, subject in self._scrutinees:
			self._expect_adt(mx, subject, final=True)

	def visit_PatternWildcard(self, pattern:syntax.PatternWildcard, expected:NoetherType, bindings:dict):
		pass

	def visit_PatternVar(self, pattern:syntax.PatternVar, expected:NoetherType, bindings:dict):
		var = pattern.var
		if var.type_annotation is not None:
			self._inferencer.well_formed(var.type_annotation, pattern)
			self._inferencer.unify(var.type_annotation, expected, pattern)
		self._inferencer.note(var, expected)
		bindings[var] = expected

	def visit_PatternConstructor(self, pattern:syntax.PatternConstructor, expected:NoetherType, bindings:dict):
		infer = self._inferencer
		ctor = pattern.constructor
		td = infer.module.lookup_constructor(ctor)
		if td is None: raise UnboundName(ctor.name, at=pattern)
		type_args = infer.arena.several(len(td.type_params))
		infer.unify(expected, TypeCall(td.header, type_args), pattern)
		if len(pattern.patterns) != ctor.arity():
			raise ArityMismatch(
				ctor.name, ctor.arity(), len(pattern.patterns),
				gripe="Constructor %s takes %s argument(s), but this pattern has %s.", at=pattern,
			)
		gamma = dict(zip(td.type_params, type_args))
		for sub, input_type in zip(pattern.patterns, ctor.inputs):
			self.visit(sub, substitute(gamma, input_type), bindings)
			infer.note(sub, substitute(gamma, input_type))
