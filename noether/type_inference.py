"""
Type inference over a whole module, or over one expression.

Global functions are typed in strongly-connected groups of the call graph,
dependencies first. Within a group, members see one another at their
provisional (monomorphic) types, which permits mutual recursion. Once a
group's bodies are checked and the relation solver has done what it can,
the group is generalised together: every incomplete type left in the group
becomes a type parameter, and every relation instance still pending moves
onto the signature of the member that generated it.

A global which is fully annotated keeps its declared signature from the
start. Its body is still checked, but callers (itself included) may
instantiate it freely, which is how polymorphic recursion works.

Errors are terminal: the first TypeIssue propagates out of the run.
"""
import itertools
from typing import Optional, Sequence

from boozetools.support.foundation import Visitor, strongly_connected_components_hashable
from .ontology import Phrase, ValueExpression
from .calculus import (
	NoetherType, IncompleteType, TypeParam, FuncType, TupleType, TensorType, TypeCall,
	TypeRelation, TypeVisitor, Substitute, TYPE_POSITION_KINDS, BOOL,
	substitute, incompletes_in, free_params_in, name_variable,
)
from .arena import TypeArena
from .unification import unify
from .relations import RelationRegistry, standard_relations
from .primitive import OperatorRegistry, standard_operators
from .solver import RelationSolver, RelationInstance
from .modularity import Module
from .patterns import PatternChecker
from .diagnostics import (
	Report, TypeIssue, KindMismatch, ArityMismatch, TypeArgumentArityError,
	IndexOutOfRange, AmbiguousType, UnboundName,
)
from . import syntax

def infer_types(module:Module, operators:OperatorRegistry=None, report:Report=None, relations:RelationRegistry=None) -> bool:
	"""
	Type-check every function in the module. On success, every node has its
	`checked_type` and the module records each function's signature.
	On failure, the report gets exactly one issue.
	"""
	report = report or Report()
	inferencer = TypeInferencer(module, operators, relations, report)
	try:
		inferencer.check_module()
	except TypeIssue as issue:
		report.type_issue(issue, inferencer.arena.resolve)
		return False
	return True

def infer_expr(expr:ValueExpression, module:Module=None, operators:OperatorRegistry=None, relations:RelationRegistry=None) -> NoetherType:
	""" Type one expression in the context of a module. Raises TypeIssue on failure. """
	return TypeInferencer(module or Module(), operators, relations).infer_expr(expr)


class CallGraph(Visitor):
	""" Which globals does each global refer to? """
	def __init__(self, module:Module):
		self.graph = {}
		self._module = module
		for gv, fn in module.functions.items():
			self.graph[gv] = self._edges = set()
			self.visit(fn)

	def visit_Var(self, expr): pass
	def visit_Op(self, expr): pass
	def visit_Constructor(self, expr): pass
	def visit_Constant(self, expr): pass
	def visit_GlobalVar(self, gv):
		if gv in self._module.functions:
			self._edges.add(gv)
	def visit_Function(self, fn:syntax.Function):
		self.visit(fn.body)
	def visit_Call(self, call:syntax.Call):
		self.visit(call.op)
		for a in call.args: self.visit(a)
	def visit_Let(self, let:syntax.Let):
		self.visit(let.value)
		self.visit(let.body)
	def visit_Tuple(self, tup:syntax.Tuple):
		for f in tup.fields: self.visit(f)
	def visit_TupleGetItem(self, tgi:syntax.TupleGetItem):
		self.visit(tgi.tuple_value)
	def visit_If(self, expr:syntax.If):
		self.visit(expr.cond)
		self.visit(expr.true_branch)
		self.visit(expr.false_branch)
	def visit_Match(self, mx:syntax.Match):
		self.visit(mx.data)
		for clause in mx.clauses: self.visit(clause.rhs)


class WellFormed(TypeVisitor):
	"""
	A type written by the programmer may only mention type parameters
	which are in scope, and only those of a kind that fits in type position.
	Every TypeCall must name a known ADT with the right number of arguments.
	"""
	def __init__(self, scope:Sequence[TypeParam], module:Module, at:Phrase):
		self._scope, self._module, self._at = list(scope), module, at
	def on_tensor(self, t: TensorType): pass
	def on_tuple(self, t: TupleType):
		for f in t.fields: f.visit(self)
	def on_func(self, f: FuncType):
		depth = len(self._scope)
		self._scope.extend(f.type_params)
		for a in f.arg_types: a.visit(self)
		f.ret_type.visit(self)
		del self._scope[depth:]
	def on_param(self, p: TypeParam):
		if p not in self._scope:
			raise KindMismatch(p, gripe="The type parameter %s is not in scope here.", at=self._at)
		if p.kind not in TYPE_POSITION_KINDS:
			raise KindMismatch(p, p.kind.value, gripe="The type parameter %s is of kind %s, which cannot stand for a whole type.", at=self._at)
	def on_incomplete(self, v: IncompleteType): pass
	def on_global_type_var(self, g):
		raise KindMismatch(g, gripe="%s needs type arguments to be a type.", at=self._at)
	def on_type_call(self, tc: TypeCall):
		td = self._module.type_definitions.get(tc.func)
		if td is None: raise UnboundName(tc.func.name, at=self._at)
		if len(td.type_params) != len(tc.args):
			raise TypeArgumentArityError(len(td.type_params), len(tc.args), at=self._at)
		for a in tc.args: a.visit(self)


HANDLES = (syntax.GlobalVar, syntax.Constructor)

class TypeInferencer(Visitor):
	def __init__(self, module:Module, operators:OperatorRegistry=None, relations:RelationRegistry=None, report:Report=None):
		self.module = module
		self.operators = operators or standard_operators()
		self.relations = relations or standard_relations()
		self._report = report or Report()
		self.arena = TypeArena()
		self.solver = RelationSolver(self.arena, self.relations)
		self.patterns = PatternChecker(self)
		self._node_types : dict[Phrase, NoetherType] = {}
		self._call_type_args : dict[syntax.Call, Sequence[NoetherType]] = {}
		self._scope : list[TypeParam] = []
		self._schemes : dict[syntax.GlobalVar, FuncType] = {}
		self._declared : dict[syntax.GlobalVar, FuncType] = {}
		self._in_progress : dict[syntax.GlobalVar, NoetherType] = {}
		self._solving : set[syntax.GlobalVar] = set()
		self._groups = strongly_connected_components_hashable(CallGraph(module).graph)
		self._group_of = {gv: group for group in self._groups for gv in group}
		for gv, fn in module.functions.items():
			if fn.is_fully_annotated():
				params = [p.type_annotation for p in fn.params]
				self._declared[gv] = FuncType(params, fn.ret_type, fn.type_params, fn.relations)

	def check_module(self) -> dict:
		for group in self._groups:
			self._ensure_solved(group[0])
		self.solver.finish()
		self._annotate()
		for gv in self.module.functions:
			self.module.checked_types[gv] = gv.checked_type = self._schemes[gv]
		for td in self.module.type_definitions.values():
			for ctor in td.constructors:
				ctor.checked_type = td.constructor_type(ctor)
		return dict(self._schemes)

	def infer_expr(self, expr:ValueExpression) -> NoetherType:
		typ = self.infer(expr, {})
		self.solver.finish()
		self._annotate()
		return self.arena.resolve(typ)

	def infer(self, expr:Phrase, env:dict) -> NoetherType:
		try:
			typ = self.visit(expr, env)
		except TypeIssue as e:
			raise e.blame(expr)
		self.note(expr, typ)
		return typ

	def unify(self, a:NoetherType, b:NoetherType, at:Phrase):
		unify(self.arena, a, b, at)

	def well_formed(self, typ:NoetherType, at:Phrase):
		typ.visit(WellFormed(self._scope, self.module, at))

	def note(self, node:Phrase, typ:NoetherType):
		"""
		Global handles and constructors are shared among all their uses,
		so they get their schemes at the end instead of any one instantiation.
		"""
		if not isinstance(node, HANDLES):
			self._node_types[node] = typ

	###################
	# Globals

	def _ensure_solved(self, gv:syntax.GlobalVar):
		if gv not in self._schemes:
			self._solve_group(self._group_of[gv])

	def _scheme_of(self, gv:syntax.GlobalVar) -> FuncType:
		if gv not in self.module.functions:
			raise UnboundName(gv.name, at=gv)
		if gv in self._declared and gv in self._solving:
			return self._declared[gv]
		self._ensure_solved(gv)
		return self._schemes[gv]

	def _solve_group(self, group:Sequence[syntax.GlobalVar]):
		self._report.info("Typing", ", ".join(gv.name for gv in group))
		mark = self.solver.mark()
		self._solving.update(group)
		undeclared = [gv for gv in group if gv not in self._declared]
		for gv in undeclared:
			self._in_progress[gv] = self.arena.fresh()
		spans = {}
		for gv in group:
			fn = self.module.functions[gv]
			before = self.solver.mark()
			typ = self.infer(fn, {})
			spans[gv] = (before, self.solver.mark())
			if gv in self._in_progress:
				self.unify(self._in_progress[gv], typ, fn)
		self.solver.propagate()
		self._discharge_declared(group, mark)
		self._generalise(undeclared, spans, mark)
		for gv in group:
			if gv in self._declared:
				self._schemes[gv] = self._declared[gv]
			self._report.info("  %s : %s" % (gv.name, self._schemes[gv]))
		self._solving.difference_update(group)

	def _resolved(self, instance:RelationInstance) -> TypeRelation:
		""" Keeps the attributes the instance was actually made with. """
		args = [self.arena.resolve(a) for a in instance.args]
		return TypeRelation(instance.name, args, instance.relation.num_inputs, instance.attrs)

	def _resolve_relation(self, rel:TypeRelation) -> TypeRelation:
		return rel.with_args(self.arena.resolve(a) for a in rel.args)

	def _discharge_declared(self, group, mark:int):
		""" What a declared signature promises, its body may assume. """
		promised = set()
		for gv in group:
			if gv in self._declared:
				promised.update((r.name, r.args) for r in self._declared[gv].relations)
		if promised:
			entailed = []
			for instance in self.solver.pending(mark):
				rel = self._resolved(instance)
				if (rel.name, rel.args) in promised:
					entailed.append(instance)
			self.solver.detach(entailed)

	def _generalise(self, undeclared:Sequence[syntax.GlobalVar], spans:dict, mark:int):
		def owner(instance:RelationInstance):
			for gv in undeclared:
				before, after = spans[gv]
				if before < instance.seq <= after: return gv
			raise AmbiguousType(self._resolved(instance), at=instance.origin)

		pending = self.solver.pending(mark)
		attached = {gv: [] for gv in undeclared}
		for instance in pending:
			attached[owner(instance)].append(instance)
		self.solver.detach(pending)
		monos = {gv: self.arena.resolve(self._in_progress.pop(gv)) for gv in undeclared}
		relations = {gv: [self._resolved(i) for i in attached[gv]] for gv in undeclared}
		free = self._reachable(incompletes_in(*monos.values()), [
			(i, r) for gv in undeclared for i, r in zip(attached[gv], relations[gv])
		])
		taken = {p.name for gv in undeclared for p in self.module.functions[gv].type_params}
		names = (name for name in map(name_variable, itertools.count(1)) if name not in taken)
		for v, name in zip(free, names):
			self.arena.bind(v, TypeParam(name))
		for gv in undeclared:
			fn = self.module.functions[gv]
			mono = self.arena.resolve(monos[gv])
			rels = [self._resolve_relation(r) for r in relations[gv]]
			params = list(fn.type_params)
			for p in free_params_in(mono, *(a for r in rels for a in r.args)):
				if p not in params: params.append(p)
			self._schemes[gv] = FuncType(mono.arg_types, mono.ret_type, params, list(fn.relations) + rels)

	@staticmethod
	def _reachable(free:list, waiting:list) -> list:
		"""
		A relation may carry incomplete types which do not appear in the signature,
		so long as it connects (perhaps through other relations) to ones that do.
		A relation that never connects could only be settled by guessing.
		"""
		progress = True
		while progress:
			progress = False
			for item in list(waiting):
				found = incompletes_in(*item[1].args)
				if not found or any(v in free for v in found):
					free.extend(v for v in found if v not in free)
					waiting.remove(item)
					progress = True
		if waiting:
			instance, rel = waiting[0]
			raise AmbiguousType(rel, at=instance.origin)
		return free

	###################
	# Instantiation

	def _instantiate(self, scheme:FuncType, explicit:Optional[Sequence[NoetherType]], at:Phrase, attrs:dict):
		params = scheme.type_params
		if explicit is not None and len(explicit) != len(params):
			raise TypeArgumentArityError(len(params), len(explicit), at=at)
		if explicit is not None:
			for p in params:
				if p.kind not in TYPE_POSITION_KINDS:
					raise KindMismatch(p, p.kind.value, gripe="The type parameter %s is of kind %s, so no type can be given for it.", at=at)
		if params:
			type_args = list(explicit) if explicit is not None else self.arena.several(len(params))
			gamma = dict(zip(params, type_args))
			mono = FuncType([substitute(gamma, a) for a in scheme.arg_types], substitute(gamma, scheme.ret_type))
		else:
			type_args, gamma, mono = [], {}, scheme
		rewrite = Substitute(gamma)
		for rel in scheme.relations:
			self.solver.add(rewrite.relation(rel), at, attrs)
		return mono, tuple(type_args)

	def _reference(self, ref:ValueExpression, explicit, at:Phrase, attrs:dict):
		""" Type a direct reference to a global, operator, or constructor. """
		if explicit is not None:
			for t in explicit: self.well_formed(t, at)
		if isinstance(ref, syntax.GlobalVar):
			if ref in self._in_progress:
				if explicit: raise TypeArgumentArityError(0, len(explicit), at=at)
				return self._in_progress[ref], ()
			scheme = self._scheme_of(ref)
		elif isinstance(ref, syntax.Op):
			try: scheme = self.operators.lookup(ref.name)
			except KeyError: raise UnboundName(ref.name, at=ref) from None
		else:
			td = self.module.lookup_constructor(ref)
			if td is None: raise UnboundName(ref.name, at=ref)
			scheme = td.constructor_type(ref)
		return self._instantiate(scheme, explicit, at, attrs)

	###################
	# Expressions

	def visit_Var(self, var:syntax.Var, env:dict):
		try: return env[var]
		except KeyError: raise UnboundName(var.name, at=var) from None

	def visit_GlobalVar(self, gv:syntax.GlobalVar, env:dict):
		return self._reference(gv, None, gv, {})[0]

	def visit_Op(self, op:syntax.Op, env:dict):
		return self._reference(op, None, op, {})[0]

	def visit_Constructor(self, ctor:syntax.Constructor, env:dict):
		return self._reference(ctor, None, ctor, {})[0]

	def visit_Constant(self, c:syntax.Constant, env:dict):
		return TensorType(c.shape, c.dtype)

	def visit_Function(self, fn:syntax.Function, env:dict):
		depth = len(self._scope)
		self._scope.extend(fn.type_params)
		try:
			param_types = []
			for p in fn.params:
				if p.type_annotation is None:
					t = self.arena.fresh()
				else:
					self.well_formed(p.type_annotation, p)
					t = p.type_annotation
				self.note(p, t)
				param_types.append(t)
			inner = dict(env)
			inner.update(zip(fn.params, param_types))
			body = self.infer(fn.body, inner)
			if fn.ret_type is None:
				ret = body
			else:
				self.well_formed(fn.ret_type, fn)
				self.unify(fn.ret_type, body, fn.body)
				ret = fn.ret_type
			for rel in fn.relations:
				for a in rel.args: self.well_formed(a, fn)
			if not fn.type_params:
				for rel in fn.relations:
					self.solver.add(rel, fn)
			return FuncType(param_types, ret, fn.type_params, fn.relations)
		finally:
			del self._scope[depth:]

	def visit_Call(self, call:syntax.Call, env:dict):
		callee = call.op
		direct = isinstance(callee, (syntax.GlobalVar, syntax.Op, syntax.Constructor))
		if direct:
			fn_type, type_args = self._reference(callee, call.type_args, call, call.attrs)
			self.note(callee, fn_type)
		else:
			if call.type_args: raise TypeArgumentArityError(0, len(call.type_args), at=call)
			fn_type, type_args = self.infer(callee, env), ()
		arg_types = [self.infer(a, env) for a in call.args]
		found = self.arena.find(fn_type)
		if isinstance(found, IncompleteType):
			ret = self.arena.fresh()
			self.unify(found, FuncType(arg_types, ret), call)
		elif isinstance(found, FuncType):
			if found.type_params and not direct:
				found, type_args = self._instantiate(found, None, call, call.attrs)
			if found.arity() != len(arg_types):
				raise ArityMismatch(
					found.arity(), len(arg_types),
					gripe="This function takes %s argument(s), but the call passes %s.", at=call
				)
			for p, a, expr in zip(found.arg_types, arg_types, call.args):
				self.unify(p, a, expr)
			ret = found.ret_type
		else:
			raise KindMismatch(self.arena.resolve(found), gripe="Something of type %s cannot be called as a function.", at=call)
		self._call_type_args[call] = type_args
		return ret

	def visit_Let(self, let:syntax.Let, env:dict):
		var = let.var
		if isinstance(let.value, syntax.Function):
			typ = self.arena.fresh()
			self.unify(typ, self.infer(let.value, {**env, var: typ}), let.value)
		else:
			typ = self.infer(let.value, env)
		if var.type_annotation is not None:
			self.well_formed(var.type_annotation, var)
			self.unify(var.type_annotation, typ, let)
		self.note(var, typ)
		return self.infer(let.body, {**env, var: typ})

	def visit_Tuple(self, tup:syntax.Tuple, env:dict):
		return TupleType(self.infer(f, env) for f in tup.fields)

	def visit_TupleGetItem(self, tgi:syntax.TupleGetItem, env:dict):
		typ = self.infer(tgi.tuple_value, env)
		found = self.arena.find(typ)
		index = tgi.index
		if isinstance(found, TupleType):
			if not 0 <= index < len(found.fields):
				raise IndexOutOfRange(index, found, at=tgi)
			return found.fields[index]
		if index < 0:
			raise IndexOutOfRange(index, typ, at=tgi)
		if isinstance(found, IncompleteType):
			out = self.arena.fresh()
			self.solver.add(TypeRelation("TupleGetItem", [typ, out], 1, {"index": index}), tgi)
			return out
		raise KindMismatch(found, gripe="Only a tuple can be projected, but this is %s.", at=tgi)

	def visit_If(self, expr:syntax.If, env:dict):
		self.unify(BOOL, self.infer(expr.cond, env), expr.cond)
		then_type = self.infer(expr.true_branch, env)
		self.unify(then_type, self.infer(expr.false_branch, env), expr)
		return then_type

	def visit_Match(self, mx:syntax.Match, env:dict):
		return self.patterns.check_match(mx, env)

	###################
	# Results

	def _annotate(self):
		""" Everything must come out complete before anything gets written. """
		self.patterns.check_scrutinees()
		final = {}
		for node, typ in self._node_types.items():
			it = self.arena.resolve(typ)
			if incompletes_in(it):
				raise AmbiguousType(it, at=node)
			final[node] = it
		for node, it in final.items():
			node.checked_type = it
		for call, type_args in self._call_type_args.items():
			call.resolved_type_args = tuple(self.arena.resolve(t) for t in type_args)
