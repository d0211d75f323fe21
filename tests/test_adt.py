import unittest

from noether.calculus import TypeCall, scalar_type
from noether.syntax import (
	Var, Function, Call, Tuple, Match, Clause, const,
	PatternWildcard, PatternVar, PatternConstructor,
)
from noether.modularity import Module, AlreadyExists
from noether.preamble import build_prelude
from noether.type_inference import infer_types, infer_expr
from noether.diagnostics import (
	Report, DTypeMismatch, ArityMismatch, KindMismatch, AdtMismatch, AmbiguousType,
)

F32 = scalar_type("float32")
I32 = scalar_type("int32")

def C(op, *args): return Call(op, args)
def P(ctor, *patterns): return PatternConstructor(ctor, patterns)

class Quiet(Report):
	def __init__(self):
		super().__init__(verbose=False, max_issues=30)

class DataTests(unittest.TestCase):
	""" Building values out of constructors. """

	def setUp(self):
		self.m = build_prelude()
		self.nil = self.m.constructor_named("List", "Nil")
		self.cons = self.m.constructor_named("List", "Cons")
		self.some = self.m.constructor_named("Option", "Some")
		self.list = self.m.get_global_type_var("List")

	def test_tags_follow_declaration_order(self):
		self.assertEqual(0, self.nil.tag)
		self.assertEqual(1, self.cons.tag)
		self.assertEqual(2, self.cons.arity())

	def test_construction(self):
		expr = C(self.cons, const(1.0), C(self.cons, const(2.0), C(self.nil)))
		self.assertEqual(TypeCall(self.list, [F32]), infer_expr(expr, self.m))
		self.assertEqual((F32,), expr.resolved_type_args)

	def test_inconsistent_elements(self):
		expr = C(self.cons, const(1.0), C(self.cons, const(2), C(self.nil)))
		with self.assertRaises(DTypeMismatch):
			infer_expr(expr, self.m)

	def test_constructor_arity(self):
		with self.assertRaises(ArityMismatch):
			infer_expr(C(self.cons, const(1.0)), self.m)

	def test_wrong_adt(self):
		with self.assertRaises(AdtMismatch):
			infer_expr(C(self.cons, const(1.0), C(self.some, const(1.0))), self.m)

	def test_lonely_nil_is_ambiguous(self):
		with self.assertRaises(AmbiguousType):
			infer_expr(C(self.nil), self.m)

	def test_same_structure_different_type(self):
		self.m.define_data("Stack", ["a"], [("Empty", lambda Stack, a: [])])
		empty = self.m.constructor_named("Stack", "Empty")
		with self.assertRaises(AdtMismatch):
			infer_expr(C(self.cons, const(1.0), C(empty)), self.m)

	def test_names_are_defined_once(self):
		with self.assertRaises(AlreadyExists):
			self.m.define_data("List", ["a"], [])
		with self.assertRaises(AlreadyExists):
			self.m.add_function("map", Function([], const(0)))

	def test_modules_combine(self):
		extra = Module()
		x = Var("x")
		twice = extra.add_function("twice", Function([x], Tuple([x, x])))
		self.m.update(extra)
		self.assertIs(twice, self.m.get_global_var("twice"))
		self.assertTrue(infer_types(self.m, report=Quiet()))
		self.assertEqual("fn<a>(a) -> (a, a)", repr(self.m.signature(twice)))


class MatchTests(unittest.TestCase):

	def setUp(self):
		self.m = build_prelude()
		self.nil = self.m.constructor_named("List", "Nil")
		self.cons = self.m.constructor_named("List", "Cons")
		self.some = self.m.constructor_named("Option", "Some")
		self.list = self.m.get_global_type_var("List")

	def check(self):
		report = Quiet()
		if not infer_types(self.m, report=report):
			raise report.issues[0].cause

	def sig(self, name):
		return repr(self.m.checked_types[self.m.get_global_var(name)])

	def test_wildcard_before_constructor(self):
		xs, h = Var("xs"), Var("h")
		self.m.add_function("first_or_zero", Function([xs], Match(xs, [
			Clause(P(self.cons, PatternVar(h), PatternWildcard()), h),
			Clause(PatternWildcard(), const(0.0)),
		])))
		xs, h = Var("xs"), Var("h")
		self.m.add_function("zero_or_first", Function([xs], Match(xs, [
			Clause(PatternWildcard(), const(0.0)),
			Clause(P(self.cons, PatternVar(h), PatternWildcard()), h),
		])))
		self.check()
		self.assertEqual("fn(List[float32]) -> float32", self.sig("first_or_zero"))
		self.assertEqual("fn(List[float32]) -> float32", self.sig("zero_or_first"))

	def test_nested_patterns(self):
		xs, y = Var("xs"), Var("y")
		self.m.add_function("second", Function([xs], Match(xs, [
			Clause(P(self.cons, PatternWildcard(), P(self.cons, PatternVar(y), PatternWildcard())), y),
		])))
		self.check()
		self.assertEqual("fn<a>(List[a]) -> a", self.sig("second"))

	def test_pattern_variables_get_types(self):
		xs, h, t = Var("xs", TypeCall(self.list, [I32])), Var("h"), Var("t")
		pattern = P(self.cons, PatternVar(h), PatternVar(t))
		self.m.add_function("f", Function([xs], Match(xs, [Clause(pattern, Tuple([h, t]))])))
		self.check()
		self.assertEqual(I32, h.checked_type)
		self.assertEqual(TypeCall(self.list, [I32]), t.checked_type)
		self.assertEqual(TypeCall(self.list, [I32]), pattern.checked_type)

	def test_pattern_arity(self):
		xs, h = Var("xs"), Var("h")
		self.m.add_function("f", Function([xs], Match(xs, [Clause(P(self.cons, PatternVar(h)), h)])))
		with self.assertRaises(ArityMismatch):
			self.check()

	def test_constructor_from_another_type(self):
		xs, v = Var("xs"), Var("v")
		self.m.add_function("f", Function([xs], Match(xs, [
			Clause(P(self.nil), const(0.0)),
			Clause(P(self.some, PatternVar(v)), v),
		])))
		with self.assertRaises(AdtMismatch):
			self.check()

	def test_clause_bodies_must_agree(self):
		xs = Var("xs")
		self.m.add_function("f", Function([xs], Match(xs, [
			Clause(P(self.nil), const(0.0)),
			Clause(P(self.cons, PatternWildcard(), PatternWildcard()), const(1)),
		])))
		with self.assertRaises(DTypeMismatch):
			self.check()

	def test_cannot_match_on_a_tensor(self):
		self.m.add_function("f", Function([], Match(const(1.0), [Clause(PatternWildcard(), const(0))])))
		with self.assertRaises(KindMismatch):
			self.check()

	def test_scrutinee_must_turn_out_to_be_data(self):
		x = Var("x")
		self.m.add_function("f", Function([x], Match(x, [Clause(PatternWildcard(), const(0))])))
		with self.assertRaises(KindMismatch):
			self.check()

	def test_pattern_variable_annotation(self):
		xs, h = Var("xs", TypeCall(self.list, [F32])), Var("h", scalar_type("bool"))
		self.m.add_function("f", Function([xs], Match(xs, [
			Clause(P(self.cons, PatternVar(h), PatternWildcard()), h),
		])))
		with self.assertRaises(DTypeMismatch):
			self.check()

	def test_prelude_demo_of_generic_data(self):
		self.check()
		self.assertEqual("fn<a, b>(fn(a) -> b, Tree[a]) -> Tree[b]", self.sig("tree_map"))


if __name__ == '__main__':
	unittest.main()
