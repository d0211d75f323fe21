import unittest

from noether.calculus import TensorType, TupleType, TypeParam, TypeRelation, ShapeVar, ANY_DIM, scalar_type
from noether.arena import TypeArena
from noether.unification import unify
from noether.relations import (
	Reporter, RelationRegistry, HOLDS, FAILS, INDETERMINATE, standard_relations, broadcast_shapes,
	identity, broadcast, broadcast_comparison, matmul, reduction, expand_dims, concatenate, tuple_projection,
)
from noether.solver import RelationSolver
from noether.syntax import const
from noether.diagnostics import RelationViolation, AmbiguousType, UnboundName, ShapeMismatch, IndexOutOfRange, ArityMismatch

F32 = scalar_type("float32")

def f32(*shape): return TensorType(shape, "float32")
def i32(*shape): return TensorType(shape, "int32")

class Record(Reporter):
	def __init__(self):
		self.assigned = {}
	def assign(self, index, typ):
		self.assigned[index] = typ

class ProcedureTests(unittest.TestCase):

	def setUp(self):
		self.out = TypeArena().fresh()

	def check(self, procedure, inputs, expect, **attrs):
		record = Record()
		verdict = procedure(list(inputs) + [self.out], attrs, record)
		self.assertIs(HOLDS, verdict)
		self.assertEqual(expect, record.assigned[len(inputs)])

	def refuse(self, procedure, inputs, **attrs):
		record = Record()
		self.assertIs(FAILS, procedure(list(inputs) + [self.out], attrs, record))
		self.assertEqual({}, record.assigned)

	def test_broadcast_shapes(self):
		self.assertEqual((3, 4), broadcast_shapes((3, 1), (1, 4)))
		self.assertEqual((2, 3), broadcast_shapes((2, 3), (3,)))
		self.assertEqual((5,), broadcast_shapes((), (5,)))
		self.assertIsNone(broadcast_shapes((2, 3), (2,)))

	def test_broadcast(self):
		self.check(broadcast, [f32(3, 1), f32(1, 4)], f32(3, 4))
		self.check(broadcast, [f32(2, 3), f32(3)], f32(2, 3))
		self.check(broadcast, [F32, F32], F32)
		self.refuse(broadcast, [f32(2, 3), f32(2)])
		self.refuse(broadcast, [f32(3), i32(3)])
		self.refuse(broadcast, [TupleType([F32]), F32])

	def test_comparison_yields_bool(self):
		self.check(broadcast_comparison, [i32(4), i32()], TensorType((4,), "bool"))

	def test_undecided_slots(self):
		arena = TypeArena()
		for slot in (arena.fresh(), TypeParam("a")):
			with self.subTest(slot):
				record = Record()
				self.assertIs(INDETERMINATE, broadcast([slot, F32, self.out], {}, record))
				self.assertIs(INDETERMINATE, identity([slot, self.out], {}, record))
				self.assertEqual({}, record.assigned)

	def test_identity(self):
		self.check(identity, [i32(2, 2)], i32(2, 2))

	def test_matmul(self):
		self.check(matmul, [f32(2, 3), f32(3, 4)], f32(2, 4))
		self.check(matmul, [f32(5, 2, 3), f32(3, 4)], f32(5, 2, 4))
		self.check(matmul, [TensorType((ShapeVar("n"), 3)), f32(3, 4)], TensorType((ShapeVar("n"), 4)))
		self.refuse(matmul, [f32(3), f32(3, 4)])
		self.refuse(matmul, [f32(2, 3), f32(4, 5)])
		self.refuse(matmul, [f32(2, 3), i32(3, 4)])

	def test_reduction(self):
		x = f32(2, 3, 4)
		self.check(reduction, [x], f32(2, 4), axis=1)
		self.check(reduction, [x], f32(2, 1, 4), axis=1, keepdims=True)
		self.check(reduction, [x], F32, axis=None)
		self.check(reduction, [x], f32(2, 3), axis=-1)
		self.check(reduction, [x], f32(3), axis=(0, 2))
		self.refuse(reduction, [x], axis=3)

	def test_expand_dims(self):
		self.check(expand_dims, [f32(2, 3)], f32(2, 1, 1, 3), axis=1, num_newaxis=2)
		self.check(expand_dims, [f32(2, 3)], f32(2, 3, 1), axis=-1)
		self.check(expand_dims, [F32], f32(1))
		self.refuse(expand_dims, [f32(2, 3)], axis=4)

	def test_concatenate(self):
		self.check(concatenate, [TupleType([f32(2, 3), f32(4, 3)])], f32(6, 3))
		self.check(concatenate, [TupleType([f32(2, 3), f32(2, 5)])], f32(2, 8), axis=1)
		self.check(concatenate, [TupleType([f32(2), TensorType((ShapeVar("n"),))])], TensorType((ANY_DIM,)))
		self.refuse(concatenate, [TupleType([f32(2, 3), f32(2, 4)])])
		self.refuse(concatenate, [TupleType([f32(2), i32(2)])])
		self.refuse(concatenate, [TupleType([])])

	def test_tuple_projection(self):
		self.check(tuple_projection, [TupleType([F32, i32(3)])], i32(3), index=1)
		self.refuse(tuple_projection, [F32], index=0)
		with self.assertRaises(IndexOutOfRange):
			tuple_projection([TupleType([F32]), self.out], {"index": 1}, Record())

	def test_standard_registry(self):
		registry = standard_relations()
		for name in ["Identity", "Broadcast", "BroadcastComparison", "MatMul", "Reduce", "ExpandDims", "Concatenate", "TupleGetItem"]:
			self.assertIn(name, registry)
		self.assertEqual(3, registry.arity("Broadcast"))
		with self.assertRaises(UnboundName):
			registry.lookup("Frobnicate")

class SolverTests(unittest.TestCase):

	def setUp(self):
		self.arena = TypeArena()
		self.solver = RelationSolver(self.arena, standard_relations())

	def test_wakes_when_a_slot_is_bound(self):
		a, b, c = self.arena.several(3)
		self.solver.add(TypeRelation("Broadcast", [a, b, c]))
		self.solver.propagate()
		self.assertEqual(1, len(self.solver.pending()))
		unify(self.arena, a, f32(3))
		unify(self.arena, b, F32)
		self.solver.propagate()
		self.assertEqual([], self.solver.pending())
		self.assertEqual(f32(3), self.arena.resolve(c))

	def test_chains_reach_a_fixpoint(self):
		a, b, c, d = self.arena.several(4)
		# Added in the "wrong" order, so the first must wait on the second.
		self.solver.add(TypeRelation("Identity", [b, c]))
		self.solver.add(TypeRelation("MatMul", [a, f32(3, 4), b]))
		self.solver.add(TypeRelation("Reduce", [c, d], 1), attrs={"axis": 0})
		unify(self.arena, a, f32(2, 3))
		self.solver.finish()
		self.assertEqual(f32(4), self.arena.resolve(d))

	def test_stuck_is_ambiguous(self):
		a, b = self.arena.several(2)
		site = const(1.0)
		self.solver.add(TypeRelation("Identity", [a, b]), site)
		with self.assertRaises(AmbiguousType) as cm:
			self.solver.finish()
		self.assertIs(site, cm.exception.at)

	def test_violation(self):
		site = const([1.0, 2.0])
		self.solver.add(TypeRelation("Broadcast", [f32(3), f32(2), self.arena.fresh()]), site)
		with self.assertRaises(RelationViolation) as cm:
			self.solver.propagate()
		self.assertEqual("Broadcast", cm.exception.evidence[0])
		self.assertIs(site, cm.exception.at)

	def test_assignment_goes_through_unification(self):
		site = const(1.0)
		self.solver.add(TypeRelation("Broadcast", [f32(3), f32(3), f32(4)]), site)
		with self.assertRaises(ShapeMismatch) as cm:
			self.solver.propagate()
		self.assertIs(site, cm.exception.at)

	def test_unknown_relation(self):
		with self.assertRaises(UnboundName):
			self.solver.add(TypeRelation("Frobnicate", [F32]))

	def test_relations_have_fixed_arity(self):
		site = const(1.0)
		with self.assertRaises(ArityMismatch) as cm:
			self.solver.add(TypeRelation("Broadcast", [f32(3), f32(3)]), site)
		self.assertIs(site, cm.exception.at)
		self.assertEqual([], self.solver.pending())

	def test_call_attributes_override_defaults(self):
		out = self.arena.fresh()
		relation = TypeRelation("Reduce", [f32(2, 3), out], 1, {"axis": None, "keepdims": False})
		instance = self.solver.add(relation, attrs={"axis": [1]})
		self.assertEqual((1,), instance.attrs["axis"])
		self.solver.finish()
		self.assertEqual(f32(2), self.arena.resolve(out))

class CustomRegistryTests(unittest.TestCase):

	def setUp(self):
		self.log = []
		def same(types, attrs, reporter):
			self.log.append(attrs.get("tag"))
			if isinstance(types[0], TupleType) or isinstance(types[0], TensorType):
				reporter.assign(1, types[0])
				return HOLDS
			return INDETERMINATE
		registry = RelationRegistry()
		registry.register("Same", same, 2)
		self.arena = TypeArena()
		self.solver = RelationSolver(self.arena, registry)

	def test_user_relation_on_tuples(self):
		out = self.arena.fresh()
		self.solver.add(TypeRelation("Same", [TupleType([F32, F32]), out]))
		self.solver.finish()
		self.assertEqual(TupleType([F32, F32]), self.arena.resolve(out))

	def test_processed_in_order_of_generation(self):
		for tag in "xyz":
			self.solver.add(TypeRelation("Same", [F32, self.arena.fresh()]), attrs={"tag": tag})
		self.solver.propagate()
		self.assertEqual(list("xyz"), self.log)

	def test_only_watchers_wake(self):
		a, b = self.arena.several(2)
		self.solver.add(TypeRelation("Same", [a, self.arena.fresh()]), attrs={"tag": "a"})
		self.solver.add(TypeRelation("Same", [b, self.arena.fresh()]), attrs={"tag": "b"})
		self.solver.propagate()
		self.assertEqual(["a", "b"], self.log)
		unify(self.arena, a, F32)
		self.solver.propagate()
		self.assertEqual(["a", "b", "a"], self.log)
		self.assertEqual(1, len(self.solver.pending()))

if __name__ == '__main__':
	unittest.main()
