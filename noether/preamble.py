"""
The standard prelude: a few generic data types and the usual functions over them,
plus some demonstration programs which lean on the prelude and the tensor operators.

Most of the functions carry no annotations at all; inference works out their
polymorphic signatures. Nullary constructors are applied to no arguments,
as in `Call(nil, [])`.
"""
from .calculus import TypeCall, TensorType, scalar_type
from .modularity import Module
from .syntax import (
	Var, GlobalVar, Op, Function, Call, Let, Tuple, TupleGetItem, If, Match, Clause, const,
	PatternWildcard, PatternVar, PatternConstructor,
)

INT = scalar_type("int32")

def _define_types(m:Module):
	m.define_data("List", ["a"], [
		("Nil", lambda List, a: []),
		("Cons", lambda List, a: [a, TypeCall(List, [a])]),
	])
	m.define_data("Option", ["a"], [
		("None_", lambda Option, a: []),
		("Some", lambda Option, a: [a]),
	])
	list_handle = m.get_global_type_var("List")
	m.define_data("Tree", ["a"], [
		("Rose", lambda Tree, a: [a, TypeCall(list_handle, [TypeCall(Tree, [a])])]),
	])

def build_prelude() -> Module:
	m = Module()
	_define_types(m)
	nil, cons = m.constructor_named("List", "Nil"), m.constructor_named("List", "Cons")
	none, some = m.constructor_named("Option", "None_"), m.constructor_named("Option", "Some")
	rose = m.constructor_named("Tree", "Rose")

	def C(op, *args): return Call(op, args)
	def P(ctor, *patterns): return PatternConstructor(ctor, patterns)
	def V(var): return PatternVar(var)
	_ = PatternWildcard

	x = Var("x")
	m.add_function("id", Function([x], x))

	f, g, x = Var("f"), Var("g"), Var("x")
	m.add_function("compose", Function([f, g], Function([x], C(f, C(g, x)))))

	xs, h = Var("xs"), Var("h")
	m.add_function("hd", Function([xs], Match(xs, [Clause(P(cons, V(h), _()), h)])))

	xs, t = Var("xs"), Var("t")
	m.add_function("tl", Function([xs], Match(xs, [Clause(P(cons, _(), V(t)), t)])))

	# Recursive definitions need their handle up front.
	length = GlobalVar("length")
	xs, t = Var("xs"), Var("t")
	m.add_function(length, Function([xs], Match(xs, [
		Clause(P(nil), const(0)),
		Clause(P(cons, _(), V(t)), C(Op("add"), const(1), C(length, t))),
	])))

	map_ = GlobalVar("map")
	f, xs, h, t = Var("f"), Var("xs"), Var("h"), Var("t")
	m.add_function(map_, Function([f, xs], Match(xs, [
		Clause(P(nil), C(nil)),
		Clause(P(cons, V(h), V(t)), C(cons, C(f, h), C(map_, f, t))),
	])))

	foldl = GlobalVar("foldl")
	f, acc, xs, h, t = Var("f"), Var("acc"), Var("xs"), Var("h"), Var("t")
	m.add_function(foldl, Function([f, acc, xs], Match(xs, [
		Clause(P(nil), acc),
		Clause(P(cons, V(h), V(t)), C(foldl, f, C(f, acc, h), t)),
	])))

	foldr = GlobalVar("foldr")
	f, acc, xs, h, t = Var("f"), Var("acc"), Var("xs"), Var("h"), Var("t")
	m.add_function(foldr, Function([f, acc, xs], Match(xs, [
		Clause(P(nil), acc),
		Clause(P(cons, V(h), V(t)), C(f, h, C(foldr, f, acc, t))),
	])))

	append = GlobalVar("append")
	xs, ys, h, t = Var("xs"), Var("ys"), Var("h"), Var("t")
	m.add_function(append, Function([xs, ys], Match(xs, [
		Clause(P(nil), ys),
		Clause(P(cons, V(h), V(t)), C(cons, h, C(append, t, ys))),
	])))

	nth = GlobalVar("nth")
	xs, n, h, t = Var("xs"), Var("n", INT), Var("h"), Var("t")
	m.add_function(nth, Function([xs, n], Match(xs, [
		Clause(P(cons, V(h), V(t)), If(
			C(Op("equal"), n, const(0)),
			h,
			C(nth, t, C(Op("subtract"), n, const(1))),
		)),
	])))

	opt, default, v = Var("opt"), Var("default"), Var("v")
	m.add_function("unwrap_or", Function([opt, default], Match(opt, [
		Clause(P(some, V(v)), v),
		Clause(_(), default),
	])))

	xs, h = Var("xs"), Var("h")
	m.add_function("head_option", Function([xs], Match(xs, [
		Clause(P(cons, V(h), _()), C(some, h)),
		Clause(P(nil), C(none)),
	])))

	tree_map = GlobalVar("tree_map")
	f, tree, v, kids, k = Var("f"), Var("tree"), Var("v"), Var("kids"), Var("k")
	m.add_function(tree_map, Function([f, tree], Match(tree, [
		Clause(P(rose, V(v), V(kids)), C(rose, C(f, v), C(map_, Function([k], C(tree_map, f, k)), kids))),
	])))

	return m

###################
# Demonstration programs. Each one adds to a freshly-built prelude.

F32 = "float32"

def _mlp(m:Module):
	def C(name, *args): return Call(Op(name), args)
	x = Var("x", TensorType((1, 784), F32))
	w1, b1 = Var("w1", TensorType((784, 128), F32)), Var("b1", TensorType((128,), F32))
	w2, b2 = Var("w2", TensorType((128, 10), F32)), Var("b2", TensorType((10,), F32))
	h = Var("h")
	body = Let(h, C("relu", C("add", C("matmul", x, w1), b1)), C("add", C("matmul", h, w2), b2))
	m.add_function("mlp", Function([x, w1, b1, w2, b2], body))

def _dense(m:Module):
	def C(op, *args): return Call(op, args)
	x, w, b = Var("x"), Var("w"), Var("b")
	dense = m.add_function("dense", Function([x, w, b], C(Op("relu"), C(Op("add"), C(Op("matmul"), x, w), b))))
	x = Var("x", TensorType((8, 32), F32))
	w1, b1 = Var("w1", TensorType((32, 16), F32)), Var("b1", TensorType((16,), F32))
	w2, b2 = Var("w2", TensorType((16, 4), F32)), Var("b2", TensorType((4,), F32))
	m.add_function("two_layers", Function([x, w1, b1, w2, b2], C(dense, C(dense, x, w1, b1), w2, b2)))

def _lists(m:Module):
	nil, cons = m.constructor_named("List", "Nil"), m.constructor_named("List", "Cons")
	def C(op, *args): return Call(op, args)
	def positive():
		# Each use gets its own nodes.
		numbers = C(cons, const(1.5), C(cons, const(2.5), C(nil)))
		return C(m.get_global_var("map"), Op("relu"), numbers)
	m.add_function("count_positive", Function([], C(m.get_global_var("length"), positive())))
	m.add_function("first_positive", Function([], C(m.get_global_var("hd"), positive())))

def _pairs(m:Module):
	p = Var("p")
	swap = m.add_function("swap", Function([p], Tuple([TupleGetItem(p, 1), TupleGetItem(p, 0)])))
	m.add_function("swapped", Function([], Call(swap, [Tuple([const(1.0), const([1, 2, 3])])])))

DEMOS = {
	"mlp": _mlp,
	"dense": _dense,
	"lists": _lists,
	"pairs": _pairs,
}

def build_demo(name:str) -> Module:
	""" Raises KeyError for an unknown demo. """
	m = build_prelude()
	DEMOS[name](m)
	return m
