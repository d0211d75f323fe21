import io
import unittest
from unittest.mock import patch
from noether import diagnostics, cmdline
from noether.calculus import TensorType, scalar_type
from noether.preamble import build_prelude, build_demo, DEMOS
from noether.type_inference import infer_types


def _good(module):
	report = diagnostics.Report(verbose=False)
	infer_types(module, report=report)
	report.assert_no_issues("Ostensibly-good example failed to type-check.")
	return module

def _ret(module, name):
	return module.checked_types[module.get_global_var(name)].ret_type

class ExampleSmokeTests(unittest.TestCase):
	""" Check all the demonstrations; Test for no smoke. """

	def test_prelude(self):
		module = _good(build_prelude())
		for gv in module:
			with self.subTest(gv.name):
				self.assertIs(module.checked_types[gv], gv.checked_type)

	def test_every_demo(self):
		for name in DEMOS:
			with self.subTest(name):
				_good(build_demo(name))

	def test_mlp(self):
		module = _good(build_demo("mlp"))
		self.assertEqual(TensorType((1, 10), "float32"), _ret(module, "mlp"))

	def test_dense(self):
		module = _good(build_demo("dense"))
		self.assertEqual(TensorType((8, 4), "float32"), _ret(module, "two_layers"))
		dense = module.checked_types[module.get_global_var("dense")]
		self.assertEqual({"MatMul", "Broadcast", "Identity"}, {r.name for r in dense.relations})

	def test_lists(self):
		module = _good(build_demo("lists"))
		self.assertEqual(scalar_type("int32"), _ret(module, "count_positive"))
		self.assertEqual(scalar_type("float32"), _ret(module, "first_positive"))

	def test_pairs(self):
		module = _good(build_demo("pairs"))
		self.assertEqual(
			"fn<a, b, c>(a) -> (b, c) where TupleGetItem(a, b), TupleGetItem(a, c)",
			repr(module.checked_types[module.get_global_var("swap")]),
		)
		self.assertEqual("(Tensor[(3), int32], float32)", repr(_ret(module, "swapped")))

	def test_unknown_demo(self):
		with self.assertRaises(KeyError):
			build_demo("no such thing")


class CommandLineTests(unittest.TestCase):

	def run_cli(self, *argv):
		with patch("sys.stdout", new_callable=io.StringIO) as out, patch("sys.stderr", new_callable=io.StringIO) as err:
			status = cmdline.run(cmdline.parser.parse_args(argv))
		return status, out.getvalue(), err.getvalue()

	def test_check_only(self):
		status, out, err = self.run_cli("-c", "mlp")
		self.assertEqual(0, status)
		self.assertEqual("", out)
		self.assertIn("Looks plausible", err)

	def test_signatures(self):
		status, out, err = self.run_cli("pairs")
		self.assertEqual(0, status)
		self.assertIn("swapped : fn() -> (Tensor[(3), int32], float32)", out)
		self.assertIn("id : fn<a>(a) -> a", out)

	def test_list(self):
		status, out, err = self.run_cli("-l")
		self.assertEqual(0, status)
		self.assertEqual(list(DEMOS), out.split())

	def test_unknown(self):
		status, out, err = self.run_cli("bogus")
		self.assertEqual(2, status)
		self.assertIn("bogus", err)


if __name__ == '__main__':
	unittest.main()
