"""
This is a type-checker for the Noether tensor IR.

{0}

For example:

    noether mlp

will type-check the standard prelude along with the "mlp" demonstration
program, and then print the signature of every global function.

    noether -h

will explain all the arguments.
"""
import sys, argparse

parser = argparse.ArgumentParser(
	prog="noether",
	description="Type-checker for the Noether tensor IR.",
)
parser.add_argument("demo", nargs="?", help="Also check one of the demonstration programs. See --list.")
parser.add_argument('-c', "--check", action="store_true", help="Only check; do not print the signatures.")
parser.add_argument('-v', "--verbose", action="count", help="Say what is going on while checking.")
parser.add_argument('-l', "--list", action="store_true", help="List the demonstration programs.")

def run(args):
	from .diagnostics import Report, TooManyIssues
	from .preamble import build_prelude, build_demo, DEMOS
	from .type_inference import infer_types
	if args.list:
		for name in DEMOS: print(name)
		return 0
	report = Report(verbose=args.verbose)
	if args.demo is None:
		module = build_prelude()
	elif args.demo in DEMOS:
		module = build_demo(args.demo)
	else:
		print("There's no demonstration called %r. Try one of: %s" % (args.demo, ", ".join(DEMOS)), file=sys.stderr)
		return 2
	try:
		if not infer_types(module, report=report):
			report.complain_to_console()
			return 1
	except TooManyIssues:
		report.complain_to_console()
		return 1
	if args.check:
		print("Looks plausible to me.", file=sys.stderr)
	else:
		for gv in module:
			print("%s : %s" % (gv.name, module.checked_types[gv]))
	return 0

def main():
	if len(sys.argv) > 1:
		exit(run(parser.parse_args()))
	else:
		print(__doc__.strip().format(parser.format_usage()))
