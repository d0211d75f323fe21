"""
Everything to do with complaining.

Type errors are terminal: the inferencer raises one of the TypeIssue
exceptions below, and whoever runs the show catches it and files it in
a Report as a Pic. Each kind of issue carries its evidence (usually the
offending types) and a gripe which turns that evidence into a sentence.
"""
import sys, random
from typing import Any, Callable, Optional
from boozetools.support.failureprone import illustration

from .ontology import Phrase
from .calculus import NoetherType, Render

class TooManyIssues(Exception):
	pass

class TypeIssue(Exception):
	gripe: str
	def __init__(self, *evidence, at:Optional[Phrase]=None, gripe:Optional[str]=None):
		super().__init__(*evidence)
		self.evidence, self.at = evidence, at
		if gripe is not None: self.gripe = gripe

	@property
	def kind(self) -> str: return type(self).__name__

	def blame(self, at:Phrase) -> "TypeIssue":
		""" Attach the expression being checked, unless something more specific already got blamed. """
		if self.at is None: self.at = at
		return self

	def message(self, resolve:Callable[[NoetherType], NoetherType]=None) -> str:
		render = Render()
		def show(x):
			if isinstance(x, NoetherType):
				return (resolve(x) if resolve else x).visit(render)
			if isinstance(x, (list, tuple)):
				return "(%s)" % ", ".join(map(show, x))
			return str(x)
		return self.gripe % tuple(show(e) for e in self.evidence)

	def __str__(self): return self.message()

class KindMismatch(TypeIssue):
	gripe = "This tries to be both %s and also %s, which are not even the same sort of thing."

class ShapeMismatch(TypeIssue):
	gripe = "The shapes of %s and %s do not agree."

class DTypeMismatch(TypeIssue):
	gripe = "This tries to be both %s and also %s, but the element types differ."

class ArityMismatch(TypeIssue):
	gripe = "This tries to be both %s and also %s, but they have different numbers of parts."

class OccursCheckFailure(TypeIssue):
	gripe = "This tries to equate %s with %s which contains it, but a type cannot be part of itself."

class TypeArgumentArityError(TypeIssue):
	gripe = "%s type-arguments are needed; %s were given."

class IndexOutOfRange(TypeIssue):
	gripe = "Index %s is out of range for the tuple type %s."

class AdtMismatch(TypeIssue):
	gripe = "This tries to be both %s and also %s, which are different data types."

class RelationViolation(TypeIssue):
	gripe = "The relation %s does not hold among %s."

class AmbiguousType(TypeIssue):
	gripe = "I cannot work out a definite type here. The best I can say is %s."

class UnboundName(TypeIssue):
	gripe = "I don't see what '%s' refers to."


def _outburst():
	particle = ["Oh, ", "Well, ", "Aw, ", "", ""]

	minced_oaths = [
		'Ack', 'ARGH', 'Blargh', 'Confound it', 'Crud', 'Curses', "Crikey",
		'Dag Nabbit', 'Drat', 'Fiddlesticks', 'Good Grief', "Great Scott",
		"Heavens to Betsy", 'Jeepers', "Mercy", 'Nuts', 'Rats', 'Woe is me',
	]

	resignations = [
		'I am undone.',
		'I cannot continue.',
		'These tensors will not line up.',
		'I have no idea what the right type is.',
		'I need to ask for help.',
	]

	return "%s%s! %s"%tuple(map(random.choice, (particle, minced_oaths, resignations)))

class Report:
	""" Collects issues and progress chatter for one run of the tools. """
	_issues : list["Pic"]

	def __init__(self, *, verbose:int=0, max_issues=3):
		self._verbose = verbose or 0   # Because None is incomparable.
		self._issues = []
		self._max_issues = max_issues

	def ok(self): return not self._issues
	def sick(self): return bool(self._issues)

	@property
	def issues(self) -> list["Pic"]: return list(self._issues)

	def issue(self, it:Any):
		self._issues.append(it)
		if len(self._issues) == self._max_issues:
			raise TooManyIssues(self)

	def info(self, *args):
		if self._verbose:
			print(*args, file=sys.stderr)

	def complain_to_console(self):
		""" Emit all the issues to the console. """
		_bemoan(self._issues)

	def assert_no_issues(self, message):
		""" Does what it says on the tin """
		if self._issues:
			self.complain_to_console()
			raise AssertionError(_outburst()+" "+message)

	# Methods the type-checker calls:

	def type_issue(self, issue:TypeIssue, resolve=None):
		intro = "Type-checking found a problem: %s" % issue.kind
		problem = [Annotation(issue.at, issue.message(resolve))] if issue.at is not None else []
		footer = [] if problem else [issue.message(resolve)]
		self.issue(Pic(intro, problem, footer, kind=issue.kind, cause=issue))

class Annotation:
	"""
	There is no source text to point into, so an annotation
	illustrates the short description of the blamed phrase.
	"""
	caption: str
	def __init__(self, node:Phrase, caption:str=""):
		assert isinstance(node, Phrase), node
		self.text = node.describe()
		self.caption = caption
	def illustrate(self):
		return illustration(self.text, 0, len(self.text), prefix='     |', caption=self.caption)

class Pic:
	def __init__(self, intro:str, anns:list[Annotation], footer=(), kind:Optional[str]=None, cause=None):
		self._intro, self._anns, self._footer = intro, anns, footer
		self.kind, self.cause = kind, cause
	def as_text(self):
		lines = [self._intro, ""]
		for ann in self._anns:
			lines.append(ann.illustrate())
		lines.extend(self._footer)
		return '\n'.join(lines)

def _bemoan(issues):
	""" Emit all the issues to the console. """
	if issues:
		print("*"*60, file=sys.stderr)
		print(_outburst(), file=sys.stderr)
	for i in issues:
		print("  -"*20, file=sys.stderr)
		print(i.as_text(), file=sys.stderr)
	sys.stderr.flush()
