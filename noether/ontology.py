"""
These most-fundamental classes are separate from the rest to avoid
various circular-import scenarios. Both the expression syntax and the
type calculus need a notion of "a named thing with identity", and the
diagnostics need a notion of "a thing that can be blamed".

Identity is the whole point of a Symbol. Two symbols which happen to
share a display name are still two symbols. Each one gets a serial
number at birth, and equality is never by name.
"""

class Phrase:
	"""
	Anything a diagnostic can point at.
	Without concrete syntax there are no source spans,
	so a phrase just has to be able to describe itself briefly.
	"""
	def describe(self) -> str:
		text = str(self)
		return text if len(text) <= 72 else text[:69]+"..."

class Symbol(Phrase):
	"""
	Any named-and-defined thing: local variables, global functions,
	ADT handles, constructors, type parameters.
	"""
	name: str
	serial: int
	_counter = 0  # Each is distinct; there can be no capture.

	def __init__(self, name:str):
		assert isinstance(name, str), type(name)
		Symbol._counter += 1
		self.name, self.serial = name, Symbol._counter

	def __repr__(self): return "{%s#%d:%s}" % (self.name, self.serial, type(self).__name__)
	def __str__(self): return self.name

	# Equality is identity: no __eq__ or __hash__ here.

class ValueExpression(Phrase):
	"""
	Base of the expression syntax. The inferencer fills in `checked_type`
	on every node once a run succeeds.
	"""
	checked_type = None
