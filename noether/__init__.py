"""
Noether: a statically typed tensor IR with Hindley-Milner inference,
extensible type relations, and algebraic data types.
"""
