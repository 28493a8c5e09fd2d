# Copyright (c) 2026 The Ouroboros Authors.
#
# This file is part of the Ouroboros self-hosting compiler.
#
# LICENSE: DUAL-LICENSED (AGPLv3 or COMMERCIAL).

# Host unit: inline templates for the primitive operators. primitives.lisp
# is the target half of this unit and gives each one a function value.

import string

PRIMITIVES = {
    "+": "({0} + {1})",
    "-": "({0} - {1})",
    "*": "({0} * {1})",
    "/": "({0} / {1})",
    "mod": "({0} % {1})",
    "=": "({0} === {1})",
    "eq": "({0} === {1})",
    "<": "({0} < {1})",
    ">": "({0} > {1})",
    "<=": "({0} <= {1})",
    ">=": "({0} >= {1})",
    "not": "(!internals.truthy({0}))",
    "cons": "internals.cons({0}, {1})",
    "car": "internals.car({0})",
    "cdr": "internals.cdr({0})",
    "print": "internals.print({0})",
}


def _arity(template):
    return len({field for _, field, _, _ in string.Formatter().parse(template) if field is not None})


PRIMITIVE_ARITY = {name: _arity(template) for name, template in PRIMITIVES.items()}


def inline_primitive(name, args):
    return PRIMITIVES[name].format(*args)
