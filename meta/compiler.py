# Copyright (c) 2026 The Ouroboros Authors.
#
# This file is part of the Ouroboros self-hosting compiler.
#
# LICENSE: DUAL-LICENSED (AGPLv3 or COMMERCIAL).

# Host unit: loaded after reader.py and primitives.py, and uses their names
# (Symbol, intern, gensym, print_form, the quote symbols, PRIMITIVES).
#
# Compiles Ouroboros Lisp to JavaScript statements. Globals live in the
# ``values`` table, runtime helpers in ``internals``; locals are renamed to
# v<N> from the environment's variable counter.

import json

from ouroboros.environment import Environment

LAMBDA = intern("lambda")
PROGN = intern("progn")
REST = intern("&rest")


class CompileFailure(Exception):
    pass


def make_environment():
    return Environment()


def global_ref(name):
    return f"values[{json.dumps(name)}]"


def is_call(form, head):
    return isinstance(form, list) and len(form) == 2 and form[0] is head


def is_auto_gensym(form):
    return isinstance(form, Symbol) and form.interned and len(form.name) > 1 and form.name.endswith("#")


def parse_lambda_list(params):
    """Return (required symbols, rest symbol or None)."""
    if params is NIL:
        params = []
    if not isinstance(params, list):
        raise CompileFailure(f"bad lambda list {print_form(params)}")
    required, rest = [], None
    i = 0
    while i < len(params):
        param = params[i]
        if param is REST:
            if i != len(params) - 2 or not isinstance(params[i + 1], Symbol):
                raise CompileFailure(f"&rest must be followed by exactly one symbol in {print_form(params)}")
            rest = params[i + 1]
            break
        if not isinstance(param, Symbol) or param in (NIL, T):
            raise CompileFailure(f"bad parameter {print_form(param)}")
        required.append(param)
        i += 1
    return required, rest


class Scope:
    def __init__(self, parent=None):
        self.parent = parent
        self.names = {}

    def lookup(self, symbol):
        scope = self
        while scope is not None:
            if symbol in scope.names:
                return scope.names[symbol]
            scope = scope.parent
        return None

    def bind(self, symbol, ident):
        self.names[symbol] = ident


class Expansion:
    """
    One host-side macro call.

    Macro bodies are backquote templates over the parameters. Symbols ending
    in ``#`` become one fresh gensym per expansion.
    """

    def __init__(self, counters, bindings):
        self.counters = counters
        self.bindings = bindings
        self.gensyms = {}

    def instantiate(self, template):
        if isinstance(template, Symbol):
            if template in self.bindings:
                return self.bindings[template]
            if template is NIL or template is T:
                return template
            raise CompileFailure(f"macro template refers to unbound {template.name}")
        if is_call(template, QUASIQUOTE):
            return self.quasi(template[1])
        if is_call(template, QUOTE):
            return template[1]
        if isinstance(template, (int, float, str)):
            return template
        raise CompileFailure(f"macro body must be a backquote template, got {print_form(template)}")

    def quasi(self, form):
        if is_call(form, UNQUOTE):
            return self.instantiate(form[1])
        if isinstance(form, list):
            out = []
            for item in form:
                if is_call(item, UNQUOTE_SPLICING):
                    spliced = self.instantiate(item[1])
                    if spliced is NIL:
                        continue
                    if not isinstance(spliced, list):
                        raise CompileFailure(f",@ needs a list, got {print_form(spliced)}")
                    out.extend(spliced)
                else:
                    out.append(self.quasi(item))
            return out
        if is_auto_gensym(form):
            if form not in self.gensyms:
                self.gensyms[form] = gensym(self.counters)
            return self.gensyms[form]
        return form


class JsCompiler:
    SPECIAL_FORMS = {
        "quote": "compile_quote",
        "quasiquote": "compile_quasiquote",
        "if": "compile_if",
        "progn": "compile_progn",
        "lambda": "compile_lambda",
        "let": "compile_let",
        "setq": "compile_setq",
        "%js": "compile_js",
        "defvar": "toplevel_only",
        "defun": "toplevel_only",
        "defmacro": "toplevel_only",
    }

    def __init__(self, environment):
        self.env = environment
        self.counters = environment.counters

    # --- top level -------------------------------------------------------

    def toplevel(self, form):
        form = self.macroexpand(form)
        if isinstance(form, list) and form and isinstance(form[0], Symbol):
            kind = form[0].name
            if kind == "progn":
                return "".join(self.toplevel(f) for f in form[1:])
            if kind == "defmacro":
                return self.defmacro(form)
            if kind == "defvar":
                return self.defvar(form)
            if kind == "defun":
                return self.defun(form)
            if kind == "%js":
                return self.raw_js(form) + "\n"
        return self.expr(form, None) + ";\n"

    def defmacro(self, form):
        self._expect(form, 4, "(defmacro name lambda-list template)")
        name = self._name(form[1])
        parse_lambda_list(form[2])
        self.env.bind(name.name, "macro", [LAMBDA, form[2], form[3]])
        return ""

    def defvar(self, form):
        if len(form) not in (2, 3):
            raise CompileFailure(f"expected (defvar name [value]), got {print_form(form)}")
        name = self._name(form[1])
        value = self.expr(form[2], None) if len(form) == 3 else "null"
        access = global_ref(name.name)
        self.env.bind(name.name, "value", {"access": access})
        return f"{access} = {value};\n"

    def defun(self, form):
        if len(form) < 3:
            raise CompileFailure(f"expected (defun name lambda-list body...), got {print_form(form)}")
        name = self._name(form[1])
        required, rest = parse_lambda_list(form[2])
        function = self.compile_function(form[2], form[3:], None)
        access = global_ref(name.name)
        self.env.bind(name.name, "function", {"access": access, "arity": len(required), "rest": rest is not None})
        return f"{access} = {function};\n"

    # --- macros ----------------------------------------------------------

    def _macro_head(self, form, scope):
        if not (isinstance(form, list) and form and isinstance(form[0], Symbol)):
            return False
        if scope is not None and scope.lookup(form[0]) is not None:
            return False
        return self.env.is_macro(form[0].name)

    def macroexpand(self, form, scope=None):
        while self._macro_head(form, scope):
            form = self.expand(form)
        return form

    def expand(self, form):
        name = form[0].name
        _, params, template = self.env.lookup(name).payload
        required, rest = parse_lambda_list(params)
        args = form[1:]
        if len(args) < len(required) or (rest is None and len(args) > len(required)):
            raise CompileFailure(f"macro {name} expects {len(required)} arguments, got {len(args)}")
        bindings = dict(zip(required, args))
        if rest is not None:
            bindings[rest] = list(args[len(required):])
        return Expansion(self.counters, bindings).instantiate(template)

    # --- expressions -----------------------------------------------------

    def expr(self, form, scope):
        if isinstance(form, bool):
            return "true" if form else "false"
        if isinstance(form, (int, float, str)):
            return json.dumps(form)
        if isinstance(form, Symbol):
            return self.variable(form, scope)
        if isinstance(form, list):
            return self.compound(form, scope) if form else "null"
        raise CompileFailure(f"cannot compile {form!r}")

    def variable(self, symbol, scope):
        if symbol is NIL:
            return "null"
        if symbol is T:
            return "true"
        if symbol.name.startswith(":"):
            return f"internals.intern({json.dumps(symbol.name)})"
        ident = scope.lookup(symbol) if scope is not None else None
        return ident or global_ref(symbol.name)

    def compound(self, form, scope):
        head = form[0]
        if isinstance(head, Symbol) and (scope is None or scope.lookup(head) is None):
            special = self.SPECIAL_FORMS.get(head.name)
            if special:
                return getattr(self, special)(form, scope)
            if self.env.is_macro(head.name):
                return self.expr(self.expand(form), scope)
            if head.name in PRIMITIVES and len(form) - 1 == PRIMITIVE_ARITY[head.name]:
                return inline_primitive(head.name, [self.expr(arg, scope) for arg in form[1:]])
        callee = self.expr(head, scope)
        args = ", ".join(self.expr(arg, scope) for arg in form[1:])
        return f"{callee}({args})"

    def body(self, forms, scope):
        if not forms:
            return "null"
        if len(forms) == 1:
            return self.expr(forms[0], scope)
        return "(" + ", ".join(self.expr(f, scope) for f in forms) + ")"

    def local(self, scope, symbol):
        ident = f"v{self.counters.next_variable()}"
        scope.bind(symbol, ident)
        return ident

    def compile_function(self, params, forms, scope):
        required, rest = parse_lambda_list(params)
        inner = Scope(scope)
        idents = [self.local(inner, p) for p in required]
        if rest is not None:
            idents.append("..." + self.local(inner, rest))
        return f"(function ({', '.join(idents)}) {{ return {self.body(forms, inner)}; }})"

    # --- special forms ---------------------------------------------------

    def compile_quote(self, form, scope):
        self._expect(form, 2, "(quote datum)")
        return self.literal(form[1])

    def literal(self, datum):
        if isinstance(datum, (bool, int, float, str)) or datum is NIL or datum is T or datum == []:
            return self.expr(datum, None)
        slot = f"internals.literals.l{self.counters.next_literal()}"
        return f"({slot} || ({slot} = {self.data(datum)}))"

    def data(self, datum):
        if isinstance(datum, list):
            return "[" + ", ".join(self.data(x) for x in datum) + "]" if datum else "null"
        if isinstance(datum, Symbol):
            if datum is NIL:
                return "null"
            maker = "internals.intern" if datum.interned else "internals.makeSymbol"
            return f"{maker}({json.dumps(datum.name)})"
        return self.expr(datum, None)

    def compile_quasiquote(self, form, scope):
        self._expect(form, 2, "(quasiquote template)")
        gensyms = {}
        template = self.quasi(form[1], scope, gensyms)
        if not gensyms:
            return template
        decls = "".join(f"var {ident} = internals.gensym(); " for ident in gensyms.values())
        return f"(function () {{ {decls}return {template}; }})()"

    def quasi(self, form, scope, gensyms):
        if is_call(form, UNQUOTE):
            return self.expr(form[1], scope)
        if isinstance(form, list):
            if not form:
                return "null"
            parts = []
            spliced = False
            for item in form:
                if is_call(item, UNQUOTE_SPLICING):
                    spliced = True
                    parts.append(("splice", self.expr(item[1], scope)))
                else:
                    parts.append(("item", self.quasi(item, scope, gensyms)))
            if not spliced:
                return "[" + ", ".join(js for _, js in parts) + "]"
            pieces = [f"internals.toArray({js})" if kind == "splice" else f"[{js}]" for kind, js in parts]
            return f"[].concat({', '.join(pieces)})"
        if is_auto_gensym(form):
            if form not in gensyms:
                gensyms[form] = f"v{self.counters.next_variable()}"
            return gensyms[form]
        if isinstance(form, Symbol):
            return self.data(form)
        return self.expr(form, None)

    def compile_if(self, form, scope):
        if len(form) not in (3, 4):
            raise CompileFailure(f"expected (if test then [else]), got {print_form(form)}")
        test = self.expr(form[1], scope)
        then = self.expr(form[2], scope)
        other = self.expr(form[3], scope) if len(form) == 4 else "null"
        return f"(internals.truthy({test}) ? {then} : {other})"

    def compile_progn(self, form, scope):
        return self.body(form[1:], scope)

    def compile_lambda(self, form, scope):
        if len(form) < 2:
            raise CompileFailure(f"expected (lambda lambda-list body...), got {print_form(form)}")
        return self.compile_function(form[1], form[2:], scope)

    def compile_let(self, form, scope):
        if len(form) < 2 or not isinstance(form[1], list):
            raise CompileFailure(f"expected (let ((name value)...) body...), got {print_form(form)}")
        names, inits = [], []
        for binding in form[1]:
            if isinstance(binding, Symbol):
                names.append(binding)
                inits.append("null")
            elif isinstance(binding, list) and len(binding) in (1, 2) and isinstance(binding[0], Symbol):
                names.append(binding[0])
                inits.append(self.expr(binding[1], scope) if len(binding) == 2 else "null")
            else:
                raise CompileFailure(f"bad let binding {print_form(binding)}")
        function = self.compile_function(names, form[2:], scope)
        return f"{function}({', '.join(inits)})"

    def compile_setq(self, form, scope):
        self._expect(form, 3, "(setq name value)")
        name = self._name(form[1])
        value = self.expr(form[2], scope)
        target = (scope.lookup(name) if scope is not None else None) or global_ref(name.name)
        return f"({target} = {value})"

    def compile_js(self, form, scope):
        return f"({self.raw_js(form)})"

    def raw_js(self, form):
        if len(form) != 2 or not isinstance(form[1], str):
            raise CompileFailure(f"expected (%js \"code\"), got {print_form(form)}")
        return form[1]

    def toplevel_only(self, form, scope):
        raise CompileFailure(f"{form[0].name} is only allowed at top level")

    # --- helpers ---------------------------------------------------------

    def _expect(self, form, length, shape):
        if len(form) != length:
            raise CompileFailure(f"expected {shape}, got {print_form(form)}")

    def _name(self, form):
        if not isinstance(form, Symbol) or form in (NIL, T):
            raise CompileFailure(f"expected a name, got {print_form(form)}")
        return form


def compile_toplevel(form, environment):
    return JsCompiler(environment).toplevel(form)


def compile_expression(form, environment):
    return JsCompiler(environment).expr(form, None)
