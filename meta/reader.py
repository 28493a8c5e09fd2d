# Copyright (c) 2026 The Ouroboros Authors.
#
# This file is part of the Ouroboros self-hosting compiler.
#
# LICENSE: DUAL-LICENSED (AGPLv3 or COMMERCIAL).

# Host unit: loaded first into the host image. Defines symbols and the reader.

import logging
import os
import re
import time

from lark import Lark
from lark.exceptions import UnexpectedCharacters

from ouroboros.protocol import EOF

logger = logging.getLogger("ouroboros.reader")

# Diagnostics
DEBUG = os.environ.get("OUROBOROS_READ_DEBUG") == "true"

GRAMMAR_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), "lisp.lark")


class ReadError(Exception):
    pass


class Symbol:
    """Identity-compared symbol. Interned symbols are unique per host image."""

    __slots__ = ("name", "interned")

    def __init__(self, name, interned=True):
        self.name = name
        self.interned = interned

    def __repr__(self):
        return self.name if self.interned else f"#:{self.name}"

    # Forms are deep-copied with environment snapshots; symbols must survive as themselves.
    def __copy__(self):
        return self

    def __deepcopy__(self, memo):
        return self


_SYMBOLS = {}


def intern(name):
    symbol = _SYMBOLS.get(name)
    if symbol is None:
        symbol = _SYMBOLS[name] = Symbol(name)
    return symbol


def gensym(counters, prefix="G"):
    """Fresh uninterned symbol numbered from the environment's gensym counter."""
    return Symbol(f"{prefix}{counters.next_gensym()}", interned=False)


QUOTE = intern("quote")
QUASIQUOTE = intern("quasiquote")
UNQUOTE = intern("unquote")
UNQUOTE_SPLICING = intern("unquote-splicing")
NIL = intern("nil")
T = intern("t")

PREFIXES = {
    "QUOTE": QUOTE,
    "BACKQUOTE": QUASIQUOTE,
    "UNQUOTE": UNQUOTE,
    "UNQUOTE_SPLICING": UNQUOTE_SPLICING,
}

ESCAPES = {"n": "\n", "t": "\t", "r": "\r", '"': '"', "\\": "\\"}

INTEGER_RE = re.compile(r"[+-]?\d+\Z")
FLOAT_RE = re.compile(r"[+-]?(\d+\.\d*|\.\d+|\d+(?=[eE]))([eE][+-]?\d+)?\Z")


def position(text, offset):
    """1-based line and column of ``offset`` in ``text``."""
    line = text.count("\n", 0, offset) + 1
    column = offset - (text.rfind("\n", 0, offset) + 1) + 1
    return line, column


class FormReader:
    _lexers = {}

    def __init__(self, grammar_path=GRAMMAR_PATH):
        self.grammar_path = grammar_path
        if grammar_path not in self._lexers:
            with open(grammar_path, "r", encoding="utf-8") as f:
                grammar = f.read()
            self._lexers[grammar_path] = Lark(grammar, parser="lalr", lexer="basic")
        self.lexer = self._lexers[grammar_path]
        # (text, next cursor, offset of the lexed slice, token iterator)
        self._stream = None

    def _tokens(self, text, cursor):
        # Sequential reads of one text continue the same token stream.
        stream = self._stream
        self._stream = None
        if stream is not None and stream[0] is text and stream[1] == cursor:
            return stream[2], stream[3]
        return cursor, self.lexer.lex(text[cursor:])

    def read(self, text, cursor=0):
        """
        Read one form starting at ``cursor``.

        Returns ``(form, next_cursor)``, or ``EOF`` when only whitespace and
        comments remain. Positions in ``ReadError`` messages are absolute.
        """
        start_time = time.time()
        base, tokens = self._tokens(text, cursor)
        try:
            try:
                first = next(tokens)
            except StopIteration:
                return EOF
            form, end = self._read(first, tokens, text, base)
        except UnexpectedCharacters as e:
            line, column = position(text, base + e.pos_in_stream)
            raise ReadError(f"unexpected character {e.char!r} at line {line}, col {column}") from None

        end += base
        self._stream = (text, end, base, tokens)
        if DEBUG:
            dur = (time.time() - start_time) * 1000
            logger.debug(f"[FormReader] {end - cursor} chars in {dur:.2f}ms: {print_form(form)}")
        return form, end

    def _next(self, tokens, what):
        try:
            return next(tokens)
        except StopIteration:
            raise ReadError(f"end of input inside {what}") from None

    def _read(self, token, tokens, text, base):
        kind = token.type
        if kind == "LPAR":
            items = []
            while True:
                tok = self._next(tokens, "list")
                if tok.type == "RPAR":
                    return items, tok.end_pos
                item, _ = self._read(tok, tokens, text, base)
                items.append(item)
        if kind == "RPAR":
            line, column = position(text, base + token.start_pos)
            raise ReadError(f"unbalanced ')' at line {line}, col {column}")
        if kind in PREFIXES:
            form, end = self._read(self._next(tokens, f"{token.value!r} prefix"), tokens, text, base)
            return [PREFIXES[kind], form], end
        if kind == "STRING":
            return read_string(token.value), token.end_pos
        return read_atom(token.value), token.end_pos


def read_string(raw):
    out = []
    chars = iter(raw[1:-1])
    for ch in chars:
        if ch == "\\":
            ch = next(chars)
            ch = ESCAPES.get(ch, ch)
        out.append(ch)
    return "".join(out)


def read_atom(text):
    if INTEGER_RE.match(text):
        return int(text)
    if FLOAT_RE.match(text):
        return float(text)
    return intern(text)


def print_form(form):
    if isinstance(form, list):
        if len(form) == 2 and form[0] is QUOTE:
            return "'" + print_form(form[1])
        return "(" + " ".join(print_form(x) for x in form) + ")"
    if isinstance(form, str):
        escaped = form.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")
        return f'"{escaped}"'
    return repr(form)


_READER = None


def read_form(text, cursor=0):
    global _READER
    if _READER is None:
        _READER = FormReader()
    return _READER.read(text, cursor)
