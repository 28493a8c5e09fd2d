"""
Runtime Round-Trip Tests

Loads the primary artifact under node and checks that the reconstructed
environment expands macros exactly as the host compiler does.
"""
import json
import shutil
import subprocess

import pytest

from ouroboros.config import Settings
from ouroboros.pipeline import compile_application

NODE = shutil.which("node")

pytestmark = pytest.mark.skipif(NODE is None, reason="node is not installed")

MACRO_CALLS = [
    "(when t 1 2)",
    "(when (car xs))",
    '(unless nil "x" 3)',
    "(or2 nil (car xs))",
    "(or2 1 2)",
    "(and2 a b)",
    "(incf *count*)",
    "(defconstant +limit+ 42)",
]

EXPAND_SCRIPT = """
var O = require(process.argv[1]);
var I = O.internals;
var decode = function (x) {
  if (Array.isArray(x)) { return x.map(decode); }
  if (x !== null && typeof x === 'object') { return I.intern(x.symbol); }
  return x;
};
var show = function (x) {
  if (x === null || x === undefined) { return 'nil'; }
  if (Array.isArray(x)) { return '(' + x.map(show).join(' ') + ')'; }
  if (typeof x === 'string') { return JSON.stringify(x); }
  if (typeof x === 'object') { return x.name; }
  return String(x);
};
var forms = JSON.parse(process.argv[2]);
console.log(JSON.stringify(forms.map(function (f) {
  return show(I.environment.macroexpand(decode(f)));
})));
"""


def _encode(form, image):
    if isinstance(form, list):
        return [_encode(x, image) for x in form]
    if isinstance(form, image.Symbol):
        return None if form is image.NIL else {"symbol": form.name}
    return form


def _show(form, image):
    if isinstance(form, list):
        return "(" + " ".join(_show(x, image) for x in form) + ")" if form else "nil"
    if isinstance(form, image.Symbol):
        return form.name
    return json.dumps(form)


@pytest.fixture(scope="module")
def built(tmp_path_factory):
    out = tmp_path_factory.mktemp("runtime")
    return compile_application(Settings(OUTPUT_DIR=out), auxiliary=False)


def test_reconstructed_macros_expand_like_the_host(built):
    image = built.compiler.image
    forms = [image.read_form(text)[0] for text in MACRO_CALLS]

    # Host and runtime draw gensyms from the same serialized counter.
    expander = image.JsCompiler(built.environment.snapshot())
    expected = [_show(expander.macroexpand(form), image) for form in forms]

    encoded = json.dumps([_encode(form, image) for form in forms])
    result = subprocess.run(
        [NODE, "-e", EXPAND_SCRIPT, str(built.primary), encoded],
        capture_output=True,
        text=True,
        timeout=60,
    )
    assert result.returncode == 0, result.stderr
    assert json.loads(result.stdout) == expected


def test_runtime_counters_and_bindings(built):
    script = (
        "var I = require(process.argv[1]).internals;"
        "console.log(JSON.stringify([I.variableCounter, I.gensymCounter, I.literalCounter,"
        " I.environment.order.length, I.version]));"
    )
    result = subprocess.run(
        [NODE, "-e", script, str(built.primary)],
        capture_output=True,
        text=True,
        timeout=60,
    )
    assert result.returncode == 0, result.stderr

    counters = built.environment.counters
    assert json.loads(result.stdout) == [
        counters.variable, counters.gensym, counters.literal, len(built.environment), built.version,
    ]
