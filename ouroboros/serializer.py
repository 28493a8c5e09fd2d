"""
Environment Serializer.

Turns the final compile-time environment into target code that rebuilds it
inside the emitted runtime. Each binding is written as a tagged entry:

    ["literal",  name, kind, <JSON data>]
    ["evaluate", name, kind, <compiled expression>]

Macro expanders must come back as live functions, so their payload forms are
compiled rather than quoted. ``internals.reconstructEnvironment`` in the
runtime switches on the tag.
"""
import json
import logging
from dataclasses import dataclass
from typing import Any, List

from ouroboros.environment import Counters, Environment
from ouroboros.errors import CompileError, EnvironmentFrozenError
from ouroboros.protocol import Compiler

logger = logging.getLogger("ouroboros.serializer")

LITERAL = "literal"
EVALUATE_ON_LOAD = "evaluate"

ENVIRONMENT_SLOT = "internals.environment"
RECONSTRUCT = "internals.reconstructEnvironment"
COUNTER_SLOTS = {
    "variable": "internals.variableCounter",
    "gensym": "internals.gensymCounter",
    "literal": "internals.literalCounter",
}


@dataclass(frozen=True)
class SerializedBinding:
    tag: str
    name: str
    kind: str
    payload: Any


def mark_bindings(environment: Environment) -> List[SerializedBinding]:
    """Tag every binding: macros are evaluated on load, the rest are data."""
    marked = []
    for name, binding in environment.bindings.items():
        tag = EVALUATE_ON_LOAD if binding.kind == "macro" else LITERAL
        marked.append(SerializedBinding(tag, name, binding.kind, binding.payload))
    return marked


def _render_literal(payload: Any) -> str:
    return json.dumps(payload, sort_keys=True)


def render_entry(entry: SerializedBinding, environment: Environment, compiler: Compiler) -> str:
    """
    Render one ``[tag, name, kind, payload]`` entry.

    Raises:
        CompileError: the payload could not be rendered, named after the binding.
    """
    try:
        if entry.tag == EVALUATE_ON_LOAD:
            payload = compiler.compile_expression(entry.payload, environment)
        else:
            payload = _render_literal(entry.payload)
    except CompileError:
        raise
    except Exception as e:
        raise CompileError(
            f"<environment:{entry.name}>",
            f"cannot serialize {entry.kind} binding: {str(e) or type(e).__name__}",
            form=entry.payload,
        ) from e
    return f"[{json.dumps(entry.tag)}, {json.dumps(entry.name)}, {json.dumps(entry.kind)}, {payload}]"


def counter_fragment(counters: Counters, monotonic: bool = False) -> str:
    """
    Assignments publishing ``counters`` to the runtime.

    With ``monotonic`` the runtime keeps whichever value is higher, so bundles
    loaded in any order never move a counter backwards.
    """
    lines = []
    for name, value in counters.as_dict().items():
        slot = COUNTER_SLOTS[name]
        if monotonic:
            lines.append(f"{slot} = Math.max({slot} || 0, {value});")
        else:
            lines.append(f"{slot} = {value};")
    return "\n".join(lines) + "\n"


def serialize(environment: Environment, compiler: Compiler) -> str:
    """
    Emit code that reconstructs ``environment``, then freeze it.

    Counter values are read last, after macro payloads have been compiled,
    so they cover every name already present in the artifact.

    Raises:
        CompileError: a binding payload could not be rendered.
        EnvironmentFrozenError: the environment was already serialized.
    """
    if environment.frozen:
        raise EnvironmentFrozenError("Environment has already been serialized")

    entries = [render_entry(entry, environment, compiler) for entry in mark_bindings(environment)]
    environment.freeze()

    lines = [f"{ENVIRONMENT_SLOT} = {RECONSTRUCT}(["]
    lines.append(",\n".join(f"  {entry}" for entry in entries))
    lines.append("]);")

    logger.info(f"Serialized {len(entries)} bindings, counters {environment.counters.as_dict()}")
    return "\n".join(line for line in lines if line) + "\n" + counter_fragment(environment.counters)
