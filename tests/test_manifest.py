"""
Manifest Resolver Tests

Parsing the nested-list literal, mode filtering and traversal order.
"""
import json
import unittest

import pytest

from ouroboros.errors import ManifestError
from ouroboros.manifest import Dir, Leaf, Mode, load_manifest, parse_manifest, resolve, source_paths

NESTED = [
    ["prelude", "both"],
    ["front", [
        ["lexer", "host"],
        ["deep", [["walker", "target"]]],
        ["shared", "both"],
    ]],
    ["runtime", "target"],
    ["driver", "host"],
]


class TestResolve(unittest.TestCase):

    def setUp(self):
        self.manifest = parse_manifest(NESTED)

    def test_documented_scenario(self):
        manifest = parse_manifest([["a", "target"], ["b", [["c", "host"]]]])
        self.assertEqual(resolve(manifest, "target"), ["a"])
        self.assertEqual(resolve(manifest, "host"), ["b/c"])

    def test_preorder_declaration_order(self):
        self.assertEqual(
            resolve(self.manifest, Mode.TARGET),
            ["prelude", "front/deep/walker", "front/shared", "runtime"],
        )
        self.assertEqual(
            resolve(self.manifest, Mode.HOST),
            ["prelude", "front/lexer", "front/shared", "driver"],
        )

    def test_both_leaves_appear_in_both_modes(self):
        host = resolve(self.manifest, "host")
        target = resolve(self.manifest, "target")
        for stem in ("prelude", "front/shared"):
            self.assertIn(stem, host)
            self.assertIn(stem, target)

    def test_single_mode_leaves_stay_on_their_side(self):
        self.assertNotIn("front/lexer", resolve(self.manifest, "target"))
        self.assertNotIn("driver", resolve(self.manifest, "target"))
        self.assertNotIn("runtime", resolve(self.manifest, "host"))

    def test_deterministic(self):
        first = resolve(self.manifest, "host")
        for _ in range(3):
            self.assertEqual(resolve(self.manifest, "host"), first)

    def test_empty_manifest(self):
        self.assertEqual(resolve(parse_manifest([]), "host"), [])
        self.assertEqual(resolve((), "target"), [])

    def test_both_is_not_a_build_mode(self):
        with self.assertRaises(ManifestError):
            resolve(self.manifest, "both")
        with self.assertRaises(ManifestError):
            resolve(self.manifest, "native")


class TestParseManifest(unittest.TestCase):

    def test_tree_shape(self):
        manifest = parse_manifest([["a", "target"], ["b", [["c", "host"]]]])
        self.assertEqual(manifest, (Leaf("a", Mode.TARGET), Dir("b", (Leaf("c", Mode.HOST),))))

    def test_same_name_in_different_scopes_is_allowed(self):
        manifest = parse_manifest([["util", "host"], ["lib", [["util", "target"]]]])
        self.assertEqual(resolve(manifest, "target"), ["lib/util"])


@pytest.mark.parametrize("raw", [
    "not a list",
    [["only-name"]],
    [["a", "host", "extra"]],
    [["a", "sideways"]],
    [["", "host"]],
    [[3, "host"]],
    [["a/b", "host"]],
    [["a", "host"], ["a", "target"]],
    [["dir", [["x", "host"], ["x", "host"]]]],
    [["a", {"mode": "host"}]],
])
def test_malformed_entries_raise(raw):
    with pytest.raises(ManifestError):
        parse_manifest(raw)


def test_load_manifest_from_json(tmp_path):
    path = tmp_path / "manifest.json"
    path.write_text(json.dumps([["a", "target"], ["b", [["c", "host"]]]]))
    assert resolve(load_manifest(path), "host") == ["b/c"]


def test_load_manifest_rejects_bad_json(tmp_path):
    path = tmp_path / "manifest.json"
    path.write_text("[[\"a\", \"host\"")
    with pytest.raises(ManifestError):
        load_manifest(path)


def test_source_paths_use_mode_suffix(tmp_path):
    manifest = parse_manifest([["a", "both"], ["b", [["c", "host"]]]])
    assert source_paths(manifest, "host", tmp_path, ".py") == [tmp_path / "a.py", tmp_path / "b" / "c.py"]
    assert source_paths(manifest, "target", tmp_path, ".lisp") == [tmp_path / "a.lisp"]


def test_shipped_manifest(kernel_manifest):
    assert resolve(kernel_manifest, "host") == ["reader", "primitives", "compiler"]
    assert resolve(kernel_manifest, "target") == [
        "boot", "primitives", "library/macros", "library/list", "toplevel",
    ]
    assert isinstance(kernel_manifest[0], Leaf)
