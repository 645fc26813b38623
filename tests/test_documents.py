import json
import pathlib

import pytest

from babeljson.documents import (
    JsonDocumentHandler,
    apply_leaves,
    clone_tree,
    collect_leaves,
    detect_handler,
    parse_document,
    serialize_document,
    to_plain,
)
from babeljson.errors import CountMismatchError, DocumentParseError, UnsupportedFileTypeError
from babeljson.paths import format_path
from babeljson.structures import Node


def test_collect_leaves_in_document_order():
    tree = parse_document(
        '{"b": "first", "a": {"z": "second", "y": [ "third", 7, {"x": "fourth"} ]}, "c": null}'
    )

    leaves = collect_leaves(tree)

    assert [leaf.text for leaf in leaves] == ["first", "second", "third", "fourth"]
    assert [format_path(leaf.path) for leaf in leaves] == ["b", "a.z", "a.y[0]", "a.y[2].x"]


def test_collect_leaves_skips_scalars_and_handles_empty_documents():
    assert collect_leaves(parse_document('{"n": 1, "b": true, "z": null, "f": 1.5}')) == []
    assert collect_leaves(parse_document("[]")) == []


def test_root_string_is_a_single_leaf():
    leaves = collect_leaves(parse_document('"hello"'))

    assert len(leaves) == 1
    assert leaves[0].path == ()


def test_clone_is_independent():
    tree = parse_document('{"a": ["x"]}')
    copy = clone_tree(tree)

    copy.value["a"].value[0].value = "changed"

    assert to_plain(tree) == {"a": ["x"]}


def test_serialize_keeps_key_order_and_unicode():
    tree = parse_document('{"zeta": "ñandú", "alpha": [1, 2.5, false, null]}')

    text = serialize_document(tree)

    assert list(json.loads(text)) == ["zeta", "alpha"]
    assert "ñandú" in text
    assert text.startswith('{\n  "zeta"')


@pytest.mark.parametrize("text", ['{"a": ', "{'a': 1}", '{"a": NaN}', ""])
def test_parse_errors(text):
    with pytest.raises(DocumentParseError):
        parse_document(text)


def test_apply_leaves_rejects_count_mismatch():
    tree = parse_document('{"a": "x", "b": "y"}')
    leaves = collect_leaves(tree)

    with pytest.raises(CountMismatchError):
        apply_leaves(tree, leaves, ["only one"])


def test_apply_leaves_writes_into_a_clone():
    tree = parse_document('{"a": "x", "n": 3, "b": ["y"]}')
    leaves = collect_leaves(tree)

    output = apply_leaves(tree, leaves, ["X", "Y"])

    assert to_plain(output) == {"a": "X", "n": 3, "b": ["Y"]}
    assert to_plain(tree) == {"a": "x", "n": 3, "b": ["y"]}


def test_detect_handler_rejects_other_formats():
    with pytest.raises(UnsupportedFileTypeError):
        detect_handler(pathlib.Path("strings.yaml"))


def test_json_handler_reads_bom_and_saves(tmp_path):
    source = tmp_path / "en.json"
    source.write_bytes(b'\xef\xbb\xbf{"greeting": "Hi"}')

    document_type, handler = detect_handler(source)
    leaves = handler.extract_leaves()
    handler.save(handler.tree, tmp_path / "out.json")

    assert document_type == "json"
    assert [leaf.text for leaf in leaves] == ["Hi"]
    assert json.loads((tmp_path / "out.json").read_text(encoding="utf-8")) == {"greeting": "Hi"}


def test_numbers_keep_their_source_spelling():
    source = '{"a": 1e5, "b": 1.10, "c": 1e400, "d": -0, "e": 12345678901234567890123, "f": 2E-3}'

    text = serialize_document(parse_document(source))

    assert text == (
        '{\n'
        '  "a": 1e5,\n'
        '  "b": 1.10,\n'
        '  "c": 1e400,\n'
        '  "d": -0,\n'
        '  "e": 12345678901234567890123,\n'
        '  "f": 2E-3\n'
        '}'
    )
    assert "Infinity" not in text


def test_number_literals_convert_for_plain_access():
    assert to_plain(parse_document('[1e5, 1.10, 7]')) == [100000.0, 1.1, 7]


def test_serialized_layout_matches_indented_json():
    source = '{"a": {}, "b": [], "c": [1, 2.5, true, null, "q\\"\\n"], "d": {"e": "ñ", "f": [[]]}}'

    text = serialize_document(parse_document(source))

    assert text == json.dumps(json.loads(source), ensure_ascii=False, indent=2)


def test_deeply_nested_input_is_a_parse_error():
    with pytest.raises(DocumentParseError):
        parse_document("[" * 5000 + '"x"' + "]" * 5000)
    with pytest.raises(DocumentParseError):
        parse_document("[" * 300 + "]" * 300)


def test_moderate_nesting_round_trips():
    source = "[" * 200 + '"x"' + "]" * 200

    tree = parse_document(source)

    assert json.loads(serialize_document(clone_tree(tree))) == json.loads(source)
    assert len(collect_leaves(tree)) == 1


def test_save_creates_missing_directories(tmp_path):
    destination = tmp_path / "nested" / "dir" / "out.json"
    source = tmp_path / "en.json"
    source.write_text('{"a": 1.50}', encoding="utf-8")

    handler = JsonDocumentHandler(source)
    handler.save(handler.tree, destination)

    assert destination.read_text(encoding="utf-8") == '{\n  "a": 1.50\n}'


def test_failed_save_keeps_previous_file_and_leaves_no_temporaries(tmp_path):
    source = tmp_path / "en.json"
    source.write_text('{"a": "b"}', encoding="utf-8")
    destination = tmp_path / "out.json"
    destination.write_text("{}", encoding="utf-8")
    handler = JsonDocumentHandler(source)

    with pytest.raises(UnicodeEncodeError):
        handler.save(Node.string("\ud800"), destination)

    assert destination.read_text(encoding="utf-8") == "{}"
    assert sorted(path.name for path in tmp_path.iterdir()) == ["en.json", "out.json"]
