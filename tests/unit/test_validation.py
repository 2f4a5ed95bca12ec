"""
Tests for workflow validation.
"""

import pytest

from prompt_canvas.core.graph import Edge, Node, NodeKind
from prompt_canvas.core.validation import (
    detect_cycles,
    detect_language_from_prompt,
    is_valid_image_url,
    validate_node_for_execution,
    validate_workflow,
)

PNG_DATA_URL = "data:image/png;base64," + "A" * 64


def prompt_node(node_id, prompt="a cat", model="flux", title=None):
    return Node(
        id=node_id,
        kind=NodeKind.GENERATOR,
        data={"prompt": prompt, "model": model, "title": title or node_id.upper()},
    )


def image_node(node_id, url=PNG_DATA_URL):
    return Node(id=node_id, kind=NodeKind.PASS_THROUGH_IMAGE, data={"image_url": url, "label": node_id})


def code_node(node_id, content="body {}", language="css"):
    return Node(
        id=node_id,
        kind=NodeKind.OTHER,
        type_name="codeNode",
        data={"content": content, "language": language, "label": node_id},
    )


class TestImageUrls:

    @pytest.mark.parametrize("url", [
        PNG_DATA_URL,
        "/placeholders/cat.png",
        "/images/hero",
        "https://x.supabase.co/storage/v1/object/public/b/file",
        "https://example.com/a/b.PNG",
        "http://example.com/img.webp",
    ])
    def test_valid(self, url):
        assert is_valid_image_url(url)

    @pytest.mark.parametrize("url", [
        None,
        "",
        "data:image/png;base64,AAAA",
        "ftp://example.com/a.png",
        "https://example.com/page.html",
        "not a url",
    ])
    def test_invalid(self, url):
        assert not is_valid_image_url(url)


class TestDetectCycles:

    def test_acyclic(self):
        nodes = [prompt_node("a"), image_node("i"), prompt_node("b")]
        assert detect_cycles(nodes, [Edge("a", "i"), Edge("i", "b")]) == []

    def test_cycle_chain_is_closed(self):
        nodes = [prompt_node("a"), image_node("i"), prompt_node("b")]
        cycles = detect_cycles(nodes, [Edge("a", "i"), Edge("i", "b"), Edge("b", "a")])
        assert cycles == [["a", "i", "b", "a"]]


class TestValidateWorkflow:

    def test_valid_workflow(self):
        nodes = [image_node("in"), prompt_node("p"), image_node("out", url="")]
        result = validate_workflow(nodes, [Edge("in", "p"), Edge("p", "out")])
        assert result.valid
        assert result.errors == []

    def test_cycle_is_summarised_and_stops_validation(self):
        nodes = [prompt_node("a", prompt=""), prompt_node("b")]
        result = validate_workflow(nodes, [Edge("a", "b"), Edge("b", "a")])

        assert not result.valid
        assert len(result.errors) == 1
        assert result.errors[0].message == "1 circular dependency detected"
        assert result.errors[0].details == "Cycle: A → B → A"

    def test_missing_prompt_and_model(self):
        nodes = [prompt_node("p", prompt="  ", model=""), image_node("out", url="")]
        result = validate_workflow(nodes, [Edge("p", "out")])

        messages = [e.message for e in result.blocking]
        assert messages == ['Prompt node "P" has no prompt', 'Prompt node "P" has no model selected']

    def test_input_image_must_be_set(self):
        nodes = [image_node("in", url=""), prompt_node("p"), image_node("out", url="")]
        result = validate_workflow(nodes, [Edge("in", "p"), Edge("p", "out")])
        assert [e.message for e in result.blocking] == ['Image node "in" has no image']

    def test_input_image_must_be_valid(self):
        nodes = [image_node("in", url="https://example.com/x.html"), prompt_node("p"), image_node("out", url="")]
        result = validate_workflow(nodes, [Edge("in", "p"), Edge("p", "out")])
        assert [e.message for e in result.blocking] == ['Image node "in" has an invalid image']

    def test_output_image_without_url_is_fine(self):
        nodes = [prompt_node("p"), image_node("out", url="")]
        assert validate_workflow(nodes, [Edge("p", "out")]).valid

    def test_no_output_is_a_warning(self):
        result = validate_workflow([prompt_node("p")], [])
        assert result.valid
        assert [w.message for w in result.warnings] == ['Prompt node "P" has no output']

    def test_no_prompt_nodes(self):
        result = validate_workflow([image_node("i")], [])
        assert not result.valid
        assert result.blocking[0].message == "No prompt nodes in workflow"


class TestValidateNodeForExecution:

    def test_missing_node(self):
        result = validate_node_for_execution("ghost", [], [])
        assert not result.valid
        assert result.errors[0].message == "Node not found"

    def test_empty_code_input(self):
        nodes = [code_node("c", content=""), prompt_node("p"), image_node("out", url="")]
        result = validate_node_for_execution("p", nodes, [Edge("c", "p"), Edge("p", "out")])
        assert [e.message for e in result.blocking] == ['Code node "c" is empty']

    def test_language_mismatch_warning(self):
        nodes = [prompt_node("p", prompt="Write some HTML"), code_node("c", language="css")]
        result = validate_node_for_execution("p", nodes, [Edge("p", "c")])
        assert result.valid
        assert [w.message for w in result.warnings] == ['Language mismatch for "c"']

    def test_non_generator_is_trivially_valid(self):
        assert validate_node_for_execution("i", [image_node("i")], []).valid


@pytest.mark.parametrize("prompt,expected", [
    ("A React component", "tsx"),
    ("some styling please", "css"),
    ("emit a config", "json"),
    ("an HTML page", "html"),
    ("a cat", None),
])
def test_detect_language_from_prompt(prompt, expected):
    assert detect_language_from_prompt(prompt) == expected
