"""
Tests for image and text artifacts.
"""

import pytest
from PIL import Image

from prompt_canvas.core.data_types import TextInput, WorkflowImage, detect_media_type
from prompt_canvas.core.graph import Edge, Node, NodeKind
from prompt_canvas.core.inputs import all_inputs_for, input_images_for, text_inputs_for


@pytest.mark.parametrize("url,media_type", [
    ("data:image/webp;base64,AAAA", "image/webp"),
    ("https://example.com/a.jpg", "image/jpeg"),
    ("https://example.com/a.jpeg", "image/jpeg"),
    ("https://example.com/a.webp", "image/webp"),
    ("https://example.com/a.png", "image/png"),
    ("/images/hero", "image/png"),
])
def test_detect_media_type(url, media_type):
    assert detect_media_type(url) == media_type


class TestWorkflowImage:

    def test_pil_data_url(self):
        original = Image.new("RGBA", (3, 2), (0, 255, 0, 255))

        image = WorkflowImage.from_pil(original)
        decoded = image.to_pil()

        assert image.is_data_url
        assert image.media_type == "image/png"
        assert decoded.size == (3, 2)
        assert decoded.getpixel((0, 0)) == (0, 255, 0, 255)

    def test_remote_url_cannot_be_decoded(self):
        with pytest.raises(ValueError):
            WorkflowImage.from_url("https://example.com/a.png").to_pil()

    def test_to_dict(self):
        assert WorkflowImage("data:image/png;base64,x").to_dict() == {
            "url": "data:image/png;base64,x",
            "mediaType": "image/png",
        }
        assert WorkflowImage("u", sequence_number=2).to_dict()["sequenceNumber"] == 2

    def test_text_input_to_dict(self):
        assert TextInput("hi").to_dict() == {"content": "hi"}


class TestInputs:

    def _graph(self):
        nodes = [
            Node(id="img", kind=NodeKind.PASS_THROUGH_IMAGE, data={"image_url": "data:image/png;base64,a"}),
            Node(id="empty", kind=NodeKind.PASS_THROUGH_IMAGE),
            Node(id="code", kind=NodeKind.OTHER, data={"content": "h1 {}", "language": "css"}),
            Node(id="up", kind=NodeKind.GENERATOR, data={"title": "Copy", "last_text_output": "Buy now"}),
            Node(id="idle", kind=NodeKind.GENERATOR),
            Node(id="p", kind=NodeKind.GENERATOR),
        ]
        edges = [Edge(source, "p") for source in ["img", "empty", "code", "up", "idle", "ghost"]]
        return nodes, edges

    def test_images_from_connected_image_nodes(self):
        nodes, edges = self._graph()
        assert [i.url for i in input_images_for("p", nodes, edges)] == ["data:image/png;base64,a"]

    def test_images_ignore_generators_and_unconnected(self):
        nodes, edges = self._graph()
        assert input_images_for("img", nodes, edges) == []

    def test_text_inputs(self):
        nodes, edges = self._graph()
        assert text_inputs_for("p", nodes, edges) == [
            TextInput("h1 {}", language="css", label="Code Input"),
            TextInput("Buy now", label="Copy"),
        ]

    def test_all_inputs(self):
        nodes, edges = self._graph()
        inputs = all_inputs_for("p", iter(nodes), iter(edges))
        assert len(inputs.images) == 1
        assert len(inputs.text_inputs) == 2
