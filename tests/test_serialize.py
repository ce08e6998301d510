"""
Tests for the document serializer.
"""

from cellpad.notebook import Cell, CellKind, ErrorOutput, ImageOutput, LogOutput, TextMode
from cellpad.parse import ProtoCell, parse_text
from cellpad.serialize import escape_output_text, image_tag, serialize, serialize_proto_cells, write_file


def texts(mapping):
    return lambda cell_id: mapping[cell_id]


class TestSerialize:
    """Test cases for serialize()."""

    def test_code_cell_without_outputs(self):
        cell = Cell(id="a", kind=CellKind.CODE)

        assert serialize([cell], texts({"a": "x = 1"})) == "// [CODE STARTS]\nx = 1\n// [CODE ENDS]"

    def test_code_cell_with_output(self):
        cell = Cell(id="a", kind=CellKind.CODE, outputs=[LogOutput(text="2")])

        result = serialize([cell], texts({"a": "console.log(1+1)"}))

        assert result == (
            "// [CODE STARTS]\nconsole.log(1+1)\n// [CODE ENDS]\n\n"
            "/* Output Sample\n\n2\n\n*/"
        )

    def test_several_outputs_share_one_block(self):
        cell = Cell(
            id="a",
            kind=CellKind.CODE,
            outputs=[LogOutput(text="one"), ErrorOutput(text="Uncaught: ValueError: two")],
        )

        result = serialize([cell], texts({"a": "x"}))

        assert result.count("/* Output Sample") == 1
        assert "one\n\nUncaught: ValueError: two\n\n*/" in result

    def test_text_cells_write_their_mode(self):
        editing = Cell(id="a", kind=CellKind.TEXT)
        rendered = Cell(id="b", kind=CellKind.TEXT, mode=TextMode.RENDERED)

        result = serialize([editing, rendered], texts({"a": "draft", "b": "# Done"}))

        assert result == "/* Markdown\ndraft\n*/\n\n/* Markdown (render)\n# Done\n*/"

    def test_cells_written_in_given_order(self):
        cells = [Cell(id="a"), Cell(id="b", kind=CellKind.TEXT), Cell(id="c")]

        result = serialize(cells, texts({"a": "first = 1", "b": "middle", "c": "last = 3"}))

        assert result.index("first") < result.index("middle") < result.index("last")

    def test_empty_document(self):
        assert serialize([], texts({})) == ""


class TestOutputEncoding:
    def test_escape_output_text(self):
        assert escape_output_text("<a & \"b\" 'c'>") == "&lt;a &amp; &quot;b&quot; &#x27;c&#x27;&gt;"

    def test_image_from_base64(self):
        tag = image_tag(ImageOutput(data="iVBORw=="))

        assert tag == '<img src="data:image/png;base64,iVBORw==" style="height:auto; width:100%;" />'

    def test_image_data_uri_kept(self):
        tag = image_tag(ImageOutput(data="data:image/gif;base64,R0lG"))

        assert 'src="data:image/gif;base64,R0lG"' in tag

    def test_image_src_unsafe_characters_removed(self):
        tag = image_tag(ImageOutput(data="data:x\"onerror='a'<>"))

        assert 'src="data:xonerror=a"' in tag

    def test_image_url_sources_kept(self):
        """The tag uses the same src as ImageOutput.src."""
        for data in ("https://example.com/a.png", "./plots/a.png"):
            output = ImageOutput(data=data)

            assert f'src="{output.src}"' in image_tag(output)
            assert output.src == data

    def test_image_output_in_document(self):
        cell = Cell(id="a", outputs=[ImageOutput(data="AAAA", mime="image/jpeg")])

        result = serialize([cell], texts({"a": "console.image(b)"}))

        assert '<img src="data:image/jpeg;base64,AAAA"' in result


class TestRoundTrip:
    """parse(serialize(cells)) gives back the same cells."""

    def test_proto_cells_round_trip(self):
        protos = [
            ProtoCell(kind=CellKind.TEXT, text="# Title\n\nSome *prose*.", mode=TextMode.RENDERED),
            ProtoCell(kind=CellKind.CODE, text="x = 1\nconsole.log(x)", outputs=[LogOutput(text="1")]),
            ProtoCell(kind=CellKind.TEXT, text="draft", mode=TextMode.EDITING),
            ProtoCell(kind=CellKind.CODE, text="console.log('<b> & \"q\"')", outputs=[LogOutput(text="<b> & \"q\"")]),
            ProtoCell(kind=CellKind.CODE, text="if x:\n    y = 2"),
        ]

        assert parse_text(serialize_proto_cells(protos)) == protos

    def test_sample_document_is_normalized(self, sample_document):
        """The sample is already in normal form."""
        assert serialize_proto_cells(parse_text(sample_document)) == sample_document

    def test_normalizing_is_idempotent(self):
        messy = "junk\n// [CODE STARTS]\n\nx = 1\n\n\n// [CODE ENDS]\n/* Output\n  2  \n*/\n/* Markdown\nhi */"

        once = serialize_proto_cells(parse_text(messy))

        assert serialize_proto_cells(parse_text(once)) == once
        assert once == (
            "// [CODE STARTS]\nx = 1\n// [CODE ENDS]\n\n/* Output Sample\n\n2\n\n*/\n\n"
            "/* Markdown\nhi\n*/"
        )


class TestWriteFile:
    def test_writes_trailing_newline(self, tmp_path):
        path = tmp_path / "sub" / "nb.js"

        write_file(path, "// [CODE STARTS]\nx\n// [CODE ENDS]")

        assert path.read_text(encoding="utf-8") == "// [CODE STARTS]\nx\n// [CODE ENDS]\n"
