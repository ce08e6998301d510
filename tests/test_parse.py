"""
Tests for the document parser.
"""

from cellpad.notebook import CellKind, LogOutput, TextMode
from cellpad.parse import parse_file, parse_text


class TestCodeBlocks:
    """Code block scanning."""

    def test_single_code_block(self):
        """A code block becomes one code cell with its text."""
        cells = parse_text("// [CODE STARTS]\nconsole.log(1+1)\n// [CODE ENDS]")

        assert len(cells) == 1
        assert cells[0].kind == CellKind.CODE
        assert cells[0].text == "console.log(1+1)"
        assert cells[0].outputs == []
        assert cells[0].mode is None

    def test_code_text_is_stripped_at_block_level(self):
        """Leading and trailing blank lines are dropped, inner indentation kept."""
        cells = parse_text("// [CODE STARTS]\n\nif x:\n    y = 1\n\n// [CODE ENDS]")

        assert cells[0].text == "if x:\n    y = 1"

    def test_markers_match_after_stripping(self):
        cells = parse_text("   // [CODE STARTS]   \nx = 1\n\t// [CODE ENDS]")

        assert [c.text for c in cells] == ["x = 1"]

    def test_close_token_inside_code_is_content(self):
        """The close token only ends text and output blocks."""
        cells = parse_text("// [CODE STARTS]\nx = 1\n*/\ny = 2\n// [CODE ENDS]")

        assert len(cells) == 1
        assert cells[0].text == "x = 1\n*/\ny = 2"

    def test_empty_code_block_produces_nothing(self):
        assert parse_text("// [CODE STARTS]\n   \n// [CODE ENDS]") == []

    def test_unterminated_code_block_is_flushed_at_end(self):
        cells = parse_text("// [CODE STARTS]\nx = 1")

        assert [c.text for c in cells] == ["x = 1"]

    def test_stray_code_end_is_ignored(self):
        cells = parse_text("// [CODE ENDS]\n// [CODE STARTS]\nx = 1\n// [CODE ENDS]")

        assert [c.text for c in cells] == ["x = 1"]


class TestTextBlocks:
    """Markdown block scanning."""

    def test_text_block_defaults_to_editing(self):
        cells = parse_text("/* Markdown\n# Hello\n*/")

        assert cells[0].kind == CellKind.TEXT
        assert cells[0].text == "# Hello"
        assert cells[0].mode == TextMode.EDITING

    def test_render_qualifier_sets_rendered(self):
        cells = parse_text("/* Markdown (render)\n# Hello\n*/")

        assert cells[0].mode == TextMode.RENDERED

    def test_content_before_close_token_is_kept(self):
        cells = parse_text("/* Markdown\nfirst line\nlast line */")

        assert cells[0].text == "first line\nlast line"

    def test_multiline_text_keeps_inner_blank_lines(self):
        cells = parse_text("/* Markdown\n\npara one\n\npara two\n\n*/")

        assert cells[0].text == "para one\n\npara two"


class TestOutputBlocks:
    """Output blocks attach to code cells."""

    def test_output_attaches_to_previous_code_cell(self):
        cells = parse_text(
            "// [CODE STARTS]\nconsole.log(1+1)\n// [CODE ENDS]\n\n/* Output Sample\n\n2\n\n*/"
        )

        assert len(cells) == 1
        assert cells[0].outputs == [LogOutput(text="2")]

    def test_output_skips_back_over_text_cells(self):
        cells = parse_text(
            "// [CODE STARTS]\nx = 1\n// [CODE ENDS]\n"
            "/* Markdown\nnote\n*/\n"
            "/* Output\nresult\n*/"
        )

        assert [c.kind for c in cells] == [CellKind.CODE, CellKind.TEXT]
        assert cells[0].outputs == [LogOutput(text="result")]
        assert cells[1].outputs == []

    def test_output_without_code_cell_is_discarded(self):
        cells = parse_text("/* Output Sample\norphan\n*/\n/* Markdown\nnote\n*/")

        assert len(cells) == 1
        assert cells[0].kind == CellKind.TEXT

    def test_output_entities_are_decoded(self):
        cells = parse_text(
            "// [CODE STARTS]\nx = 1\n// [CODE ENDS]\n/* Output Sample\n&lt;b&gt; &amp; &#x27;q&#x27;\n*/"
        )

        assert cells[0].outputs[0].text == "<b> & 'q'"

    def test_each_output_block_appends(self):
        cells = parse_text(
            "// [CODE STARTS]\nx = 1\n// [CODE ENDS]\n"
            "/* Output\none\n*/\n/* Output\ntwo\n*/"
        )

        assert [o.text for o in cells[0].outputs] == ["one", "two"]

    def test_empty_output_block_adds_nothing(self):
        cells = parse_text("// [CODE STARTS]\nx = 1\n// [CODE ENDS]\n/* Output Sample\n\n*/")

        assert cells[0].outputs == []


class TestMalformedInput:
    """Parsing never fails."""

    def test_empty_input(self):
        assert parse_text("") == []

    def test_unrecognized_text(self):
        assert parse_text("just some prose\nwith no markers") == []

    def test_lines_outside_blocks_are_dropped(self):
        cells = parse_text("junk\n// [CODE STARTS]\nx = 1\n// [CODE ENDS]\nmore junk")

        assert [c.text for c in cells] == ["x = 1"]

    def test_opening_a_block_closes_the_previous_one(self):
        """Overlapping markers flush the pending block early."""
        cells = parse_text("// [CODE STARTS]\na = 1\n/* Markdown\nhi\n*/")

        assert [(c.kind, c.text) for c in cells] == [(CellKind.CODE, "a = 1"), (CellKind.TEXT, "hi")]

    def test_unterminated_text_block_is_flushed_at_end(self):
        cells = parse_text("/* Markdown\ndangling")

        assert cells[0].text == "dangling"

    def test_crlf_line_endings(self):
        cells = parse_text("// [CODE STARTS]\r\nx = 1\r\n// [CODE ENDS]\r\n")

        assert cells[0].text == "x = 1"


class TestDocumentOrder:
    def test_sample_document(self, sample_document):
        cells = parse_text(sample_document)

        assert [c.kind for c in cells] == [CellKind.TEXT, CellKind.CODE, CellKind.TEXT, CellKind.CODE]
        assert cells[0].mode == TextMode.RENDERED
        assert cells[1].outputs == [LogOutput(text="2")]
        assert cells[2].mode == TextMode.EDITING
        assert cells[3].outputs == []

    def test_parse_file(self, tmp_path, sample_document):
        path = tmp_path / "nb.js"
        path.write_text(sample_document, encoding="utf-8")

        assert parse_file(path) == parse_text(sample_document)
