"""Tests for sources block parsing and the message view."""

import pytest

from study_chat.models import Citation
from study_chat.parsing import (
    extract_domain,
    parse_source_line,
    parse_sources,
    render_content,
)


ANSWER_WITH_SOURCES = """Photosynthesis turns light into chemical energy.

---
**Sources:**
- [Photosynthesis](https://www.britannica.com/science/photosynthesis) — Encyclopedia entry
- [Missing url]
- [Khan Academy](https://khanacademy.org/science/biology) - Video lessons
"""


class TestParseSources:
    """Tests for parse_sources."""

    def test_no_block_returns_text_unchanged(self):
        """Test that plain answers carry no citations."""
        text = "Just an answer.\n\nWith two paragraphs."
        parsed = parse_sources(text)
        assert parsed.citations == ()
        assert parsed.display_text == text

    def test_block_is_stripped_and_entries_parsed(self):
        """Test that well-formed entries survive and malformed ones are skipped."""
        parsed = parse_sources(ANSWER_WITH_SOURCES)

        assert parsed.display_text == "Photosynthesis turns light into chemical energy."
        assert parsed.citations == (
            Citation(
                title="Photosynthesis",
                url="https://www.britannica.com/science/photosynthesis",
                domain="britannica.com",
                description="Encyclopedia entry",
            ),
            Citation(
                title="Khan Academy",
                url="https://khanacademy.org/science/biology",
                domain="khanacademy.org",
                description="Video lessons",
            ),
        )

    def test_numbered_and_starred_entries(self):
        """Test that numbered and asterisk lists are accepted."""
        text = (
            "Answer.\n\n---\n**Sources:**\n"
            "1. [First](https://one.example/a)\n"
            "* [Second](https://two.example/b) – en dash note\n"
        )
        parsed = parse_sources(text)
        assert [c.title for c in parsed.citations] == ["First", "Second"]
        assert parsed.citations[0].description is None
        assert parsed.citations[1].description == "en dash note"

    def test_header_without_entries(self):
        """Test that an empty sources block is still removed from display."""
        parsed = parse_sources("Answer.\n---\n**Sources:**")
        assert parsed.citations == ()
        assert parsed.display_text == "Answer."

    def test_rule_without_sources_header_is_kept(self):
        """Test that an ordinary horizontal rule is not treated as a block."""
        text = "Part one.\n\n---\n\nPart two."
        assert parse_sources(text).display_text == text

    def test_parsing_is_idempotent(self):
        """Test that parsing the display text again finds nothing."""
        first = parse_sources(ANSWER_WITH_SOURCES)
        second = parse_sources(first.display_text)
        assert second.citations == ()
        assert second.display_text == first.display_text

    def test_order_is_preserved(self):
        """Test that citations keep their written order."""
        lines = "\n".join(f"- [S{i}](https://s{i}.example)" for i in range(5))
        parsed = parse_sources(f"A.\n---\n**Sources:**\n{lines}")
        assert [c.title for c in parsed.citations] == [f"S{i}" for i in range(5)]


class TestSourceLine:
    """Tests for single entry parsing."""

    @pytest.mark.parametrize(
        "line",
        ["- [Missing url]", "plain text", "[No bullet](https://x.example)", "-"],
    )
    def test_rejects_non_link_entries(self, line):
        """Test that malformed lines yield nothing."""
        assert parse_source_line(line) is None

    def test_blank_description_is_none(self):
        """Test that a dangling separator leaves no description."""
        citation = parse_source_line("- [T](https://t.example) -   ")
        assert citation is not None
        assert citation.description is None


class TestExtractDomain:
    """Tests for extract_domain."""

    @pytest.mark.parametrize(
        "url,domain",
        [
            ("https://www.example.com/path?q=1", "example.com"),
            ("http://docs.python.org/3/", "docs.python.org"),
            ("https://WWW.Example.com", "example.com"),
        ],
    )
    def test_host_without_www(self, url, domain):
        """Test that the leading www. is dropped."""
        assert extract_domain(url) == domain

    def test_unparsable_url_falls_back_to_raw(self):
        """Test that an invalid url is returned as-is."""
        assert extract_domain("http://[::1") == "http://[::1"

    def test_relative_url_falls_back_to_raw(self):
        """Test that a url without a host is returned as-is."""
        assert extract_domain("/local/page") == "/local/page"


class TestRenderContent:
    """Tests for the combined message view."""

    def test_final_message_view(self):
        """Test reasoning, answer and citations together."""
        content = (
            "<thinking>Recall the sources.</thinking>\n\n"
            "Answer body.\n\n---\n**Sources:**\n- [Ref](https://www.ref.example)"
        )
        view = render_content(content)
        assert view.reasoning == "Recall the sources."
        assert view.reasoning_complete
        assert view.answer == "Answer body."
        assert [c.domain for c in view.citations] == ["ref.example"]
        assert view.is_streaming is False

    def test_streaming_message_keeps_raw_answer(self):
        """Test that citations are not extracted while streaming."""
        content = "Answer.\n---\n**Sources:**\n- [Ref](https://ref.example)"
        view = render_content(content, is_streaming=True)
        assert view.citations == ()
        assert view.answer == content
