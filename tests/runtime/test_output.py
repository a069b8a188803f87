"""
Тесты потокового вывода.
"""

from __future__ import annotations

import io

import pytest

from jinx import Environment, TemplateRuntimeError


@pytest.fixture
def loop_template(env: Environment):
    return env.from_string("{% for i in items %}{{ i }}{% endfor %}")


class TestStream:
    """TemplateStream и generate."""

    def test_generate_matches_render(self, loop_template):
        items = [1, 2, 3]
        assert "".join(loop_template.generate(items=items)) == loop_template.render(items=items)

    def test_stream_yields_chunks(self, loop_template):
        assert list(loop_template.stream(items=[1, 2, 3])) == ["1", "2", "3"]

    def test_enable_buffering(self, loop_template):
        stream = loop_template.stream(items=[1, 2, 3])
        stream.enable_buffering(2)
        assert stream.buffered
        assert list(stream) == ["12", "3"]

    def test_buffer_size_too_small(self, loop_template):
        with pytest.raises(ValueError, match="buffer size too small"):
            loop_template.stream(items=[]).enable_buffering(1)

    def test_dump_to_file(self, loop_template, tmp_path):
        target = tmp_path / "out.txt"
        loop_template.stream(items=["a", "b"]).dump(str(target))
        assert target.read_text() == "ab"

    def test_dump_encoded(self, loop_template):
        sink = io.BytesIO()
        loop_template.stream(items=["é"]).dump(sink, encoding="utf-8")
        assert sink.getvalue() == "é".encode("utf-8")


class TestRenderTo:
    """Запись результата в поток."""

    def test_returns_written_size(self, env):
        sink = io.StringIO()
        assert env.from_string("hello {{ x }}").render_to(sink, x="you") == 9
        assert sink.getvalue() == "hello you"

    def test_buffered_leaves_no_partial_output(self, env):
        sink = io.StringIO()
        with pytest.raises(TemplateRuntimeError):
            env.from_string("start {{ 1 / 0 }}").render_to(sink)
        assert sink.getvalue() == ""

    def test_unbuffered_writes_as_it_goes(self, env):
        sink = io.StringIO()
        with pytest.raises(TemplateRuntimeError):
            env.from_string("start {{ 1 / 0 }}").render_to(sink, buffered=False)
        assert sink.getvalue() == "start "
