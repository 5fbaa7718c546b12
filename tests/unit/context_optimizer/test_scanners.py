import pytest

from context_optimizer.scanners import (
    inside_spans,
    quoted_spans,
    strip_brace_comments,
    strip_comments,
    strip_hash_comments,
    strip_line_doc_blocks,
    strip_markup_comments,
    strip_sql_comments,
    strip_stylesheet_comments,
)


@pytest.mark.unit
def test_brace_comment_inside_string_and_url_survives() -> None:
    source = 'const url = "http://example.com/a//b"; // note\n'

    text, _ = strip_brace_comments(source)

    assert text == 'const url = "http://example.com/a//b"; \n'


@pytest.mark.unit
def test_brace_template_literal_is_untouched() -> None:
    source = "const t = `see https://x.io/a /* not */`; /* gone */ const y = 2;"

    text, _ = strip_brace_comments(source)

    assert "`see https://x.io/a /* not */`" in text
    assert "gone" not in text
    assert text.endswith(" const y = 2;")


@pytest.mark.unit
def test_brace_escaped_quote_does_not_close_string() -> None:
    source = 'const s = "a \\" // not a comment"; // real'

    text, _ = strip_brace_comments(source)

    assert text == 'const s = "a \\" // not a comment"; '


@pytest.mark.unit
def test_brace_doc_comments_kept_when_preserving_docs() -> None:
    source = "/** Doc. */\nfunction f() {} // inline\n/// triple\n"

    text, removed = strip_brace_comments(source, keep_docs=True, keep_ordinary=False)

    assert text == "/** Doc. */\nfunction f() {} \n/// triple\n"
    assert removed == 0


@pytest.mark.unit
def test_brace_doc_comments_dropped_and_counted() -> None:
    source = "/** Doc. */\nfunction f() {} // inline\n//! inner doc\n"

    text, removed = strip_brace_comments(source, keep_docs=False, keep_ordinary=True)

    assert text == "\nfunction f() {} // inline\n\n"
    assert removed == 2  # noqa: PLR2004


@pytest.mark.unit
def test_brace_single_quote_recovers_at_end_of_line() -> None:
    source = "let c = 'x'; // c1\nfn f<'a>() {} // c2\nlet d = 1; // c3\n"

    text, _ = strip_brace_comments(source)

    assert "c1" not in text
    assert "c3" not in text
    assert "let d = 1; \n" in text


@pytest.mark.unit
def test_brace_unterminated_constructs_do_not_raise() -> None:
    assert strip_brace_comments('const s = "abc // never closed').text == 'const s = "abc // never closed'
    assert strip_brace_comments("a /* never closed").text == "a "


@pytest.mark.unit
def test_hash_keeps_shebang_and_quoted_hashes() -> None:
    source = "#!/usr/bin/env python\nx = 1  # note\ny = '#not'\n"

    assert strip_hash_comments(source, allow_shebang=True) == "#!/usr/bin/env python\nx = 1  \ny = '#not'\n"


@pytest.mark.unit
def test_hash_shebang_removed_when_not_allowed() -> None:
    assert strip_hash_comments("#!/usr/bin/env ruby\nputs 1\n") == "\nputs 1\n"


@pytest.mark.unit
def test_hash_triple_quoted_string_is_immune() -> None:
    source = 's = """\n# inside\n"""  # outside\n'

    assert strip_hash_comments(source) == 's = """\n# inside\n"""  \n'


@pytest.mark.unit
def test_hash_shell_parameter_expansions_are_not_comments() -> None:
    assert strip_hash_comments("echo $# ${#arr[@]} # c\n") == "echo $# ${#arr[@]} \n"


@pytest.mark.unit
def test_sql_strips_line_and_block_comments_outside_strings() -> None:
    source = "SELECT '--not' AS a, 'it''s' -- gone\nFROM t /* block */ WHERE x = 1;\n"

    assert strip_sql_comments(source) == "SELECT '--not' AS a, 'it''s' \nFROM t  WHERE x = 1;\n"


@pytest.mark.unit
def test_markup_and_stylesheet_comments() -> None:
    assert strip_markup_comments("<div><!-- hidden --><p>x</p></div>") == "<div><p>x</p></div>"
    css = "a { background: url(http://x.io/a.png); } /* c */\n"
    assert strip_stylesheet_comments(css) == "a { background: url(http://x.io/a.png); } \n"


@pytest.mark.unit
def test_line_doc_blocks_only_above_declarations() -> None:
    source = (
        "// Package foo does x.\n"
        "// More.\n"
        "package foo\n"
        "\n"
        "// helper comment\n"
        "x := 1\n"
        "\n"
        "// Run runs.\n"
        "func Run() {}\n"
    )

    text, removed = strip_line_doc_blocks(source)

    assert text == "package foo\n\n// helper comment\nx := 1\n\nfunc Run() {}\n"
    assert removed == 2  # noqa: PLR2004


@pytest.mark.unit
def test_strip_comments_unmapped_extension_is_identity() -> None:
    source = "# title\n<!-- c -->\n// c\n"

    delta = strip_comments(source, "md", preserve_docs=False)

    assert delta.content == source
    assert delta.comments_removed == 0


@pytest.mark.unit
def test_strip_comments_counts_removed_characters() -> None:
    delta = strip_comments("x = 1  # a comment that is long\n", ".PY", preserve_docs=False)

    assert delta.content == "x = 1  \n"
    assert delta.comments_removed == 1


@pytest.mark.unit
def test_strip_comments_vue_removes_markup_and_script_comments() -> None:
    source = "<template><!-- t --></template>\n<script>\nconst a = 1; // s\n</script>\n"

    delta = strip_comments(source, "vue", preserve_docs=True)

    assert delta.content == "<template></template>\n<script>\nconst a = 1; \n</script>\n"
    assert delta.comments_removed > 0


@pytest.mark.unit
def test_brace_consecutive_doc_lines_count_as_one_unit() -> None:
    source = "/// First.\n    /// Second.\nfn a() {}\n\n/// Other.\nfn b() {}\n//! inner\n"

    text, removed = strip_brace_comments(source, keep_docs=False, keep_ordinary=True)

    assert text == "\n    \nfn a() {}\n\n\nfn b() {}\n\n"
    assert removed == 3  # noqa: PLR2004


@pytest.mark.unit
def test_line_doc_blocks_inside_raw_string_are_kept() -> None:
    source = "var s = `\n// not doc\nfunc x\n`\n// Real.\nfunc Real() {}\n"

    text, removed = strip_line_doc_blocks(source)

    assert text == "var s = `\n// not doc\nfunc x\n`\nfunc Real() {}\n"
    assert removed == 1


@pytest.mark.unit
def test_strip_comments_go_keeps_doc_blocks_when_preserving_docs() -> None:
    source = "// Run runs.\nfunc Run() {} // trailing\n"

    kept = strip_comments(source, "go", preserve_docs=True)
    dropped = strip_comments(source, "go", preserve_docs=False)

    assert kept.content == "// Run runs.\nfunc Run() {} \n"
    assert dropped.content == "\nfunc Run() {} \n"


@pytest.mark.unit
def test_quoted_spans_follow_family_rules() -> None:
    python = "a = 'x'  # it's\nb = \"\"\"q\n'\"\"\"\n"
    spans = quoted_spans(python, hash_comments=True)

    assert [python[s:e] for s, e in spans] == ["'x'", "\"\"\"q\n'\"\"\""]
    assert inside_spans(python.index("q"), spans)
    assert not inside_spans(python.index("b"), spans)

    rust = "fn f<'a>(x: &'a str) {} // don't\nlet s = \"//\";\n"
    spans = quoted_spans(rust, hash_comments=False)

    assert [rust[s:e] for s, e in spans] == ["'a>(x: &'", '"//"']
