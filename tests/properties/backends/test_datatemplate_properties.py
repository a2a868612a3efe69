from hypothesis import given, strategies as st

from tmplconv.backends import translate_root_references

brace_free = st.text(alphabet=st.characters(blacklist_characters="{}"))
paths = st.lists(st.from_regex(r"[a-z_][a-z0-9_]{0,8}", fullmatch=True), min_size=1, max_size=4)


@given(text=brace_free)
def test_text_without_tags_is_unchanged(text: str) -> None:
    assert translate_root_references(text) == text


@given(root=st.sampled_from(["build", "repo", "input"]), path=paths, before=brace_free)
def test_leading_dot_is_removed_inside_tags(root: str, path: list[str], before: str) -> None:
    reference = ".".join([root, *path])

    result = translate_root_references(f"{before}{{{{ .{reference} }}}}")

    assert result == f"{before}{{{{ {reference} }}}}"


@given(root=st.sampled_from(["build", "repo", "input"]), path=paths)
def test_translation_is_idempotent(root: str, path: list[str]) -> None:
    source = f"{{% if .{root}.{'.'.join(path)} %}}x{{% endif %}}"

    once = translate_root_references(source)

    assert translate_root_references(once) == once
