from hypothesis import given, strategies as st

from tmplconv.converter import TemplateConverter
from tmplconv.models import ConversionRequest, Repo
from tmplconv.store import InMemoryTemplateStore

names = st.from_regex(r"[a-z][a-z0-9_]{0,15}", fullmatch=True)

TEMPLATE_BODY = "kind: pipeline\nname: {{ .input.name }}\n"


def make_converter() -> TemplateConverter:
    store = InMemoryTemplateStore()
    _ = store.add("octocat", "named.yaml", TEMPLATE_BODY)
    return TemplateConverter(store)


@st.composite
def documents(draw: st.DrawFn) -> tuple[bool, str]:
    """A (is_template, name) pair."""
    return draw(st.booleans()), draw(names)


with_template = st.lists(documents(), min_size=1, max_size=6).filter(
    lambda docs: any(is_template for is_template, _ in docs)
)


def render_input(docs: list[tuple[bool, str]]) -> tuple[str, list[str]]:
    """Build a stream and the text each document should produce."""
    spans: list[str] = []
    outputs: list[str] = []
    for index, (is_template, name) in enumerate(docs):
        marker = "---\n" if index else ""
        if is_template:
            spans.append(f"{marker}kind: template\nload: named.yaml\ndata:\n  name: '{name}'\n")
            outputs.append(f"kind: pipeline\nname: {name}\n")
        else:
            body = f"{marker}kind: pipeline\nname: {name}\n"
            spans.append(body)
            outputs.append(body)
    return "".join(spans), outputs


@given(docs=with_template)
def test_documents_appear_in_input_order(docs: list[tuple[bool, str]]) -> None:
    data, outputs = render_input(docs)

    result = make_converter().convert(
        ConversionRequest(data=data, repo=Repo(namespace="octocat"))
    )

    assert result is not None
    position = 0
    for text in outputs:
        found = result.data.find(text, position)
        assert found >= position
        position = found + len(text)


@given(docs=with_template)
def test_output_is_marker_separated(docs: list[tuple[bool, str]]) -> None:
    data, _ = render_input(docs)

    result = make_converter().convert(
        ConversionRequest(data=data, repo=Repo(namespace="octocat"))
    )

    assert result is not None
    chunks = [chunk for chunk in result.data.split("---\n") if chunk]
    assert len(chunks) == len(docs)


@given(names=st.lists(names, min_size=1, max_size=4))
def test_leading_pipelines_are_unchanged(names: list[str]) -> None:
    data = "---\n".join(f"kind: pipeline\nname: {name}\n" for name in names)
    data += "---\nkind: template\nload: named.yaml\ndata:\n  name: tail\n"
    expected_prefix = data.split("---\nkind: template")[0]

    result = make_converter().convert(
        ConversionRequest(data=data, repo=Repo(namespace="octocat"))
    )

    assert result is not None
    assert result.data.startswith(expected_prefix)


@given(
    data=st.text(max_size=200),
    path=st.sampled_from([".drone.star", ".drone.jsonnet", "config.json", "Dronefile", ""]),
)
def test_non_yaml_paths_are_skipped(data: str, path: str) -> None:
    request = ConversionRequest(data=data, path=path, repo=Repo(namespace="octocat"))

    assert make_converter().convert(request) is None
