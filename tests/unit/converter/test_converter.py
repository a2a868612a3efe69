"""Unit tests for TemplateConverter."""

import json
import time

import pytest
import yaml

from tmplconv.backends import BackendRegistry, create_default_registry
from tmplconv.config import Config
from tmplconv.context import ConversionContext
from tmplconv.converter import TemplateConverter
from tmplconv.exceptions import (
    BackendError,
    ConversionCancelledError,
    DeadlineExceededError,
    DocumentSyntaxError,
    InvalidExtensionError,
    ResourceLimitError,
    StoreError,
    TemplateNotFoundError,
    TemplateReferenceInvalidError,
    UnsupportedKindError,
)
from tmplconv.models import Repo

GREETING_REF = """\
kind: template
load: greeting.yaml
data:
  name: world
"""

PIPELINE_BODY = """\
kind: pipeline
name: {{ .input.name }}
steps:
- name: build
  image: golang
  commands:
  - go build
"""


class FailingStore:
    def find_by_name(self, context, name, namespace):
        msg = "database is locked"
        raise RuntimeError(msg)


class ExplodingBackend:
    @property
    def name(self) -> str:
        return "exploding"

    def render(self, context, template, backend_context) -> str:
        msg = "boom"
        raise ValueError(msg)


class EchoBackend:
    @property
    def name(self) -> str:
        return "echo"

    def render(self, context, template, backend_context) -> str:
        return f"kind: pipeline\nname: {backend_context.input['name']}\n"


class TestApplicability:
    @pytest.mark.parametrize("path", [".drone.star", ".drone.jsonnet", "drone.json", "Dronefile"])
    def test_non_yaml_path_is_not_applicable(self, converter, make_request, path: str) -> None:
        assert converter.convert(make_request(GREETING_REF, path=path)) is None

    def test_yaml_without_template_kind_is_not_applicable(
        self, converter, make_request
    ) -> None:
        data = "kind: pipeline\nname: default\n"

        assert converter.convert(make_request(data)) is None

    def test_indented_template_kind_is_not_applicable(self, converter, make_request) -> None:
        data = "kind: pipeline\nsteps:\n- name: a\n  kind: template\n"

        assert converter.convert(make_request(data)) is None

    def test_not_applicable_never_queries_store(self, converter, store, make_request) -> None:
        _ = converter.convert(make_request(GREETING_REF, path=".drone.star"))

        assert store.lookups == []

    def test_skip_is_logged(self, store, make_request, captured_logger) -> None:
        converter = TemplateConverter(store, logger=captured_logger.logger)

        _ = converter.convert(make_request("kind: pipeline\n"))

        assert captured_logger.events == ["conversion_skipped"]


class TestDataTemplateExpansion:
    def test_renders_input_data(self, converter, store, make_request) -> None:
        _ = store.add("octocat", "greeting.yaml", "hello {{ .input.name }}")

        result = converter.convert(make_request(GREETING_REF))

        assert result is not None
        assert result.data == "hello world"

    def test_build_and_repo_are_in_context(self, converter, store, make_request) -> None:
        _ = store.add(
            "octocat",
            "greeting.yaml",
            "{{ .build.commit }} {{ .repo.name }} {{ .input.name }}",
        )

        result = converter.convert(make_request(GREETING_REF))

        assert result is not None
        assert result.data == "abc123 hello-world world"

    def test_lookup_uses_name_without_extension_in_repo_namespace(
        self, converter, store, make_request
    ) -> None:
        _ = store.add("octocat", "greeting.yaml", "hello")

        _ = converter.convert(make_request(GREETING_REF))

        assert store.lookups == [("octocat", "greeting")]

    def test_null_data_is_empty_input(self, converter, store, make_request) -> None:
        _ = store.add("octocat", "static.yml", "kind: pipeline\nname: static\n")
        data = "kind: template\nload: static.yml\ndata:\n"

        result = converter.convert(make_request(data))

        assert result is not None
        assert result.data == "kind: pipeline\nname: static\n"

    def test_output_decodes_as_pipeline(self, converter, store, make_request) -> None:
        _ = store.add("octocat", "greeting.yaml", PIPELINE_BODY)

        result = converter.convert(make_request(GREETING_REF))

        assert result is not None
        document = yaml.safe_load(result.data)
        assert document["name"] == "world"
        assert document["steps"][0]["image"] == "golang"


class TestMixedStreams:
    def test_alternating_documents_keep_order(self, converter, store, make_request) -> None:
        _ = store.add("octocat", "greeting.yaml", "kind: pipeline\nname: {{ .input.name }}\n")
        data = (
            "kind: pipeline\nname: first\n"
            "---\n" + GREETING_REF + "---\n"
            "kind: pipeline\nname: last\n"
        )

        result = converter.convert(make_request(data))

        assert result is not None
        assert result.data == (
            "kind: pipeline\nname: first\n"
            "---\nkind: pipeline\nname: world\n"
            "---\nkind: pipeline\nname: last\n"
        )
        names = [doc["name"] for doc in yaml.safe_load_all(result.data)]
        assert names == ["first", "world", "last"]

    def test_pipeline_segments_are_byte_identical(self, converter, store, make_request) -> None:
        _ = store.add("octocat", "greeting.yaml", "kind: pipeline\nname: {{ .input.name }}\n")
        first = "kind: pipeline\nname: first   # keep this comment\nenvironment: {A: 1}\n"
        last = "---\nkind:   pipeline\n\nname: 'last'\n\n# trailing comment\n"
        data = first + "---\n" + GREETING_REF + last

        segments = list(converter.iter_segments(make_request(data)))

        assert [s.document.index for s in segments] == [0, 1, 2]
        assert [s.expanded for s in segments] == [False, True, False]
        assert segments[0].text == first
        assert segments[2].text == last

    def test_two_templates_are_separated(self, converter, store, make_request) -> None:
        _ = store.add("octocat", "greeting.yaml", "kind: pipeline\nname: {{ .input.name }}")
        data = GREETING_REF + "---\n" + GREETING_REF.replace("world", "mars")

        result = converter.convert(make_request(data))

        assert result is not None
        assert result.data == "kind: pipeline\nname: world\n---\nkind: pipeline\nname: mars"

    def test_only_pipelines_pass_through_assembler(self, converter, make_request) -> None:
        data = "---\nkind: pipeline\nname: a\n---\nkind: pipeline\nname: b\n...\n"

        assert converter.assemble(make_request(data)) == data

    def test_conversion_is_idempotent(self, converter, store, make_request) -> None:
        _ = store.add("octocat", "greeting.yaml", PIPELINE_BODY)
        data = "kind: pipeline\nname: first\n---\n" + GREETING_REF

        result = converter.convert(make_request(data))

        assert result is not None
        assert converter.convert(make_request(result.data)) is None


class TestScriptExpansion:
    def test_script_documents_are_json(self, converter, store, make_request) -> None:
        _ = store.add(
            "octocat",
            "plugin.star",
            "def main(ctx):\n"
            "    return {'kind': 'pipeline', 'name': ctx.input.name, 'commit': ctx.build.commit}\n",
        )
        data = "kind: template\nload: plugin.star\ndata:\n  name: world\n"

        result = converter.convert(make_request(data))

        assert result is not None
        assert result.data.startswith("---\n")
        document = json.loads(result.data.removeprefix("---\n"))
        assert document == {"kind": "pipeline", "name": "world", "commit": "abc123"}

    def test_unbounded_loop_hits_step_limit(self, converter, store, make_request) -> None:
        _ = store.add(
            "octocat",
            "loop.star",
            "def main(ctx):\n    n = 0\n    while True:\n        n += 1\n    return {}\n",
        )
        data = "kind: pipeline\nname: before\n---\nkind: template\nload: loop.star\n"

        with pytest.raises(ResourceLimitError) as exc_info:
            _ = converter.convert(make_request(data))

        assert exc_info.value.limit == "steps"
        assert exc_info.value.maximum == 50_000
        assert exc_info.value.document == 1

    def test_configured_step_limit_is_used(self, store, make_request, captured_logger) -> None:
        config = Config.from_dict({"script": {"step_limit": 10}})
        converter = TemplateConverter.from_config(store, config, logger=captured_logger.logger)
        _ = store.add(
            "octocat",
            "loop.star",
            "def main(ctx):\n    for i in range(100):\n        pass\n    return {}\n",
        )

        with pytest.raises(ResourceLimitError) as exc_info:
            _ = converter.convert(make_request("kind: template\nload: loop.star\n"))

        assert exc_info.value.maximum == 10


class TestDataLangExpansion:
    def test_jsonnet_stream(self, converter, store, make_request) -> None:
        _ = store.add(
            "octocat",
            "matrix.jsonnet",
            '[{kind: "pipeline", name: n} for n in std.extVar("input.names")]',
        )
        data = "kind: template\nload: matrix.jsonnet\ndata:\n  names: [a, b]\n"

        result = converter.convert(make_request(data))

        assert result is not None
        names = [doc["name"] for doc in yaml.safe_load_all(result.data)]
        assert names == ["a", "b"]


class TestErrors:
    def test_missing_template(self, converter, make_request) -> None:
        with pytest.raises(TemplateNotFoundError) as exc_info:
            _ = converter.convert(make_request(GREETING_REF))

        assert exc_info.value.name == "greeting"
        assert exc_info.value.namespace == "octocat"
        assert exc_info.value.document == 0

    def test_template_in_other_namespace_is_not_found(
        self, converter, store, make_request
    ) -> None:
        _ = store.add("other", "greeting.yaml", "hello")

        with pytest.raises(TemplateNotFoundError):
            _ = converter.convert(make_request(GREETING_REF))

    def test_invalid_extension_checked_before_store(
        self, converter, store, make_request
    ) -> None:
        data = "kind: template\nload: plugin.txt\n"

        with pytest.raises(InvalidExtensionError) as exc_info:
            _ = converter.convert(make_request(data))

        assert exc_info.value.extension == ".txt"
        assert exc_info.value.load == "plugin.txt"
        assert store.lookups == []

    @pytest.mark.parametrize(
        ("data", "field"),
        [
            ("kind: template\n", "load"),
            ("kind: template\nload: ''\n", "load"),
            ("kind: template\nload: 42\n", "load"),
            ("kind: template\nload: a.yaml\ndata: [1, 2]\n", "data"),
            ("kind: template\nload: a.yaml\ndata: {1: one}\n", "data"),
        ],
    )
    def test_invalid_reference(self, converter, make_request, data: str, field: str) -> None:
        with pytest.raises(TemplateReferenceInvalidError) as exc_info:
            _ = converter.convert(make_request(data))

        assert exc_info.value.field == field
        assert exc_info.value.document == 0

    def test_unsupported_kind(self, converter, make_request) -> None:
        data = "kind: secret\nname: token\n---\nkind: template\nload: a.yaml\n"

        with pytest.raises(UnsupportedKindError) as exc_info:
            _ = converter.convert(make_request(data))

        assert exc_info.value.kind == "secret"
        assert exc_info.value.document == 0

    def test_missing_kind(self, converter, make_request) -> None:
        data = "name: orphan\n---\nkind: template\nload: a.yaml\n"

        with pytest.raises(DocumentSyntaxError, match="missing kind"):
            _ = converter.convert(make_request(data))

    def test_invalid_yaml(self, converter, make_request) -> None:
        data = "kind: template\nload: [unclosed\n"

        with pytest.raises(DocumentSyntaxError) as exc_info:
            _ = converter.convert(make_request(data))

        assert exc_info.value.line is not None
        assert exc_info.value.column is not None

    def test_store_failure_is_wrapped(self, make_request) -> None:
        converter = TemplateConverter(FailingStore())

        with pytest.raises(StoreError) as exc_info:
            _ = converter.convert(make_request(GREETING_REF))

        assert isinstance(exc_info.value.cause, RuntimeError)
        assert exc_info.value.document == 0

    def test_backend_failure_is_wrapped(self, store, make_request) -> None:
        registry = BackendRegistry()
        registry.register(ExplodingBackend(), ".yaml")
        converter = TemplateConverter(store, registry)
        _ = store.add("octocat", "greeting.yaml", "hello")

        with pytest.raises(BackendError) as exc_info:
            _ = converter.convert(make_request(GREETING_REF))

        assert exc_info.value.backend == "exploding"
        assert exc_info.value.template == "greeting.yaml"
        assert isinstance(exc_info.value.cause, ValueError)

    def test_failure_is_logged(self, store, make_request, captured_logger) -> None:
        converter = TemplateConverter(store, logger=captured_logger.logger)

        with pytest.raises(TemplateNotFoundError):
            _ = converter.convert(make_request(GREETING_REF))

        [failure] = captured_logger.find("conversion_failed")
        assert failure["error_type"] == "TemplateNotFoundError"
        assert failure["document"] == 0


class TestContext:
    def test_cancelled_context(self, converter, store, make_request) -> None:
        _ = store.add("octocat", "greeting.yaml", "hello")
        context = ConversionContext()
        context.cancel()

        with pytest.raises(ConversionCancelledError):
            _ = converter.convert(make_request(GREETING_REF, context=context))

        assert store.lookups == []

    def test_expired_deadline(self, converter, store, make_request) -> None:
        _ = store.add("octocat", "greeting.yaml", "hello")
        context = ConversionContext(deadline=time.monotonic() - 1)

        with pytest.raises(DeadlineExceededError):
            _ = converter.convert(make_request(GREETING_REF, context=context))


class TestExtensibility:
    def test_registered_backend_is_used(self, store, make_request) -> None:
        registry = create_default_registry()
        registry.register(EchoBackend(), ".echo")
        converter = TemplateConverter(store, registry)
        _ = store.add("octocat", "plugin.echo", "")
        data = "kind: template\nload: plugin.echo\ndata:\n  name: echoed\n"

        result = converter.convert(make_request(data))

        assert result is not None
        assert result.data == "kind: pipeline\nname: echoed\n"

    def test_events_are_logged(self, store, make_request, captured_logger) -> None:
        converter = TemplateConverter(store, logger=captured_logger.logger)
        _ = store.add("octocat", "greeting.yaml", "kind: pipeline\nname: x\n")
        data = "kind: pipeline\nname: a\n---\n" + GREETING_REF

        _ = converter.convert(make_request(data))

        assert captured_logger.events == [
            "document_passthrough",
            "template_resolved",
            "template_expanded",
            "conversion_completed",
        ]

    def test_converter_accepts_repo_namespace(self, converter, store, make_request) -> None:
        _ = store.add("acme", "greeting.yaml", "acme {{ .input.name }}")

        result = converter.convert(make_request(GREETING_REF, repo=Repo(namespace="acme")))

        assert result is not None
        assert result.data == "acme world"
