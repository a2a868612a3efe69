"""In-memory template store.

Implements TemplateStore without any backing storage. Useful for tests and
for hosts that load templates up front; tests can opt in to recording
lookups.
"""

from dataclasses import dataclass, field
from pathlib import PurePosixPath

from tmplconv.context import ConversionContext
from tmplconv.exceptions import TemplateNotFoundError
from tmplconv.store._models import Template


@dataclass(slots=True)
class InMemoryTemplateStore:
    """Dict-backed template store keyed by (namespace, name).

    Example:
        >>> store = InMemoryTemplateStore()
        >>> _ = store.add("octocat", "greeting.yaml", "hello {{ .input.name }}")
        >>> ctx = ConversionContext.background()
        >>> store.find_by_name(ctx, "greeting", "octocat").extension
        '.yaml'
    """

    templates: dict[tuple[str, str], Template] = field(default_factory=dict)
    record_lookups: bool = False
    lookups: list[tuple[str, str]] = field(default_factory=list)

    def add(self, namespace: str, filename: str, data: str) -> Template:
        """Store a template under its filename's stem.

        Args:
            namespace: Namespace to store the template in.
            filename: Template name including its extension.
            data: Template body.

        Returns:
            The stored template.
        """
        path = PurePosixPath(filename)
        template = Template(
            name=filename.removesuffix(path.suffix) if path.suffix else filename,
            namespace=namespace,
            extension=path.suffix,
            data=data,
        )
        self.templates[template.namespace, template.name] = template
        return template

    def find_by_name(
        self,
        context: ConversionContext,
        name: str,
        namespace: str,
    ) -> Template:
        """Look up a template, noting it in ``lookups`` when ``record_lookups`` is set."""
        context.check()
        if self.record_lookups:
            self.lookups.append((namespace, name))
        try:
            return self.templates[namespace, name]
        except KeyError:
            msg = f"template {name!r} not found in namespace {namespace!r}"
            raise TemplateNotFoundError(msg, name=name, namespace=namespace) from None
