"""Describe a function descriptor without starting anything."""

import sys
from pathlib import Path

import cyclopts

from fnrun.cli.console import get_console
from fnrun.cli.util import build_config
from fnrun.config import load_descriptor
from fnrun.domain.function.model.component import ComponentMap
from fnrun.domain.function.model.descriptor import FunctionDescriptor
from fnrun.domain.shared.error import ConfigurationError

app = cyclopts.App(name="describe", help="Show triggers, components, hooks and tracing")

_COMPONENT_COLUMNS = [
    ("name", "Name"),
    ("component", "Component"),
    ("type", "Type"),
    ("detail", "Topic / Operation"),
]


def _component_rows(components: ComponentMap) -> list[dict[str, str]]:
    return [
        {
            "name": name,
            "component": c.component_name,
            "type": c.component_type,
            "detail": c.topic or c.operation or "",
        }
        for name, c in components.items()
    ]


def _summary(descriptor: FunctionDescriptor) -> str:
    tracing = descriptor.tracing_settings
    triggers = []
    if descriptor.has_http_trigger():
        triggers.append(f"http (port {descriptor.listen_port})")
    if descriptor.has_event_trigger():
        triggers.append(f"events ({len(descriptor.event_triggers())})")
    lines = [
        f"[cyan]Version:[/cyan] {descriptor.version or '-'}",
        f"[cyan]Triggers:[/cyan] {', '.join(triggers) or 'none'}",
        f"[cyan]Pre hooks:[/cyan] {', '.join(descriptor.pre_hook_names) or '-'}",
        f"[cyan]Post hooks:[/cyan] {', '.join(descriptor.post_hook_names) or '-'}",
        f"[cyan]Tracing:[/cyan] "
        + (f"{tracing.provider_name or 'opentelemetry'}" if tracing.enabled else "disabled"),
    ]
    return "\n".join(lines)


@app.default
def describe(*, context_file: Path | None = None) -> None:
    """Print the function descriptor in FUNC_CONTEXT (or ``context_file``).

    Args:
        context_file: Path to the JSON function descriptor.
    """
    console = get_console()
    try:
        descriptor = load_descriptor(build_config(context_file=context_file))
    except ConfigurationError as e:
        console.error(e.message)
        sys.exit(1)

    console.panel(_summary(descriptor), title=f"[bold]{descriptor.name}[/bold]", border_style="blue")
    for title, components in (
        ("Event triggers", descriptor.event_triggers()),
        ("Inputs", descriptor.get_inputs()),
        ("Outputs", descriptor.get_outputs()),
        ("States", descriptor.get_states()),
    ):
        if components:
            console.table(_component_rows(components), _COMPONENT_COLUMNS, title=title)
