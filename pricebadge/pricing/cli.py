"""
Pricing CLI - inspect and try out price badge declarations.
"""

import asyncio
import json
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..nodes.definitions import NodeDefinitionStore
from ..nodes.graph import Node
from .compiler import RuleCompiler
from .rules import PricingRule
from .scheduler import NodePricing

console = Console()


def _load_store(path: str) -> NodeDefinitionStore:
    try:
        return NodeDefinitionStore.load(Path(path))
    except (OSError, ValueError) as e:
        console.print(f"[bold red]✗ Could not load definitions:[/bold red] {e}")
        sys.exit(2)


def _parse_widget(option: str) -> tuple:
    if '=' not in option:
        raise click.BadParameter(f"expected name=value, got {option!r}", param_hint="--widget")
    name, value = option.split('=', 1)
    # Try to parse as JSON, fall back to string
    try:
        return name, json.loads(value)
    except json.JSONDecodeError:
        return name, value


@click.command('check')
@click.argument('definitions', type=click.Path(exists=True, dir_okay=False))
def check(definitions: str):
    """Compile every price badge in a definitions file."""

    store = _load_store(definitions)
    compiler = RuleCompiler()

    table = Table(title="💲 Price Badges", show_header=True, header_style="bold")
    table.add_column("Node Type")
    table.add_column("Engine")
    table.add_column("Depends On")
    table.add_column("Status")

    failures = 0
    priced = store.list_priced()
    for definition in sorted(priced, key=lambda d: d.name):
        rule = PricingRule.from_badge(definition.price_badge)
        compiled = compiler.compile(definition.name, rule)

        if compiled.ok:
            status = "[green]✓ ok[/green]"
        else:
            failures += 1
            status = f"[red]✗ {compiled.error}[/red]"

        table.add_row(
            definition.name,
            rule.engine,
            ", ".join(rule.dependency_names()) or "[dim]-[/dim]",
            status,
        )

    console.print()
    console.print(table)
    console.print(f"\n{len(priced) - failures}/{len(priced)} price badges compiled\n")

    if failures:
        sys.exit(1)


@click.command('deps')
@click.argument('definitions', type=click.Path(exists=True, dir_okay=False))
@click.argument('node_type')
def deps(definitions: str, node_type: str):
    """List the widgets and inputs a node type's price depends on."""

    store = _load_store(definitions)
    pricing = NodePricing(definitions=store, compiler=RuleCompiler())

    for name in pricing.get_relevant_dependency_names(node_type):
        click.echo(name)


@click.command('price')
@click.argument('definitions', type=click.Path(exists=True, dir_okay=False))
@click.argument('node_type')
@click.option('--widget', '-w', multiple=True, help='Widget value as name=value (repeatable)')
@click.option('--input', '-i', 'inputs', multiple=True, help='Connected input name (repeatable)')
@click.option('--json', 'as_json', is_flag=True, help='Output as JSON')
def price(definitions: str, node_type: str, widget: tuple, inputs: tuple, as_json: bool):
    """Evaluate a node type's price badge for the given widget values."""

    store = _load_store(definitions)
    definition = store.get(node_type)
    if definition is None:
        console.print(f"[bold red]✗ Unknown node type:[/bold red] {node_type}")
        sys.exit(1)

    node = Node(definition=definition)
    for option in widget:
        name, value = _parse_widget(option)
        node.set_widget_value(name, value)
    for link_id, name in enumerate(inputs, start=1):
        node.connect(name, link_id)

    pricing = NodePricing(definitions=store, compiler=RuleCompiler())
    label = asyncio.run(pricing.settle(node))

    if as_json:
        click.echo(json.dumps({
            "node_type": node_type,
            "label": label,
            "config": pricing.get_pricing_config(node),
        }, indent=2))
        return

    console.print()
    console.print(Panel(
        f"[bold cyan]{label}[/bold cyan]" if label else "[dim]no price[/dim]",
        title=f"💲 {definition.display_name or node_type}",
    ))
    console.print()
