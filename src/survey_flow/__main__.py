"""CLI entry point for survey-flow."""

import json
import logging
import sys

import click

from survey_flow import build_flow
from survey_flow.ir.blocks import dump_blocks, load_blocks


def _read_items(text: str) -> list:
    """Accept a bare block list or an object with an ``items`` list."""
    data = json.loads(text)
    if isinstance(data, dict):
        data = data.get("items")
    if not isinstance(data, list):
        raise ValueError("expected a JSON list of blocks or an object with an 'items' list")
    return data


@click.command()
@click.argument("input", required=False, type=click.Path(exists=True))
@click.option("--indent", "-i", "indent", type=int, default=2, help="JSON indent (0 for compact output)")
@click.option("--output", "-o", "output", type=str, default=None, help="Write output to this file instead of stdout")
@click.option("--verbose", "-v", "verbose", is_flag=True, help="Log layout and routing decisions to stderr")
@click.option("--blocks", "blocks_only", is_flag=True, help="Print the normalised block list instead of the flow graph")
def main(input: str | None, indent: int, output: str | None, verbose: bool, blocks_only: bool) -> None:
    """Survey block list (JSON) to a laid-out, routed flow graph (JSON)."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    if input:
        try:
            with open(input, encoding="utf-8") as f:
                text = f.read()
        except (OSError, UnicodeDecodeError) as e:
            click.echo(f"error: cannot read '{input}': {e}", err=True)
            sys.exit(1)
    else:
        text = sys.stdin.read()

    try:
        items = _read_items(text)
    except ValueError as e:
        click.echo(f"invalid input: {e}", err=True)
        sys.exit(1)

    blocks = load_blocks(items)
    data = dump_blocks(blocks) if blocks_only else build_flow(blocks).to_dict()
    rendered = json.dumps(data, indent=indent or None) + "\n"

    if output:
        try:
            with open(output, "w") as f:
                f.write(rendered)
        except OSError as e:
            click.echo(f"error: cannot write '{output}': {e}", err=True)
            sys.exit(1)
    else:
        click.echo(rendered, nl=False)


if __name__ == "__main__":
    main()
