"""
handoffcore CLI - Inspect and validate test contracts in agent output.

Commands:
    handoffcore parse      Show the contract embedded in an agent output file
    handoffcore validate   Validate a handoff (and optionally its completion)
"""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Optional

import click
import yaml

from handoffcore import __version__
from handoffcore.contracts.handoff import TestContractValidator, parse_contract


def _load_data_file(path: Optional[str]) -> Any:
    """Read handoff data or an agent result from YAML or JSON."""
    if path is None:
        return {}
    with open(path, encoding="utf-8") as fh:
        data = yaml.safe_load(fh)
    return {} if data is None else data


def _echo_json(payload: Any) -> None:
    click.echo(json.dumps(payload, indent=2, default=str))


@click.group()
@click.version_option(__version__, prog_name="handoffcore")
def cli():
    """Test-contract validation for agent handoffs."""
    pass


@cli.command("parse")
@click.argument("output_file", type=click.Path(exists=True, dir_okay=False))
def parse_cmd(output_file: str):
    """Print the TEST_CONTRACT found in OUTPUT_FILE as JSON.

    Exits with status 1 when the file holds no valid contract.

    Example:
        handoffcore parse ./agent-output.md
    """
    text = Path(output_file).read_text(encoding="utf-8")
    contract = parse_contract(text)
    if contract is None:
        click.echo(f"Error: no valid TEST_CONTRACT in {output_file}", err=True)
        sys.exit(1)

    _echo_json(contract.model_dump(mode="json", by_alias=True))


@cli.command("validate")
@click.option("--from-agent", "-f", required=True, help="Agent that produced the output")
@click.option("--to-agent", "-t", required=True, help="Agent receiving the handoff")
@click.option(
    "--output", "-o", "output_file", required=True,
    type=click.Path(exists=True, dir_okay=False),
    help="File with the producing agent's output (contains TEST_CONTRACT)",
)
@click.option(
    "--data", "-d", "data_file", type=click.Path(exists=True, dir_okay=False),
    help="YAML/JSON file with the handoff data",
)
@click.option(
    "--result", "-r", "result_file", type=click.Path(exists=True, dir_okay=False),
    help="YAML/JSON file with the receiving agent's result; checks postconditions",
)
@click.option("--log-file", type=click.Path(dir_okay=False), help="Validation log file")
@click.option("--timeout-ms", type=int, help="Timeout per awaited condition or rollback")
def validate_cmd(
    from_agent: str,
    to_agent: str,
    output_file: str,
    data_file: Optional[str],
    result_file: Optional[str],
    log_file: Optional[str],
    timeout_ms: Optional[int],
):
    """Validate a handoff between two agents.

    Runs the preconditions of the contract in --output against --data.
    With --result, also runs the postconditions once the preconditions
    pass. Prints the results as JSON and exits with status 1 on failure.

    Example:
        handoffcore validate -f planner -t coder \\
            --output planner-output.md --data handoff.yaml --result coder.json
    """
    options: dict[str, Any] = {}
    if log_file:
        options["log_file"] = log_file
    if timeout_ms is not None:
        options["timeout_ms"] = timeout_ms

    validator = TestContractValidator(**options)
    agent_output = Path(output_file).read_text(encoding="utf-8")
    handoff_data = _load_data_file(data_file)

    async def _run() -> dict[str, Any]:
        handoff = await validator.validate_handoff(
            from_agent, to_agent, agent_output, handoff_data
        )
        report: dict[str, Any] = {
            "handoff": handoff.model_dump(mode="json", exclude_none=True, fallback=str)
        }
        success = handoff.success
        if handoff.success and result_file:
            completion = await validator.validate_completion(
                handoff.validation_id,
                _load_data_file(result_file),
                handoff.contract,
                handoff_data,
            )
            report["completion"] = completion.model_dump(
                mode="json", exclude_none=True, fallback=str
            )
            success = completion.success
        report["success"] = success
        return report

    report = asyncio.run(_run())
    _echo_json(report)
    if not report["success"]:
        sys.exit(1)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
